"""
grammar_builder package.

Public API surface:
  - build_grammars: programmatic entrypoint for one generator tool
  - BuildDriver:    the incremental driver (scan -> stale filter -> generate -> relocate -> mark)
  - get_tool:       generator facades (javacc, jjtree, jtb, jjdoc)
"""

from .build import BuildDriver, build_grammars
from .config import BuildSettings
from .models import BuildReport, SourceRoot
from .tools import TOOL_NAMES, get_tool

__all__ = [
    "BuildDriver",
    "BuildReport",
    "BuildSettings",
    "SourceRoot",
    "TOOL_NAMES",
    "build_grammars",
    "get_tool",
]
