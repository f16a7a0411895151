# grammar_builder/errors.py
"""
Exception taxonomy for the grammar build driver.

Fatal errors (abort the whole invocation):
  - BuildSetupError: output / marker / work directories cannot be created
  - ScanError: a source root cannot be read

Per-file errors (recorded, the build moves on to the next grammar):
  - PackageResolutionError (an OSError): grammar unreadable while extracting its package
  - ToolFailure: generator exited non-zero or could not be launched
  - RelocationError: generated files could not be moved into place

BuildFailure aggregates the per-file failures of one invocation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .models import FileOutcome


class GrammarBuildError(Exception):
    """Base class for every error raised by grammar_builder."""

    stage: str = "build"


class BuildSetupError(GrammarBuildError):
    stage = "setup"


class ScanError(GrammarBuildError):
    stage = "scan"

    def __init__(self, root: Path, reason: str) -> None:
        self.root = Path(root)
        self.reason = reason
        super().__init__(f"Error scanning source root '{self.root}': {reason}")


class PackageResolutionError(GrammarBuildError, OSError):
    stage = "resolve"

    def __init__(self, grammar: Path, reason: str) -> None:
        self.grammar = Path(grammar)
        self.reason = reason
        super().__init__(f"Failed to retrieve package name from grammar file {self.grammar}: {reason}")


class ToolFailure(GrammarBuildError):
    stage = "generate"

    def __init__(
        self,
        tool: str,
        input_file: Optional[Path],
        exit_code: Optional[int],
        detail: str = "",
    ) -> None:
        self.tool = tool
        self.input_file = Path(input_file) if input_file is not None else None
        self.exit_code = exit_code
        self.detail = detail

        if exit_code is None:
            msg = f"Failed to execute {tool}"
        else:
            msg = f"{tool} reported exit code {exit_code}"
        if self.input_file is not None:
            msg += f": {self.input_file}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class RelocationError(GrammarBuildError):
    stage = "relocate"

    def __init__(self, destination: Path, failures: Sequence[Tuple[Path, str]]) -> None:
        self.destination = Path(destination)
        self.failures: List[Tuple[Path, str]] = list(failures)
        first = self.failures[0] if self.failures else None
        msg = f"Failed to move {len(self.failures)} generated file(s) -> {self.destination}"
        if first:
            msg += f" (first: {first[0]}: {first[1]})"
        super().__init__(msg)


class BuildFailure(GrammarBuildError):
    """Raised by BuildReport.raise_for_failures() when any grammar failed."""

    def __init__(self, tool: str, failures: Sequence["FileOutcome"]) -> None:
        self.tool = tool
        self.failures = list(failures)
        lines = [f"{tool}: {len(self.failures)} grammar file(s) failed"]
        for outcome in self.failures:
            lines.append(f"  - [{outcome.stage}] {outcome.grammar}: {outcome.error}")
        super().__init__("\n".join(lines))


__all__ = [
    "GrammarBuildError",
    "BuildSetupError",
    "ScanError",
    "PackageResolutionError",
    "ToolFailure",
    "RelocationError",
    "BuildFailure",
]
