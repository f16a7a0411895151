# grammar_builder/config.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


class BuildSettings(BaseSettings):
    """
    Build configuration.
    Every field can come from the environment (GRAMMAR_BUILD_<FIELD>) or a .env file;
    unset directories fall back to the per-tool layout below.
    """

    # --- Project layout ---
    BASE_DIR: Path = Field(default_factory=Path.cwd)
    TARGET_DIR: Path = Path("target")

    # --- Sources ---
    SOURCE_DIRECTORIES: List[Path] = Field(default_factory=list)
    INCLUDES: List[str] = Field(default_factory=list)
    EXCLUDES: List[str] = Field(default_factory=list)

    # --- Outputs / incremental memory ---
    OUTPUT_DIRECTORY: Optional[Path] = None
    TIMESTAMP_DIRECTORY: Optional[Path] = None
    # Granularity in ms of the last-modified comparison between a grammar and its marker.
    STALE_MILLIS: int = Field(0, ge=0)

    # --- Forked tool ---
    # Working directory of the forked tool; tools writing cwd-relative output write here.
    WORK_DIRECTORY: Optional[Path] = None
    # Failed runs leave <LOG_DIRECTORY>/<grammar>.log when set.
    LOG_DIRECTORY: Optional[Path] = None
    # Either an explicit command ("java -cp javacc.jar javacc") or a python module run with
    # the current interpreter. Neither set: python -m <tool name>.
    TOOL_COMMAND: Optional[str] = None
    TOOL_MODULE: Optional[str] = None

    # --- Logging & reporting ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: LogFormat = LogFormat.CONSOLE
    REPORT_FILE: Optional[Path] = None

    model_config = SettingsConfigDict(env_prefix="GRAMMAR_BUILD_", env_file=".env", extra="ignore")

    def resolve(self, p: Path) -> Path:
        """Relative paths are taken relative to BASE_DIR."""
        p = Path(p)
        return p if p.is_absolute() else (Path(self.BASE_DIR) / p)

    @property
    def target_dir(self) -> Path:
        return self.resolve(self.TARGET_DIR)


@dataclass(frozen=True)
class ToolLayout:
    """Default directories of one tool, relative to BASE_DIR / TARGET_DIR."""
    sources: Tuple[str, ...]          # relative to BASE_DIR; "{target}" expands to TARGET_DIR
    output: str                       # relative to TARGET_DIR
    timestamps: Optional[str] = None  # relative to TARGET_DIR; None: no markers


TOOL_LAYOUTS: Dict[str, ToolLayout] = {
    "javacc": ToolLayout(
        sources=("src/main/javacc",),
        output="generated-sources/javacc",
        timestamps="generated-sources/javacc-timestamp",
    ),
    "jjtree": ToolLayout(
        sources=("src/main/jjtree",),
        output="generated-sources/jjtree",
        timestamps="generated-sources/jjtree-timestamp",
    ),
    "jtb": ToolLayout(
        sources=("src/main/jtb",),
        output="generated-sources/jtb",
        timestamps="generated-sources/jtb-timestamp",
    ),
    "jjdoc": ToolLayout(
        sources=("src/main/javacc", "{target}/generated-sources/jjtree"),
        output="site/jjdoc",
    ),
}


@dataclass(frozen=True)
class ResolvedLayout:
    source_directories: Tuple[Path, ...]
    output_directory: Path
    timestamp_directory: Optional[Path]
    work_directory: Path
    log_directory: Optional[Path]


def resolve_layout(tool_name: str, settings: BuildSettings, *, uses_markers: bool = True) -> ResolvedLayout:
    """Fill every directory the settings leave unset from the tool's default layout."""
    layout = TOOL_LAYOUTS[tool_name]
    target = settings.target_dir

    if settings.SOURCE_DIRECTORIES:
        sources = tuple(settings.resolve(p) for p in settings.SOURCE_DIRECTORIES)
    else:
        sources = tuple(
            Path(s.replace("{target}", str(target))) if s.startswith("{target}") else settings.resolve(Path(s))
            for s in layout.sources
        )

    output = settings.resolve(settings.OUTPUT_DIRECTORY) if settings.OUTPUT_DIRECTORY else target / layout.output

    timestamps: Optional[Path] = None
    if uses_markers:
        if settings.TIMESTAMP_DIRECTORY:
            timestamps = settings.resolve(settings.TIMESTAMP_DIRECTORY)
        elif layout.timestamps:
            timestamps = target / layout.timestamps

    work = settings.resolve(settings.WORK_DIRECTORY) if settings.WORK_DIRECTORY else Path(settings.BASE_DIR)
    logs = settings.resolve(settings.LOG_DIRECTORY) if settings.LOG_DIRECTORY else None

    return ResolvedLayout(
        source_directories=sources,
        output_directory=output,
        timestamp_directory=timestamps,
        work_directory=work,
        log_directory=logs,
    )


__all__ = [
    "LogFormat",
    "BuildSettings",
    "ToolLayout",
    "TOOL_LAYOUTS",
    "ResolvedLayout",
    "resolve_layout",
]
