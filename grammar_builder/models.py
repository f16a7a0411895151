# grammar_builder/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

from .grammar_info import GrammarInfo

Stage = Literal["scan", "resolve", "generate", "relocate", "mark"]
OutcomeStatus = Literal["OK", "FAILED"]


def default_includes(extensions: Sequence[str]) -> Tuple[str, ...]:
    """
    `**/*.jj` style patterns for each extension, plus the upper-case variant
    (`**/*.JJ`). Duplicates are dropped, order is kept.
    """
    out: List[str] = []
    for ext in extensions:
        ext = ext.lstrip(".")
        for variant in (ext, ext.upper()):
            pat = f"**/*.{variant}"
            if pat not in out:
                out.append(pat)
    return tuple(out)


@dataclass(frozen=True)
class SourceRoot:
    """
    A directory of grammar sources plus the Ant-style patterns selecting files in it.
    `includes` is never empty: use `SourceRoot.create()` to apply the defaults.
    """
    directory: Path
    includes: Tuple[str, ...]
    excludes: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.includes:
            raise ValueError(f"SourceRoot {self.directory} needs at least one include pattern")

    @classmethod
    def create(
        cls,
        directory: Path,
        extensions: Sequence[str],
        includes: Optional[Sequence[str]] = None,
        excludes: Optional[Sequence[str]] = None,
    ) -> "SourceRoot":
        incs = tuple(p for p in (includes or ()) if p and p.strip())
        if not incs:
            incs = default_includes(extensions)
        excs = tuple(p for p in (excludes or ()) if p and p.strip())
        return cls(directory=Path(directory).absolute(), includes=incs, excludes=excs)


@dataclass(frozen=True)
class GrammarFile:
    """A grammar discovered under a SourceRoot. Package info is resolved on first access."""
    path: Path
    root: SourceRoot
    package_override: Optional[str] = None
    encoding: str = "utf-8"

    @property
    def relative_path(self) -> Path:
        return self.path.relative_to(self.root.directory)

    @cached_property
    def info(self) -> GrammarInfo:
        # Raises PackageResolutionError when the file cannot be read.
        return GrammarInfo.from_file(
            self.path,
            package_override=self.package_override,
            encoding=self.encoding,
        )

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class ToolInvocation:
    """One run of a generator tool; built per grammar and discarded afterwards."""
    tool: str
    input_file: Path
    output_directory: Path
    output_target: Path
    options: Mapping[str, Any]
    arguments: Tuple[str, ...]


@dataclass(frozen=True)
class RelocationPlan:
    """Move files matching `suffixes` from the tool's actual output dir into place."""
    source_directory: Path
    destination_directory: Path
    suffixes: Tuple[str, ...] = (".java",)


@dataclass(frozen=True)
class ReportEntry:
    """(source file, generated output) pair handed to a report renderer; both root-relative."""
    source: str
    output: str

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "output": self.output}


@dataclass(frozen=True)
class FileOutcome:
    """
    Result of processing one stale grammar file.

    `stage` is the last stage reached: for failures it names the stage that
    failed, for successes it is "mark" (or "relocate" when marking is disabled).
    """
    grammar: Path
    stage: Stage
    status: OutcomeStatus
    error: Optional[str] = None
    exit_code: Optional[int] = None
    duration_s: float = 0.0
    warnings: Tuple[str, ...] = ()

    @property
    def is_ok(self) -> bool:
        return self.status == "OK"

    @property
    def is_failed(self) -> bool:
        return self.status == "FAILED"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grammar": str(self.grammar),
            "stage": self.stage,
            "status": self.status,
            "error": self.error,
            "exit_code": self.exit_code,
            "duration_s": round(self.duration_s, 3),
            "warnings": list(self.warnings),
        }


@dataclass
class BuildReport:
    """Aggregate of one build invocation across all source roots."""
    tool: str
    outcomes: List[FileOutcome] = field(default_factory=list)
    entries: List[ReportEntry] = field(default_factory=list)
    skipped_roots: List[Path] = field(default_factory=list)
    up_to_date: int = 0

    @property
    def failures(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.is_failed]

    @property
    def processed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.is_ok]

    @property
    def success(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        from .errors import BuildFailure

        if self.failures:
            raise BuildFailure(self.tool, self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "success": self.success,
            "up_to_date": self.up_to_date,
            "entries": [e.to_dict() for e in self.entries],
            "outcomes": [o.to_dict() for o in self.outcomes],
            "skipped_roots": [str(p) for p in self.skipped_roots],
        }


__all__ = [
    "Stage",
    "OutcomeStatus",
    "default_includes",
    "SourceRoot",
    "GrammarFile",
    "ToolInvocation",
    "RelocationPlan",
    "ReportEntry",
    "FileOutcome",
    "BuildReport",
]
