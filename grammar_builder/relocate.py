# grammar_builder/relocate.py
#
# Move generated files from where a tool actually wrote them into the
# package-shaped destination.
#
# The source directory may be the tool's working directory, which can hold
# anything, so only files matching the predicate are touched: each one is
# copied, and the original is deleted only after the copy succeeded. The
# destination is merged into, never cleared. Sub directories are not
# descended into (flat move).

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import structlog

from .errors import RelocationError
from .models import RelocationPlan

logger = structlog.get_logger()

FilePredicate = Callable[[Path], bool]


def suffix_filter(*suffixes: str) -> FilePredicate:
    wanted = tuple(s if s.startswith(".") else f".{s}" for s in suffixes)

    def _match(p: Path) -> bool:
        return p.name.endswith(wanted)

    return _match


@dataclass
class RelocationResult:
    source_directory: Path
    destination_directory: Path
    moved: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    source_removed: bool = False


def relocate(
    source_directory: Path,
    destination_directory: Path,
    predicate: Optional[FilePredicate] = None,
) -> RelocationResult:
    """
    Move every matching regular file of `source_directory` into `destination_directory`.

    Existing destination files with the same name are overwritten; unrelated
    destination files are left alone. Afterwards an empty source directory is
    removed and a non-empty one is kept.

    Raises RelocationError (after the clean-up step) if any single copy
    failed; the originals of failed copies stay where they were.
    """
    src = Path(source_directory)
    dst = Path(destination_directory)
    result = RelocationResult(source_directory=src, destination_directory=dst)

    if not src.is_dir():
        logger.debug("relocation_source_missing", source=str(src))
        return result

    if src.resolve() == dst.resolve():
        return result

    logger.debug("relocating_output", source=str(src), destination=str(dst))
    try:
        dst.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RelocationError(dst, [(dst, str(e))]) from e

    for entry in sorted(src.iterdir()):
        if not entry.is_file():
            continue
        if predicate is not None and not predicate(entry):
            continue
        try:
            shutil.copy2(entry, dst / entry.name)
        except OSError as e:
            logger.error("relocation_copy_failed", file=str(entry), destination=str(dst), error=str(e))
            result.failed.append((entry, str(e)))
            continue

        try:
            entry.unlink()
        except OSError as e:
            logger.error("relocation_delete_failed", file=str(entry), error=str(e))
        result.moved.append(dst / entry.name)

    if any(src.iterdir()):
        logger.warning("relocation_source_kept", source=str(src), reason="directory not empty")
    else:
        try:
            src.rmdir()
            result.source_removed = True
        except OSError as e:
            logger.error("relocation_source_delete_failed", source=str(src), error=str(e))

    if result.failed:
        raise RelocationError(dst, result.failed)

    logger.debug("relocated_output", moved=len(result.moved), destination=str(dst))
    return result


def relocate_plan(plan: RelocationPlan) -> RelocationResult:
    return relocate(
        plan.source_directory,
        plan.destination_directory,
        suffix_filter(*plan.suffixes) if plan.suffixes else None,
    )


__all__ = ["FilePredicate", "suffix_filter", "RelocationResult", "relocate", "relocate_plan"]
