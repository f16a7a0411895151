# grammar_builder/staleness.py
#
# Incremental-build memory.
#
# After a grammar has been generated successfully, a copy of it (mtime
# preserved) is written under the marker directory at the same relative
# path it has under its source root. A grammar is stale when that marker is
# missing or older than the grammar by more than `granularity_ms`.
#
# Deleting the marker directory is always safe: it forces a full rebuild.

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable, Optional, Set

import structlog

logger = structlog.get_logger()


def _mtime_ms(p: Path) -> int:
    return p.stat().st_mtime_ns // 1_000_000


def marker_path(source: Path, root_directory: Path, marker_directory: Path) -> Path:
    """Mirror `source`'s path relative to its root onto the marker directory."""
    rel = Path(source).absolute().relative_to(Path(root_directory).absolute())
    return Path(marker_directory) / rel


def is_stale(
    source: Path,
    root_directory: Path,
    marker_directory: Optional[Path],
    granularity_ms: int = 0,
) -> bool:
    """
    True when `source` must be regenerated.

    No caching: an earlier stage of the same build may have rewritten the
    source, so the filesystem is consulted on every call.
    """
    if granularity_ms < 0:
        raise ValueError(f"granularity_ms must be >= 0, got {granularity_ms}")
    if marker_directory is None:
        return True

    marker = marker_path(source, root_directory, marker_directory)
    try:
        marker_ms = _mtime_ms(marker)
    except FileNotFoundError:
        return True
    try:
        source_ms = _mtime_ms(Path(source))
    except OSError:
        # Vanished source or dangling link: let the resolve stage report it.
        return True
    return source_ms - marker_ms > granularity_ms


def filter_stale(
    files: Iterable[Path],
    root_directory: Path,
    marker_directory: Optional[Path],
    granularity_ms: int = 0,
) -> Set[Path]:
    return {
        f for f in files
        if is_stale(f, root_directory, marker_directory, granularity_ms)
    }


def mark_fresh(source: Path, root_directory: Path, marker_directory: Path) -> Path:
    """
    Record a successful generation of `source`.
    Must only be called once the generated output is known to be in place.
    """
    target = marker_path(source, root_directory, marker_directory)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
    logger.debug("marker_written", source=str(source), marker=str(target))
    return target


__all__ = ["marker_path", "is_stale", "filter_stale", "mark_fresh"]
