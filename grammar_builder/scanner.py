# grammar_builder/scanner.py
from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Set

import structlog

from .errors import ScanError
from .models import SourceRoot

logger = structlog.get_logger()


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """
    Translate an Ant-style pattern into a regex over '/'-separated relative paths.

      **   any number of directories (including none)
      *    any run of characters within one path segment
      ?    exactly one character within one path segment

    A trailing '/' is shorthand for '/**'.
    """
    pat = pattern.replace("\\", "/").strip()
    if pat.endswith("/"):
        pat += "**"
    pat = pat.lstrip("/")

    segments = pat.split("/")
    out = []
    for i, seg in enumerate(segments):
        last = i == len(segments) - 1
        if seg == "**":
            # "**" as the last segment matches everything below; otherwise zero or more dirs.
            out.append(".*" if last else "(?:[^/]*/)*")
            continue
        buf = []
        for ch in seg:
            if ch == "*":
                buf.append("[^/]*")
            elif ch == "?":
                buf.append("[^/]")
            else:
                buf.append(re.escape(ch))
        out.append("".join(buf) + ("" if last else "/"))
    return re.compile("".join(out) + r"\Z")


def matches(relative_path: str, patterns: Iterable[str]) -> bool:
    rel = relative_path.replace("\\", "/")
    return any(compile_pattern(p).match(rel) for p in patterns)


def scan(root: SourceRoot) -> Set[Path]:
    """
    Return the absolute paths of all files under `root.directory` selected by the
    include patterns and not rejected by the exclude patterns.

    A missing root yields an empty set. An unreadable root (or sub directory)
    raises ScanError. The result is a set: callers must not rely on ordering.
    """
    base = Path(root.directory)
    if not base.exists():
        logger.debug("source_root_missing", root=str(base))
        return set()
    if not base.is_dir():
        raise ScanError(base, "not a directory")

    def _on_error(err: OSError) -> None:
        raise ScanError(base, f"{err.filename}: {err.strerror or err}") from err

    # os.walk swallows the initial listing error unless onerror re-raises it.
    try:
        os.scandir(base).close()
    except OSError as e:
        raise ScanError(base, e.strerror or str(e)) from e

    found: Set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(base, onerror=_on_error):
        dirnames.sort()
        rel_dir = Path(dirpath).relative_to(base)
        for name in filenames:
            rel = (rel_dir / name).as_posix()
            if not matches(rel, root.includes):
                continue
            if root.excludes and matches(rel, root.excludes):
                continue
            found.add((Path(dirpath) / name).absolute())

    logger.debug(
        "source_root_scanned",
        root=str(base),
        includes=list(root.includes),
        excludes=list(root.excludes),
        matched=len(found),
    )
    return found


__all__ = ["compile_pattern", "matches", "scan"]
