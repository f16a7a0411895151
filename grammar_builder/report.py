# grammar_builder/report.py
#
# Hand-off to report renderers:
#  - writes the JSON index of (source, generated output) pairs
#  - prints a human summary
#
# Rendering (HTML site pages etc.) is someone else's job.

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Optional, TextIO

import structlog

from .models import BuildReport

logger = structlog.get_logger()


def write_index(report: BuildReport, path: Path) -> Path:
    path = Path(path)
    payload = {
        "generated_at": time.strftime("%Y-%m-%d %H:%M:%S"),
        **report.to_dict(),
        "failures": [o.to_dict() for o in report.failures],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("report_index_written", path=str(path), entries=len(report.entries))
    return path


def print_summary(report: BuildReport, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    print(f"\n=== {report.tool.upper()} BUILD SUMMARY ===", file=stream)
    print(f"Generated:  {len(report.processed)}", file=stream)
    print(f"Up to date: {report.up_to_date}", file=stream)
    print(f"Failed:     {len(report.failures)}", file=stream)
    for root in report.skipped_roots:
        print(f"  [SKIP] {root} (missing source directory)", file=stream)
    for outcome in report.failures:
        print(f"  [FAIL] {outcome.grammar} ({outcome.stage}): {outcome.error}", file=stream)
    print(f"Result:     {'SUCCESS' if report.success else 'FAILURE'}", file=stream)


__all__ = ["write_index", "print_summary"]
