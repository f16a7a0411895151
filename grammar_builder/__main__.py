# grammar_builder/__main__.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from .build import build_grammars
from .config import BuildSettings
from .errors import BuildSetupError, ScanError
from .logging_setup import get_logger, init_logging
from .report import print_summary
from .tools import TOOLS, TOOL_NAMES

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="grammar_builder",
        description="Incremental build driver for JavaCC-family grammar generators.",
    )
    p.add_argument("tool", choices=TOOL_NAMES, help="Generator tool to run.")
    p.add_argument("--source-dir", dest="source_dirs", action="append", type=Path, default=None,
                   help="Grammar source root (repeatable). Defaults to the tool's standard layout.")
    p.add_argument("--output-dir", type=Path, default=None, help="Destination root for generated files.")
    p.add_argument("--timestamp-dir", type=Path, default=None, help="Marker directory for stale checks.")
    p.add_argument("--include", dest="includes", action="append", default=None, help="Ant-style include pattern.")
    p.add_argument("--exclude", dest="excludes", action="append", default=None, help="Ant-style exclude pattern.")
    p.add_argument("--stale-millis", type=int, default=None,
                   help="Granularity in ms of the last modification date comparison.")
    p.add_argument("--work-dir", type=Path, default=None, help="Working directory of the forked tool.")
    p.add_argument("--log-dir", type=Path, default=None, help="Write <grammar>.log here when a tool fails.")
    p.add_argument("--report", type=Path, default=None, help="Write the JSON index of generated outputs.")
    launch = p.add_mutually_exclusive_group()
    launch.add_argument("--tool-command", default=None,
                        help='Explicit tool command, e.g. "java -cp javacc.jar javacc".')
    launch.add_argument("--tool-module", default=None,
                        help="Python module run with the current interpreter (default: the tool name).")
    p.add_argument("-O", "--option", dest="options", action="append", default=[], metavar="NAME=VALUE",
                   help="Tool option; only options given here reach the tool's command line.")
    p.add_argument("--verbose", action="store_true", help="Verbose logging (includes tool output).")
    p.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr.")
    return p.parse_args(argv)


def _settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    pairs = {
        "SOURCE_DIRECTORIES": args.source_dirs,
        "OUTPUT_DIRECTORY": args.output_dir,
        "TIMESTAMP_DIRECTORY": args.timestamp_dir,
        "INCLUDES": args.includes,
        "EXCLUDES": args.excludes,
        "STALE_MILLIS": args.stale_millis,
        "WORK_DIRECTORY": args.work_dir,
        "LOG_DIRECTORY": args.log_dir,
        "REPORT_FILE": args.report,
        "TOOL_COMMAND": args.tool_command,
        "TOOL_MODULE": args.tool_module,
    }
    return {k: v for k, v in pairs.items() if v is not None}


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = _parse_args(argv)

    try:
        settings = BuildSettings(**_settings_overrides(args))
        options = TOOLS[args.tool].options_model.from_pairs(args.options)
    except (ValidationError, ValueError) as e:
        init_logging()
        get_logger(__name__).error("invalid_configuration", error=str(e))
        return EXIT_FATAL

    # CLI owns logging configuration; library modules only call structlog.get_logger().
    init_logging(
        level="DEBUG" if args.verbose else settings.LOG_LEVEL,
        fmt="json" if args.json_logs else settings.LOG_FORMAT.value,
        force=True,
    )
    log = get_logger(__name__)

    try:
        report = build_grammars(args.tool, settings=settings, options=options)
    except (BuildSetupError, ScanError) as e:
        log.error("build_aborted", stage=e.stage, error=str(e))
        return EXIT_FATAL

    print_summary(report)
    return EXIT_OK if report.success else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
