# grammar_builder/build.py
from __future__ import annotations

import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import structlog

from . import scanner, staleness
from .config import BuildSettings, resolve_layout
from .errors import BuildSetupError, PackageResolutionError, RelocationError, ToolFailure
from .models import BuildReport, FileOutcome, GrammarFile, SourceRoot
from .relocate import relocate_plan
from .runner import ForkedToolRunner, ToolEntryPoint
from .tools import GeneratorTool, OptionsInput, get_tool

logger = structlog.get_logger()


def _ensure_dir(d: Optional[Path], what: str) -> None:
    if d is None:
        return
    try:
        d.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BuildSetupError(f"Cannot create {what} directory {d}: {e.strerror or e}") from e


class BuildDriver:
    """
    Incremental driver for one generator tool.

    Per source root:
        scanning -> filtering -> for each stale grammar:
            resolving -> generating -> relocating -> marking fresh

    A failure on one grammar is recorded and the next grammar is processed;
    setup and scan errors abort the whole build.
    """

    def __init__(
        self,
        tool: GeneratorTool,
        *,
        output_directory: Path,
        timestamp_directory: Optional[Path] = None,
        stale_millis: int = 0,
        runner: Optional[ForkedToolRunner] = None,
        work_directory: Optional[Path] = None,
    ) -> None:
        if stale_millis < 0:
            raise ValueError(f"stale_millis must be >= 0, got {stale_millis}")
        self.tool = tool
        self.output_directory = Path(output_directory).absolute()
        self.timestamp_directory = (
            Path(timestamp_directory).absolute()
            if (timestamp_directory is not None and tool.uses_markers)
            else None
        )
        self.stale_millis = stale_millis
        self.work_directory = Path(work_directory).absolute() if work_directory is not None else Path.cwd()
        self.runner = runner or ForkedToolRunner(cwd=self.work_directory)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def source_root(
        self,
        directory: Path,
        includes: Optional[Sequence[str]] = None,
        excludes: Optional[Sequence[str]] = None,
    ) -> SourceRoot:
        return SourceRoot.create(directory, self.tool.extensions, includes, excludes)

    def build(self, roots: Iterable[SourceRoot]) -> BuildReport:
        report = BuildReport(tool=self.tool.name)
        start = time.time()

        _ensure_dir(self.output_directory, "output")
        _ensure_dir(self.timestamp_directory, "timestamp")
        _ensure_dir(self.work_directory, "work")

        for root in roots:
            self._process_root(root, report)

        logger.info(
            "build_finished",
            tool=self.tool.name,
            processed=len(report.processed),
            failed=len(report.failures),
            up_to_date=report.up_to_date,
            duration_s=round(time.time() - start, 2),
        )
        return report

    # ------------------------------------------------------------------
    # Per root
    # ------------------------------------------------------------------
    def _process_root(self, root: SourceRoot, report: BuildReport) -> None:
        # A root that exists but is not a directory is left to scan() to reject.
        if not root.directory.exists():
            logger.debug("source_root_skipped", root=str(root.directory), reason="missing")
            report.skipped_roots.append(root.directory)
            return

        log = logger.bind(tool=self.tool.name, root=str(root.directory))
        log.debug("scanning")
        candidates = scanner.scan(root)

        log.debug("filtering", candidates=len(candidates))
        stale = staleness.filter_stale(
            candidates, root.directory, self.timestamp_directory, self.stale_millis
        )
        report.up_to_date += len(candidates) - len(stale)

        if not stale:
            log.info("grammars_up_to_date")
            return

        log.info("grammars_stale", count=len(stale), up_to_date=len(candidates) - len(stale))
        for path in sorted(stale):
            outcome = self._process_grammar(self.tool.grammar(path, root), report)
            report.outcomes.append(outcome)

    # ------------------------------------------------------------------
    # Per grammar
    # ------------------------------------------------------------------
    def _process_grammar(self, grammar: GrammarFile, report: BuildReport) -> FileOutcome:
        start = time.time()
        log = logger.bind(tool=self.tool.name, grammar=str(grammar.path))

        def failed(stage: str, err: Exception, exit_code: Optional[int] = None) -> FileOutcome:
            log.error("grammar_failed", stage=stage, error=str(err))
            return FileOutcome(
                grammar=grammar.path,
                stage=stage,  # type: ignore[arg-type]
                status="FAILED",
                error=str(err),
                exit_code=exit_code,
                duration_s=time.time() - start,
            )

        # Resolving
        try:
            invocation = self.tool.invocation(grammar, self.output_directory)
        except PackageResolutionError as e:
            return failed("resolve", e)

        # Generating
        try:
            invocation.output_directory.mkdir(parents=True, exist_ok=True)
            self.tool.prepare(grammar, invocation)
        except OSError as e:
            return failed("generate", ToolFailure(self.tool.name, grammar.path, None, str(e)))

        log.debug("generating", arguments=list(invocation.arguments))
        try:
            self.runner.invoke(self.tool.entry_point, invocation, classifier=self.tool.classifier)
        except ToolFailure as e:
            return failed("generate", e, e.exit_code)

        # Relocating
        try:
            for plan in self.tool.relocation_plans(grammar, invocation, self.runner.cwd or self.work_directory):
                relocate_plan(plan)
        except RelocationError as e:
            return failed("relocate", e)

        report.entries.append(self.tool.report_entry(grammar, invocation, self.output_directory))

        # Marking fresh: only after verified generation + relocation.
        warnings: List[str] = []
        stage = "relocate"
        if self.timestamp_directory is not None:
            stage = "mark"
            try:
                staleness.mark_fresh(grammar.path, grammar.root.directory, self.timestamp_directory)
            except OSError as e:
                msg = f"Failed to create copy for timestamp check: {grammar.path}: {e}"
                log.warning("marker_write_failed", error=str(e))
                warnings.append(msg)

        duration = time.time() - start
        log.info("grammar_generated", output=str(invocation.output_target), duration_s=round(duration, 2))
        return FileOutcome(
            grammar=grammar.path,
            stage=stage,  # type: ignore[arg-type]
            status="OK",
            duration_s=duration,
            warnings=tuple(warnings),
        )


# -----------------------------------------------------------------------------
# Programmatic API
# -----------------------------------------------------------------------------
def _entry_point(tool_name: str, settings: BuildSettings) -> Optional[ToolEntryPoint]:
    if settings.TOOL_COMMAND:
        return ToolEntryPoint.from_command(settings.TOOL_COMMAND)
    if settings.TOOL_MODULE:
        return ToolEntryPoint(module=settings.TOOL_MODULE)
    return None


def build_grammars(
    tool_name: str,
    *,
    settings: Optional[BuildSettings] = None,
    options: OptionsInput = None,
    tool: Optional[GeneratorTool] = None,
) -> BuildReport:
    """
    Programmatic entrypoint (usable without spawning another orchestrator process).

    Resolves directories from `settings` (falling back to the tool's default
    layout), runs the incremental build and, when REPORT_FILE is set, writes
    the JSON index of generated outputs.
    """
    from .report import write_index

    settings = settings or BuildSettings()
    if tool is None:
        tool = get_tool(tool_name, options, entry_point=_entry_point(tool_name, settings))

    layout = resolve_layout(tool.name, settings, uses_markers=tool.uses_markers)
    logger.info(
        "build_started",
        tool=tool.name,
        entry_point=str(tool.entry_point),
        sources=[str(p) for p in layout.source_directories],
        output=str(layout.output_directory),
        timestamps=str(layout.timestamp_directory) if layout.timestamp_directory else None,
    )

    driver = BuildDriver(
        tool,
        output_directory=layout.output_directory,
        timestamp_directory=layout.timestamp_directory,
        stale_millis=settings.STALE_MILLIS,
        work_directory=layout.work_directory,
        runner=ForkedToolRunner(cwd=layout.work_directory, log_directory=layout.log_directory),
    )
    roots = [
        driver.source_root(d, settings.INCLUDES, settings.EXCLUDES)
        for d in layout.source_directories
    ]
    report = driver.build(roots)

    if settings.REPORT_FILE:
        write_index(report, settings.resolve(settings.REPORT_FILE))
    return report


__all__ = ["BuildDriver", "build_grammars"]
