# grammar_builder/runner.py
#
# Forked execution of generator tools.
#
# The generators end their hosting process themselves (on success as well as
# on fatal errors) and keep static state that cannot be reset, so every
# grammar gets its own fresh child process. Their only severity signal is a
# textual line prefix; LineClassifier maps those prefixes onto log levels.
#
# No timeout: a hung tool blocks the build.

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from .errors import ToolFailure
from .models import ToolInvocation

logger = structlog.get_logger()

ERROR_PREFIX = "Error: "
WARN_PREFIX = "Warning: "

DEBUG = "debug"
INFO = "info"
WARNING = "warning"
ERROR = "error"


def current_runtime() -> str:
    """
    The interpreter running this orchestrator. Children are started with the
    same one so module entry points resolve against the same environment.
    """
    exe = sys.executable
    if exe and Path(exe).exists():
        return exe
    for name in ("python3", "python"):
        found = shutil.which(name)
        if found:
            return found
    raise RuntimeError("Cannot locate a Python interpreter to fork generator tools with.")


@dataclass(frozen=True)
class ToolEntryPoint:
    """
    How to start a generator:
      - module:  <runtime> -m <module> ...
      - script:  <runtime> <script> ...
      - command: an explicit prefix (e.g. "java -cp javacc.jar javacc"), no runtime added
    """
    module: Optional[str] = None
    script: Optional[Path] = None
    command: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        given = sum(1 for v in (self.module, self.script, self.command) if v)
        if given != 1:
            raise ValueError("ToolEntryPoint needs exactly one of module, script or command")

    @classmethod
    def from_command(cls, command: str) -> "ToolEntryPoint":
        parts = tuple(shlex.split(command))
        if not parts:
            raise ValueError("Empty tool command")
        return cls(command=parts)

    def command_line(self, args: Sequence[str]) -> List[str]:
        if self.command:
            return [*self.command, *args]
        runtime = current_runtime()
        if self.module:
            return [runtime, "-m", self.module, *args]
        return [runtime, str(self.script), *args]

    def __str__(self) -> str:
        if self.command:
            return " ".join(self.command)
        return f"-m {self.module}" if self.module else str(self.script)


@dataclass(frozen=True)
class LineClassifier:
    """
    Maps one line of tool output to (level, message).

    Order of checks:
      "Error: "        -> error, prefix stripped
      "Warning: "      -> warning, prefix stripped
      quiet prefixes   -> debug, line kept (version banners)
      info prefixes    -> debug, prefix stripped
      other stderr     -> error (blank lines -> debug)
      other stdout     -> debug
    """
    quiet_prefixes: Tuple[str, ...] = ()
    info_prefixes: Tuple[str, ...] = ()

    def classify(self, line: str, *, stderr: bool) -> Tuple[str, str]:
        if line.startswith(ERROR_PREFIX):
            return ERROR, line[len(ERROR_PREFIX):]
        if line.startswith(WARN_PREFIX):
            return WARNING, line[len(WARN_PREFIX):]
        for prefix in self.quiet_prefixes:
            if line.startswith(prefix):
                return DEBUG, line
        for prefix in self.info_prefixes:
            if line.startswith(prefix):
                return DEBUG, line[len(prefix):]
        if stderr and line.strip():
            return ERROR, line
        return DEBUG, line


@dataclass
class ToolRun:
    """Captured result of one forked run."""
    command: List[str]
    exit_code: int
    duration_s: float
    lines: List[Tuple[str, str, str]] = field(default_factory=list)  # (stream, level, message)

    @property
    def errors(self) -> List[str]:
        return [msg for (_s, level, msg) in self.lines if level == ERROR]

    @property
    def warnings(self) -> List[str]:
        return [msg for (_s, level, msg) in self.lines if level == WARNING]

    def first_error(self) -> str:
        """Most relevant error line; falls back to the first non-empty line of output."""
        for msg in self.errors:
            if msg.strip():
                return msg.strip()
        for (_s, _level, msg) in self.lines:
            if msg.strip():
                return msg.strip()
        return f"Unknown Error (Exit Code {self.exit_code})"

    def transcript(self) -> str:
        out = [" ".join(self.command), ""]
        for stream, level, msg in self.lines:
            out.append(f"[{stream}:{level}] {msg}")
        return "\n".join(out) + "\n"


class ForkedToolRunner:
    """
    Runs generator tools in child processes and streams their output into structlog.

    cwd:            working directory of the child. Tools that write relative
                    to their cwd (JTB) write here.
    env:            extra environment for the child (merged over os.environ).
    log_directory:  when set, a failed run leaves <log_directory>/<input>.log.
    """

    def __init__(
        self,
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        log_directory: Optional[Path] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.env = dict(env) if env else None
        self.log_directory = Path(log_directory) if log_directory is not None else None
        self._popen = popen

    def _child_env(self) -> Optional[Dict[str, str]]:
        if not self.env:
            return None
        merged = dict(os.environ)
        merged.update(self.env)
        return merged

    def _pump(
        self,
        stream: IO[str],
        *,
        name: str,
        tool: str,
        classifier: LineClassifier,
        sink: List[Tuple[str, str, str]],
        lock: threading.Lock,
    ) -> None:
        is_err = name == "stderr"
        for raw in iter(stream.readline, ""):
            line = raw.rstrip("\r\n")
            level, message = classifier.classify(line, stderr=is_err)
            with lock:
                sink.append((name, level, message))
            getattr(logger, level)("tool_output", tool=tool, stream=name, line=message)
        stream.close()

    def run_command(
        self,
        tool: str,
        entry_point: ToolEntryPoint,
        args: Sequence[str],
        *,
        classifier: Optional[LineClassifier] = None,
        input_file: Optional[Path] = None,
    ) -> ToolRun:
        classifier = classifier or LineClassifier()
        cmd = entry_point.command_line(args)
        logger.debug("tool_forking", tool=tool, command=cmd, cwd=str(self.cwd) if self.cwd else None)

        start = time.time()
        try:
            proc = self._popen(
                cmd,
                cwd=str(self.cwd) if self.cwd else None,
                env=self._child_env(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise ToolFailure(tool, input_file, None, e.strerror or str(e)) from e

        lines: List[Tuple[str, str, str]] = []
        lock = threading.Lock()
        pumps = [
            threading.Thread(
                target=self._pump,
                args=(stream,),
                kwargs={"name": name, "tool": tool, "classifier": classifier, "sink": lines, "lock": lock},
                daemon=True,
            )
            for name, stream in (("stdout", proc.stdout), ("stderr", proc.stderr))
        ]
        for t in pumps:
            t.start()
        exit_code = proc.wait()
        for t in pumps:
            t.join()

        run = ToolRun(command=cmd, exit_code=exit_code, duration_s=time.time() - start, lines=lines)
        logger.debug("tool_exited", tool=tool, exit_code=exit_code, duration_s=round(run.duration_s, 3))
        return run

    def run(
        self,
        entry_point: ToolEntryPoint,
        args: Sequence[str],
        *,
        tool: str = "tool",
        classifier: Optional[LineClassifier] = None,
        input_file: Optional[Path] = None,
    ) -> int:
        """Fork the tool and return its exit code. Launch failures raise ToolFailure."""
        return self.run_command(tool, entry_point, args, classifier=classifier, input_file=input_file).exit_code

    def invoke(
        self,
        entry_point: ToolEntryPoint,
        invocation: ToolInvocation,
        *,
        classifier: Optional[LineClassifier] = None,
    ) -> ToolRun:
        """Run one ToolInvocation; a non-zero exit code raises ToolFailure."""
        run = self.run_command(
            invocation.tool,
            entry_point,
            invocation.arguments,
            classifier=classifier,
            input_file=invocation.input_file,
        )
        if run.exit_code != 0:
            self._write_failure_log(invocation, run)
            raise ToolFailure(invocation.tool, invocation.input_file, run.exit_code, run.first_error())
        return run

    def _write_failure_log(self, invocation: ToolInvocation, run: ToolRun) -> None:
        if self.log_directory is None:
            return
        log_path = self.log_directory / f"{invocation.input_file.name}.log"
        try:
            self.log_directory.mkdir(parents=True, exist_ok=True)
            log_path.write_text(run.transcript(), encoding="utf-8")
        except OSError as e:
            logger.warning("tool_log_write_failed", path=str(log_path), error=str(e))
            return
        logger.error("tool_log_written", tool=invocation.tool, path=str(log_path))


__all__ = [
    "ERROR_PREFIX",
    "WARN_PREFIX",
    "current_runtime",
    "ToolEntryPoint",
    "LineClassifier",
    "ToolRun",
    "ForkedToolRunner",
]
