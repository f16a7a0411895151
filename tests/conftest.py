# tests/conftest.py
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from grammar_builder.logging_setup import reset_logging
from grammar_builder.runner import ToolEntryPoint

# A stand-in generator following the JavaCC / JJDoc / JTB output conventions:
#   -OUTPUT_DIRECTORY=<dir>  -> writes <dir>/<Stem>Parser.java
#   -OUTPUT_FILE=<file>      -> writes <file>
#   -o <file>                -> writes <file>
#   -np/-vp <pkg>            -> writes ./<last segment>/{Node,Visitor}.java relative to cwd
# Inputs whose name contains "Broken" fail with exit code 3.
FAKE_TOOL_SOURCE = textwrap.dedent(
    '''
    import os
    import sys
    from pathlib import Path

    args = sys.argv[1:]
    log = os.environ.get("FAKE_TOOL_LOG")
    if log:
        with open(log, "a", encoding="utf-8") as fh:
            fh.write("\\t".join(args) + "\\n")

    inp = Path(args[-1])
    flags = args[:-1]
    out_dir = None
    out_file = None
    for a in flags:
        if a.startswith("-OUTPUT_DIRECTORY="):
            out_dir = Path(a.split("=", 1)[1])
        elif a.startswith("-OUTPUT_FILE="):
            out_file = Path(a.split("=", 1)[1])
    if "-o" in flags:
        out_file = Path(flags[flags.index("-o") + 1])

    print("Fake Generator Version 1.0", flush=True)
    if "Broken" in inp.name:
        print("Warning: about to fail", flush=True)
        print("Error: Encountered problem in " + inp.name, file=sys.stderr, flush=True)
        sys.exit(3)

    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / (inp.stem + "Parser.java")).write_text("// generated from " + inp.name + "\\n")
    if out_file is not None:
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text("generated from " + inp.name + "\\n")
    for opt, cls in (("-np", "Node"), ("-vp", "Visitor")):
        if opt in flags:
            pkg = flags[flags.index(opt) + 1]
            d = Path.cwd() / pkg.rsplit(".", 1)[-1]
            d.mkdir(parents=True, exist_ok=True)
            (d / (cls + ".java")).write_text("// " + pkg + "\\n")
    sys.exit(0)
    '''
)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI tests reconfigure structlog globally; restore defaults around every test."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def fake_tool_script(tmp_path: Path) -> Path:
    p = tmp_path / "fake_tool.py"
    p.write_text(FAKE_TOOL_SOURCE, encoding="utf-8")
    return p


@pytest.fixture
def fake_entry_point(fake_tool_script: Path) -> ToolEntryPoint:
    return ToolEntryPoint(script=fake_tool_script)


@pytest.fixture
def tool_calls(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[], List[List[str]]]:
    """Records every fake tool run; returns a reader for the argument vectors so far."""
    log = tmp_path / "calls.log"
    monkeypatch.setenv("FAKE_TOOL_LOG", str(log))

    def read() -> List[List[str]]:
        if not log.exists():
            return []
        return [line.split("\t") for line in log.read_text(encoding="utf-8").splitlines() if line]

    return read


def grammar_text(parser: str, package: Optional[str] = None) -> str:
    pkg = f"package {package};\n" if package else ""
    return (
        "options {\n  STATIC = false;\n}\n\n"
        f"PARSER_BEGIN({parser})\n{pkg}\npublic class {parser} {{}}\n\nPARSER_END({parser})\n\n"
        "void Start() : {} { <EOF> }\n"
    )


@pytest.fixture
def write_grammar() -> Callable[..., Path]:
    def _write(root: Path, rel: str, *, parser: Optional[str] = None, package: Optional[str] = None) -> Path:
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(grammar_text(parser or Path(rel).stem, package), encoding="utf-8")
        return p

    return _write
