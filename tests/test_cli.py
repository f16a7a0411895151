"""
Tests for the command line entrypoint (python -m grammar_builder).
"""

from __future__ import annotations

import json
import shlex
import sys
from pathlib import Path
from typing import List

import pytest

from grammar_builder.__main__ import EXIT_FAILED, EXIT_FATAL, EXIT_OK, main


def _argv(tmp_path: Path, script: Path, *extra: str) -> List[str]:
    return [
        "javacc",
        "--source-dir", str(tmp_path / "src"),
        "--output-dir", str(tmp_path / "out"),
        "--timestamp-dir", str(tmp_path / "markers"),
        "--work-dir", str(tmp_path / "work"),
        "--tool-command", f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}",
        *extra,
    ]


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


def test_successful_build_exits_zero(tmp_path: Path, fake_tool_script: Path, write_grammar, capsys) -> None:
    write_grammar(tmp_path / "src", "Alpha.jj", package="org.a")

    code = main(_argv(tmp_path, fake_tool_script, "-O", "STATIC=false", "--report", str(tmp_path / "index.json")))

    assert code == EXIT_OK
    assert (tmp_path / "out" / "org" / "a" / "AlphaParser.java").is_file()
    out = capsys.readouterr().out
    assert "=== JAVACC BUILD SUMMARY ===" in out
    assert "Result:     SUCCESS" in out

    index = json.loads((tmp_path / "index.json").read_text(encoding="utf-8"))
    assert index["tool"] == "javacc"
    assert index["entries"] == [{"source": "Alpha.jj", "output": "org/a/Alpha.java"}]
    assert index["failures"] == []


def test_option_reaches_tool_command_line(tmp_path: Path, fake_tool_script: Path, write_grammar, tool_calls) -> None:
    write_grammar(tmp_path / "src", "Alpha.jj")
    assert main(_argv(tmp_path, fake_tool_script, "-O", "lookahead=2")) == EXIT_OK
    [call] = tool_calls()
    assert call[0] == "-LOOKAHEAD=2"


def test_failed_grammar_exits_one(tmp_path: Path, fake_tool_script: Path, write_grammar, capsys) -> None:
    write_grammar(tmp_path / "src", "Alpha.jj")
    write_grammar(tmp_path / "src", "Broken.jj")

    assert main(_argv(tmp_path, fake_tool_script)) == EXIT_FAILED
    out = capsys.readouterr().out
    assert "[FAIL]" in out and "Broken.jj" in out
    assert "Result:     FAILURE" in out
    assert (tmp_path / "out" / "AlphaParser.java").is_file()


def test_report_index_lists_failures(tmp_path: Path, fake_tool_script: Path, write_grammar) -> None:
    write_grammar(tmp_path / "src", "Alpha.jj")
    write_grammar(tmp_path / "src", "Broken.jj")
    index_file = tmp_path / "index.json"

    assert main(_argv(tmp_path, fake_tool_script, "--report", str(index_file))) == EXIT_FAILED

    index = json.loads(index_file.read_text(encoding="utf-8"))
    assert index["success"] is False
    assert [e["source"] for e in index["entries"]] == ["Alpha.jj"]
    [failure] = index["failures"]
    assert failure["grammar"].endswith("Broken.jj")
    assert failure["stage"] == "generate"
    assert failure["exit_code"] == 3


def test_missing_source_dir_is_not_an_error(tmp_path: Path, fake_tool_script: Path, capsys) -> None:
    assert main(_argv(tmp_path, fake_tool_script)) == EXIT_OK
    assert "[SKIP]" in capsys.readouterr().out


@pytest.mark.parametrize("option", ["NO_SUCH_OPTION=1", "LOOKAHEAD=0", "STATIC"])
def test_invalid_option_exits_two(tmp_path: Path, fake_tool_script: Path, option: str) -> None:
    assert main(_argv(tmp_path, fake_tool_script, "-O", option)) == EXIT_FATAL


def test_setup_error_exits_two(tmp_path: Path, fake_tool_script: Path, write_grammar) -> None:
    write_grammar(tmp_path / "src", "Alpha.jj")
    (tmp_path / "out").write_text("not a directory", encoding="utf-8")
    assert main(_argv(tmp_path, fake_tool_script)) == EXIT_FATAL


def test_unknown_tool_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["antlr"])
    assert excinfo.value.code == 2
