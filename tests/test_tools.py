"""
Tests for the generator facades: output placement, arguments, relocation plans.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from grammar_builder.arguments import JavaCCOptions
from grammar_builder.models import SourceRoot
from grammar_builder.runner import ToolEntryPoint
from grammar_builder.tools import (
    TOOL_NAMES,
    JavaCCTool,
    JJDocTool,
    JJTreeTool,
    JTBTool,
    get_tool,
)


def _root(directory: Path, ext: str) -> SourceRoot:
    return SourceRoot.create(directory, [ext])


def test_registry() -> None:
    assert TOOL_NAMES == ("javacc", "jjtree", "jtb", "jjdoc")
    assert isinstance(get_tool(" JavaCC "), JavaCCTool)
    with pytest.raises(ValueError, match="Unknown generator tool"):
        get_tool("antlr")


def test_options_accept_mapping_and_reject_wrong_model() -> None:
    tool = get_tool("javacc", {"lookahead": 2})
    assert tool.options.lookahead == 2  # type: ignore[attr-defined]
    with pytest.raises(TypeError):
        JJDocTool(JavaCCOptions())


def test_default_entry_point_runs_tool_module() -> None:
    assert get_tool("jjtree").entry_point == ToolEntryPoint(module="jjtree")


def test_javacc_invocation_targets_package_directory(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "grammars/Calc.jj", parser="Calculator", package="org.example.calc")
    tool = JavaCCTool({"is_static": False})
    out = tmp_path / "out"

    inv = tool.invocation(tool.grammar(g, _root(src, "jj")), out)

    assert inv.output_directory == out / "org" / "example" / "calc"
    assert inv.arguments == (
        "-STATIC=false",
        f"-OUTPUT_DIRECTORY={(out / 'org' / 'example' / 'calc').absolute()}",
        str(g.absolute()),
    )
    assert inv.options == {"STATIC": False}


def test_javacc_default_package_writes_to_output_root(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Plain.jj")
    tool = JavaCCTool()
    inv = tool.invocation(tool.grammar(g, _root(src, "jj")), tmp_path / "out")
    assert inv.output_directory == tmp_path / "out"


def test_javacc_package_name_override(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jj", package="org.calc")
    tool = JavaCCTool(package_name="forced")
    inv = tool.invocation(tool.grammar(g, _root(src, "jj")), tmp_path / "out")
    assert inv.output_directory == tmp_path / "out" / "forced"


def test_javacc_prepare_copies_custom_sources_unless_newer(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jj", package="org.calc")
    (src / "Token.java").write_text("custom token", encoding="utf-8")
    tool = JavaCCTool()
    grammar = tool.grammar(g, _root(src, "jj"))
    inv = tool.invocation(grammar, tmp_path / "out")
    inv.output_directory.mkdir(parents=True)

    tool.prepare(grammar, inv)
    copied = inv.output_directory / "Token.java"
    assert copied.read_text(encoding="utf-8") == "custom token"

    copied.write_text("edited downstream", encoding="utf-8")
    future = (src / "Token.java").stat().st_mtime_ns + 10_000_000_000
    os.utime(copied, ns=(future, future))
    tool.prepare(grammar, inv)
    assert copied.read_text(encoding="utf-8") == "edited downstream"


def test_javacc_report_entry_points_at_parser(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "sub/Calc.jj", parser="Calculator", package="org.calc")
    tool = JavaCCTool()
    grammar = tool.grammar(g, _root(src, "jj"))
    out = tmp_path / "out"
    entry = tool.report_entry(grammar, tool.invocation(grammar, out), out)
    assert entry.to_dict() == {"source": "sub/Calc.jj", "output": "org/calc/Calculator.java"}


def test_jjtree_node_package_overrides_grammar_package(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Expr.jjt", package="org.expr")
    out = tmp_path / "out"

    plain = JJTreeTool()
    assert plain.invocation(plain.grammar(g, _root(src, "jjt")), out).output_directory == out / "org" / "expr"

    tool = JJTreeTool({"node_package": "org.expr.ast", "multi": True})
    grammar = tool.grammar(g, _root(src, "jjt"))
    inv = tool.invocation(grammar, out)
    assert inv.output_directory == out / "org" / "expr" / "ast"
    assert inv.arguments[:2] == ("-MULTI=true", "-NODE_PACKAGE=org.expr.ast")
    assert tool.report_entry(grammar, inv, out).output == "org/expr/ast/Expr.jj"


def test_jtb_packages_default_to_grammar_package(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jtb", package="org.calc")
    tool = JTBTool()
    grammar = tool.grammar(g, _root(src, "jtb"))
    out = tmp_path / "out"
    inv = tool.invocation(grammar, out)

    assert tool.node_package(grammar) == "org.calc.syntaxtree"
    assert tool.visitor_package(grammar) == "org.calc.visitor"
    assert inv.output_target == out / "org" / "calc" / "Calc.jj"
    assert inv.arguments == (
        "-np", "org.calc.syntaxtree",
        "-vp", "org.calc.visitor",
        "-o", str(inv.output_target.absolute()),
        str(g.absolute()),
    )


def test_jtb_package_name_option_wins(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jtb", package="org.calc")
    tool = JTBTool({"package_name": "com.other", "node_package_name": "ignored.nodes"})
    grammar = tool.grammar(g, _root(src, "jtb"))
    assert tool.node_package(grammar) == "com.other.syntaxtree"
    assert tool.visitor_package(grammar) == "com.other.visitor"
    assert "-p" not in tool.invocation(grammar, tmp_path / "out").arguments


def test_jtb_explicit_node_and_visitor_packages(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jtb", package="org.calc")
    tool = JTBTool({"node_package_name": "org.calc.ast", "visitor_package_name": "org.calc.walk"})
    grammar = tool.grammar(g, _root(src, "jtb"))
    assert tool.node_package(grammar) == "org.calc.ast"
    assert tool.visitor_package(grammar) == "org.calc.walk"


def test_jtb_relocation_plans(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "Calc.jtb", package="org.calc")
    work = tmp_path / "work"
    out = tmp_path / "out"

    tool = JTBTool()
    grammar = tool.grammar(g, _root(src, "jtb"))
    plans = tool.relocation_plans(grammar, tool.invocation(grammar, out), work)
    assert [(p.source_directory, p.destination_directory) for p in plans] == [
        (work / "syntaxtree", out / "org" / "calc" / "syntaxtree"),
        (work / "visitor", out / "org" / "calc" / "visitor"),
    ]

    custom = JTBTool(node_directory=tmp_path / "nodes", visitor_directory=tmp_path / "visitors")
    plans = custom.relocation_plans(grammar, custom.invocation(grammar, out), work)
    assert [p.destination_directory for p in plans] == [tmp_path / "nodes", tmp_path / "visitors"]


def test_jjdoc_mirrors_source_layout(tmp_path: Path, write_grammar) -> None:
    src = tmp_path / "src"
    g = write_grammar(src, "lang/Calc.jj", package="org.calc")
    out = tmp_path / "site"

    tool = JJDocTool()
    grammar = tool.grammar(g, _root(src, "jj"))
    inv = tool.invocation(grammar, out)
    assert tool.uses_markers is False
    assert inv.output_target == out / "lang" / "Calc.html"
    assert inv.arguments == (f"-OUTPUT_FILE={(out / 'lang' / 'Calc.html').absolute()}", str(g.absolute()))
    assert tool.report_entry(grammar, inv, out).to_dict() == {"source": "lang/Calc.jj", "output": "lang/Calc.html"}

    text = JJDocTool({"text": True})
    assert text.invocation(text.grammar(g, _root(src, "jj")), out).output_target == out / "lang" / "Calc.txt"
