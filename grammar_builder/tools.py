# grammar_builder/tools.py
#
# Facades for the generator tools. Each facade knows:
#   - which files it consumes (default include extensions)
#   - where a grammar's output belongs (package-shaped directory)
#   - how to spell its command line (ArgumentBuilder + option model)
#   - what has to be moved afterwards because the tool ignored the
#     configured output directory (RelocationPlan)
#   - which output line prefixes are just chatter (LineClassifier)

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

import structlog

from .arguments import (
    ArgumentBuilder,
    ArgumentStyle,
    JavaCCOptions,
    JJDocOptions,
    JJTreeOptions,
    JTBOptions,
    ToolOptions,
)
from .grammar_info import last_package_segment
from .models import GrammarFile, RelocationPlan, ReportEntry, SourceRoot, ToolInvocation
from .runner import LineClassifier, ToolEntryPoint

logger = structlog.get_logger()

OptionsInput = Union[ToolOptions, Mapping[str, Any], None]


def _relpath(target: Path, start: Path) -> str:
    try:
        return Path(target).absolute().relative_to(Path(start).absolute()).as_posix()
    except ValueError:
        return Path(os.path.relpath(str(target), start=str(start))).as_posix()


class GeneratorTool(ABC):
    name: str = ""
    extensions: Tuple[str, ...] = ()
    options_model: Type[ToolOptions] = ToolOptions
    # False: no incremental memory, every grammar is regenerated on every run.
    uses_markers: bool = True
    classifier: LineClassifier = LineClassifier()

    def __init__(self, options: OptionsInput = None, *, entry_point: Optional[ToolEntryPoint] = None) -> None:
        if options is None:
            options = self.options_model()
        elif isinstance(options, Mapping):
            options = self.options_model.model_validate(dict(options))
        if not isinstance(options, self.options_model):
            raise TypeError(
                f"{self.name} expects {self.options_model.__name__}, got {type(options).__name__}"
            )
        self.options: ToolOptions = options
        self.entry_point = entry_point or ToolEntryPoint(module=self.name)

    @property
    @abstractmethod
    def argument_builder(self) -> ArgumentBuilder: ...

    # -- grammar / paths ---------------------------------------------------
    def package_override(self) -> Optional[str]:
        return None

    def grammar(self, path: Path, root: SourceRoot) -> GrammarFile:
        return GrammarFile(path=Path(path), root=root, package_override=self.package_override())

    def output_directory(self, grammar: GrammarFile, output_root: Path) -> Path:
        return Path(output_root) / grammar.info.package_directory

    def output_target(self, grammar: GrammarFile, output_directory: Path) -> Path:
        return output_directory

    def effective_options(self, grammar: GrammarFile) -> ToolOptions:
        return self.options

    # -- invocation --------------------------------------------------------
    def invocation(self, grammar: GrammarFile, output_root: Path) -> ToolInvocation:
        out_dir = self.output_directory(grammar, output_root)
        target = self.output_target(grammar, out_dir)
        options = self.effective_options(grammar)
        args = self.argument_builder.build(options, grammar.path, target)
        return ToolInvocation(
            tool=self.name,
            input_file=grammar.path,
            output_directory=out_dir,
            output_target=target,
            options=options.explicit_options(),
            arguments=tuple(args),
        )

    def prepare(self, grammar: GrammarFile, invocation: ToolInvocation) -> None:
        """Hook run after the output directory exists and before forking the tool."""

    def relocation_plans(
        self,
        grammar: GrammarFile,
        invocation: ToolInvocation,
        work_directory: Path,
    ) -> List[RelocationPlan]:
        return []

    def report_entry(self, grammar: GrammarFile, invocation: ToolInvocation, output_root: Path) -> ReportEntry:
        return ReportEntry(
            source=grammar.relative_path.as_posix(),
            output=_relpath(invocation.output_target, output_root),
        )


class JavaCCTool(GeneratorTool):
    """JavaCC: *.jj -> parser sources in the grammar's package directory."""

    name = "javacc"
    extensions = ("jj",)
    options_model = JavaCCOptions
    _builder = ArgumentBuilder("OUTPUT_DIRECTORY")

    def __init__(
        self,
        options: OptionsInput = None,
        *,
        entry_point: Optional[ToolEntryPoint] = None,
        package_name: Optional[str] = None,
    ) -> None:
        super().__init__(options, entry_point=entry_point)
        # Legacy: force one package for all grammars instead of reading it from each file.
        self.package_name = package_name

    @property
    def argument_builder(self) -> ArgumentBuilder:
        return self._builder

    def package_override(self) -> Optional[str]:
        return self.package_name

    def prepare(self, grammar: GrammarFile, invocation: ToolInvocation) -> None:
        # Hand-written *.java next to the grammar (e.g. a customised Token.java)
        # go to the output first so JavaCC does not generate its own version.
        src_dir = grammar.path.parent
        dst_dir = invocation.output_directory
        if src_dir.resolve() == Path(dst_dir).resolve():
            return
        for p in sorted(src_dir.glob("*.java")):
            if not p.is_file():
                continue
            target = Path(dst_dir) / p.name
            if target.exists() and target.stat().st_mtime_ns >= p.stat().st_mtime_ns:
                continue
            shutil.copy2(p, target)
            logger.debug("custom_source_copied", source=str(p), target=str(target))

    def report_entry(self, grammar: GrammarFile, invocation: ToolInvocation, output_root: Path) -> ReportEntry:
        parser = grammar.info.parser_file(output_root)
        target = parser if parser is not None else invocation.output_target
        return ReportEntry(source=grammar.relative_path.as_posix(), output=_relpath(target, output_root))


class JJTreeTool(GeneratorTool):
    """JJTree: *.jjt -> annotated *.jj grammar plus node classes."""

    name = "jjtree"
    extensions = ("jjt",)
    options_model = JJTreeOptions
    _builder = ArgumentBuilder("OUTPUT_DIRECTORY")

    @property
    def argument_builder(self) -> ArgumentBuilder:
        return self._builder

    def package_override(self) -> Optional[str]:
        # Node classes (and the generated grammar) live in NODE_PACKAGE when given.
        return self.options.node_package  # type: ignore[attr-defined]

    def report_entry(self, grammar: GrammarFile, invocation: ToolInvocation, output_root: Path) -> ReportEntry:
        generated = invocation.output_directory / f"{grammar.path.stem}.jj"
        return ReportEntry(source=grammar.relative_path.as_posix(), output=_relpath(generated, output_root))


class JTBTool(GeneratorTool):
    """
    JTB: *.jtb -> annotated *.jj grammar plus syntax tree and visitor classes.

    JTB writes the syntax tree / visitor classes into a directory named after
    the last segment of their package, relative to its working directory.
    Those files are moved into <output dir>/<segment> (or the configured
    node/visitor directory) after every run.
    """

    name = "jtb"
    extensions = ("jtb",)
    options_model = JTBOptions
    classifier = LineClassifier(quiet_prefixes=("JTB version",), info_prefixes=("JTB: ",))
    _builder = ArgumentBuilder("o", ArgumentStyle.FLAG)

    SYNTAX_TREE = "syntaxtree"
    VISITOR = "visitor"

    def __init__(
        self,
        options: OptionsInput = None,
        *,
        entry_point: Optional[ToolEntryPoint] = None,
        node_directory: Optional[Path] = None,
        visitor_directory: Optional[Path] = None,
    ) -> None:
        super().__init__(options, entry_point=entry_point)
        self.node_directory = Path(node_directory) if node_directory is not None else None
        self.visitor_directory = Path(visitor_directory) if visitor_directory is not None else None

    @property
    def argument_builder(self) -> ArgumentBuilder:
        return self._builder

    def _package_name(self, grammar: GrammarFile) -> Optional[str]:
        opts: JTBOptions = self.options  # type: ignore[assignment]
        if opts.package_name is not None:
            return opts.package_name
        if opts.node_package_name is None and opts.visitor_package_name is None:
            return grammar.info.package or None
        return None

    def _effective(self, grammar: GrammarFile, explicit: Optional[str], leaf: str) -> str:
        pkg = self._package_name(grammar)
        if pkg is not None:
            return f"{pkg}.{leaf}" if pkg else leaf
        if explicit is not None:
            return explicit
        return leaf

    def node_package(self, grammar: GrammarFile) -> str:
        return self._effective(grammar, self.options.node_package_name, self.SYNTAX_TREE)  # type: ignore[attr-defined]

    def visitor_package(self, grammar: GrammarFile) -> str:
        return self._effective(grammar, self.options.visitor_package_name, self.VISITOR)  # type: ignore[attr-defined]

    def effective_options(self, grammar: GrammarFile) -> ToolOptions:
        # -np/-vp are always passed; -p is already folded into them.
        return self.options.model_copy(
            update={
                "package_name": None,
                "node_package_name": self.node_package(grammar),
                "visitor_package_name": self.visitor_package(grammar),
            }
        )

    def output_target(self, grammar: GrammarFile, output_directory: Path) -> Path:
        return Path(output_directory) / f"{grammar.path.stem}.jj"

    def relocation_plans(
        self,
        grammar: GrammarFile,
        invocation: ToolInvocation,
        work_directory: Path,
    ) -> List[RelocationPlan]:
        plans: List[RelocationPlan] = []
        for package, configured in (
            (self.node_package(grammar), self.node_directory),
            (self.visitor_package(grammar), self.visitor_directory),
        ):
            segment = last_package_segment(package) or ""
            src = Path(work_directory) / segment
            dst = configured if configured is not None else invocation.output_directory / segment
            plans.append(RelocationPlan(source_directory=src, destination_directory=dst, suffixes=(".java",)))
        return plans


class JJDocTool(GeneratorTool):
    """JJDoc: *.jj -> BNF documentation, one HTML (or text) file per grammar."""

    name = "jjdoc"
    extensions = ("jj",)
    options_model = JJDocOptions
    uses_markers = False
    _builder = ArgumentBuilder("OUTPUT_FILE")

    @property
    def argument_builder(self) -> ArgumentBuilder:
        return self._builder

    @property
    def output_extension(self) -> str:
        return ".txt" if self.options.text else ".html"  # type: ignore[attr-defined]

    def output_directory(self, grammar: GrammarFile, output_root: Path) -> Path:
        return (Path(output_root) / grammar.relative_path).parent

    def output_target(self, grammar: GrammarFile, output_directory: Path) -> Path:
        return Path(output_directory) / f"{grammar.path.stem}{self.output_extension}"


TOOLS: Dict[str, Type[GeneratorTool]] = {
    JavaCCTool.name: JavaCCTool,
    JJTreeTool.name: JJTreeTool,
    JTBTool.name: JTBTool,
    JJDocTool.name: JJDocTool,
}
TOOL_NAMES: Tuple[str, ...] = tuple(TOOLS)


def get_tool(name: str, options: OptionsInput = None, **kwargs: Any) -> GeneratorTool:
    try:
        cls = TOOLS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown generator tool {name!r}; expected one of {', '.join(TOOL_NAMES)}") from None
    return cls(options, **kwargs)


__all__ = [
    "GeneratorTool",
    "JavaCCTool",
    "JJTreeTool",
    "JTBTool",
    "JJDocTool",
    "TOOLS",
    "TOOL_NAMES",
    "get_tool",
]
