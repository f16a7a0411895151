# grammar_builder/grammar_info.py
#
# Just-enough parsing of a grammar file to place its generated code:
#   - declared package (first `package a.b.c;` outside comments)
#   - parser name (PARSER_BEGIN(Name))
#   - package -> nested output directory
#
# No attempt is made to understand the grammar itself.

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import PackageResolutionError

_IDENT = r"[A-Za-z_$][\w$]*"

# String/char literals are matched first so that "//" or "/*" inside them is kept.
_STRIP_RE = re.compile(
    r'"(?:\\.|[^"\\\n])*"'
    r"|'(?:\\.|[^'\\\n])*'"
    r"|/\*.*?\*/"
    r"|//[^\r\n]*",
    re.S,
)
_PACKAGE_RE = re.compile(rf"(?<![\w$.])package\s+({_IDENT}(?:\s*\.\s*{_IDENT})*)\s*;")
_PARSER_BEGIN_RE = re.compile(rf"\bPARSER_BEGIN\s*\(\s*({_IDENT})\s*\)")


def strip_comments(text: str) -> str:
    def repl(m: re.Match) -> str:
        tok = m.group(0)
        if tok[0] in "\"'":
            return tok
        # keep line structure so offsets stay meaningful for debugging
        return " " if tok.startswith("//") else re.sub(r"[^\n]", " ", tok)

    return _STRIP_RE.sub(repl, text)


def parse_package(text: str) -> str:
    """Return the first declared package in grammar text, or "" for the default package."""
    m = _PACKAGE_RE.search(strip_comments(text))
    if not m:
        return ""
    return re.sub(r"\s+", "", m.group(1))


def resolve_parser_name(text: str) -> Optional[str]:
    m = _PARSER_BEGIN_RE.search(strip_comments(text))
    return m.group(1) if m else None


def _read_grammar(path: Path, encoding: str) -> str:
    try:
        return Path(path).read_text(encoding=encoding, errors="replace")
    except OSError as e:
        raise PackageResolutionError(path, e.strerror or str(e)) from e


def resolve_package(path: Path, encoding: str = "utf-8") -> str:
    """
    Extract the declared package of a grammar file.

    Returns "" when the grammar has no package directive.
    Raises PackageResolutionError when the file cannot be read.
    """
    return parse_package(_read_grammar(path, encoding))


def package_directory(package: Optional[str]) -> Path:
    """
    Convert a dotted package into a relative directory:
      "org.example.parser" -> Path("org/example/parser")
      ""                   -> Path()   (the output root itself)
    """
    if not package:
        return Path()
    return Path(*[seg for seg in package.split(".") if seg])


def last_package_segment(package: Optional[str]) -> Optional[str]:
    """
    Final component of a dotted package ("org.apache" -> "apache"), None for empty input.

    Some generators (JTB) write into a folder named after this segment,
    relative to their working directory.
    """
    if not package:
        return None
    return package[package.rfind(".") + 1:] or None


@dataclass(frozen=True)
class GrammarInfo:
    grammar_file: Path
    package: str
    parser_name: Optional[str] = None

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        package_override: Optional[str] = None,
        encoding: str = "utf-8",
    ) -> "GrammarInfo":
        text = _read_grammar(path, encoding)
        package = package_override if package_override is not None else parse_package(text)
        return cls(
            grammar_file=Path(path),
            package=package,
            parser_name=resolve_parser_name(text),
        )

    @property
    def package_directory(self) -> Path:
        return package_directory(self.package)

    @property
    def last_package_segment(self) -> Optional[str]:
        return last_package_segment(self.package)

    def parser_file(self, output_root: Path, suffix: str = ".java") -> Optional[Path]:
        """Expected location of the generated parser class, if the parser name is known."""
        if not self.parser_name:
            return None
        return Path(output_root) / self.package_directory / f"{self.parser_name}{suffix}"


__all__ = [
    "GrammarInfo",
    "strip_comments",
    "parse_package",
    "resolve_parser_name",
    "resolve_package",
    "package_directory",
    "last_package_segment",
]
