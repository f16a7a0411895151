# grammar_builder/arguments.py
"""
Typed generator options -> command line.

Every option is Optional and defaults to None, meaning "not set". Only options
the caller explicitly set reach the command line. An unset option leaves the
decision to the tool's own default or to an `options { ... }` block inside the
grammar, which a command-line value would otherwise override.

Two renderings exist:
  - ASSIGNMENT (JavaCC, JJTree, JJDoc):  -STATIC=false  -NODE_PREFIX=AST
  - FLAG (JTB):                           -pp            -ns BaseNode
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo

T = TypeVar("T", bound="ToolOptions")


class ArgumentStyle(str, Enum):
    ASSIGNMENT = "assignment"
    FLAG = "flag"


def _cli_name(name: str, field: FieldInfo) -> str:
    extra = field.json_schema_extra if isinstance(field.json_schema_extra, dict) else {}
    return str(extra.get("cli") or name.upper())


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ToolOptions(BaseModel):
    """Base class for per-tool option sets. None == not set."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @classmethod
    def cli_names(cls) -> Dict[str, str]:
        return {name: _cli_name(name, f) for name, f in cls.model_fields.items()}

    def explicit_options(self) -> Dict[str, Any]:
        """Options that were set, keyed by CLI name, in declaration order."""
        out: Dict[str, Any] = {}
        for name, cli in self.cli_names().items():
            value = getattr(self, name)
            if value is None:
                continue
            out[cli] = value
        return out

    @classmethod
    def from_pairs(cls: Type[T], pairs: Iterable[str]) -> T:
        """
        Parse "NAME=value" overrides (CLI -O flags).

        NAME may be the python field name (node_prefix), its camel-case form
        (nodePrefix) or the tool's own option name (NODE_PREFIX / np).
        """
        lookup: Dict[str, str] = {}
        for name, cli in cls.cli_names().items():
            lookup[name.lower()] = name
            lookup[name.replace("_", "").lower()] = name
            lookup[cli.lower()] = name

        data: Dict[str, str] = {}
        for pair in pairs:
            key, sep, value = pair.partition("=")
            if not sep:
                raise ValueError(f"Expected NAME=VALUE, got {pair!r}")
            field = lookup.get(key.strip().lstrip("-").lower())
            if field is None:
                raise ValueError(f"Unknown {cls.__name__} option: {key.strip()!r}")
            data[field] = value.strip()
        return cls.model_validate(data)


class JavaCCOptions(ToolOptions):
    jdk_version: Optional[str] = None
    is_static: Optional[bool] = Field(None, json_schema_extra={"cli": "STATIC"})
    lookahead: Optional[int] = Field(None, ge=1)
    choice_ambiguity_check: Optional[int] = Field(None, ge=2)
    other_ambiguity_check: Optional[int] = Field(None, ge=1)
    debug_parser: Optional[bool] = None
    debug_lookahead: Optional[bool] = None
    debug_token_manager: Optional[bool] = None
    error_reporting: Optional[bool] = None
    java_unicode_escape: Optional[bool] = None
    unicode_input: Optional[bool] = None
    ignore_case: Optional[bool] = None
    common_token_action: Optional[bool] = None
    user_token_manager: Optional[bool] = None
    user_char_stream: Optional[bool] = None
    build_parser: Optional[bool] = None
    build_token_manager: Optional[bool] = None
    token_manager_uses_parser: Optional[bool] = None
    sanity_check: Optional[bool] = None
    force_la_check: Optional[bool] = None
    cache_tokens: Optional[bool] = None
    keep_line_column: Optional[bool] = None


class JJTreeOptions(ToolOptions):
    jdk_version: Optional[str] = None
    build_node_files: Optional[bool] = None
    multi: Optional[bool] = None
    node_default_void: Optional[bool] = None
    node_factory: Optional[Union[bool, str]] = None
    node_package: Optional[str] = None
    node_prefix: Optional[str] = None
    node_scope_hook: Optional[bool] = None
    node_uses_parser: Optional[bool] = None
    is_static: Optional[bool] = Field(None, json_schema_extra={"cli": "STATIC"})
    visitor: Optional[bool] = None
    visitor_exception: Optional[str] = None


class JTBOptions(ToolOptions):
    # -p overrides -np/-vp; the JTB facade folds it into those two.
    package_name: Optional[str] = Field(None, json_schema_extra={"cli": "p"})
    node_package_name: Optional[str] = Field(None, json_schema_extra={"cli": "np"})
    visitor_package_name: Optional[str] = Field(None, json_schema_extra={"cli": "vp"})
    supress_error_checking: Optional[bool] = Field(None, json_schema_extra={"cli": "e"})
    javadoc_friendly_comments: Optional[bool] = Field(None, json_schema_extra={"cli": "jd"})
    descriptive_field_names: Optional[bool] = Field(None, json_schema_extra={"cli": "f"})
    node_parent_class: Optional[str] = Field(None, json_schema_extra={"cli": "ns"})
    parent_pointers: Optional[bool] = Field(None, json_schema_extra={"cli": "pp"})
    special_tokens: Optional[bool] = Field(None, json_schema_extra={"cli": "tk"})
    scheme: Optional[bool] = Field(None, json_schema_extra={"cli": "scheme"})
    printer: Optional[bool] = Field(None, json_schema_extra={"cli": "printer"})


class JJDocOptions(ToolOptions):
    text: Optional[bool] = None
    one_table: Optional[bool] = None


class ArgumentBuilder:
    """
    Assemble the argument vector for one tool run:

        <explicitly set options...> <output option> <absolute input path>

    The input file is always last; some tools are positional.
    """

    def __init__(self, output_option: str, style: ArgumentStyle = ArgumentStyle.ASSIGNMENT) -> None:
        self.output_option = output_option
        self.style = style

    def render_option(self, name: str, value: Any) -> List[str]:
        if self.style is ArgumentStyle.ASSIGNMENT:
            return [f"-{name}={format_value(value)}"]

        # FLAG style: booleans are bare switches, only emitted when true.
        if isinstance(value, bool):
            return [f"-{name}"] if value else []
        return [f"-{name}", format_value(value)]

    def build(
        self,
        options: Optional[ToolOptions],
        input_file: Path,
        output_target: Path,
    ) -> List[str]:
        args: List[str] = []
        if options is not None:
            for name, value in options.explicit_options().items():
                args.extend(self.render_option(name, value))
        args.extend(self.render_option(self.output_option, Path(output_target).absolute()))
        args.append(str(Path(input_file).absolute()))
        return args


__all__ = [
    "ArgumentStyle",
    "ArgumentBuilder",
    "ToolOptions",
    "JavaCCOptions",
    "JJTreeOptions",
    "JTBOptions",
    "JJDocOptions",
    "format_value",
]
