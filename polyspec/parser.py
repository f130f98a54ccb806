"""Build a normalized ``Spec`` from a markdown document.

Each recognized section has its own small grammar. Specs are hand-written
prose, so anything that does not fit a grammar is skipped and reported in
``ParseResult.warnings`` instead of failing the parse.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .literals import parse_literal
from .models import (
    ConfigItem,
    Dependency,
    Field,
    Function,
    Param,
    Return,
    Spec,
    TYPE_KINDS,
    TestCase,
    TypeDef,
    ValidationResult,
)
from .polyspec_logging import log_performance, log_spec_parsed
from .sections import (
    SpecDocument,
    iter_lines_outside_fences,
    split_sections,
    split_subsections,
)
from .typemap import LANGUAGES, canonical_language

logger = logging.getLogger("polyspec.parser")

BULLET_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")
META_RE = re.compile(r"^(?:[-*]\s+)?(?:\*\*|__)?([A-Za-z][\w ]*?)(?:\*\*|__)?\s*:\s*(?:\*\*|__)?\s*(.*)$")
FUNCTION_LABEL_RE = re.compile(
    r"^\s*(?:\*\*|__)?(accepts|parameters|params|returns|logic|errors|raises|description)"
    r"(?:\*\*|__)?\s*:\s*(?:\*\*|__)?\s*(.*)$",
    re.IGNORECASE,
)
TEST_KEY_RE = re.compile(
    r"^\s*(?:[-*]\s+)?(?:\*\*|__)?(given|when|expect|function)(?:\*\*|__)?\s*:\s*(?:\*\*|__)?\s*(.*)$",
    re.IGNORECASE,
)
MODIFIER_RE = re.compile(r"\[(async|pure)\]", re.IGNORECASE)
REQUIRED_RE = re.compile(r"\s*\((required|optional)\)", re.IGNORECASE)
DEFAULT_RE = re.compile(r"\s*\((?:defaults?\s+to|default:)\s*(.+?)\)\s*$", re.IGNORECASE)
BACKTICK_MEMBER_RE = re.compile(r"^(?:`([^`]+)`|\*\*([^*]+)\*\*)\s*(?:\(([^)]*)\))?\s*(?::\s*(.*))?$")
COLON_MEMBER_RE = re.compile(r"^([A-Za-z_$][\w.$\-]*\??)\s*:\s*(.*)$")
BARE_NAME_RE = re.compile(r"^[A-Za-z_$][\w.$\-]*$")
DEPENDENCY_RE = re.compile(
    r"^`?(?P<name>[^`\s@=<>~(:]+)`?\s*"
    r"(?:(?:@|==|>=|<=|~=|\^|=)\s*(?P<v1>[^\s:()]+)|\((?P<v2>[^)]+)\)|\s+v?(?P<v3>\d[\w.\-]*))?"
    r"\s*(?:(?::|-|–)\s*(?P<desc>.*))?$"
)
ALIAS_RE = re.compile(r"^(?:is\s+an?\s+)?(?:alias\s+(?:of|for)|alias:|=)\s*`?([^`]+?)`?\s*$", re.IGNORECASE)
KIND_RE = re.compile(r"^(?:\*\*|__)?kind(?:\*\*|__)?\s*:\s*(?:\*\*|__)?\s*(\w+)", re.IGNORECASE)
INTERFACE_RE = re.compile(r"^is\s+an?\s+interface\b", re.IGNORECASE)
ENUM_RE = re.compile(r"^(?:is\s+)?one\s+of\s*:?\s*$", re.IGNORECASE)
STRUCT_RE = re.compile(r"^(?:contains|fields|has)\s*:?\s*$", re.IGNORECASE)
TITLE_KIND_RE = re.compile(r"\s*\((struct|enum|interface|alias)\)\s*$", re.IGNORECASE)


@dataclass(slots=True)
class ParseResult:
    """A parsed spec plus the warnings collected while building it."""

    spec: Spec
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"spec": self.spec.to_dict(), "warnings": list(self.warnings)}


@dataclass(slots=True)
class Member:
    """A parsed field or parameter bullet."""

    name: str
    type: str = ""
    description: str = ""
    required: Optional[bool] = None
    default: Optional[str] = None


def strip_bullet(line: str) -> Optional[str]:
    match = BULLET_RE.match(line)
    return match.group(1).strip() if match else None


def _strip_code(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == "`" and text[-1] == "`":
        return text[1:-1].strip()
    return text


def _clean_default(raw: str) -> str:
    value = raw.strip().strip("`")
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return value


def parse_member(text: str) -> Optional[Member]:
    """Parse a field/parameter bullet body.

    Accepted shapes::

        `name` (Type): description (defaults to "x")
        name: Type (description)
        name: Optional Type - description
        name
    """
    text = text.strip()
    if not text:
        return None

    required: Optional[bool] = None
    default: Optional[str] = None

    default_match = DEFAULT_RE.search(text)
    if default_match:
        default = _clean_default(default_match.group(1))
        text = text[:default_match.start()].rstrip()

    marker = REQUIRED_RE.search(text)
    if marker:
        required = marker.group(1).lower() == "required"
        text = (text[:marker.start()] + text[marker.end():]).strip()

    # A default may precede the required marker.
    if default is None:
        default_match = DEFAULT_RE.search(text)
        if default_match:
            default = _clean_default(default_match.group(1))
            text = text[:default_match.start()].rstrip()

    type_name = ""
    description = ""
    match = BACKTICK_MEMBER_RE.match(text)
    if match:
        name = (match.group(1) or match.group(2)).strip()
        if match.group(3) is not None:
            type_name = match.group(3).strip()
            description = (match.group(4) or "").strip()
        else:
            type_name, description = _split_type_description(match.group(4) or "")
    else:
        match = COLON_MEMBER_RE.match(text)
        if match:
            name = match.group(1)
            type_name, description = _split_type_description(match.group(2))
        elif BARE_NAME_RE.match(text):
            name = text
        else:
            return None

    if name.endswith("?"):
        name = name[:-1]
        required = False if required is None else required

    type_name = _strip_code(type_name)
    if type_name.lower().startswith("optional "):
        if required is None:
            required = False

    return Member(name=name, type=type_name, description=description, required=required, default=default)


def _split_type_description(rest: str) -> Tuple[str, str]:
    rest = rest.strip()
    if not rest:
        return "", ""
    if rest.startswith("`"):
        end = rest.find("`", 1)
        if end > 0:
            type_name = rest[1:end]
            remainder = rest[end + 1:].strip()
            remainder = re.sub(r"^(?:[-:–]\s*|\()", "", remainder).rstrip(")").strip()
            return type_name, remainder
    paren = rest.find("(")
    if paren > 0:
        close = rest.rfind(")")
        description = rest[paren + 1:close] if close > paren else rest[paren + 1:]
        return rest[:paren].strip(), description.strip()
    for separator in (" - ", " – ", ": "):
        if separator in rest:
            type_name, description = rest.split(separator, 1)
            return type_name.strip(), description.strip()
    return rest, ""


def canonical_target_language(text: str) -> str:
    """Reduce a target-language bullet to a lower-cased canonical id."""
    item = text.strip().strip("`*_").strip()
    item = re.split(r"\s+[-–]\s+|:|\(", item, maxsplit=1)[0].strip().strip("`*_")
    canonical = canonical_language(item)
    if canonical in LANGUAGES or " " not in canonical:
        return canonical
    first = canonical_language(canonical.split()[0])
    return first if first in LANGUAGES else canonical


class SpecBuilder:
    """Apply the per-section grammars to a split document."""

    def __init__(self, document: SpecDocument):
        self.document = document
        self.warnings: List[str] = []

    def warn(self, message: str) -> None:
        logger.debug(f"Spec parse warning: {message}")
        self.warnings.append(message)

    def build(self) -> Spec:
        doc = self.document
        spec = Spec(name=doc.name, description=doc.preamble, overview=doc.overview())
        self.apply_meta(spec, doc.section("meta"))
        spec.target_languages = self.parse_target_languages(doc.section("target_languages"))
        spec.types = self.parse_types(doc.section("types"))
        spec.functions = self.parse_functions(doc.section("functions"))
        spec.tests = self.parse_tests(doc.section("tests"))
        spec.dependencies = self.parse_dependencies(doc.section("dependencies"))
        spec.configuration = self.parse_configuration(doc.section("configuration"))
        return spec.normalize()

    # ------------------------------------------------------------------
    # Meta and target languages
    # ------------------------------------------------------------------

    def apply_meta(self, spec: Spec, body: str) -> None:
        for line in body.splitlines():
            match = META_RE.match(line.strip())
            if not match:
                continue
            key = match.group(1).strip().lower()
            value = match.group(2).strip()
            if key in ("version", "author", "license", "description") and value:
                setattr(spec, key, value)

    def parse_target_languages(self, body: str) -> List[str]:
        items = [b for b in (strip_bullet(line) for line in body.splitlines()) if b]
        if not items:
            # Fall back to a comma-separated line such as "go, python".
            for line in body.splitlines():
                items.extend(part for part in line.split(",") if part.strip())

        languages: List[str] = []
        for item in items:
            language = canonical_target_language(item)
            if language and language not in languages:
                languages.append(language)
        return languages

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def parse_types(self, body: str) -> List[TypeDef]:
        types = []
        for title, block in split_subsections(body, 3):
            if not title:
                if block.strip():
                    self.warn("Text before the first type heading was ignored")
                continue
            type_def = self.parse_type(title, block)
            if type_def is not None:
                types.append(type_def)
        return types

    def parse_type(self, title: str, block: str) -> Optional[TypeDef]:
        kind = None
        title_kind = TITLE_KIND_RE.search(title)
        if title_kind:
            kind = title_kind.group(1).lower()
            title = title[:title_kind.start()]
        name = _strip_code(title)
        if not name:
            self.warn("Type heading without a name was skipped")
            return None

        type_def = TypeDef(name=name, kind=kind or "struct")
        description: List[str] = []
        for line, in_fence in iter_lines_outside_fences(block):
            stripped = line.strip()
            if in_fence or not stripped:
                continue
            bullet = strip_bullet(line)
            if bullet is not None:
                if type_def.kind == "enum":
                    type_def.fields.append(self._parse_variant(bullet))
                    continue
                member = parse_member(bullet)
                if member is None:
                    self.warn(f"Unrecognized field in type '{name}': {bullet}")
                    continue
                type_def.fields.append(_field_from_member(member))
                continue
            if ENUM_RE.match(stripped):
                type_def.kind = "enum"
                continue
            if STRUCT_RE.match(stripped):
                if kind is None:
                    type_def.kind = "struct"
                continue
            if INTERFACE_RE.match(stripped):
                type_def.kind = "interface"
                continue
            kind_match = KIND_RE.match(stripped)
            if kind_match:
                declared = kind_match.group(1).lower()
                if declared in TYPE_KINDS:
                    type_def.kind = declared
                else:
                    self.warn(f"Unknown kind '{declared}' for type '{type_def.name}' was ignored")
                continue
            alias_match = ALIAS_RE.match(stripped)
            if alias_match:
                type_def.kind = "alias"
                type_def.alias_of = alias_match.group(1).strip()
                continue
            description.append(stripped)
        type_def.description = " ".join(description)
        return type_def

    @staticmethod
    def _parse_variant(text: str) -> Field:
        match = re.match(r"^`?([^`:\s]+)`?\s*(?:(?::|-|–)\s*(.*))?$", text)
        if not match:
            return Field(name=text.strip())
        return Field(name=match.group(1), description=(match.group(2) or "").strip())

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def parse_functions(self, body: str) -> List[Function]:
        functions = []
        for title, block in split_subsections(body, 3):
            if not title:
                if block.strip():
                    self.warn("Text before the first function heading was ignored")
                continue
            function = self.parse_function(title, block)
            if function is not None:
                functions.append(function)
        return functions

    def parse_function(self, title: str, block: str) -> Optional[Function]:
        modifiers = {m.lower() for m in MODIFIER_RE.findall(title)}
        name = _strip_code(MODIFIER_RE.sub("", title))
        if "(" in name:
            name = name[:name.index("(")].strip()
        name = _strip_code(name)
        if not name:
            self.warn("Function heading without a name was skipped")
            return None

        function = Function(name=name, is_async="async" in modifiers, is_pure="pure" in modifiers)
        description: List[str] = []
        logic_lines: List[str] = []
        fenced_logic: List[str] = []
        label = ""

        for line, in_fence in iter_lines_outside_fences(block):
            if in_fence:
                if label in ("", "logic"):
                    fenced_logic.append(line)
                continue
            stripped = line.strip()
            label_match = FUNCTION_LABEL_RE.match(stripped)
            if label_match:
                label = _canonical_label(label_match.group(1))
                inline = label_match.group(2).strip()
                if inline:
                    self._apply_function_line(function, label, inline, inline=True, logic=logic_lines,
                                              description=description)
                continue
            if not stripped:
                if label == "logic" and logic_lines:
                    logic_lines.append("")
                continue
            self._apply_function_line(function, label, line, inline=False, logic=logic_lines,
                                      description=description)

        function.description = " ".join(description)
        logic = _fence_contents(fenced_logic) or "\n".join(logic_lines).strip()
        function.logic = logic
        return function

    def _apply_function_line(self, function: Function, label: str, line: str, *, inline: bool,
                             logic: List[str], description: List[str]) -> None:
        stripped = line.strip()
        bullet = strip_bullet(line)

        if label in ("", "description"):
            if bullet is None or label == "description":
                description.append(stripped)
            else:
                self.warn(f"Bullet outside a label in function '{function.name}': {bullet}")
            return

        if label == "logic":
            logic.append(line.rstrip())
            return

        if label == "accepts":
            if inline:
                for part in _split_params(stripped):
                    self._add_param(function, part)
            elif bullet is not None:
                self._add_param(function, bullet)
            else:
                self.warn(f"Unrecognized parameter line in function '{function.name}': {stripped}")
            return

        if label == "returns":
            text = bullet if bullet is not None else stripped
            if function.returns is None:
                type_name, return_description = _split_type_description(text)
                function.returns = Return(type=_strip_code(type_name), description=return_description)
            elif not function.returns.description:
                function.returns.description = text
            return

        if label == "errors":
            text = bullet if bullet is not None else stripped
            if text.lower() not in ("none", "n/a", "-"):
                function.errors.append(text)

    def _add_param(self, function: Function, text: str) -> None:
        member = parse_member(text)
        if member is None:
            self.warn(f"Unrecognized parameter in function '{function.name}': {text}")
            return
        function.accepts.append(
            Param(name=member.name, type=member.type, description=member.description, default=member.default)
        )

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def parse_tests(self, body: str) -> List[TestCase]:
        tests: List[TestCase] = []
        for title, block in split_subsections(body, 3):
            if not title:
                if _has_test_keys(block):
                    self.warn("Test values before the first test heading were ignored")
                continue
            group = _strip_test_title(title)
            cases = split_subsections(block, 4)
            own_text = block if not cases else _text_before_level(block, 4)

            if _has_test_keys(own_text):
                test = self.parse_test_case(group, group, own_text)
                if test is not None:
                    tests.append(test)

            for case_title, case_block in cases:
                if not case_title:
                    continue
                test = self.parse_test_case(group, _strip_test_title(case_title), case_block)
                if test is not None:
                    tests.append(test)

            if not any(case_title for case_title, _ in cases) and not _has_test_keys(own_text):
                self.warn(f"Test group '{group}' has no test cases")
        return tests

    def parse_test_case(self, function: str, name: str, block: str) -> Optional[TestCase]:
        values = parse_test_values(block)
        if not name:
            self.warn(f"Unnamed test case for '{function}' was skipped")
            return None
        return TestCase(
            function=_strip_code(str(values.get("function") or function)),
            name=name,
            given=values.get("given"),
            when=str(values["when"]) if values.get("when") is not None else "",
            expect=values.get("expect"),
        )

    # ------------------------------------------------------------------
    # Dependencies and configuration
    # ------------------------------------------------------------------

    def parse_dependencies(self, body: str) -> List[Dependency]:
        dependencies = []
        for line in body.splitlines():
            bullet = strip_bullet(line)
            if bullet is None:
                continue
            match = DEPENDENCY_RE.match(bullet)
            if not match:
                name, _, rest = bullet.partition(" ")
                dependencies.append(Dependency(name=name.strip("`"), description=rest.strip()))
                continue
            version = match.group("v1") or match.group("v2") or match.group("v3") or ""
            dependencies.append(Dependency(
                name=match.group("name"),
                version=version.strip(),
                description=(match.group("desc") or "").strip(),
            ))
        return dependencies

    def parse_configuration(self, body: str) -> List[ConfigItem]:
        items: List[ConfigItem] = []
        table_lines = [line.strip() for line in body.splitlines() if line.strip().startswith("|")]
        if table_lines:
            items.extend(self._parse_config_table(table_lines))

        for line in body.splitlines():
            bullet = strip_bullet(line)
            if bullet is None:
                continue
            item = self._parse_config_bullet(bullet)
            if item is None:
                self.warn(f"Unrecognized configuration entry: {bullet}")
                continue
            items.append(item)
        return items

    def _parse_config_table(self, lines: List[str]) -> List[ConfigItem]:
        rows = [[cell.strip() for cell in line.strip("|").split("|")] for line in lines]
        header = [cell.lower() for cell in rows[0]]
        columns: Dict[str, int] = {}
        for index, cell in enumerate(header):
            if cell in ("name", "key", "variable", "setting", "option") and "name" not in columns:
                columns["name"] = index
            elif cell == "type":
                columns["type"] = index
            elif cell in ("default", "default value"):
                columns["default"] = index
            elif cell in ("description", "desc", "purpose"):
                columns["description"] = index
        if "name" not in columns:
            self.warn("Configuration table has no name column")
            return []

        def cell(row: List[str], key: str) -> str:
            index = columns.get(key)
            if index is None or index >= len(row):
                return ""
            return _strip_code(row[index])

        items = []
        for row in rows[1:]:
            if all(re.fullmatch(r":?-{2,}:?", c) or not c for c in row):
                continue
            name = cell(row, "name")
            if not name:
                continue
            default = cell(row, "default")
            items.append(ConfigItem(
                name=name,
                type=cell(row, "type"),
                default=default or None,
                description=cell(row, "description"),
            ))
        return items

    @staticmethod
    def _parse_config_bullet(text: str) -> Optional[ConfigItem]:
        if text.startswith("`") or text.startswith("**"):
            member = parse_member(text)
            if member is None:
                return None
            return ConfigItem(name=member.name, type=member.type, default=member.default,
                              description=member.description)
        default = None
        default_match = DEFAULT_RE.search(text)
        if default_match:
            default = _clean_default(default_match.group(1))
            text = text[:default_match.start()].rstrip()
        match = re.match(r"^([A-Za-z_][\w.\-]*)\s*(?::|-|–)\s*(.*)$", text)
        if match:
            return ConfigItem(name=match.group(1), default=default, description=match.group(2).strip())
        if BARE_NAME_RE.match(text):
            return ConfigItem(name=text, default=default)
        return None


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _canonical_label(label: str) -> str:
    label = label.lower()
    if label in ("parameters", "params"):
        return "accepts"
    if label == "raises":
        return "errors"
    return label


def _field_from_member(member: Member) -> Field:
    type_name = member.type
    required = member.required if member.required is not None else True
    if type_name.lower().startswith("optional "):
        type_name = type_name[len("optional "):].strip()
    return Field(
        name=member.name,
        type=type_name,
        description=member.description,
        required=required,
        default=member.default,
    )


def _split_params(text: str) -> List[str]:
    # "a: Text, b: Integer" holds two params; "text: Text (a, b)" holds one.
    parts = []
    depth = 0
    current = ""
    for char in text:
        if char in "([{<":
            depth += 1
        elif char in ")]}>":
            depth = max(depth - 1, 0)
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    parts.append(current)
    parts = [p.strip() for p in parts if p.strip()]
    if len(parts) > 1 and all(":" in p or p.startswith("`") for p in parts):
        return parts
    return [text.strip()]


def _fence_contents(lines: List[str]) -> str:
    """Join the inner lines of fenced blocks, dropping the fence markers."""
    inner = [line for line in lines if not re.match(r"^\s*(```|~~~)", line)]
    return "\n".join(inner).strip("\n")


def _strip_test_title(title: str) -> str:
    title = _strip_code(title)
    title = re.sub(r"^test\s*:\s*", "", title, flags=re.IGNORECASE)
    return _strip_code(title.strip())


def _has_test_keys(block: str) -> bool:
    return any(
        TEST_KEY_RE.match(line) and TEST_KEY_RE.match(line).group(1).lower() in ("given", "expect", "when")
        for line, in_fence in iter_lines_outside_fences(block)
        if not in_fence
    )


def _text_before_level(block: str, level: int) -> str:
    lines = []
    marker = "#" * level + " "
    for line, in_fence in iter_lines_outside_fences(block):
        if not in_fence and line.startswith(marker):
            break
        lines.append(line)
    return "\n".join(lines)


def parse_test_values(block: str) -> Dict[str, Any]:
    """Read ``given``/``when``/``expect``/``function`` keys from a test block.

    A key with an empty inline value takes its value from the following
    indented lines: ``key: value`` lines build a dict, ``- item`` lines
    build a list, and a fenced block is parsed as one literal.
    """
    values: Dict[str, Any] = {}
    lines = block.splitlines()
    index = 0
    while index < len(lines):
        match = TEST_KEY_RE.match(lines[index])
        index += 1
        if not match:
            continue
        key = match.group(1).lower()
        inline = match.group(2).strip()
        if inline:
            values[key] = parse_literal(inline)
            continue
        nested, index = _collect_nested(lines, index)
        values[key] = nested
    return values


def _collect_nested(lines: List[str], index: int) -> Tuple[Any, int]:
    block: List[str] = []
    in_fence = False
    while index < len(lines):
        line = lines[index]
        stripped = line.strip()
        if re.match(r"^(```|~~~)", stripped):
            in_fence = not in_fence
            block.append(line)
            index += 1
            continue
        if not in_fence:
            if not stripped:
                if block:
                    break
                index += 1
                continue
            if TEST_KEY_RE.match(line) and not line[:1].isspace():
                break
            if not line[:1].isspace() and strip_bullet(line) is None:
                break
        block.append(line)
        index += 1

    if not block:
        return None, index

    if re.match(r"^\s*(```|~~~)", block[0]):
        return parse_literal(_fence_contents(block)), index

    bullets = [strip_bullet(line) for line in block]
    if all(b is not None for b in bullets):
        return [parse_literal(b) for b in bullets], index

    mapping: Dict[str, Any] = {}
    for line in block:
        pair = re.match(r"^\s*(?:[-*]\s+)?`?([\w.\-]+)`?\s*:\s*(.*)$", line)
        if not pair:
            return "\n".join(l.strip() for l in block), index
        mapping[pair.group(1)] = parse_literal(pair.group(2))
    return mapping, index


@log_performance("parse_spec")
def parse_spec(markdown: str) -> ParseResult:
    """Parse a markdown spec into a normalized ``Spec``.

    Raises ``MissingNameError`` when the document has no level-1 heading.
    """
    document = split_sections(markdown)
    builder = SpecBuilder(document)
    spec = builder.build()
    log_spec_parsed(
        spec.name,
        types=len(spec.types),
        functions=len(spec.functions),
        tests=len(spec.tests),
        warnings=len(builder.warnings),
    )
    return ParseResult(spec=spec, warnings=builder.warnings)


def parse_spec_file(path: Path | str) -> ParseResult:
    spec_path = Path(path)
    if not spec_path.is_file():
        raise FileNotFoundError(f"Spec file '{spec_path}' does not exist")
    return parse_spec(spec_path.read_text(encoding="utf-8"))


def validate(spec: Spec) -> ValidationResult:
    """Check a parsed spec for problems that block generation.

    Validation never re-parses; it only inspects the model.
    """
    result = ValidationResult()

    if not spec.target_languages:
        result.add("error", "NO_TARGET_LANGUAGES", "Spec must list at least one target language")
    for language in spec.target_languages:
        if language not in LANGUAGES:
            result.add(
                "warning",
                "UNSUPPORTED_TARGET_LANGUAGE",
                f"Target language '{language}' is not one of: {', '.join(LANGUAGES)}",
                location="Target Languages",
            )

    seen_types = set()
    for type_def in spec.types:
        if type_def.name in seen_types:
            result.add("error", "DUPLICATE_TYPE", f"Type '{type_def.name}' is declared more than once",
                       location=f"Types/{type_def.name}")
        seen_types.add(type_def.name)
        if type_def.kind == "alias" and not type_def.alias_of:
            result.add("warning", "ALIAS_WITHOUT_TARGET", f"Alias '{type_def.name}' does not name a type",
                       location=f"Types/{type_def.name}")
        elif type_def.kind in ("struct", "enum") and not type_def.fields:
            result.add("info", "EMPTY_TYPE", f"Type '{type_def.name}' has no fields or variants",
                       location=f"Types/{type_def.name}")
        if type_def.kind not in TYPE_KINDS:
            result.add("error", "UNKNOWN_TYPE_KIND", f"Type '{type_def.name}' has unknown kind '{type_def.kind}'",
                       location=f"Types/{type_def.name}")

    if not spec.functions:
        result.add("warning", "NO_FUNCTIONS", "Spec declares no functions")

    seen_functions = set()
    for function in spec.functions:
        location = f"Functions/{function.name}"
        if function.name in seen_functions:
            result.add("error", "DUPLICATE_FUNCTION", f"Function '{function.name}' is declared more than once",
                       location=location)
        seen_functions.add(function.name)
        if not function.logic.strip():
            result.add("warning", "FUNCTION_MISSING_LOGIC", f"Function '{function.name}' has no logic",
                       location=location)
        for param in function.accepts:
            if not param.type:
                result.add("warning", "PARAM_MISSING_TYPE",
                           f"Parameter '{param.name}' of '{function.name}' has no type", location=location)

    for test in spec.tests:
        if test.function not in seen_functions:
            result.add("info", "TEST_UNRESOLVED_FUNCTION",
                       f"Test '{test.name}' refers to unknown function '{test.function}'",
                       location=f"Tests/{test.function}")

    return result
