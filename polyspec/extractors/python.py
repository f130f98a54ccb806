"""Python source extractor.

Python bodies are delimited by indentation rather than braces, so this
extractor walks lines instead of matching delimiters for blocks. Parameter
lists and subscripted types still use bracket-depth splitting.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, List, Optional, Tuple

from ..literals import parse_literal
from ..models import ExtractedField, ExtractedFunction, ExtractedParam, ExtractedTest, ExtractedType
from .base import (
    LanguageExtractor,
    SourceLanguage,
    clean_doc_lines,
    comment_above,
    guess_tested_function,
    infer_logic,
    literal_args,
    split_params,
    strip_test_prefix,
)

CLASS_RE = re.compile(r"^class\s+([A-Za-z]\w*)\s*(?:\((.*?)\))?\s*:", re.MULTILINE)
DEF_RE = re.compile(r"^([ \t]*)(async\s+)?def\s+(\w+)\s*\(", re.MULTILINE)
DECORATOR_RE = re.compile(r"^\s*@")
FIELD_RE = re.compile(r"^([A-Za-z]\w*)\s*:\s*(.+?)(?:\s*=\s*(.+))?$")
ENUM_MEMBER_RE = re.compile(r"^([A-Za-z_]\w*)\s*=\s*(.+)$")
ALIAS_RE = re.compile(
    r"^([A-Z]\w*)\s*(?::\s*TypeAlias\s*)?=\s*"
    r"((?:typing\.)?(?:List|Dict|Optional|Union|Literal|Tuple|Callable|Set|Sequence|Mapping|list|dict|tuple|set)\[.*\])\s*$",
    re.MULTILINE,
)
ASSERT_EQ_RE = re.compile(r"^\s*assert\s+(?:await\s+)?([\w.]+)\((.*)\)\s*==\s*(.+?)\s*$")
ASSERT_EQ_REVERSED_RE = re.compile(r"^\s*assert\s+(.+?)\s*==\s*(?:await\s+)?([\w.]+)\((.*)\)\s*$")
ASSERT_EQUAL_RE = re.compile(r"^\s*self\.assert(?:Equal|Equals)\(\s*(?:await\s+)?([\w.]+)\((.*)\)\s*,\s*(.+)\)\s*$")
ASSERT_BOOL_RE = re.compile(r"^\s*assert\s+(not\s+)?(?:await\s+)?([\w.]+)\((.*)\)\s*$")
ASSIGN_CALL_RE = re.compile(r"^\s*(\w+)\s*=\s*(?:await\s+)?([\w.]+)\((.*)\)\s*$")
ASSERT_VAR_RE = re.compile(r"^\s*assert\s+(\w+)\s*==\s*(.+?)\s*$")
BUILTIN_CALLS = {"len", "str", "int", "float", "list", "dict", "set", "tuple", "sorted", "type", "isinstance", "any", "all", "bool", "repr"}
ENUM_BASES = ("Enum", "IntEnum", "StrEnum", "Flag", "IntFlag")
INTERFACE_BASES = ("Protocol", "ABC")
DOCSTRING_RE = re.compile(r'^\s*[rRuU]?("""|\'\'\')(.*?)\1', re.DOTALL)
SINGLE_DOCSTRING_RE = re.compile(r'^\s*[rRuU]?("|\')(.*?)\1\s*$')


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def indented_block(lines: List[str], header_index: int) -> Tuple[List[str], int]:
    """Lines belonging to the block opened on ``header_index`` and the index after it."""
    header_indent = _indent(lines[header_index])
    depth = 0
    index = header_index
    # A multi-line signature ends where its brackets close.
    while index < len(lines):
        line = lines[index].split("#")[0]
        depth += sum(line.count(c) for c in "([{") - sum(line.count(c) for c in ")]}")
        index += 1
        if depth <= 0:
            break
    block: List[str] = []
    while index < len(lines):
        line = lines[index]
        if line.strip() and _indent(line) <= header_indent:
            break
        block.append(line)
        index += 1
    while block and not block[-1].strip():
        block.pop()
    return block, index


def _dedent(block: List[str]) -> List[str]:
    indents = [_indent(line) for line in block if line.strip()]
    width = min(indents) if indents else 0
    return [line[width:] if line.strip() else "" for line in block]


def strip_docstring(block: List[str]) -> List[str]:
    """Drop a leading docstring from a dedented block."""
    index = 0
    while index < len(block) and not block[index].strip():
        index += 1
    if index == len(block):
        return block
    first = block[index].strip()
    quote = first[:3] if first[:3] in ('"""', "'''") else first[1:4] if first[1:4] in ('"""', "'''") else ""
    if not quote:
        return block
    if first.count(quote) >= 2:
        return block[index + 1:]
    for end in range(index + 1, len(block)):
        if quote in block[end]:
            return block[end + 1:]
    return []


def block_docstring(block: List[str]) -> str:
    text = "\n".join(_dedent(block)).lstrip("\n")
    match = DOCSTRING_RE.match(text)
    if match:
        return clean_doc_lines(match.group(2).strip().splitlines())
    first = text.splitlines()[0] if text else ""
    match = SINGLE_DOCSTRING_RE.match(first)
    return match.group(2).strip() if match else ""


def _logical_lines(block: List[str]) -> List[str]:
    """Join continuation lines so each statement is one string."""
    result: List[str] = []
    buffer = ""
    depth = 0
    for line in block:
        if not buffer and (not line.strip() or line.strip().startswith("#")):
            continue
        buffer = f"{buffer} {line.strip()}" if buffer else line
        depth += sum(line.count(c) for c in "([{") - sum(line.count(c) for c in ")]}")
        if depth <= 0:
            result.append(buffer)
            buffer = ""
            depth = 0
    if buffer:
        result.append(buffer)
    return result


class PythonExtractor(LanguageExtractor):
    language = SourceLanguage.PYTHON
    extensions = (".py", ".pyi")
    quotes = "\"'"

    def is_test_file(self, path: str) -> bool:
        pure = PurePosixPath(path)
        name = pure.name
        return (
            name.startswith("test_")
            or name.endswith("_test.py")
            or name == "conftest.py"
            or "tests" in pure.parts[:-1]
            or "test" in pure.parts[:-1]
        )

    def extract_package_description(self, content: str) -> str:
        lines = content.splitlines()
        index = 0
        while index < len(lines) and (not lines[index].strip() or lines[index].lstrip().startswith("#")):
            index += 1
        text = "\n".join(lines[index:])
        match = DOCSTRING_RE.match(text)
        if not match:
            return ""
        # First paragraph only.
        paragraph = re.split(r"\n\s*\n", match.group(2).strip(), maxsplit=1)[0]
        return " ".join(line.strip() for line in paragraph.splitlines())

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []

        for match in CLASS_RE.finditer(content):
            name = match.group(1)
            if name.startswith("_"):
                continue
            header = content.count("\n", 0, match.start())
            block, _ = indented_block(lines, header)
            bases = [b.strip().split("[")[0].split(".")[-1] for b in split_params(match.group(2) or "")]
            decorators = self._decorators(lines, header)

            extracted = ExtractedType(
                name=name,
                description=block_docstring(block) or comment_above(lines, header, ("#",), None, DECORATOR_RE),
                source_file=path,
                line_number=header + 1,
            )
            body = _logical_lines(strip_docstring(_dedent(block)))
            if any(b in ENUM_BASES for b in bases):
                extracted.kind = "enum"
                extracted.variants = [
                    m.group(1) for m in (ENUM_MEMBER_RE.match(l) for l in body if not l[:1].isspace()) if m
                ]
            elif any(b in INTERFACE_BASES for b in bases):
                extracted.kind = "interface"
                extracted.fields = self._fields(body) + self._method_members(block)
            else:
                extracted.kind = "struct"
                extracted.fields = self._fields(body)
                if not extracted.fields and "dataclass" not in decorators:
                    extracted.fields = self._init_fields(block)
            types.append(extracted)

        for match in ALIAS_RE.finditer(content):
            line_number = content.count("\n", 0, match.start()) + 1
            target = match.group(2)
            literal = re.match(r"^(?:typing\.)?Literal\[(.*)\]$", target)
            if literal:
                variants = [str(parse_literal(v)) for v in split_params(literal.group(1))]
                types.append(ExtractedType(name=match.group(1), kind="enum", variants=variants,
                                           source_file=path, line_number=line_number))
            else:
                types.append(ExtractedType(name=match.group(1), kind="alias",
                                           alias_of=self.map_type_to_spec(target),
                                           source_file=path, line_number=line_number))

        types.sort(key=lambda t: t.line_number)
        return types

    @staticmethod
    def _decorators(lines: List[str], header: int) -> str:
        names = []
        index = header - 1
        while index >= 0 and DECORATOR_RE.match(lines[index]):
            names.append(lines[index].strip())
            index -= 1
        return " ".join(names)

    def _fields(self, body: List[str]) -> List[ExtractedField]:
        fields = []
        for line in body:
            if line[:1].isspace():
                continue
            match = FIELD_RE.match(line.split("  #")[0].strip())
            if not match:
                continue
            name, annotation, default = match.group(1), match.group(2).strip(), match.group(3)
            if annotation.startswith(("ClassVar", "typing.ClassVar")):
                continue
            spec_type, optional = self.optional_type(annotation)
            fields.append(ExtractedField(
                name=name,
                type=spec_type,
                optional=optional or default is not None,
                default=self._default(default),
            ))
        return fields

    @staticmethod
    def _default(raw: Optional[str]) -> Optional[str]:
        if raw is None:
            return None
        raw = raw.strip()
        factory = re.search(r"default_factory\s*=\s*(\w+)", raw)
        if factory:
            return f"{factory.group(1)}()"
        explicit = re.search(r"\bdefault\s*=\s*([^,)]+)", raw)
        if explicit:
            return explicit.group(1).strip()
        return raw

    def _init_fields(self, block: List[str]) -> List[ExtractedField]:
        fields = []
        seen = set()
        for line in block:
            match = re.match(r"^\s*self\.([A-Za-z]\w*)\s*(?::\s*([^=]+?))?\s*=", line)
            if match and match.group(1) not in seen:
                seen.add(match.group(1))
                annotation = match.group(2)
                spec_type, optional = self.optional_type(annotation) if annotation else ("", False)
                fields.append(ExtractedField(name=match.group(1), type=spec_type, optional=optional))
        return fields

    def _method_members(self, block: List[str]) -> List[ExtractedField]:
        members = []
        for function in self._functions_in(_dedent(block), ""):
            params = ", ".join(f"{p.name}: {p.type}" if p.type else p.name for p in function.parameters)
            signature = f"({params})"
            if function.returns:
                signature += f" -> {function.returns}"
            members.append(ExtractedField(name=function.name, type=signature, description=function.description))
        return members

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        return self._functions_in(content.splitlines(), path)

    def _functions_in(self, lines: List[str], path: str) -> List[ExtractedFunction]:
        content = "\n".join(lines)
        functions: List[ExtractedFunction] = []
        for match in DEF_RE.finditer(content):
            name = match.group(3)
            if name.startswith("_"):
                continue
            header = content.count("\n", 0, match.start())
            decorators = self._decorators(lines, header)
            if "@property" in decorators or ".setter" in decorators:
                continue
            if match.group(1) and not self._inside_class(lines, header):
                continue  # nested helper function

            open_paren = match.end() - 1
            close_paren = self.matching(content, open_paren)
            if close_paren < 0:
                continue
            colon = content.find(":", close_paren + 1)
            signature_tail = content[close_paren + 1:colon] if colon >= 0 else ""
            returns_match = re.match(r"^\s*->\s*(.+?)\s*$", signature_tail.replace("\n", " "))
            block, _ = indented_block(lines, header)
            body = "\n".join(_dedent(block))
            docstring = block_docstring(block)

            functions.append(ExtractedFunction(
                name=name,
                description=docstring or comment_above(lines, header, ("#",), None, DECORATOR_RE),
                parameters=self._params(content[open_paren + 1:close_paren]),
                returns=self.map_type_to_spec(returns_match.group(1)) if returns_match else "",
                is_async=bool(match.group(2)),
                logic=infer_logic(body),
                body=body,
                source_file=path,
                line_number=header + 1,
            ))
        return functions

    @staticmethod
    def _inside_class(lines: List[str], header: int) -> bool:
        indent = _indent(lines[header])
        for index in range(header - 1, -1, -1):
            line = lines[index]
            if not line.strip() or _indent(line) >= indent:
                continue
            return line.lstrip().startswith("class ")
        return False

    def _params(self, text: str) -> List[ExtractedParam]:
        params = []
        for part in split_params(text):
            part = re.sub(r"\s+", " ", part)
            if part in ("self", "cls", "*", "/") or part.startswith(("self:", "cls:")):
                continue
            name_part, _, default = part.partition("=")
            name, _, annotation = name_part.partition(":")
            params.append(ExtractedParam(
                name=name.strip().lstrip("*"),
                type=self.map_type_to_spec(annotation.strip()) if annotation.strip() else "",
                default=default.strip() or None,
            ))
        return params

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        lines = content.splitlines()
        tests: List[ExtractedTest] = []
        for match in DEF_RE.finditer(content):
            identifier = match.group(3)
            if not identifier.startswith("test"):
                continue
            header = content.count("\n", 0, match.start())
            block, _ = indented_block(lines, header)
            assertion = self._assertion(_logical_lines(_dedent(block)))
            tests.append(ExtractedTest(
                function=assertion[0] if assertion else guess_tested_function(identifier),
                name=strip_test_prefix(identifier).replace("_", " ").strip(),
                given=assertion[1] if assertion else None,
                expect=assertion[2] if assertion else None,
                source_file=path,
                line_number=header + 1,
            ))
        return tests

    @staticmethod
    def _assertion(statements: List[str]) -> Optional[Tuple[str, Any, Any]]:
        calls = {}
        for statement in statements:
            assigned = ASSIGN_CALL_RE.match(statement)
            if assigned:
                calls[assigned.group(1)] = (assigned.group(2), assigned.group(3))
                continue
            compared = ASSERT_VAR_RE.match(statement)
            if compared and compared.group(1) in calls:
                function, args = calls[compared.group(1)]
                return function.split(".")[-1], literal_args(args), parse_literal(compared.group(2))
            match = ASSERT_EQ_RE.match(statement) or ASSERT_EQUAL_RE.match(statement)
            if match and match.group(1) not in BUILTIN_CALLS:
                return match.group(1).split(".")[-1], literal_args(match.group(2)), parse_literal(match.group(3))
            match = ASSERT_EQ_REVERSED_RE.match(statement)
            if match and match.group(2) not in BUILTIN_CALLS:
                return match.group(2).split(".")[-1], literal_args(match.group(3)), parse_literal(match.group(1))
        for statement in statements:
            match = ASSERT_BOOL_RE.match(statement)
            if match and match.group(2) not in BUILTIN_CALLS:
                return match.group(2).split(".")[-1], literal_args(match.group(3)), not match.group(1)
        return None
