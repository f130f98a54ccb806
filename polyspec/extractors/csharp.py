"""C# source extractor."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, List, Optional, Tuple

from ..literals import parse_literal
from ..models import ExtractedField, ExtractedFunction, ExtractedParam, ExtractedTest, ExtractedType
from .base import (
    LanguageExtractor,
    SourceLanguage,
    camel_to_words,
    comment_above,
    extract_braced,
    guess_tested_function,
    infer_logic,
    line_number_at,
    literal_args,
    split_params,
    strip_comments,
    strip_test_prefix,
)

TYPE_MODIFIERS = r"(?:(?:public|internal|protected|private|static|sealed|abstract|partial|readonly|ref|file)\s+)*"
NAMESPACE_RE = re.compile(r"^[ \t]*namespace\s+[\w.]+", re.MULTILINE)
TYPE_RE = re.compile(
    rf"^[ \t]*({TYPE_MODIFIERS})(class|struct|interface|enum|record(?:\s+(?:class|struct))?)\s+(\w+)(?:<[^>]*>)?",
    re.MULTILINE,
)
METHOD_RE = re.compile(
    r"^[ \t]*((?:(?:public|protected|internal|private|static|virtual|override|abstract|async|sealed|new|extern|unsafe|partial)\s+)*)"
    r"([\w.]+(?:<[\w.<>\[\]?, ]*>)?(?:\[\])?\??)\s+(\w+)\s*(?:<[^(]*?>)?\s*\(",
    re.MULTILINE,
)
MEMBER_RE = re.compile(
    r"^((?:(?:public|protected|internal|private|static|virtual|override|abstract|required|readonly|new|sealed|const|volatile)\s+)*)"
    r"([\w.]+(?:<[\w.<>\[\]?, ]*>)?(?:\[\])?\??)\s+(\w+)\s*(\{.*\})?\s*(?:=\s*(.+?))?;?$",
    re.DOTALL,
)
SIGNATURE_RE = re.compile(
    r"^(?:(?:public|internal|abstract|static|virtual)\s+)*([\w.]+(?:<[\w.<>\[\]?, ]*>)?(?:\[\])?\??)\s+(\w+)\s*(?:<[^(]*?>)?\s*\((.*)\)\s*;?$",
    re.DOTALL,
)
ATTRIBUTE_RE = re.compile(r"^\[[^\]]*(?:\[[^\]]*\][^\]]*)*\]\s*")
ATTRIBUTE_LINE_RE = re.compile(r"^\[")
PARAM_MODIFIER_RE = re.compile(r"^(?:(?:this|ref|out|in|params|scoped)\s+)+")
TEST_ATTRIBUTE_RE = re.compile(r"^\[(?:Fact|Theory|Test|TestMethod|TestCase|DataTestMethod)\b")
DATA_ROW_RE = re.compile(r"^\[(?:InlineData|TestCase|DataRow)\((.*)\)\]$")
TEST_METHOD_RE = re.compile(
    r"^[ \t]*(?:(?:public|private|internal|protected)\s+)?(?:async\s+)?(?:void|Task)\s+(\w+)\s*\(",
    re.MULTILINE,
)
CALL_RE = re.compile(r"^(?:await\s+)?(?:[\w.]+\.)?(\w+)\((.*)\)$", re.DOTALL)
ASSIGN_CALL_RE = re.compile(
    r"^\s*(?:var|[\w.<>\[\]?, ]+?)\s+(\w+)\s*=\s*(?:await\s+)?(?:[\w.]+\.)?(\w+)\((.*)\)\s*;\s*$",
    re.MULTILINE,
)
ASSERT_THAT_RE = re.compile(r"Assert\.That\(\s*(?:await\s+)?(?:[\w.]+\.)?(\w+)\((.*?)\)\s*,\s*Is\.EqualTo\((.*?)\)\s*\)\s*;")
ASSERT_BOOL_RE = re.compile(r"Assert\.(True|False|IsTrue|IsFalse)\(\s*(?:await\s+)?(?:[\w.]+\.)?(\w+)\((.*?)\)\s*\)\s*;")
SHOULD_BE_RE = re.compile(r"(?:[\w.]+\.)?(\w+)\((.*?)\)\s*\.Should\(\)\s*\.(?:Be|BeEquivalentTo)\((.*?)\)\s*;")
NOT_TYPES = {"return", "new", "else", "throw", "case", "await", "using", "namespace", "var",
             "record", "class", "struct", "interface", "enum"}
MEMBER_MODIFIERS = {"public", "protected", "internal", "private", "static", "virtual", "override",
                    "abstract", "async", "sealed", "new", "extern", "unsafe", "partial"}
ASYNC_RETURNS = ("Task", "ValueTask", "IAsyncEnumerable")


def _strip_attributes(text: str) -> str:
    text = text.strip()
    previous = None
    while previous != text:
        previous = text
        text = ATTRIBUTE_RE.sub("", text, count=1).strip()
    return text


def _csharp_literal(text: str) -> Any:
    text = text.strip()
    text = re.sub(r"^(-?\d+(?:\.\d+)?)[lLmMdDfFuU]$", r"\1", text)
    if text.startswith("@\""):
        text = text[1:]
    collection = re.match(r"^new(?:\s+[\w.<>]+)?\s*(?:\[\])?\s*\{(.*)\}$", text, re.DOTALL)
    if collection:
        return [_csharp_literal(part) for part in split_params(collection.group(1))]
    if text.startswith("[") and text.endswith("]"):
        return [_csharp_literal(part) for part in split_params(text[1:-1])]
    return parse_literal(text)


class CSharpExtractor(LanguageExtractor):
    language = SourceLanguage.CSHARP
    extensions = (".cs",)
    quotes = "\"'"

    def is_test_file(self, path: str) -> bool:
        pure = PurePosixPath(path)
        if re.search(r"Tests?\.cs$", pure.name):
            return True
        return any(part.endswith((".Tests", ".Test")) or part.lower() in ("tests", "test") for part in pure.parts[:-1])

    def extract_package_description(self, content: str) -> str:
        match = NAMESPACE_RE.search(content)
        if not match:
            return ""
        return self._doc(content.splitlines(), line_number_at(content, match.start()))

    @staticmethod
    def _doc(lines: List[str], line_number: int) -> str:
        return comment_above(lines, line_number - 1, line_prefixes=("///",), skip=ATTRIBUTE_LINE_RE)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []
        for match in TYPE_RE.finditer(content):
            if "private" in match.group(1).split():
                continue
            keyword, name = match.group(2).split()[0], match.group(3)
            line_number = line_number_at(content, match.start())
            cursor = match.end()
            fields: List[ExtractedField] = []
            rest = content[cursor:].lstrip()
            if keyword == "record" and rest.startswith("("):
                open_paren = len(content) - len(rest)
                close_paren = self.matching(content, open_paren)
                if close_paren < 0:
                    continue
                fields = [f for f in (self._component(p) for p in
                                      split_params(content[open_paren + 1:close_paren])) if f]
                cursor = close_paren + 1
            braces = extract_braced(content, cursor, self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""

            extracted = ExtractedType(
                name=name,
                kind="struct",
                description=self._doc(lines, line_number),
                source_file=path,
                line_number=line_number,
            )
            if keyword == "enum":
                extracted.kind = "enum"
                extracted.variants = self._enum_members(body)
            elif keyword == "interface":
                extracted.kind = "interface"
                extracted.fields = self._interface_members(body)
            else:
                extracted.fields = fields + self._members(body)
            types.append(extracted)
        return types

    def _component(self, text: str) -> Optional[ExtractedField]:
        text = _strip_attributes(text)
        declaration, _, default = text.partition("=")
        pieces = declaration.strip().rsplit(None, 1)
        if len(pieces) != 2:
            return None
        spec_type, optional = self.optional_type(pieces[0])
        return ExtractedField(name=pieces[1], type=spec_type, optional=optional,
                              default=default.strip() or None)

    def _members(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        fields = []
        for offset, statement in self.statements(body):
            text = _strip_attributes(statement)
            head = re.split(r"[{=]", text, maxsplit=1)[0]
            if "(" in head or "=>" in text.split("{", 1)[0] or text.startswith("="):
                continue  # methods, constructors, expression-bodied members, initializers
            match = MEMBER_RE.match(text)
            if not match:
                continue
            modifiers = set(match.group(1).split())
            if modifiers & {"static", "const"} or match.group(2) in NOT_TYPES:
                continue
            spec_type, optional = self.optional_type(match.group(2))
            fields.append(ExtractedField(
                name=match.group(3),
                type=spec_type,
                description=self._doc(body_lines, body.count("\n", 0, offset) + 1),
                optional=optional,
                default=match.group(5).strip() if match.group(5) else None,
            ))
        return fields

    def _interface_members(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        members = []
        for offset, statement in self.statements(body):
            text = _strip_attributes(statement)
            description = self._doc(body_lines, body.count("\n", 0, offset) + 1)
            signature = SIGNATURE_RE.match(text)
            if signature:
                members.append(ExtractedField(
                    name=signature.group(2),
                    type=f"({signature.group(3).strip()}) -> {self.map_type_to_spec(signature.group(1))}",
                    description=description,
                ))
                continue
            prop = MEMBER_RE.match(text)
            if prop and prop.group(4):
                spec_type, optional = self.optional_type(prop.group(2))
                members.append(ExtractedField(name=prop.group(3), type=spec_type,
                                              description=description, optional=optional))
        return members

    @staticmethod
    def _enum_members(body: str) -> List[str]:
        variants = []
        for part in split_params(strip_comments(body, "\"'")):
            name = re.match(r"(\w+)", _strip_attributes(part))
            if name:
                variants.append(name.group(1))
        return variants

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        lines = content.splitlines()
        functions: List[ExtractedFunction] = []
        for match in METHOD_RE.finditer(content):
            modifiers = set(match.group(1).split())
            return_type, name = match.group(2), match.group(3)
            if "public" not in modifiers:
                continue
            if return_type in MEMBER_MODIFIERS or return_type in NOT_TYPES:
                continue  # constructors
            open_paren = match.end() - 1
            close_paren = self.matching(content, open_paren)
            if close_paren < 0:
                continue
            after = content[close_paren + 1:].lstrip()
            if after.startswith("=>"):
                start = len(content) - len(after) + 2
                end = content.find(";", start)
                body = content[start:end if end >= 0 else len(content)]
            else:
                braces = extract_braced(content, close_paren + 1, self.quotes)
                body = content[braces[0] + 1:braces[1]] if braces else ""
            line_number = line_number_at(content, match.start())
            functions.append(ExtractedFunction(
                name=name,
                description=self._doc(lines, line_number),
                parameters=[p for p in (self._param(part) for part in
                                        split_params(content[open_paren + 1:close_paren])) if p],
                returns="" if return_type in ("void", "Task", "ValueTask") else self.map_type_to_spec(return_type),
                is_async="async" in modifiers or return_type.startswith(ASYNC_RETURNS),
                logic=infer_logic(body),
                body=body.strip("\n"),
                source_file=path,
                line_number=line_number,
            ))
        return functions

    def _param(self, text: str) -> Optional[ExtractedParam]:
        text = PARAM_MODIFIER_RE.sub("", _strip_attributes(text))
        declaration, _, default = text.partition("=")
        pieces = declaration.strip().rsplit(None, 1)
        if len(pieces) != 2:
            return None
        return ExtractedParam(name=pieces[1], type=self.map_type_to_spec(pieces[0]),
                              default=default.strip() or None)

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        lines = content.splitlines()
        tests: List[ExtractedTest] = []
        for match in TEST_METHOD_RE.finditer(content):
            line_number = line_number_at(content, match.start())
            attributes = self._attributes_above(lines, line_number - 1)
            if not any(TEST_ATTRIBUTE_RE.match(a) for a in attributes):
                continue
            braces = extract_braced(content, match.end(), self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""
            identifier = match.group(1)
            name = camel_to_words(strip_test_prefix(identifier))
            assertion = self._assertion(body)
            function = assertion[0] if assertion else guess_tested_function(identifier)

            rows = [m.group(1) for m in map(DATA_ROW_RE.match, attributes) if m]
            if rows:
                for index, row in enumerate(rows, start=1):
                    values = [_csharp_literal(v) for v in split_params(row)]
                    given: Any = values[:-1] if len(values) > 2 else (values[0] if len(values) == 2 else None)
                    tests.append(ExtractedTest(
                        function=function,
                        name=f"{name} {index}",
                        given=given,
                        expect=values[-1] if values else None,
                        source_file=path,
                        line_number=line_number,
                    ))
                continue

            tests.append(ExtractedTest(
                function=function,
                name=name,
                given=assertion[1] if assertion else None,
                expect=assertion[2] if assertion else None,
                source_file=path,
                line_number=line_number,
            ))
        return tests

    @staticmethod
    def _attributes_above(lines: List[str], index: int) -> List[str]:
        attributes = []
        index -= 1
        while index >= 0:
            line = lines[index].strip()
            if not line.startswith("["):
                break
            attributes.insert(0, line)
            index -= 1
        return attributes

    def _assertion(self, body: str) -> Optional[Tuple[str, Any, Any]]:
        for call in re.finditer(r"\bAssert\.(?:Equal|AreEqual)\(", body):
            close = self.matching(body, call.end() - 1)
            if close < 0:
                continue
            args = split_params(body[call.end():close])
            if len(args) < 2:
                continue
            expected, actual = args[0], args[1]
            invoked = CALL_RE.match(actual)
            if invoked:
                return invoked.group(1), literal_args(invoked.group(2)), _csharp_literal(expected)
            for assigned in ASSIGN_CALL_RE.finditer(body[:call.start()]):
                if assigned.group(1) == actual:
                    return assigned.group(2), literal_args(assigned.group(3)), _csharp_literal(expected)
        match = ASSERT_THAT_RE.search(body)
        if match:
            return match.group(1), literal_args(match.group(2)), _csharp_literal(match.group(3))
        match = SHOULD_BE_RE.search(body)
        if match:
            return match.group(1), literal_args(match.group(2)), _csharp_literal(match.group(3))
        match = ASSERT_BOOL_RE.search(body)
        if match:
            return match.group(2), literal_args(match.group(3)), match.group(1) in ("True", "IsTrue")
        return None
