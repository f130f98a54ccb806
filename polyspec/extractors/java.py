"""Java source extractor."""

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

PACKAGE_RE = re.compile(r"^package\s+[\w.]+\s*;", re.MULTILINE)
TYPE_RE = re.compile(
    r"^[ \t]*((?:(?:public|protected|private|static|final|abstract|sealed|non-sealed|strictfp)\s+)*)"
    r"(class|interface|enum|record)\s+(\w+)",
    re.MULTILINE,
)
METHOD_RE = re.compile(
    r"^[ \t]*((?:(?:public|protected|private|static|final|abstract|synchronized|native|default)\s+)*)"
    r"(?:<[^>]+(?:<[^>]*>)?[^>]*>\s+)?([\w.$]+(?:<[\w.$<>\[\]?, ]*>)?(?:\[\])*)\s+(\w+)\s*\(",
    re.MULTILINE,
)
VOID_METHOD_RE = re.compile(
    r"^[ \t]*(?:(?:public|protected|private|static|final)\s+)*void\s+(\w+)\s*\(",
    re.MULTILINE,
)
ANNOTATION_RE = re.compile(r"^@[\w.]+(?:\s*\([^)]*\))?\s*")
ANNOTATION_LINE_RE = re.compile(r"^@")
FIELD_RE = re.compile(
    r"^((?:(?:public|protected|private|static|final|transient|volatile)\s+)*)"
    r"([\w.$]+(?:<[\w.$<>\[\]?, ]*>)?(?:\[\])*)\s+(\w+)\s*(?:=\s*(.+?))?;?$",
    re.DOTALL,
)
SIGNATURE_RE = re.compile(
    r"^(?:(?:public|protected|abstract|static|default)\s+)*(?:<[^>]+>\s+)?"
    r"([\w.$]+(?:<[\w.$<>\[\]?, ]*>)?(?:\[\])*)\s+(\w+)\s*\((.*)\)[^;{]*;?$",
    re.DOTALL,
)
ACCESSOR_RE = re.compile(r"^(?:get|set|is)[A-Z]")
TEST_ANNOTATION_RE = re.compile(r"^@(?:Test|ParameterizedTest|RepeatedTest|TestFactory)\b")
DISPLAY_NAME_RE = re.compile(r"^@DisplayName\(\s*\"(.*)\"\s*\)")
ASSERT_THAT_RE = re.compile(
    r"assertThat\(\s*(?:[\w.]+\.)?(\w+)\((.*?)\)\s*\)\s*\.(?:isEqualTo|isSameAs)\((.*?)\)\s*;"
)
ASSERT_BOOL_RE = re.compile(r"assert(True|False)\(\s*(?:[\w.]+\.)?(\w+)\((.*?)\)\s*(?:,[^;]*)?\)\s*;")
CALL_RE = re.compile(r"^(?:[\w.]+\.)?(\w+)\((.*)\)$", re.DOTALL)
ASSIGN_CALL_RE = re.compile(
    r"^\s*(?:final\s+)?(?:var|[\w.<>\[\]?, ]+?)\s+(\w+)\s*=\s*(?:[\w.]+\.)?(\w+)\((.*)\)\s*;\s*$",
    re.MULTILINE,
)
NOT_TYPES = {"return", "new", "else", "throw", "case", "yield", "package", "import", "record", "class", "interface", "enum"}
MODIFIERS = {"public", "protected", "private", "static", "final", "abstract", "synchronized", "native", "default"}
ASYNC_RETURNS = ("CompletableFuture", "CompletionStage", "Future")


def _strip_annotations(text: str) -> Tuple[str, bool]:
    """Remove leading annotations, reporting whether one marked the member nullable."""
    nullable = False
    previous = None
    text = text.strip()
    while previous != text:
        previous = text
        match = ANNOTATION_RE.match(text)
        if match:
            nullable = nullable or "Nullable" in match.group(0)
            text = text[match.end():].strip()
    return text, nullable


def _java_literal(text: str) -> Any:
    text = text.strip()
    text = re.sub(r"^(-?\d+)[lL]$", r"\1", text)
    text = re.sub(r"^(-?\d+\.\d*)[dDfF]$", r"\1", text)
    listed = re.match(r"^(?:List|Set|Arrays\.asList|List\.of|Set\.of)\s*(?:\.of)?\((.*)\)$", text, re.DOTALL)
    if listed:
        return [_java_literal(part) for part in split_params(listed.group(1))]
    return parse_literal(text)


class JavaExtractor(LanguageExtractor):
    language = SourceLanguage.JAVA
    extensions = (".java",)
    quotes = "\"'"

    def is_test_file(self, path: str) -> bool:
        pure = PurePosixPath(path)
        if re.search(r"(?:Test|Tests|IT)\.java$", pure.name):
            return True
        return "src/test" in pure.as_posix()

    def extract_package_description(self, content: str) -> str:
        match = PACKAGE_RE.search(content)
        if not match:
            return ""
        return comment_above(content.splitlines(), line_number_at(content, match.start()) - 1,
                             skip=ANNOTATION_LINE_RE)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []
        for match in TYPE_RE.finditer(content):
            if "private" in match.group(1).split():
                continue
            kind, name = match.group(2), match.group(3)
            line_number = line_number_at(content, match.start())
            cursor = match.end()
            components: List[ExtractedField] = []
            if kind == "record":
                open_paren = content.find("(", cursor)
                close_paren = self.matching(content, open_paren) if open_paren >= 0 else -1
                if close_paren < 0:
                    continue
                components = [f for f in (self._component(p) for p in
                                          split_params(content[open_paren + 1:close_paren])) if f]
                cursor = close_paren + 1
            braces = extract_braced(content, cursor, self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""

            extracted = ExtractedType(
                name=name,
                kind="struct",
                description=comment_above(lines, line_number - 1, skip=ANNOTATION_LINE_RE),
                source_file=path,
                line_number=line_number,
            )
            if kind == "enum":
                extracted.kind = "enum"
                extracted.variants = self._enum_constants(body)
            elif kind == "interface":
                extracted.kind = "interface"
                extracted.fields = self._interface_methods(body)
            else:
                extracted.fields = components + self._class_fields(body)
            types.append(extracted)
        return types

    def _component(self, text: str) -> Optional[ExtractedField]:
        text, nullable = _strip_annotations(text)
        pieces = text.rsplit(None, 1)
        if len(pieces) != 2:
            return None
        spec_type, optional = self.optional_type(pieces[0])
        return ExtractedField(name=pieces[1], type=spec_type, optional=optional or nullable)

    def _class_fields(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        fields = []
        for offset, statement in self.statements(body):
            text, nullable = _strip_annotations(statement)
            head = text.split("=", 1)[0]
            if "(" in head or "{" in head:
                continue  # methods, constructors, nested types, initializer blocks
            match = FIELD_RE.match(text)
            if not match or "static" in match.group(1).split():
                continue
            spec_type, optional = self.optional_type(match.group(2))
            fields.append(ExtractedField(
                name=match.group(3),
                type=spec_type,
                description=comment_above(body_lines, body.count("\n", 0, offset), skip=ANNOTATION_LINE_RE),
                optional=optional or nullable,
                default=match.group(4).strip() if match.group(4) else None,
            ))
        return fields

    def _interface_methods(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        methods = []
        for offset, statement in self.statements(body):
            text, _ = _strip_annotations(statement)
            if "static" in text.split("(", 1)[0].split():
                continue
            match = SIGNATURE_RE.match(text.split("{", 1)[0].strip())
            if not match:
                continue
            methods.append(ExtractedField(
                name=match.group(2),
                type=f"({match.group(3).strip()}) -> {self.map_type_to_spec(match.group(1))}",
                description=comment_above(body_lines, body.count("\n", 0, offset), skip=ANNOTATION_LINE_RE),
            ))
        return methods

    @staticmethod
    def _enum_constants(body: str) -> List[str]:
        constants_part = strip_comments(body, "\"'")
        end = constants_part.find(";")
        if end >= 0:
            constants_part = constants_part[:end]
        variants = []
        for part in split_params(constants_part):
            text, _ = _strip_annotations(part)
            name = re.match(r"(\w+)", text)
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
            if not modifiers & {"public", "protected"}:
                continue
            if return_type in MODIFIERS or return_type in NOT_TYPES or ACCESSOR_RE.match(name):
                continue
            open_paren = match.end() - 1
            close_paren = self.matching(content, open_paren)
            if close_paren < 0:
                continue
            braces = extract_braced(content, close_paren + 1, self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""
            line_number = line_number_at(content, match.start())
            functions.append(ExtractedFunction(
                name=name,
                description=comment_above(lines, line_number - 1, skip=ANNOTATION_LINE_RE),
                parameters=[p for p in (self._param(part) for part in
                                        split_params(content[open_paren + 1:close_paren])) if p],
                returns="" if return_type == "void" else self.map_type_to_spec(return_type),
                is_async=return_type.startswith(ASYNC_RETURNS),
                logic=infer_logic(body),
                body=body.strip("\n"),
                source_file=path,
                line_number=line_number,
            ))
        return functions

    def _param(self, text: str) -> Optional[ExtractedParam]:
        text, nullable = _strip_annotations(text)
        text = re.sub(r"^final\s+", "", text)
        pieces = text.rsplit(None, 1)
        if len(pieces) != 2:
            return None
        spec_type = self.map_type_to_spec(pieces[0])
        if nullable and spec_type and not spec_type.startswith("Optional "):
            spec_type = f"Optional {spec_type}"
        return ExtractedParam(name=pieces[1], type=spec_type)

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        lines = content.splitlines()
        tests: List[ExtractedTest] = []
        for match in VOID_METHOD_RE.finditer(content):
            line_number = line_number_at(content, match.start())
            annotations = self._annotations_above(lines, line_number - 1)
            if not any(TEST_ANNOTATION_RE.match(a) for a in annotations):
                continue
            braces = extract_braced(content, match.end(), self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""
            identifier = match.group(1)
            display = next((m.group(1) for m in map(DISPLAY_NAME_RE.match, annotations) if m), None)
            assertion = self._assertion(body)
            tests.append(ExtractedTest(
                function=assertion[0] if assertion else guess_tested_function(identifier),
                name=display or camel_to_words(strip_test_prefix(identifier)),
                given=assertion[1] if assertion else None,
                expect=assertion[2] if assertion else None,
                source_file=path,
                line_number=line_number,
            ))
        return tests

    @staticmethod
    def _annotations_above(lines: List[str], index: int) -> List[str]:
        annotations = []
        index -= 1
        while index >= 0:
            line = lines[index].strip()
            if not line.startswith("@"):
                break
            annotations.insert(0, line)
            index -= 1
        return annotations

    def _assertion(self, body: str) -> Optional[Tuple[str, Any, Any]]:
        for call in re.finditer(r"\bassert(?:Equals|ArrayEquals)\(", body):
            close = self.matching(body, call.end() - 1)
            if close < 0:
                continue
            args = split_params(body[call.end():close])
            if len(args) < 2:
                continue
            expected, actual = args[0], args[1]
            invoked = CALL_RE.match(actual)
            if invoked:
                return invoked.group(1), literal_args(invoked.group(2)), _java_literal(expected)
            for assigned in ASSIGN_CALL_RE.finditer(body[:call.start()]):
                if assigned.group(1) == actual:
                    return assigned.group(2), literal_args(assigned.group(3)), _java_literal(expected)
        match = ASSERT_THAT_RE.search(body)
        if match:
            return match.group(1), literal_args(match.group(2)), _java_literal(match.group(3))
        match = ASSERT_BOOL_RE.search(body)
        if match:
            return match.group(2), literal_args(match.group(3)), match.group(1) == "True"
        return None
