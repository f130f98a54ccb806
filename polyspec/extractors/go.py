"""Go source extractor."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

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

PACKAGE_RE = re.compile(r"^package\s+(\w+)", re.MULTILINE)
STRUCT_RE = re.compile(r"^type\s+([A-Z]\w*)(?:\[[^\]]*\])?\s+struct\s*\{", re.MULTILINE)
INTERFACE_RE = re.compile(r"^type\s+([A-Z]\w*)(?:\[[^\]]*\])?\s+interface\s*\{", re.MULTILINE)
ALIAS_RE = re.compile(r"^type\s+([A-Z]\w*)\s+(=\s*)?([^\s{][^\n{]*?)\s*$", re.MULTILINE)
CONST_BLOCK_RE = re.compile(r"^const\s*\(", re.MULTILINE)
CONST_LINE_RE = re.compile(r"^([A-Z]\w*)(?:\s+(\w+))?(?:\s*=.*)?$")
FUNC_RE = re.compile(
    r"^func\s+(?:\(\s*(?:\w+\s+)?\*?\s*(\w+)(?:\[[^\]]*\])?\s*\)\s*)?([A-Z]\w*)\s*(?:\[[^\]]*\])?\(",
    re.MULTILINE,
)
TEST_FUNC_RE = re.compile(r"^func\s+(Test\w*)\s*\(\s*\w+\s+\*testing\.T\s*\)", re.MULTILINE)
STRUCT_TAG_RE = re.compile(r"`[^`]*`")
TABLE_ENTRY_RE = re.compile(r"\{\s*(?:name|desc|description|title)\s*:\s*\"", re.IGNORECASE)
GOT_ASSIGN_RE = re.compile(r"(\w+)(?:\s*,\s*\w+)?\s*:?=\s*(?:\w+\.)?([A-Z]\w*)\(([^()]*(?:\([^()]*\)[^()]*)*)\)")
IF_COMPARE_RE = r"if\s+(?:!reflect\.DeepEqual\(\s*{got}\s*,\s*(.+?)\)|{got}\s*!=\s*(.+?))\s*\{{"

INPUT_KEYS = ("input", "in", "args", "arg", "given", "text", "value", "s", "str")
EXPECT_KEYS = ("want", "expected", "expect", "out", "output", "result", "wantErr")


class GoExtractor(LanguageExtractor):
    language = SourceLanguage.GO
    extensions = (".go",)
    quotes = "\"`'"

    def is_test_file(self, path: str) -> bool:
        return PurePosixPath(path).name.endswith("_test.go")

    def extract_package_description(self, content: str) -> str:
        match = PACKAGE_RE.search(content)
        if not match:
            return ""
        lines = content.splitlines()
        return comment_above(lines, line_number_at(content, match.start()) - 1)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []

        for match in STRUCT_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            body = content[match.end():close]
            types.append(self._type(content, lines, match, path, "struct", fields=self._struct_fields(body)))

        for match in INTERFACE_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            body = content[match.end():close]
            types.append(self._type(content, lines, match, path, "interface", fields=self._interface_methods(body)))

        variants = self._const_variants(content)
        for match in ALIAS_RE.finditer(content):
            name = match.group(1)
            target = strip_comments(match.group(3)).strip()
            if target.startswith(("struct", "interface")) or not target:
                continue
            if variants.get(name):
                types.append(self._type(content, lines, match, path, "enum", variants=variants[name]))
            else:
                types.append(self._type(content, lines, match, path, "alias",
                                        alias_of=self.map_type_to_spec(target)))

        types.sort(key=lambda t: t.line_number)
        return types

    def _type(self, content: str, lines: List[str], match: re.Match, path: str, kind: str, **extra) -> ExtractedType:
        line_number = line_number_at(content, match.start())
        return ExtractedType(
            name=match.group(1),
            kind=kind,
            description=comment_above(lines, line_number - 1),
            source_file=path,
            line_number=line_number,
            **extra,
        )

    def _struct_fields(self, body: str) -> List[ExtractedField]:
        fields: List[ExtractedField] = []
        pending_doc: List[str] = []
        for raw in body.splitlines():
            line = raw.strip()
            if not line:
                pending_doc = []
                continue
            if line.startswith("//"):
                pending_doc.append(line[2:].strip())
                continue
            tag_match = STRUCT_TAG_RE.search(line)
            tag = tag_match.group(0) if tag_match else ""
            trailing = ""
            if "//" in line:
                line, trailing = line.split("//", 1)
            line = STRUCT_TAG_RE.sub("", line).strip()
            description = trailing.strip() or " ".join(pending_doc)
            pending_doc = []

            parts = line.split(None, 1)
            if len(parts) == 1:
                # Embedded type.
                embedded = parts[0].lstrip("*")
                fields.append(ExtractedField(name=embedded.split(".")[-1], type=embedded, description=description))
                continue
            names, go_type = parts
            spec_type, optional = self.optional_type(go_type)
            optional = optional or "omitempty" in tag
            for name in (n.strip() for n in names.split(",")):
                if name and name[0].isupper():
                    fields.append(ExtractedField(name=name, type=spec_type, description=description,
                                                 optional=optional))
        return fields

    def _interface_methods(self, body: str) -> List[ExtractedField]:
        methods = []
        for raw in strip_comments(body).splitlines():
            line = raw.strip()
            match = re.match(r"^([A-Z]\w*)\s*\((.*)$", line)
            if match:
                methods.append(ExtractedField(name=match.group(1), type=f"func({match.group(2)}"))
        return methods

    def _const_variants(self, content: str) -> Dict[str, List[str]]:
        variants: Dict[str, List[str]] = {}
        for match in CONST_BLOCK_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            current_type: Optional[str] = None
            for raw in strip_comments(content[match.end():close]).splitlines():
                line = raw.strip()
                if not line:
                    continue
                const = CONST_LINE_RE.match(line)
                if not const:
                    current_type = None
                    continue
                if const.group(2):
                    current_type = const.group(2)
                if current_type:
                    variants.setdefault(current_type, []).append(const.group(1))
        return variants

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        lines = content.splitlines()
        functions: List[ExtractedFunction] = []
        for match in FUNC_RE.finditer(content):
            open_paren = match.end() - 1
            close_paren = self.matching(content, open_paren)
            if close_paren < 0:
                continue
            braces = extract_braced(content, close_paren, self.quotes)
            signature_end = braces[0] if braces else content.find("\n", close_paren)
            returns = content[close_paren + 1:signature_end].strip()
            body = content[braces[0] + 1:braces[1]] if braces else ""
            line_number = line_number_at(content, match.start())
            functions.append(ExtractedFunction(
                name=match.group(2),
                description=comment_above(lines, line_number - 1),
                parameters=self._params(content[open_paren + 1:close_paren]),
                returns=self._returns(returns),
                logic=infer_logic(body),
                body=body.strip("\n"),
                source_file=path,
                line_number=line_number,
            ))
        return functions

    def _params(self, text: str) -> List[ExtractedParam]:
        raw = split_params(strip_comments(text))
        params: List[ExtractedParam] = []
        pending_type = ""
        # Go lets consecutive parameters share a type ("a, b string"), so walk right to left.
        for part in reversed(raw):
            pieces = part.split(None, 1)
            if len(pieces) == 2:
                name, go_type = pieces
                pending_type = go_type
            else:
                name, go_type = pieces[0], pending_type
            params.insert(0, ExtractedParam(name=name, type=self.map_type_to_spec(go_type)))
        return params

    def _returns(self, text: str) -> str:
        text = text.strip()
        if text.startswith("(") and text.endswith(")"):
            parts = [p.split()[-1] if len(p.split()) > 1 else p for p in split_params(text[1:-1])]
        else:
            parts = [text] if text else []
        parts = [p for p in parts if p != "error"]
        if not parts:
            return ""
        if len(parts) == 1:
            return self.map_type_to_spec(parts[0])
        return ", ".join(self.map_type_to_spec(p) for p in parts)

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        tests: List[ExtractedTest] = []
        for match in TEST_FUNC_RE.finditer(content):
            braces = extract_braced(content, match.end(), self.quotes)
            if not braces:
                continue
            body = content[braces[0] + 1:braces[1]]
            identifier = match.group(1)
            line_number = line_number_at(content, match.start())
            target = guess_tested_function(identifier)

            table = self._table_cases(body)
            call = self._assertion(body)
            if call and not table:
                target = call[0]
            if table:
                function = call[0] if call else target
                for case_name, given, expect, offset in table:
                    tests.append(ExtractedTest(
                        function=function,
                        name=case_name,
                        given=given,
                        expect=expect,
                        source_file=path,
                        line_number=line_number_at(content, braces[0] + 1 + offset),
                    ))
                continue

            tests.append(ExtractedTest(
                function=target,
                name=camel_to_words(strip_test_prefix(identifier)),
                given=call[1] if call else None,
                expect=call[2] if call else None,
                source_file=path,
                line_number=line_number,
            ))
        return tests

    def _assertion(self, body: str) -> Optional[Tuple[str, Any, Any]]:
        for assign in GOT_ASSIGN_RE.finditer(body):
            got, function, args = assign.group(1), assign.group(2), assign.group(3)
            compare = re.search(IF_COMPARE_RE.format(got=re.escape(got)), body[assign.end():])
            expect = None
            if compare:
                expect = parse_literal(compare.group(1) or compare.group(2))
                if isinstance(expect, str) and re.match(r"^(?:tt|tc|test)\.\w+$", expect):
                    expect = None
            given = literal_args(args)
            if isinstance(given, str) and re.match(r"^(?:tt|tc|test)\.\w+$", given):
                given = None
            return function, given, expect
        return None

    def _table_cases(self, body: str) -> List[Tuple[str, Any, Any, int]]:
        cases = []
        for entry in TABLE_ENTRY_RE.finditer(body):
            close = self.matching(body, entry.start())
            if close < 0:
                continue
            values: Dict[str, Any] = {}
            for part in split_params(body[entry.start() + 1:close]):
                pair = re.match(r"^(\w+)\s*:\s*(.+)$", part, re.DOTALL)
                if pair:
                    values[pair.group(1)] = parse_literal(pair.group(2).strip())
            name_key = next((k for k in values if k.lower() in ("name", "desc", "description", "title")), None)
            if name_key is None:
                continue
            inputs = {k: v for k, v in values.items() if k != name_key and k not in EXPECT_KEYS}
            given: Any = None
            for key in INPUT_KEYS:
                if key in inputs and len(inputs) == 1:
                    given = inputs[key]
            if given is None and inputs:
                given = next(iter(inputs.values())) if len(inputs) == 1 else inputs
            expect = next((values[k] for k in EXPECT_KEYS if k in values), None)
            cases.append((str(values[name_key]), given, expect, entry.start()))
        return cases
