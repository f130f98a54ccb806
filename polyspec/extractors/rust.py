"""Rust source extractor.

Rust keeps unit tests next to the code in ``#[cfg(test)]`` modules, so this
extractor sets ``inline_tests`` and the importer runs test extraction on
ordinary source files as well.
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
    camel_to_words,
    clean_doc_lines,
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

VISIBILITY = r"pub(?:\([^)]*\))?\s+"
STRUCT_RE = re.compile(rf"^[ \t]*{VISIBILITY}struct\s+(\w+)(?:<[^{{(;]*?>)?", re.MULTILINE)
ENUM_RE = re.compile(rf"^[ \t]*{VISIBILITY}enum\s+(\w+)(?:<[^{{]*?>)?[^{{]*\{{", re.MULTILINE)
TRAIT_RE = re.compile(rf"^[ \t]*{VISIBILITY}(?:unsafe\s+)?trait\s+(\w+)(?:<[^{{]*?>)?[^{{]*\{{", re.MULTILINE)
ALIAS_RE = re.compile(rf"^[ \t]*{VISIBILITY}type\s+(\w+)(?:<[^=]*?>)?\s*=\s*([^;]+);", re.MULTILINE)
FN_RE = re.compile(
    rf"^[ \t]*{VISIBILITY}((?:(?:const|async|unsafe|extern\s+\"[^\"]*\")\s+)*)fn\s+(\w+)\s*(?:<[^(]*?>)?\s*\(",
    re.MULTILINE,
)
TEST_FN_RE = re.compile(
    r"#\[(?:test|tokio::test|async_std::test|rstest)[^\]]*\]\s*(?:#\[[^\]]*\]\s*)*"
    r"(?:pub\s+)?(async\s+)?fn\s+(\w+)\s*\(",
)
TRAIT_METHOD_RE = re.compile(r"^(?:async\s+)?(?:unsafe\s+)?fn\s+(\w+)\s*(?:<[^(]*?>)?\s*\((.*?)\)\s*(?:->\s*(.+?))?\s*(?:where\b.*)?$",
                             re.DOTALL)
FIELD_RE = re.compile(rf"^(?:{VISIBILITY})?(\w+)\s*:\s*(.+?),?$")
ATTRIBUTE_RE = re.compile(r"^#!?\[")
SELF_PARAM_RE = re.compile(r"^(?:&\s*(?:'\w+\s+)?)?(?:mut\s+)?self\b")
CALL_RE = re.compile(r"^(?:[\w:]+::)?(\w+)\((.*)\)$", re.DOTALL)
ASSIGN_CALL_RE = re.compile(r"^\s*let\s+(?:mut\s+)?(\w+)(?:\s*:[^=]+)?\s*=\s*(?:[\w:]+::)?(\w+)\((.*)\)(?:\.await)?\s*;\s*$",
                            re.MULTILINE)
ASSERT_BOOL_RE = re.compile(r"\bassert!\(\s*(!)?\s*(?:[\w:]+::)?(\w+)\((.*?)\)\s*(?:,[^;]*)?\)\s*;")
CONSTRUCTOR_CALLS = {"from", "new", "Some", "Ok", "Err", "to_string", "to_owned"}


def _rust_literal(text: str) -> Any:
    """Literal value of an expected-value expression."""
    text = text.strip()
    text = re.sub(r"\.(?:to_string|to_owned|into)\(\)$", "", text)
    wrapped = re.match(r"^(?:String::from|Some|Ok|Box::new)\((.*)\)$", text, re.DOTALL)
    if wrapped:
        return _rust_literal(wrapped.group(1))
    if text == "None":
        return None
    vector = re.match(r"^vec!\[(.*)\]$", text, re.DOTALL)
    if vector:
        return [_rust_literal(part) for part in split_params(vector.group(1))]
    text = re.sub(r"^(-?\d+(?:\.\d+)?)_?(?:[iu](?:8|16|32|64|128|size)|f32|f64)$", r"\1", text)
    return parse_literal(text)


class RustExtractor(LanguageExtractor):
    language = SourceLanguage.RUST
    extensions = (".rs",)
    quotes = '"'
    inline_tests = True

    def is_test_file(self, path: str) -> bool:
        pure = PurePosixPath(path)
        return "tests" in pure.parts[:-1] or pure.name.endswith("_test.rs") or pure.name == "tests.rs"

    def extract_package_description(self, content: str) -> str:
        lines = []
        for raw in content.splitlines():
            line = raw.strip()
            if line.startswith("//!"):
                lines.append(line)
            elif line and lines:
                break
            elif line and not ATTRIBUTE_RE.match(line):
                break
        return clean_doc_lines(lines)

    def _doc(self, lines: List[str], line_number: int) -> str:
        return comment_above(lines, line_number - 1, line_prefixes=("///",), block=("/**", "*/"), skip=ATTRIBUTE_RE)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []

        for match in STRUCT_RE.finditer(content):
            rest = content[match.end():].lstrip()
            fields: List[ExtractedField] = []
            if rest.startswith("("):
                open_paren = len(content) - len(rest)
                close_paren = self.matching(content, open_paren)
                if close_paren > 0:
                    for index, part in enumerate(split_params(content[open_paren + 1:close_paren])):
                        part = re.sub(rf"^{VISIBILITY}", "", part.strip())
                        spec_type, optional = self.optional_type(part)
                        fields.append(ExtractedField(name=str(index), type=spec_type, optional=optional))
            elif not rest.startswith(";"):
                braces = extract_braced(content, match.end(), self.quotes)
                if braces:
                    fields = self._struct_fields(content[braces[0] + 1:braces[1]])
            types.append(self._type(content, lines, match, path, "struct", fields=fields))

        for match in ENUM_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            types.append(self._type(content, lines, match, path, "enum",
                                    variants=self._variants(content[match.end():close])))

        for match in TRAIT_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            types.append(self._type(content, lines, match, path, "interface",
                                    fields=self._trait_methods(content[match.end():close])))

        for match in ALIAS_RE.finditer(content):
            types.append(self._type(content, lines, match, path, "alias",
                                    alias_of=self.map_type_to_spec(match.group(2).strip())))

        types.sort(key=lambda t: t.line_number)
        return types

    def _type(self, content: str, lines: List[str], match: re.Match, path: str, kind: str, **extra) -> ExtractedType:
        line_number = line_number_at(content, match.start())
        return ExtractedType(
            name=match.group(1),
            kind=kind,
            description=self._doc(lines, line_number),
            source_file=path,
            line_number=line_number,
            **extra,
        )

    def _struct_fields(self, body: str) -> List[ExtractedField]:
        fields: List[ExtractedField] = []
        pending_doc: List[str] = []
        for raw in body.splitlines():
            line = raw.strip()
            if line.startswith("///"):
                pending_doc.append(line)
                continue
            # One line may hold several fields, as in `struct P { x: i32, y: i32 }`.
            for part in split_params(strip_comments(line, self.quotes)):
                while ATTRIBUTE_RE.match(part):
                    end = part.find("]")
                    part = part[end + 1:].strip() if end >= 0 else ""
                match = FIELD_RE.match(part)
                if not match:
                    continue
                spec_type, optional = self.optional_type(match.group(2).strip())
                fields.append(ExtractedField(
                    name=match.group(1),
                    type=spec_type,
                    description=clean_doc_lines(pending_doc),
                    optional=optional,
                ))
                pending_doc = []
        return fields

    @staticmethod
    def _variants(body: str) -> List[str]:
        variants = []
        for part in split_params(strip_comments(body, '"')):
            text = part.strip()
            while ATTRIBUTE_RE.match(text):
                end = text.find("]")
                text = text[end + 1:].strip() if end >= 0 else ""
            name = re.match(r"(\w+)", text)
            if name:
                variants.append(name.group(1))
        return variants

    def _trait_methods(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        methods = []
        for offset, statement in self.statements(body):
            signature = statement.split("{", 1)[0].rstrip(";").strip()
            match = TRAIT_METHOD_RE.match(signature)
            if not match:
                continue
            params = [p for p in split_params(match.group(2)) if not SELF_PARAM_RE.match(p.strip())]
            returns = self.map_type_to_spec(match.group(3).strip()) if match.group(3) else "Nothing"
            methods.append(ExtractedField(
                name=match.group(1),
                type=f"fn({', '.join(params)}) -> {returns}",
                description=self._doc(body_lines, body.count("\n", 0, offset) + 1),
            ))
        return methods

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        lines = content.splitlines()
        functions: List[ExtractedFunction] = []
        for match in FN_RE.finditer(content):
            open_paren = match.end() - 1
            close_paren = self.matching(content, open_paren)
            if close_paren < 0:
                continue
            braces = extract_braced(content, close_paren + 1, self.quotes)
            signature_end = braces[0] if braces else content.find(";", close_paren)
            tail = content[close_paren + 1:signature_end if signature_end >= 0 else len(content)]
            tail = re.split(r"\bwhere\b", tail)[0].strip()
            returns = tail[2:].strip() if tail.startswith("->") else ""
            body = content[braces[0] + 1:braces[1]] if braces else ""
            line_number = line_number_at(content, match.start())
            functions.append(ExtractedFunction(
                name=match.group(2),
                description=self._doc(lines, line_number),
                parameters=self._params(content[open_paren + 1:close_paren]),
                returns=self.map_type_to_spec(returns) if returns else "",
                is_async="async" in match.group(1).split(),
                logic=infer_logic(body),
                body=body.strip("\n"),
                source_file=path,
                line_number=line_number,
            ))
        return functions

    def _params(self, text: str) -> List[ExtractedParam]:
        params = []
        for part in split_params(strip_comments(text, self.quotes)):
            part = part.strip()
            if SELF_PARAM_RE.match(part):
                continue
            name, _, declared = part.partition(":")
            name = re.sub(r"^mut\s+", "", name.strip())
            params.append(ExtractedParam(name=name, type=self.map_type_to_spec(declared.strip())))
        return params

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        tests: List[ExtractedTest] = []
        for match in TEST_FN_RE.finditer(content):
            braces = extract_braced(content, match.end(), self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""
            identifier = match.group(2)
            assertion = self._assertion(body)
            tests.append(ExtractedTest(
                function=assertion[0] if assertion else guess_tested_function(identifier),
                name=camel_to_words(strip_test_prefix(identifier)),
                given=assertion[1] if assertion else None,
                expect=assertion[2] if assertion else None,
                source_file=path,
                line_number=line_number_at(content, match.start()),
            ))
        return tests

    def _assertion(self, body: str) -> Optional[Tuple[str, Any, Any]]:
        for call in re.finditer(r"\bassert_eq!\(", body):
            close = self.matching(body, call.end() - 1)
            if close < 0:
                continue
            args = split_params(body[call.end():close])
            if len(args) < 2:
                continue
            for actual, expected in ((args[0], args[1]), (args[1], args[0])):
                invoked = CALL_RE.match(re.sub(r"\.(?:await|unwrap\(\))$", "", actual.strip()))
                if invoked and invoked.group(1) not in CONSTRUCTOR_CALLS:
                    return invoked.group(1), literal_args(invoked.group(2)), _rust_literal(expected)
            for assigned in ASSIGN_CALL_RE.finditer(body[:call.start()]):
                if assigned.group(1) in (args[0].strip(), args[1].strip()):
                    expected = args[1] if assigned.group(1) == args[0].strip() else args[0]
                    return assigned.group(2), literal_args(assigned.group(3)), _rust_literal(expected)
        match = ASSERT_BOOL_RE.search(body)
        if match:
            return match.group(2), literal_args(match.group(3)), not match.group(1)
        return None
