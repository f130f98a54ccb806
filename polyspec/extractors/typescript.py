"""TypeScript source extractor."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Any, List, Optional, Tuple

from ..literals import parse_literal
from ..models import ExtractedField, ExtractedFunction, ExtractedParam, ExtractedTest, ExtractedType
from ..typemap import split_top_level
from .base import (
    LanguageExtractor,
    SourceLanguage,
    clean_doc_lines,
    comment_above,
    extract_braced,
    infer_logic,
    line_number_at,
    literal_args,
    split_params,
    strip_comments,
)

INTERFACE_RE = re.compile(
    r"^[ \t]*(?:export\s+)?(?:declare\s+)?interface\s+(\w+)(?:\s*<[^{]*?>)?(?:\s+extends\s+[^{]+)?\s*\{",
    re.MULTILINE,
)
TYPE_ALIAS_RE = re.compile(r"^[ \t]*(?:export\s+)?(?:declare\s+)?type\s+(\w+)(?:\s*<[^=]*?>)?\s*=\s*", re.MULTILINE)
ENUM_RE = re.compile(r"^[ \t]*(?:export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(\w+)\s*\{", re.MULTILINE)
CLASS_RE = re.compile(
    r"^[ \t]*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)[^{]*\{",
    re.MULTILINE,
)
FUNCTION_RE = re.compile(
    r"^(?:export\s+)?(?:default\s+)?(?:declare\s+)?(async\s+)?function\s*\*?\s*(\w+)\s*(?:<[^(]*?>)?\s*\(",
    re.MULTILINE,
)
ARROW_RE = re.compile(
    r"^(?:export\s+)?(?:const|let)\s+(\w+)\s*(?::\s*[^=]+?)?\s*=\s*(async\s+)?(?:<[^(]*?>)?\s*\(",
    re.MULTILINE,
)
ARROW_TAIL_RE = re.compile(r"\s*(?::\s*((?:[^=;{]|=>)+?))?\s*=>\s*")
PROPERTY_RE = re.compile(r"^(?:readonly\s+)?['\"]?([\w$]+)['\"]?(\?|!)?\s*:\s*(.+?);?$", re.DOTALL)
METHOD_SIGNATURE_RE = re.compile(r"^([\w$]+)(\?)?\s*(?:<[^(]*?>)?\s*\((.*)\)\s*:\s*(.+?);?$", re.DOTALL)
CLASS_MEMBER_RE = re.compile(
    r"^((?:(?:public|protected|private|static|async|readonly|abstract|override|declare|get|set)\s+)*)"
    r"(#?[\w$]+)(\?|!)?\s*(?:(?:<[^(]*?>)?\s*(\()|:\s*((?:[^=;]|=>)+?)\s*(?:=\s*(.+?))?;?$|=\s*(.+?);?$|;?$)",
    re.DOTALL,
)
DECORATOR_RE = re.compile(r"^@[\w.]+(?:\([^)]*\))?\s*")
PARAM_MODIFIER_RE = re.compile(r"^(?:(?:public|private|protected|readonly|override)\s+)+")
DESCRIBE_RE = re.compile(r"\bdescribe(?:\.\w+)?\(\s*(['\"`])(.*?)\1\s*,")
CASE_RE = re.compile(r"\b(?:it|test)(?:\.(?:only|skip|concurrent))?\(\s*(['\"`])(.*?)\1\s*,")
EXPECT_CALL_RE = re.compile(
    r"expect\(\s*(?:await\s+)?([\w.$]+)\((.*?)\)\s*\)\s*\."
    r"(toBe|toEqual|toStrictEqual|toMatchObject|toBeTruthy|toBeFalsy|toBeNull|toBeUndefined)\((.*?)\)\s*;?\s*$",
    re.MULTILINE,
)
ASSIGN_CALL_RE = re.compile(
    r"^\s*(?:const|let|var)\s+(\w+)\s*(?::[^=]+)?=\s*(?:await\s+)?([\w.$]+)\((.*)\)\s*;?\s*$",
    re.MULTILINE,
)
EXPECT_VAR_RE = r"expect\(\s*{var}\s*\)\s*\.(?:toBe|toEqual|toStrictEqual)\((.*?)\)\s*;?\s*$"
MATCHER_VALUES = {"toBeTruthy": True, "toBeFalsy": False, "toBeNull": None, "toBeUndefined": None}
FILE_DOC_TAGS = ("@packageDocumentation", "@module", "@file", "@fileoverview")


def _strip_decorators(text: str) -> str:
    previous = None
    while previous != text:
        previous, text = text, DECORATOR_RE.sub("", text)
    return text


class TypeScriptExtractor(LanguageExtractor):
    language = SourceLanguage.TYPESCRIPT
    extensions = (".ts", ".tsx", ".mts", ".cts")

    def is_test_file(self, path: str) -> bool:
        pure = PurePosixPath(path)
        return bool(re.search(r"\.(?:test|spec)\.[mc]?tsx?$", pure.name)) or "__tests__" in pure.parts

    def extract_package_description(self, content: str) -> str:
        """Leading file comment, when it is not the doc comment of the first declaration."""
        text = re.sub(r"^#![^\n]*\n", "", content).lstrip()
        match = re.match(r"/\*(.*?)\*/", text, re.DOTALL)
        if match:
            raw, rest = match.group(1), text[match.end():]
        else:
            comment_lines = []
            for line in text.splitlines():
                if not line.startswith("//"):
                    break
                comment_lines.append(line)
            raw = "\n".join(comment_lines)
            rest = text[len(raw):]
        if not raw.strip():
            return ""
        tagged = any(tag in raw for tag in FILE_DOC_TAGS)
        detached = re.match(r"[ \t]*\n[ \t]*\n", rest) or re.match(r"\s*import\b", rest)
        if not (tagged or detached):
            return ""
        return clean_doc_lines(raw.splitlines())

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        lines = content.splitlines()
        types: List[ExtractedType] = []

        for match in INTERFACE_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            fields = self._object_members(content[match.end():close])
            types.append(self._type(content, lines, match, path, "interface", fields=fields))

        for match in TYPE_ALIAS_RE.finditer(content):
            start = match.end()
            if content[start:start + 1] == "{":
                close = self.matching(content, start)
                fields = self._object_members(content[start + 1:close]) if close > 0 else []
                types.append(self._type(content, lines, match, path, "struct", fields=fields))
                continue
            expression = self._type_expression(content, start)
            members = split_top_level(expression, "|")
            if len(members) > 1 and all(re.fullmatch(r"(['\"]).*\1", m) for m in members):
                types.append(self._type(content, lines, match, path, "enum",
                                        variants=[m[1:-1] for m in members]))
            else:
                types.append(self._type(content, lines, match, path, "alias",
                                        alias_of=self.map_type_to_spec(expression)))

        for match in ENUM_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            variants = []
            for member in split_params(strip_comments(content[match.end():close], self.quotes)):
                name = member.split("=")[0].strip().strip("'\"")
                if name:
                    variants.append(name)
            types.append(self._type(content, lines, match, path, "enum", variants=variants))

        for match in CLASS_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            fields = self._class_fields(content[match.end():close])
            types.append(self._type(content, lines, match, path, "struct", fields=fields))

        types.sort(key=lambda t: t.line_number)
        return types

    def _type(self, content: str, lines: List[str], match: re.Match, path: str, kind: str, **extra) -> ExtractedType:
        line_number = line_number_at(content, match.start())
        return ExtractedType(
            name=match.group(1),
            kind=kind,
            description=comment_above(lines, line_number - 1, skip=DECORATOR_RE),
            source_file=path,
            line_number=line_number,
            **extra,
        )

    @staticmethod
    def _type_expression(content: str, start: int) -> str:
        """Read a type expression up to ``;`` or a line break that is not a ``|`` continuation."""
        depth = 0
        index = start
        while index < len(content):
            char = content[index]
            if char in "{(<[":
                depth += 1
            elif char in "})>]" and not (char == ">" and content[index - 1] == "="):
                depth -= 1
            elif depth == 0 and char == ";":
                break
            elif depth == 0 and char == "\n":
                if not content[index + 1:].lstrip().startswith(("|", "&")):
                    break
            index += 1
        return re.sub(r"\s+", " ", content[start:index]).strip().lstrip("|").strip()

    def _object_members(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        fields = []
        for offset, statement in self.statements(body, newline_terminates=True):
            statement = statement.rstrip(",;").strip()
            if statement.startswith("["):
                continue  # index signature
            description = comment_above(body_lines, body.count("\n", 0, offset))
            method = METHOD_SIGNATURE_RE.match(statement)
            if method:
                fields.append(ExtractedField(
                    name=method.group(1),
                    type=f"({method.group(3)}) => {method.group(4).strip()}",
                    description=description,
                    optional=bool(method.group(2)),
                ))
                continue
            prop = PROPERTY_RE.match(statement)
            if not prop:
                continue
            spec_type, optional = self.optional_type(prop.group(3).strip())
            fields.append(ExtractedField(
                name=prop.group(1),
                type=spec_type,
                description=description,
                optional=optional or prop.group(2) == "?",
            ))
        return fields

    def _class_fields(self, body: str) -> List[ExtractedField]:
        body_lines = body.splitlines()
        fields = []
        for offset, statement in self.statements(body):
            statement = _strip_decorators(statement).strip()
            if statement.startswith("constructor"):
                fields.extend(self._parameter_properties(statement))
                continue
            member = CLASS_MEMBER_RE.match(statement)
            if not member or member.group(4):
                continue  # methods are reported as functions
            if "static" in member.group(1).split():
                continue
            declared = member.group(5)
            initializer = member.group(6) or member.group(7)
            spec_type, optional = self.optional_type(declared.strip()) if declared else ("", False)
            fields.append(ExtractedField(
                name=member.group(2).lstrip("#"),
                type=spec_type,
                description=comment_above(body_lines, body.count("\n", 0, offset), skip=DECORATOR_RE),
                optional=optional or member.group(3) == "?",
                default=initializer.strip() if initializer else None,
            ))
        return fields

    def _parameter_properties(self, statement: str) -> List[ExtractedField]:
        """Constructor parameters declared ``public x: T`` are fields too."""
        open_paren = statement.find("(")
        close_paren = self.matching(statement, open_paren) if open_paren >= 0 else -1
        if close_paren < 0:
            return []
        fields = []
        for part in split_params(statement[open_paren + 1:close_paren]):
            if not PARAM_MODIFIER_RE.match(part):
                continue
            param = self._param(part)
            if param is None:
                continue
            optional = param.type.startswith("Optional ")
            fields.append(ExtractedField(
                name=param.name,
                type=param.type[len("Optional "):] if optional else param.type,
                optional=optional,
                default=param.default,
            ))
        return fields

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        lines = content.splitlines()
        functions: List[ExtractedFunction] = []

        for match in FUNCTION_RE.finditer(content):
            function = self._function(content, lines, path, match.group(2), match.end() - 1,
                                      bool(match.group(1)), match.start())
            if function:
                functions.append(function)

        for match in ARROW_RE.finditer(content):
            function = self._arrow(content, lines, path, match)
            if function:
                functions.append(function)

        for match in CLASS_RE.finditer(content):
            close = self.matching(content, match.end() - 1)
            if close < 0:
                continue
            body_start = match.end()
            for offset, statement in self.statements(content[body_start:close]):
                cleaned = _strip_decorators(statement)
                member = CLASS_MEMBER_RE.match(cleaned)
                if not member or not member.group(4):
                    continue
                modifiers = set(member.group(1).split())
                name = member.group(2)
                if name == "constructor" or name.startswith("#") or modifiers & {"private", "get", "set"}:
                    continue
                start = body_start + offset + (len(statement) - len(cleaned))
                open_paren = content.find("(", start + member.start(4))
                function = self._function(content, lines, path, name, open_paren, "async" in modifiers, start)
                if function:
                    functions.append(function)

        functions.sort(key=lambda f: f.line_number)
        return functions

    def _function(self, content: str, lines: List[str], path: str, name: str, open_paren: int,
                  is_async: bool, start: int) -> Optional[ExtractedFunction]:
        close_paren = self.matching(content, open_paren)
        if close_paren < 0:
            return None
        braces = extract_braced(content, close_paren + 1, self.quotes)
        if braces:
            returns = content[close_paren + 1:braces[0]]
            body = content[braces[0] + 1:braces[1]]
        else:
            end = content.find("\n", close_paren)
            returns = content[close_paren + 1:end if end >= 0 else len(content)]
            body = ""
        returns = returns.strip().rstrip(";").strip()
        returns = returns[1:].strip() if returns.startswith(":") else ""
        return self._build(content, lines, path, name, content[open_paren + 1:close_paren],
                           returns, body, is_async, start)

    def _arrow(self, content: str, lines: List[str], path: str, match: re.Match) -> Optional[ExtractedFunction]:
        open_paren = match.end() - 1
        close_paren = self.matching(content, open_paren)
        if close_paren < 0:
            return None
        tail = ARROW_TAIL_RE.match(content, close_paren + 1)
        if not tail:
            return None  # a parenthesised expression, not an arrow function
        if content[tail.end():tail.end() + 1] == "{":
            close = self.matching(content, tail.end())
            body = content[tail.end() + 1:close] if close > 0 else ""
        else:
            end = content.find("\n", tail.end())
            body = content[tail.end():end if end >= 0 else len(content)]
        returns = (tail.group(1) or "").strip()
        return self._build(content, lines, path, match.group(1), content[open_paren + 1:close_paren],
                           returns, body, bool(match.group(2)), match.start())

    def _build(self, content: str, lines: List[str], path: str, name: str, params: str, returns: str,
               body: str, is_async: bool, start: int) -> ExtractedFunction:
        line_number = line_number_at(content, start)
        return ExtractedFunction(
            name=name,
            description=comment_above(lines, line_number - 1, skip=DECORATOR_RE),
            parameters=[p for p in (self._param(part) for part in split_params(params)) if p],
            returns=self.map_type_to_spec(returns) if returns else "",
            is_async=is_async or returns.startswith("Promise<"),
            logic=infer_logic(body),
            body=body.strip("\n"),
            source_file=path,
            line_number=line_number,
        )

    def _param(self, text: str) -> Optional[ExtractedParam]:
        text = PARAM_MODIFIER_RE.sub("", _strip_decorators(text.strip()))
        if not text or text.startswith("this:"):
            return None
        declaration, default = text, None
        depth = 0
        for index, char in enumerate(text):
            if char in "<({[":
                depth += 1
            elif char in ">)}]" and not (char == ">" and text[index - 1] == "="):
                depth -= 1
            elif char == "=" and depth == 0 and text[index + 1:index + 2] != ">":
                declaration, default = text[:index].strip(), text[index + 1:].strip()
                break
        name, _, declared = declaration.partition(":")
        name = name.strip()
        optional = name.endswith("?")
        name = name.rstrip("?").lstrip(".")
        spec_type = self.map_type_to_spec(declared.strip()) if declared.strip() else ""
        if optional and spec_type and not spec_type.startswith("Optional "):
            spec_type = f"Optional {spec_type}"
        return ExtractedParam(name=name, type=spec_type, default=default)

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        describes: List[Tuple[int, int, str]] = []
        for match in DESCRIBE_RE.finditer(content):
            braces = extract_braced(content, match.end(), self.quotes)
            if braces:
                describes.append((braces[0], braces[1], match.group(2)))

        tests: List[ExtractedTest] = []
        for match in CASE_RE.finditer(content):
            braces = extract_braced(content, match.end(), self.quotes)
            body = content[braces[0] + 1:braces[1]] if braces else ""
            enclosing = [d for d in describes if d[0] < match.start() < d[1]]
            group = max(enclosing, key=lambda d: d[0])[2] if enclosing else ""
            assertion = self._assertion(body)
            tests.append(ExtractedTest(
                function=assertion[0] if assertion else self._function_from_title(group, match.group(2)),
                name=match.group(2),
                given=assertion[1] if assertion else None,
                expect=assertion[2] if assertion else None,
                source_file=path,
                line_number=line_number_at(content, match.start()),
            ))
        return tests

    @staticmethod
    def _function_from_title(group: str, title: str) -> str:
        for text in (group, title):
            first = text.strip().split(" ")[0].rstrip("()") if text.strip() else ""
            if re.fullmatch(r"[A-Za-z_$][\w$]*", first):
                return first
        return group or title

    @staticmethod
    def _assertion(body: str) -> Optional[Tuple[str, Any, Any]]:
        match = EXPECT_CALL_RE.search(body)
        if match:
            matcher = match.group(3)
            expect = MATCHER_VALUES[matcher] if matcher in MATCHER_VALUES else parse_literal(match.group(4))
            return match.group(1).split(".")[-1], literal_args(match.group(2)), expect
        for assigned in ASSIGN_CALL_RE.finditer(body):
            compared = re.search(EXPECT_VAR_RE.format(var=re.escape(assigned.group(1))),
                                 body[assigned.end():], re.MULTILINE)
            if compared:
                return (assigned.group(2).split(".")[-1], literal_args(assigned.group(3)),
                        parse_literal(compared.group(1)))
        return None
