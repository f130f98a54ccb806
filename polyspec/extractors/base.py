"""Shared machinery for the per-language source extractors.

Extraction is lexical, not syntactic: declarations are found with patterns,
bodies are delimited by counting brackets, and anything that does not match
is simply not extracted. "No match" is a normal outcome, never an error.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Sequence, Tuple

from ..literals import parse_literal
from ..models import ExtractedFunction, ExtractedTest, ExtractedType
from ..typemap import reverse_map_type, split_top_level


class SourceLanguage(str, Enum):
    """Closed set of languages that have an extractor."""

    GO = "go"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JAVA = "java"
    RUST = "rust"
    CSHARP = "csharp"


class LanguageExtractor(ABC):
    """Capability interface every source-language extractor implements.

    Every method takes the raw file content plus the file path relative to
    the extraction root, and every returned item carries that provenance.
    """

    language: SourceLanguage
    extensions: Tuple[str, ...] = ()
    # Quote characters that delimit string literals for bracket matching.
    quotes: str = "\"'`"
    # Whether ordinary source files can also contain tests.
    inline_tests: bool = False

    def handles(self, path: str) -> bool:
        return PurePosixPath(path).suffix.lower() in self.extensions

    @abstractmethod
    def is_test_file(self, path: str) -> bool:
        """Return True when ``path`` follows this language's test-file convention."""

    @abstractmethod
    def extract_package_description(self, content: str) -> str:
        ...

    @abstractmethod
    def extract_types(self, content: str, path: str) -> List[ExtractedType]:
        ...

    @abstractmethod
    def extract_functions(self, content: str, path: str) -> List[ExtractedFunction]:
        ...

    @abstractmethod
    def extract_tests(self, content: str, path: str) -> List[ExtractedTest]:
        ...

    def map_type_to_spec(self, concrete: str) -> str:
        """Reverse of the pseudo-type mapper for this language."""
        return reverse_map_type(concrete, self.language.value)

    def optional_type(self, concrete: str) -> Tuple[str, bool]:
        """Map ``concrete`` and split off a leading ``Optional`` wrapper."""
        mapped = self.map_type_to_spec(concrete)
        if mapped.startswith("Optional "):
            return mapped[len("Optional "):], True
        return mapped, False

    # Convenience wrappers bound to this language's quoting rules.

    def matching(self, text: str, open_index: int) -> int:
        return find_matching(text, open_index, self.quotes)

    def statements(self, body: str, newline_terminates: bool = False) -> List[Tuple[int, str]]:
        return top_level_statements(body, self.quotes, newline_terminates)


# ----------------------------------------------------------------------
# Positions and comments
# ----------------------------------------------------------------------


def line_number_at(content: str, index: int) -> int:
    """1-based line number of character ``index``."""
    return content.count("\n", 0, index) + 1


COMMENT_MARKUP_RE = re.compile(r"^(?:/\*\*+|/\*+|\*+/|///?!?|\*+|#+)\s?")
DOC_TAG_RE = re.compile(
    r"^(?:@\w+|:(?:param|type|return|returns|rtype|raises)\b|<(?:param|returns|exception|typeparam|remarks|example)\b)",
    re.IGNORECASE,
)
XML_TAG_RE = re.compile(r"<see\s+cref=\"([^\"]+)\"\s*/>|</?\w+[^>]*>")
DOC_SECTION_RE = re.compile(r"^(?:Args|Arguments|Parameters|Returns|Raises|Yields|Example|Examples)\s*:\s*$")


def clean_doc_lines(raw_lines: Iterable[str]) -> str:
    """Strip comment markup and tag lines, joining the rest into one description."""
    cleaned: List[str] = []
    for raw in raw_lines:
        line = raw.strip()
        if line.endswith("*/"):
            line = line[:-2].rstrip()
        line = COMMENT_MARKUP_RE.sub("", line, count=1).strip()
        if not line:
            continue
        if DOC_TAG_RE.match(line):
            continue
        if DOC_SECTION_RE.match(line):
            break
        line = XML_TAG_RE.sub(lambda m: m.group(1) or "", line).strip()
        if line:
            cleaned.append(line)
    return " ".join(cleaned)


def comment_above(
    lines: Sequence[str],
    line_index: int,
    line_prefixes: Tuple[str, ...] = ("//",),
    block: Optional[Tuple[str, str]] = ("/*", "*/"),
    skip: Optional[re.Pattern] = None,
) -> str:
    """Return the doc comment attached to the declaration on ``line_index`` (0-based).

    Blank lines and lines matching ``skip`` (annotations, attributes,
    decorators) may sit between the comment and the declaration; any other
    code line detaches the comment.
    """
    collected: List[str] = []
    index = line_index - 1
    while index >= 0:
        line = lines[index].strip()
        if not line:
            if collected:
                break
            index -= 1
            continue
        if skip is not None and not collected and skip.match(line):
            index -= 1
            continue
        if block and line.endswith(block[1]):
            start = index
            while start >= 0 and block[0] not in lines[start]:
                start -= 1
            if start < 0:
                break
            collected[:0] = lines[start:index + 1]
            index = start - 1
            break
        if line.startswith(line_prefixes):
            collected.insert(0, line)
            index -= 1
            continue
        break
    return clean_doc_lines(collected)


# ----------------------------------------------------------------------
# Bracket matching
# ----------------------------------------------------------------------

PAIRS = {"{": "}", "(": ")", "[": "]", "<": ">"}


def _skip_literal(text: str, index: int, quotes: str) -> int:
    """If a string or comment starts at ``index``, return the index just past it."""
    char = text[index]
    if text.startswith("//", index):
        end = text.find("\n", index)
        return len(text) if end < 0 else end
    if text.startswith("/*", index):
        end = text.find("*/", index + 2)
        return len(text) if end < 0 else end + 2
    if char in quotes:
        position = index + 1
        while position < len(text):
            if text[position] == "\\":
                position += 2
                continue
            if text[position] == char:
                return position + 1
            if text[position] == "\n" and char != "`":
                return position
            position += 1
        return len(text)
    return index


def find_matching(text: str, open_index: int, quotes: str = "\"'`") -> int:
    """Index of the delimiter closing the one at ``open_index``, or -1.

    Counts depth of the opening character only, skipping string literals
    and comments so that braces inside them do not count.
    """
    opener = text[open_index]
    closer = PAIRS[opener]
    depth = 0
    index = open_index
    while index < len(text):
        skipped = _skip_literal(text, index, quotes)
        if skipped != index:
            index = skipped
            continue
        char = text[index]
        if char == opener:
            depth += 1
        elif char == closer and not (closer == ">" and index and text[index - 1] in "-="):
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def extract_braced(text: str, start: int, quotes: str = "\"'`") -> Optional[Tuple[int, int]]:
    """Locate the first ``{`` at or after ``start`` and return ``(open, close)``."""
    open_index = _find_outside_literals(text, "{", start, quotes)
    if open_index < 0:
        return None
    close_index = find_matching(text, open_index, quotes)
    if close_index < 0:
        return None
    return open_index, close_index


def _find_outside_literals(text: str, target: str, start: int, quotes: str) -> int:
    index = start
    while index < len(text):
        skipped = _skip_literal(text, index, quotes)
        if skipped != index:
            index = skipped
            continue
        if text[index] == target:
            return index
        if text[index] == ";" and target == "{":
            return -1
        index += 1
    return -1


_CONTINUATION_ENDINGS = (",", "|", "&", "=>", "=", ":", "(", "<", "{", "[")


def top_level_statements(body: str, quotes: str = "\"'`", newline_terminates: bool = False) -> List[Tuple[int, str]]:
    """Split a brace-delimited body into its depth-0 statements.

    A statement ends at a ``;`` at depth 0 or at the ``}`` that closes a
    block opened at depth 0. With ``newline_terminates`` a line break also
    ends a complete-looking statement (object-type members without ``;``).
    Comments are dropped; each statement is returned with its start offset.
    """
    statements: List[Tuple[int, str]] = []
    depth = 0
    start = -1
    pieces: List[str] = []
    index = 0

    def flush(end: int) -> None:
        nonlocal start, pieces
        text = "".join(pieces).strip()
        if text and text != ";":
            statements.append((start, text))
        start = -1
        pieces = []

    while index < len(body):
        char = body[index]
        if body.startswith("//", index) or body.startswith("/*", index):
            index = _skip_literal(body, index, quotes)
            continue
        if char in quotes:
            end = _skip_literal(body, index, quotes)
            if start < 0:
                start = index
            pieces.append(body[index:end])
            index = end
            continue
        if start < 0:
            if char.isspace() or char == ";":
                index += 1
                continue
            start = index
        pieces.append(char)
        if char in "{([":
            depth += 1
        elif char in "})]":
            depth = max(depth - 1, 0)
            if depth == 0 and char == "}":
                flush(index)
        elif char == ";" and depth == 0:
            flush(index)
        elif char == "\n" and depth == 0 and newline_terminates:
            current = "".join(pieces).strip()
            if current and not current.endswith(_CONTINUATION_ENDINGS):
                flush(index)
        index += 1
    flush(len(body))
    return statements


def split_params(text: str) -> List[str]:
    """Split a parameter list on depth-0 commas."""
    return split_top_level(text, ",")


# ----------------------------------------------------------------------
# Naming and tests
# ----------------------------------------------------------------------

TEST_PREFIX_RE = re.compile(r"^(?:test_?|Test_?|should_?|Should_?|it_)", re.UNICODE)


def camel_to_words(identifier: str) -> str:
    """``SlugifyHandlesHTTPInput`` -> ``slugify handles http input``."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", identifier)
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", text)
    text = text.replace("_", " ")
    return re.sub(r"\s+", " ", text).strip().lower()


def strip_test_prefix(identifier: str) -> str:
    stripped = TEST_PREFIX_RE.sub("", identifier, count=1)
    return stripped or identifier


def guess_tested_function(identifier: str) -> str:
    """Guess the function under test from a test identifier.

    ``TestSlugify_Empty`` -> ``Slugify``; ``test_slugify_spaces`` -> ``slugify_spaces``.
    The coordinator later narrows snake-case guesses against known functions.
    """
    stripped = strip_test_prefix(identifier)
    if "_" in stripped and stripped[:1].isupper():
        stripped = stripped.split("_", 1)[0]
    return stripped


def literal_args(arguments: str) -> object:
    """Turn a call's argument text into a ``given`` value.

    One positional argument yields its literal, several yield a list, and
    keyword arguments yield a dict.
    """
    parts = split_params(arguments)
    if not parts:
        return None
    keyword = [re.match(r"^(\w+)\s*[:=]\s*(?![=>])(.+)$", part, re.DOTALL) for part in parts]
    if all(keyword):
        return {m.group(1): parse_literal(m.group(2)) for m in keyword}
    values = [parse_literal(part) for part in parts]
    return values[0] if len(values) == 1 else values


# ----------------------------------------------------------------------
# Logic inference
# ----------------------------------------------------------------------

LOGIC_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"ToLower|toLowerCase|\.lower\(\)|to_lowercase", re.IGNORECASE), "convert to lowercase"),
    (re.compile(r"ToUpper|toUpperCase|\.upper\(\)|to_uppercase", re.IGNORECASE), "convert to uppercase"),
    (re.compile(r"\.Trim|\.trim\(\)|\.strip\(\)|strings\.TrimSpace", re.IGNORECASE), "trim whitespace"),
    (re.compile(r"\bfor\s|\.forEach|\.map\(|\.each\(|\.iter\(\)", re.IGNORECASE), "iterate over elements"),
    (re.compile(r"==\s*nil|==\s*null|\bis\s+None|if\s+!\w+|if\s+not\s+\w+|\.is_none\(\)|IsNullOrEmpty"),
     "check for null/empty"),
    (re.compile(r"regexp|Regex|\bre\.|Pattern\.compile", re.IGNORECASE), "apply regex pattern"),
    (re.compile(r"\bappend\(|\.push\(|\.add\(|\.Add\(|\.append\("), "add to collection"),
    (re.compile(r"\.filter\(|\.Where\(|\bfilter\(", re.IGNORECASE), "filter elements"),
    (re.compile(r"\.sort\(|\.Sort\(|\bsorted\(|sort\.", re.IGNORECASE), "sort elements"),
    (re.compile(r"\.split\(|\.Split\(|strings\.Split|\bsplit\(", re.IGNORECASE), "split string"),
    (re.compile(r"\.join\(|\.Join\(|strings\.Join", re.IGNORECASE), "join elements"),
    (re.compile(r"\.replace\(|\.Replace\(|ReplaceAll|replace_all", re.IGNORECASE), "replace text"),
    (re.compile(r"\.contains\(|\.Contains\(|\.includes\(|strings\.Contains|\s+in\s+", re.IGNORECASE),
     "check if contains"),
    (re.compile(r"\blen\(|\.length|\.Length|\.size\(\)|\.count\(|\.Count\b|\.len\(\)"), "get length/count"),
    (re.compile(r"\braise\b|\bthrow\b|errors\.New|fmt\.Errorf|panic!|Err\("), "signal an error"),
    (re.compile(r"\breturn\s+"), "return the result"),
]


def infer_logic(body: str) -> List[str]:
    """Describe a function body as a list of coarse imperative steps."""
    steps: List[str] = []
    for pattern, step in LOGIC_PATTERNS:
        if pattern.search(body) and step not in steps:
            steps.append(step)
    return steps


def strip_comments(text: str, quotes: str = "\"'`") -> str:
    """Remove ``//`` and ``/* */`` comments outside string literals."""
    out: List[str] = []
    index = 0
    while index < len(text):
        if text.startswith("//", index) or text.startswith("/*", index):
            index = _skip_literal(text, index, quotes)
            continue
        if text[index] in quotes:
            end = _skip_literal(text, index, quotes)
            out.append(text[index:end])
            index = end
            continue
        out.append(text[index])
        index += 1
    return "".join(out)
