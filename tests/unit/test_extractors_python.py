"""Unit tests for the Python extractor."""

import pytest

from polyspec.extractors import PythonExtractor

SOURCE = '''"""Text helpers.

Longer details here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Color(Enum):
    RED = "red"
    GREEN = "green"


@dataclass
class User:
    """A registered user."""

    name: str
    email: Optional[str] = None
    tags: List[str] = field(default_factory=list)


UserIds = List[int]


def slugify(text: str) -> str:
    """Convert text to a slug."""
    return text.lower().replace(" ", "-")


async def fetch(url: str, timeout: int = 10) -> bytes:
    return b""


def _private():
    pass


class Store:
    def __init__(self):
        self.items = []

    def add(self, item: str) -> None:
        self.items.append(item)
'''

TEST_SOURCE = '''from textutils import is_valid, slugify


def test_slugify_spaces():
    assert slugify("Hello World") == "hello-world"


def test_slugify_empty():
    result = slugify("")
    assert result == ""


def test_is_valid():
    assert is_valid("abc")
'''


@pytest.fixture
def extractor():
    return PythonExtractor()


class TestPythonExtractor:
    """Test cases for PythonExtractor."""

    def test_is_test_file(self, extractor):
        """Test test-file naming and directory conventions."""
        assert extractor.is_test_file("tests/test_text.py")
        assert extractor.is_test_file("pkg/text_test.py")
        assert extractor.is_test_file("tests/helpers.py")
        assert not extractor.is_test_file("textutils/core.py")

    def test_package_description(self, extractor):
        """Test that the first docstring paragraph is the description."""
        assert extractor.extract_package_description(SOURCE) == "Text helpers."

    def test_types(self, extractor):
        """Test enums, dataclasses, aliases and plain classes."""
        types = extractor.extract_types(SOURCE, "textutils/core.py")

        assert [(t.name, t.kind) for t in types] == [
            ("Color", "enum"),
            ("User", "struct"),
            ("UserIds", "alias"),
            ("Store", "struct"),
        ]
        color, user, user_ids, store = types
        assert color.variants == ["RED", "GREEN"]
        assert user.description == "A registered user."
        assert [(f.name, f.type, f.optional, f.default) for f in user.fields] == [
            ("name", "Text", False, None),
            ("email", "Text", True, "None"),
            ("tags", "List of Text", True, "list()"),
        ]
        assert user_ids.alias_of == "List of Integer"
        assert [f.name for f in store.fields] == ["items"]

    def test_functions(self, extractor):
        """Test module functions, async functions and methods."""
        functions = extractor.extract_functions(SOURCE, "textutils/core.py")

        assert [f.name for f in functions] == ["slugify", "fetch", "add"]
        slugify, fetch, add = functions
        assert slugify.description == "Convert text to a slug."
        assert [(p.name, p.type) for p in slugify.parameters] == [("text", "Text")]
        assert slugify.returns == "Text"
        assert slugify.logic == ["convert to lowercase", "replace text", "return the result"]
        assert fetch.is_async
        assert fetch.returns == "Bytes"
        assert [(p.name, p.type, p.default) for p in fetch.parameters] == [
            ("url", "Text", None),
            ("timeout", "Integer", "10"),
        ]
        assert [p.name for p in add.parameters] == ["item"]
        assert "add to collection" in add.logic

    def test_tests(self, extractor):
        """Test equality assertions, assigned results and truthy assertions."""
        tests = extractor.extract_tests(TEST_SOURCE, "tests/test_text.py")

        assert [(t.function, t.name, t.given, t.expect) for t in tests] == [
            ("slugify", "slugify spaces", "Hello World", "hello-world"),
            ("slugify", "slugify empty", "", ""),
            ("is_valid", "is valid", "abc", True),
        ]
        assert tests[0].line_number == 4
