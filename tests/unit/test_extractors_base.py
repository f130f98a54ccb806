"""Unit tests for shared extractor helpers and the extractor registry."""

import pytest

from polyspec.errors import UnsupportedLanguageError
from polyspec.extractors import (
    GoExtractor,
    SourceLanguage,
    TypeScriptExtractor,
    all_extractors,
    extractor_for_path,
    get_extractor,
)
from polyspec.extractors.base import (
    camel_to_words,
    clean_doc_lines,
    find_matching,
    guess_tested_function,
    infer_logic,
    literal_args,
    top_level_statements,
)


class TestRegistry:
    """Test cases for extractor lookup."""

    def test_lookup_by_name_alias_and_tag(self):
        """Test that names, aliases and enum tags resolve to one extractor."""
        assert isinstance(get_extractor("go"), GoExtractor)
        assert isinstance(get_extractor("golang"), GoExtractor)
        assert isinstance(get_extractor("ts"), TypeScriptExtractor)
        assert get_extractor(SourceLanguage.RUST).language is SourceLanguage.RUST

    def test_unknown_language(self):
        """Test that an unknown language raises with the supported list."""
        with pytest.raises(UnsupportedLanguageError) as excinfo:
            get_extractor("cobol")

        assert "python" in excinfo.value.supported

    def test_lookup_by_path(self):
        """Test extension-based lookup."""
        assert extractor_for_path("web/app.tsx").language is SourceLanguage.TYPESCRIPT
        assert extractor_for_path("Main.JAVA").language is SourceLanguage.JAVA
        assert extractor_for_path("README.md") is None

    def test_all_extractors(self):
        """Test that every language has exactly one extractor."""
        languages = [extractor.language.value for extractor in all_extractors()]

        assert sorted(languages) == ["csharp", "go", "java", "python", "rust", "typescript"]


class TestNamingHelpers:
    """Test cases for test-name helpers."""

    def test_camel_to_words(self):
        """Test splitting camel case and acronyms into words."""
        assert camel_to_words("SlugifyHandlesHTTPInput") == "slugify handles http input"
        assert camel_to_words("Slugify_HandlesSpaces") == "slugify handles spaces"

    def test_guess_tested_function(self):
        """Test guessing the function under test from a test identifier."""
        assert guess_tested_function("TestSlugify_Empty") == "Slugify"
        assert guess_tested_function("test_slugify_spaces") == "slugify_spaces"


class TestLiteralArgs:
    """Test cases for literal_args."""

    def test_positional_and_keyword_arguments(self):
        """Test one argument, several arguments and keyword arguments."""
        assert literal_args('"Hello World"') == "Hello World"
        assert literal_args('"a", 2') == ["a", 2]
        assert literal_args("x=1, y='b'") == {"x": 1, "y": "b"}
        assert literal_args("") is None


class TestScanning:
    """Test cases for bracket matching, statements, comments and logic."""

    def test_find_matching_skips_strings(self):
        """Test that delimiters inside string literals are ignored."""
        assert find_matching('f("(", x)', 1) == 8

    def test_top_level_statements(self):
        """Test splitting a body into depth-0 statements."""
        statements = [text for _, text in top_level_statements("a; { b; c } d;")]

        assert statements == ["a;", "{ b; c }", "d;"]

    def test_clean_doc_lines(self):
        """Test that comment markup and tag lines are dropped."""
        text = clean_doc_lines(["/**", " * Convert text.", " * @param text input", " */"])

        assert text == "Convert text."

    def test_infer_logic(self):
        """Test inferring coarse steps from a function body."""
        assert infer_logic("return strings.ToLower(s)") == ["convert to lowercase", "return the result"]
        assert infer_logic("") == []
