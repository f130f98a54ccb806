"""Unit tests for the pseudo-type vocabulary and its language spellings."""

import pytest

from polyspec.errors import UnsupportedLanguageError
from polyspec.typemap import (
    canonical_language,
    canonical_pseudo_type,
    map_type,
    reverse_map_type,
    split_top_level,
    supported_languages,
)

LIST_OF_OPTIONAL_INTEGER = {
    "go": "[]*int",
    "python": "List[Optional[int]]",
    "typescript": "Array<number | null>",
    "java": "List<Optional<Integer>>",
    "rust": "Vec<Option<i64>>",
    "csharp": "List<int?>",
}


class TestMapType:
    """Test cases for map_type."""

    @pytest.mark.parametrize("language,expected", sorted(LIST_OF_OPTIONAL_INTEGER.items()))
    def test_nested_pseudo_type(self, language, expected):
        """Test that nested containers are spelled natively in every language."""
        assert map_type("List of Optional Integer", language) == expected

    def test_flat_types(self):
        """Test a few flat spellings."""
        assert map_type("Text", "go") == "string"
        assert map_type("Timestamp", "python") == "datetime"
        assert map_type("Bytes", "rust") == "Vec<u8>"
        assert map_type("UUID", "csharp") == "Guid"

    def test_go_nothing_inside_wrappers(self):
        """Test that Go spells a wrapped Nothing as the empty struct and a bare one as no type."""
        assert map_type("Nothing", "go") == ""
        assert map_type("Optional Nothing", "go") == "*struct{}"
        assert map_type("List of Nothing", "go") == "[]struct{}"
        assert map_type("Map of Text to Nothing", "go") == "map[string]struct{}"
        assert reverse_map_type("[]struct{}", "go") == "List of Nothing"

    def test_java_boxes_only_inside_generics(self):
        """Test that Java primitives are boxed when nested."""
        assert map_type("Integer", "java") == "int"
        assert map_type("List of Boolean", "java") == "List<Boolean>"

    def test_maps(self):
        """Test map spellings."""
        assert map_type("Map of Text to Integer", "go") == "map[string]int"
        assert map_type("Map of Text to Integer", "python") == "Dict[str, int]"
        assert map_type("Map of Text to List of Float", "typescript") == "Record<string, Array<number>>"

    def test_synonyms_and_language_aliases(self):
        """Test pseudo-type synonyms and language aliases."""
        assert map_type("string", "golang") == "string"
        assert map_type("bool", "c#") == "bool"
        assert canonical_language("TS") == "typescript"
        assert canonical_pseudo_type("datetime") == "Timestamp"

    def test_unknown_names_pass_through(self):
        """Test that declared type names are left untouched."""
        assert map_type("User", "rust") == "User"
        assert map_type("List of User", "python") == "List[User]"

    def test_unsupported_language(self):
        """Test that an unknown language raises with the supported list."""
        with pytest.raises(UnsupportedLanguageError) as excinfo:
            map_type("Text", "cobol")

        assert excinfo.value.language == "cobol"
        assert "go" in excinfo.value.supported
        assert isinstance(excinfo.value, ValueError)

    def test_supported_languages(self):
        """Test the supported language list."""
        assert supported_languages() == ["go", "python", "typescript", "java", "rust", "csharp"]


class TestReverseMapType:
    """Test cases for reverse_map_type."""

    @pytest.mark.parametrize("language,concrete", sorted(LIST_OF_OPTIONAL_INTEGER.items()))
    def test_nested_spellings_recover_pseudo_type(self, language, concrete):
        """Test that each native spelling reads back as the pseudo-type."""
        assert reverse_map_type(concrete, language) == "List of Optional Integer"

    def test_language_specific_forms(self):
        """Test references, unions, arrays and varargs."""
        assert reverse_map_type("&str", "rust") == "Text"
        assert reverse_map_type("Result<Vec<u8>, Error>", "rust") == "Bytes"
        assert reverse_map_type("str | None", "python") == "Optional Text"
        assert reverse_map_type("string[]", "typescript") == "List of Text"
        assert reverse_map_type("String...", "java") == "List of Text"
        assert reverse_map_type("map[string]int", "go") == "Map of Text to Integer"
        assert reverse_map_type("Task<int>", "csharp") == "Integer"

    def test_unknown_names_pass_through(self):
        """Test that project types are kept by name."""
        assert reverse_map_type("User", "go") == "User"
        assert reverse_map_type("[]User", "go") == "List of User"


class TestSplitTopLevel:
    """Test cases for split_top_level."""

    def test_nested_commas_are_kept(self):
        """Test that commas inside brackets do not split."""
        assert split_top_level("Map<String, List<Integer>>, int") == ["Map<String, List<Integer>>", "int"]

    def test_arrows_do_not_close_brackets(self):
        """Test that arrows are not read as closing angle brackets."""
        assert split_top_level("(a) -> b, c") == ["(a) -> b", "c"]
