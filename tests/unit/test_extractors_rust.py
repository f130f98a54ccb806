"""Unit tests for the Rust extractor."""

import pytest

from polyspec.extractors import RustExtractor

SOURCE = '''//! Text helpers for slugs.
//! Used by the web layer.

use std::collections::HashMap;

/// A registered user.
#[derive(Debug, Clone)]
pub struct User {
    /// Display name.
    pub name: String,
    pub email: Option<String>,
    pub tags: Vec<String>,
}

pub struct Meters(pub f64);

pub enum Color {
    Red,
    Green(u8),
}

pub type UserMap = HashMap<String, User>;

/// Convert text to a slug.
pub fn slugify(text: &str) -> String {
    text.to_lowercase().replace(" ", "-")
}

pub async fn fetch(url: String) -> Result<Vec<u8>, Error> {
    Ok(Vec::new())
}

fn helper() {}

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn slugify_replaces_spaces() {
        assert_eq!(slugify("Hello World"), "hello-world");
    }
}
'''


@pytest.fixture
def extractor():
    return RustExtractor()


class TestRustExtractor:
    """Test cases for RustExtractor."""

    def test_inline_tests_and_test_files(self, extractor):
        """Test that Rust keeps tests in source files and under tests/."""
        assert extractor.inline_tests
        assert extractor.is_test_file("tests/integration.rs")
        assert not extractor.is_test_file("src/lib.rs")

    def test_package_description(self, extractor):
        """Test that inner doc comments describe the crate."""
        assert extractor.extract_package_description(SOURCE) == "Text helpers for slugs. Used by the web layer."

    def test_types(self, extractor):
        """Test named structs, tuple structs, enums and aliases."""
        types = extractor.extract_types(SOURCE, "src/lib.rs")

        assert [(t.name, t.kind) for t in types] == [
            ("User", "struct"),
            ("Meters", "struct"),
            ("Color", "enum"),
            ("UserMap", "alias"),
        ]
        user, meters, color, user_map = types
        assert user.description == "A registered user."
        assert [(f.name, f.type, f.optional) for f in user.fields] == [
            ("name", "Text", False),
            ("email", "Text", True),
            ("tags", "List of Text", False),
        ]
        assert user.fields[0].description == "Display name."
        assert [(f.name, f.type) for f in meters.fields] == [("0", "Float")]
        assert color.variants == ["Red", "Green"]
        assert user_map.alias_of == "Map of Text to User"

    def test_single_line_struct_fields(self, extractor):
        """Test that fields declared on one line are split on top-level commas."""
        source = "pub struct Point { pub x: i64, pub(crate) counts: HashMap<String, i64>, label: Option<String> }\n"

        (point,) = extractor.extract_types(source, "src/geo.rs")

        assert [(f.name, f.type, f.optional) for f in point.fields] == [
            ("x", "Integer", False),
            ("counts", "Map of Text to Integer", False),
            ("label", "Text", True),
        ]

    def test_public_functions(self, extractor):
        """Test that only public functions are extracted."""
        functions = extractor.extract_functions(SOURCE, "src/lib.rs")

        assert [f.name for f in functions] == ["slugify", "fetch"]
        slugify, fetch = functions
        assert slugify.description == "Convert text to a slug."
        assert [(p.name, p.type) for p in slugify.parameters] == [("text", "Text")]
        assert slugify.returns == "Text"
        assert fetch.is_async
        assert fetch.returns == "Bytes"

    def test_inline_test(self, extractor):
        """Test an assert_eq! inside a cfg(test) module."""
        tests = extractor.extract_tests(SOURCE, "src/lib.rs")

        assert [(t.function, t.name, t.given, t.expect) for t in tests] == [
            ("slugify", "slugify replaces spaces", "Hello World", "hello-world"),
        ]
