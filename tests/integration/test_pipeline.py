"""Integration tests for the parse, import and parity pipeline on real files."""

import pytest

from polyspec.importer import Importer
from polyspec.markdown import render_spec
from polyspec.parity import check_parity
from polyspec.parser import parse_spec, parse_spec_file, validate

SPEC_MARKDOWN = """# TextUtils

String helpers.

## Meta

- version: 0.2.0

## Target Languages

- Go
- Python

## Functions

### Slugify

Convert text to a slug.

**accepts:**
- `text` (Text): the input

**returns:** `Text`

**logic:**
```
lowercase the text
replace spaces with dashes
```

### Trim

**accepts:** text: Text

**returns:** `Text`

**logic:**
```
strip surrounding whitespace
```

## Tests

### Slugify

#### test: spaces

- given: "Hello World"
- expect: "hello-world"
"""

GO_FILES = {
    "slug.go": '''package textutils

import "strings"

// Slugify converts text to a URL slug.
func Slugify(text string) string {
    return strings.ReplaceAll(strings.ToLower(text), " ", "-")
}
''',
    "trim.go": '''package textutils

import "strings"

func Trim(text string) string {
    return strings.TrimSpace(text)
}
''',
    "slug_test.go": '''package textutils

import "testing"

func TestSlugify(t *testing.T) {
    got := Slugify("Hello World")
    if got != "hello-world" {
        t.Errorf("got %q", got)
    }
}
''',
}

PYTHON_FILES = {
    "textutils.py": '''def slugify(text: str) -> str:
    """Convert text to a slug."""
    return text.lower().replace(" ", "-")
''',
}


@pytest.fixture
def workspace(tmp_path):
    """A spec file plus a Go reference and a Python candidate implementation."""
    spec_path = tmp_path / "textutils.spec.md"
    spec_path.write_text(SPEC_MARKDOWN, encoding="utf-8")
    for name, files in (("go-impl", GO_FILES), ("python-impl", PYTHON_FILES)):
        for relative, content in files.items():
            path = tmp_path / name / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
    return tmp_path


class TestSpecFiles:
    """Parsing and rendering specs stored on disk."""

    def test_parse_render_parse(self, workspace):
        """Test that a parsed file renders to markdown with the same content."""
        first = parse_spec_file(workspace / "textutils.spec.md")

        second = parse_spec(render_spec(first.spec))

        assert first.warnings == []
        assert second.spec.to_dict() == first.spec.to_dict()
        assert validate(second.spec).valid

    def test_missing_spec_file(self, tmp_path):
        """Test that a missing file is reported before parsing."""
        with pytest.raises(FileNotFoundError):
            parse_spec_file(tmp_path / "missing.spec.md")


class TestImportPipeline:
    """Importing source trees into spec files."""

    def test_imported_spec_parses_and_validates(self, workspace):
        """Test that an imported Go tree produces a spec the parser accepts."""
        spec_path, project = Importer().import_from_directory(workspace / "go-impl", workspace / "specs")

        result = parse_spec_file(spec_path)

        assert spec_path.name == "go-impl.spec.md"
        assert [f.name for f in result.spec.functions] == ["Slugify", "Trim"]
        assert result.spec.target_languages == ["go"]
        assert [(t.function, t.given, t.expect) for t in result.spec.tests] == [
            ("Slugify", "Hello World", "hello-world"),
        ]
        assert validate(result.spec).valid
        assert project.functions[0].logic == ["convert to lowercase", "replace text", "return the result"]

    def test_existing_spec_is_not_overwritten(self, workspace):
        """Test that importing twice keeps the first spec file intact."""
        target = workspace / "specs"
        first, _ = Importer().import_from_directory(workspace / "go-impl", target)
        first.write_text("# Hand edited\n", encoding="utf-8")

        second, _ = Importer().import_from_directory(workspace / "go-impl", target)

        assert second.name == "go-impl-imported.spec.md"
        assert first.read_text(encoding="utf-8") == "# Hand edited\n"


class TestParityPipeline:
    """Checking parity across implementation directories."""

    def test_candidate_missing_a_function(self, workspace):
        """Test that the Python candidate is scored against the Go reference."""
        report = check_parity(workspace / "textutils.spec.md", [workspace / "go-impl", workspace / "python-impl"])

        assert report.reference_language == "go"
        assert report.scores == {"python-impl": 0.5}
        assert [(gap.name, gap.missing_in) for gap in report.gaps] == [("Trim", ["python-impl"])]
        assert report.gaps[0].reference_file == "trim.go"
        assert all(record.in_spec for record in report.feature_matrix)
        assert "## python-impl (50% parity)" in report.fix_instructions

    def test_reference_against_itself(self, workspace):
        """Test that identical trees are at full parity and labels stay distinct."""
        report = check_parity(workspace / "textutils.spec.md", [workspace / "go-impl", workspace / "go-impl"])

        assert report.scores == {"go-impl-2": 1.0}
        assert report.parity_score == 1.0
        assert report.gaps == []

    def test_needs_two_projects(self, workspace):
        """Test that a single project cannot be compared."""
        with pytest.raises(ValueError, match="at least one candidate"):
            check_parity(workspace / "textutils.spec.md", [workspace / "go-impl"])
