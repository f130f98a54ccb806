"""Unit tests for source tree import."""

import pytest

from polyspec.errors import LanguageDetectionError, SourceDirectoryError, UnsupportedLanguageError
from polyspec.extractors import SourceLanguage
from polyspec.importer import Importer, discover_dependencies, resolve_test_targets
from polyspec.models import ExtractedFunction, ExtractedProject, ExtractedTest

SLUGIFY_GO = '''package textutils

// Slugify converts text to a URL slug.
func Slugify(text string) string {
    return text
}
'''

TRIM_GO = '''package textutils

func Slugify(text string) string {
    return ""
}

func Trim(text string) string {
    return text
}
'''

SLUGIFY_TEST_GO = '''package textutils

import "testing"

func TestSlugify(t *testing.T) {
    got := Slugify("Hello World")
    if got != "hello-world" {
        t.Errorf("got %q", got)
    }
}
'''


def write_tree(root, files):
    """Write ``{relative_path: content}`` under ``root`` and return it."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


class TestDetectLanguage:
    """Test cases for Importer.detect_language."""

    def test_majority_language_wins(self, tmp_path):
        """Test that the language with the most files is chosen."""
        files = {f"pkg/file{i}.go": "package pkg\n" for i in range(10)}
        files.update({"tools/a.py": "", "tools/b.py": ""})
        write_tree(tmp_path, files)

        assert Importer().detect_language(tmp_path) == SourceLanguage.GO

    def test_tie_goes_to_first_seen(self, tmp_path):
        """Test that a tie resolves to the language encountered first in walk order."""
        write_tree(tmp_path, {"a.py": "", "b.go": "package b\n"})

        assert Importer().detect_language(tmp_path) == SourceLanguage.PYTHON

    def test_vendored_directories_are_skipped(self, tmp_path):
        """Test that dependency and hidden directories do not count."""
        files = {f"node_modules/lib/m{i}.ts": "" for i in range(5)}
        files.update({".cache/x.ts": "", "main.go": "package main\n"})
        write_tree(tmp_path, files)

        assert Importer().detect_language(tmp_path) == SourceLanguage.GO

    def test_no_supported_files(self, tmp_path):
        """Test that a tree without source files cannot be detected."""
        write_tree(tmp_path, {"README.md": "# hi\n"})

        with pytest.raises(LanguageDetectionError):
            Importer().detect_language(tmp_path)

    def test_missing_directory(self, tmp_path):
        """Test that a missing root is reported as a source directory error."""
        with pytest.raises(SourceDirectoryError, match="does not exist"):
            Importer().detect_language(tmp_path / "missing")

    def test_file_is_not_a_directory(self, tmp_path):
        """Test that a file root is rejected."""
        write_tree(tmp_path, {"main.go": "package main\n"})

        with pytest.raises(SourceDirectoryError, match="not a directory"):
            Importer().extract(tmp_path / "main.go")


class TestExtract:
    """Test cases for Importer.extract."""

    def test_first_occurrence_wins(self, tmp_path):
        """Test that duplicate names keep the declaration from the first file in sorted order."""
        write_tree(tmp_path, {"b.go": TRIM_GO, "a.go": SLUGIFY_GO, "a_test.go": SLUGIFY_TEST_GO})

        project = Importer().extract(tmp_path, name="textutils")

        assert project.name == "textutils"
        assert project.detected_language == "go"
        assert [(f.name, f.source_file) for f in project.functions] == [("Slugify", "a.go"), ("Trim", "b.go")]
        assert project.functions[0].description == "Slugify converts text to a URL slug."
        assert [(t.function, t.given, t.expect) for t in project.tests] == [("Slugify", "Hello World", "hello-world")]

    def test_explicit_language_filters_files(self, tmp_path):
        """Test that an explicit language ignores files of other languages."""
        write_tree(tmp_path, {"a.go": SLUGIFY_GO, "x.py": "", "y.py": "", "z.py": ""})

        project = Importer().extract(tmp_path, language="go")

        assert project.detected_language == "go"
        assert [f.name for f in project.functions] == ["Slugify"]

    def test_unknown_language(self, tmp_path):
        """Test that an unknown language is rejected."""
        write_tree(tmp_path, {"a.go": SLUGIFY_GO})

        with pytest.raises(UnsupportedLanguageError):
            Importer().extract(tmp_path, language="cobol")

    def test_oversized_files_become_warnings(self, tmp_path):
        """Test that files over the byte limit are skipped with a warning."""
        write_tree(tmp_path, {"a.go": "package a\n", "big.go": SLUGIFY_GO})

        project = Importer(max_file_bytes=20).extract(tmp_path)

        assert project.functions == []
        assert len(project.warnings) == 1
        assert project.warnings[0].startswith("Skipped big.go:")
        assert "20 byte limit" in project.warnings[0]

    def test_undecodable_file_becomes_warning(self, tmp_path):
        """Test that a file that is not UTF-8 is skipped with a warning and extraction continues."""
        write_tree(tmp_path, {"a.go": SLUGIFY_GO})
        (tmp_path / "b.go").write_bytes(b"package a\n\xff\xfe\n")

        project = Importer().extract(tmp_path, language="go")

        assert [f.name for f in project.functions] == ["Slugify"]
        assert len(project.warnings) == 1
        assert project.warnings[0].startswith("Could not read b.go:")

    def test_max_file_bytes_from_environment(self, monkeypatch):
        """Test that the byte limit defaults to the environment variable."""
        monkeypatch.setenv("POLYSPEC_MAX_FILE_BYTES", "123")
        assert Importer().max_file_bytes == 123

        monkeypatch.setenv("POLYSPEC_MAX_FILE_BYTES", "lots")
        assert Importer().max_file_bytes == 1024 * 1024


class TestImportFromDirectory:
    """Test cases for Importer.import_from_directory."""

    def test_writes_spec_without_overwriting(self, tmp_path):
        """Test that a second import goes to the -imported file."""
        source = write_tree(tmp_path / "Text Utils", {"a.go": SLUGIFY_GO})

        first, project = Importer().import_from_directory(source)
        second, _ = Importer().import_from_directory(source)

        assert first == source.resolve() / "text-utils.spec.md"
        assert second == source.resolve() / "text-utils-imported.spec.md"
        assert first.read_text(encoding="utf-8").startswith("# Text Utils\n")
        assert "### Slugify" in second.read_text(encoding="utf-8")
        assert project.functions[0].name == "Slugify"

    def test_output_directory_is_created(self, tmp_path):
        """Test writing into a separate output directory."""
        source = write_tree(tmp_path / "textutils", {"a.go": SLUGIFY_GO})

        path, _ = Importer().import_from_directory(source, tmp_path / "out" / "specs")

        assert path == tmp_path / "out" / "specs" / "textutils.spec.md"
        assert path.is_file()


class TestDependencies:
    """Test cases for manifest dependency discovery."""

    def test_go_mod(self, tmp_path):
        """Test require blocks and trailing comments in go.mod."""
        write_tree(tmp_path, {"go.mod": (
            "module example.com/text\n\n"
            "go 1.22\n\n"
            "require (\n"
            "\tgithub.com/google/uuid v1.6.0\n"
            "\tgolang.org/x/text v0.14.0 // indirect\n"
            ")\n"
        )})

        deps = discover_dependencies(tmp_path, SourceLanguage.GO)

        assert [(d.name, d.version, d.description) for d in deps] == [
            ("github.com/google/uuid", "v1.6.0", ""),
            ("golang.org/x/text", "v0.14.0", "indirect"),
        ]

    def test_package_json(self, tmp_path):
        """Test runtime dependencies from package.json."""
        write_tree(tmp_path, {"package.json": '{"dependencies": {"zod": "^3.22.0"}, "devDependencies": {"jest": "29"}}'})

        deps = discover_dependencies(tmp_path, SourceLanguage.TYPESCRIPT)

        assert [(d.name, d.version) for d in deps] == [("zod", "^3.22.0")]

    def test_requirements_txt(self, tmp_path):
        """Test that exact pins drop the operator and ranges keep it."""
        write_tree(tmp_path, {"requirements.txt": "requests>=1.2\nflask==2.0  # web\n\n-e .\n"})

        deps = discover_dependencies(tmp_path, SourceLanguage.PYTHON)

        assert [(d.name, d.version) for d in deps] == [("requests", ">=1.2"), ("flask", "2.0")]

    def test_cargo_toml(self, tmp_path):
        """Test plain and table dependency entries in Cargo.toml."""
        write_tree(tmp_path, {"Cargo.toml": (
            '[package]\nname = "text"\n\n'
            '[dependencies]\nregex = "1.10"\nserde = { version = "1.0", features = ["derive"] }\n'
        )})

        deps = discover_dependencies(tmp_path, SourceLanguage.RUST)

        assert [(d.name, d.version) for d in deps] == [("regex", "1.10"), ("serde", "1.0")]

    def test_pom_xml(self, tmp_path):
        """Test Maven dependencies with a default namespace."""
        write_tree(tmp_path, {"pom.xml": (
            '<project xmlns="http://maven.apache.org/POM/4.0.0"><dependencies><dependency>'
            "<groupId>com.google.guava</groupId><artifactId>guava</artifactId><version>33.0</version>"
            "</dependency></dependencies></project>"
        )})

        deps = discover_dependencies(tmp_path, SourceLanguage.JAVA)

        assert [(d.name, d.version, d.description) for d in deps] == [("guava", "33.0", "groupId com.google.guava")]

    def test_malformed_manifest_is_a_warning(self, tmp_path):
        """Test that an unreadable manifest adds a warning and no dependencies."""
        write_tree(tmp_path, {"package.json": "{not json"})
        warnings = []

        deps = discover_dependencies(tmp_path, SourceLanguage.TYPESCRIPT, warnings)

        assert deps == []
        assert len(warnings) == 1
        assert warnings[0].startswith("Could not read dependency manifest:")

    def test_missing_manifest(self, tmp_path):
        """Test that a tree without a manifest has no dependencies."""
        assert discover_dependencies(tmp_path, SourceLanguage.CSHARP) == []


class TestResolveTestTargets:
    """Test cases for resolve_test_targets."""

    def test_longest_known_prefix_wins(self):
        """Test that guessed targets narrow to known function names."""
        project = ExtractedProject(
            name="demo",
            functions=[ExtractedFunction(name="parse"), ExtractedFunction(name="parse_spec"),
                       ExtractedFunction(name="Slugify")],
            tests=[
                ExtractedTest(function="parse_spec_empty"),
                ExtractedTest(function="slugify_handles_spaces"),
                ExtractedTest(function="SLUGIFY"),
                ExtractedTest(function="parse"),
                ExtractedTest(function="unrelated"),
            ],
        )

        resolve_test_targets(project)

        assert [t.function for t in project.tests] == ["parse_spec", "Slugify", "Slugify", "parse", "unrelated"]
