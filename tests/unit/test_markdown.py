"""Unit tests for rendering specs back to markdown."""

from polyspec.markdown import WARNINGS_HEADING, project_to_spec, render_project, render_spec
from polyspec.models import (
    ConfigItem,
    Dependency,
    ExtractedField,
    ExtractedFunction,
    ExtractedParam,
    ExtractedProject,
    ExtractedTest,
    ExtractedType,
    Field,
    Function,
    Param,
    Return,
    Spec,
    TestCase as SpecTestCase,
    TypeDef,
)
from polyspec.parser import parse_spec


def _spec():
    return Spec(
        name="TextUtils",
        description="String helpers.",
        version="1.0.0",
        target_languages=["go", "python"],
        types=[
            TypeDef(name="User", fields=[
                Field(name="name", type="Text", description="Display name"),
                Field(name="email", type="Text", required=False),
            ]),
            TypeDef(name="Status", kind="enum", fields=[Field(name="active"), Field(name="inactive")]),
            TypeDef(name="UserId", kind="alias", alias_of="Text"),
        ],
        functions=[Function(
            name="slugify",
            accepts=[Param(name="text", type="Text")],
            returns=Return(type="Text", description="the slug"),
            logic="lowercase\nreplace spaces",
            errors=["empty input"],
            is_pure=True,
        )],
        tests=[
            SpecTestCase(function="slugify", name="spaces", given="Hello World", expect="hello-world"),
            SpecTestCase(function="slugify", name="options", given={"text": "A B", "sep": "_"}, expect="a_b"),
        ],
        dependencies=[Dependency(name="regex", version="1.0", description="pattern matching")],
        configuration=[ConfigItem(name="MAX_LEN", type="Integer", default="64")],
    )


class TestRenderSpec:
    """Test cases for render_spec."""

    def test_render_then_parse_preserves_spec(self):
        """Test that a rendered spec parses back to the same model."""
        spec = _spec()

        result = parse_spec(render_spec(spec))

        assert result.warnings == []
        assert result.spec.to_dict() == spec.to_dict()

    def test_rendered_shapes(self):
        """Test the markdown shapes used for types, functions and tests."""
        markdown = render_spec(_spec())

        assert markdown.startswith("# TextUtils\n")
        assert "### User (struct)" in markdown
        assert "- `email` (Text) (optional)" in markdown
        assert "Alias of `Text`" in markdown
        assert "### slugify [pure]" in markdown
        assert "**returns:** `Text` - the slug" in markdown
        assert "#### test: spaces" in markdown
        assert '- given: "Hello World"' in markdown
        assert "- regex@1.0: pattern matching" in markdown
        assert "- `MAX_LEN` (Integer) (defaults to 64)" in markdown

    def test_warnings_become_overview(self):
        """Test that rendered warnings are read back as overview text."""
        markdown = render_spec(_spec(), warnings=["Skipped big.go"])

        spec = parse_spec(markdown).spec

        assert f"## {WARNINGS_HEADING}" in markdown
        assert spec.overview == f"## {WARNINGS_HEADING}\n\n- Skipped big.go"
        assert len(spec.functions) == 1

    def test_overview_survives_round_trip(self):
        """Test that unrecognized sections are rendered and re-read unchanged."""
        spec = _spec()
        spec.overview = "## Notes\n\nKeep slugs short."

        again = parse_spec(render_spec(spec)).spec

        assert again.overview == spec.overview
        assert again.version == "1.0.0"


class TestProjectToSpec:
    """Test cases for lifting extracted projects into specs."""

    def _project(self):
        return ExtractedProject(
            name="textutils",
            description="Text helpers.",
            detected_language="go",
            types=[
                ExtractedType(name="User", fields=[
                    ExtractedField(name="Name", type="Text"),
                    ExtractedField(name="Email", type="Text", optional=True),
                ]),
                ExtractedType(name="Status", kind="enum", variants=["Active", "Inactive"]),
            ],
            functions=[
                ExtractedFunction(name="Slugify", parameters=[ExtractedParam(name="text", type="Text")],
                                  returns="Text", logic=["convert to lowercase", "replace text"]),
                ExtractedFunction(name="Reset"),
            ],
            tests=[ExtractedTest(function="Slugify", name="spaces", given="a b", expect="a-b")],
            dependencies=[Dependency(name="github.com/google/uuid", version="v1.6.0")],
            warnings=["Skipped big.go"],
        )

    def test_project_to_spec(self):
        """Test the mapping of the reverse model onto the forward model."""
        spec = project_to_spec(self._project())

        assert spec.target_languages == ["go"]
        assert [(f.name, f.required) for f in spec.types[0].fields] == [("Name", True), ("Email", False)]
        assert [f.name for f in spec.types[1].fields] == ["Active", "Inactive"]
        assert spec.functions[0].logic == "convert to lowercase\nreplace text"
        assert spec.functions[0].returns.type == "Text"
        assert spec.functions[1].returns is None
        assert spec.tests[0].given == "a b"

    def test_render_project_parses(self):
        """Test that an imported project renders to a parseable spec."""
        markdown = render_project(self._project())

        spec = parse_spec(markdown).spec

        assert spec.name == "textutils"
        assert [f.name for f in spec.functions] == ["Slugify", "Reset"]
        assert [t.name for t in spec.types] == ["User", "Status"]
        assert spec.dependencies[0].version == "v1.6.0"
        assert "Skipped big.go" in spec.overview
