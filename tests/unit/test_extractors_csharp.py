"""Unit tests for the C# extractor."""

import pytest

from polyspec.extractors import CSharpExtractor

SOURCE = '''/// <summary>Text helpers for slugs.</summary>
namespace Example.Text;

/// <summary>A registered user.</summary>
public class User
{
    public string Name { get; set; }
    public string? Email { get; set; }
    public List<string> Tags { get; set; } = new();
    public static int Count { get; set; }
}

public enum Color
{
    Red,
    Green = 2,
}

public record Point(int X, int? Y);

public static class TextUtils
{
    /// <summary>Convert text to a slug.</summary>
    public static string Slugify(string text)
    {
        return text.ToLower().Replace(" ", "-");
    }

    public static async Task<int> CountAsync(string text) => text.Length;

    private static void Helper() { }
}
'''

TEST_SOURCE = '''using Xunit;

public class TextUtilsTests
{
    [Fact]
    public void Slugify_HandlesSpaces()
    {
        Assert.Equal("hello-world", TextUtils.Slugify("Hello World"));
    }

    [Theory]
    [InlineData("A B", "a-b")]
    [InlineData("C D", "c-d")]
    public void Slugify_Lowercases(string input, string expected)
    {
        Assert.Equal(expected, TextUtils.Slugify(input));
    }
}
'''


@pytest.fixture
def extractor():
    return CSharpExtractor()


class TestCSharpExtractor:
    """Test cases for CSharpExtractor."""

    def test_is_test_file(self, extractor):
        """Test class-name suffixes and test project directories."""
        assert extractor.is_test_file("TextUtilsTests.cs")
        assert extractor.is_test_file("Example.Tests/Helpers.cs")
        assert not extractor.is_test_file("src/TextUtils.cs")

    def test_package_description(self, extractor):
        """Test that the summary above the namespace describes the package."""
        assert extractor.extract_package_description(SOURCE) == "Text helpers for slugs."

    def test_types(self, extractor):
        """Test properties, enums and positional records."""
        types = extractor.extract_types(SOURCE, "User.cs")

        assert [(t.name, t.kind) for t in types] == [
            ("User", "struct"),
            ("Color", "enum"),
            ("Point", "struct"),
            ("TextUtils", "struct"),
        ]
        user, color, point, text_utils = types
        assert user.description == "A registered user."
        assert [(f.name, f.type, f.optional, f.default) for f in user.fields] == [
            ("Name", "Text", False, None),
            ("Email", "Text", True, None),
            ("Tags", "List of Text", False, None),
        ]
        assert color.variants == ["Red", "Green"]
        assert [(f.name, f.type, f.optional) for f in point.fields] == [
            ("X", "Integer", False),
            ("Y", "Integer", True),
        ]
        assert text_utils.fields == []

    def test_public_methods(self, extractor):
        """Test block-bodied and expression-bodied public methods."""
        functions = extractor.extract_functions(SOURCE, "TextUtils.cs")

        assert [f.name for f in functions] == ["Slugify", "CountAsync"]
        slugify, count = functions
        assert slugify.description == "Convert text to a slug."
        assert [(p.name, p.type) for p in slugify.parameters] == [("text", "Text")]
        assert slugify.returns == "Text"
        assert "convert to lowercase" in slugify.logic
        assert count.is_async
        assert count.returns == "Integer"
        assert "get length/count" in count.logic

    def test_tests(self, extractor):
        """Test facts and theories with inline data rows."""
        tests = extractor.extract_tests(TEST_SOURCE, "TextUtilsTests.cs")

        assert [(t.function, t.name, t.given, t.expect) for t in tests] == [
            ("Slugify", "slugify handles spaces", "Hello World", "hello-world"),
            ("Slugify", "slugify lowercases 1", "A B", "a-b"),
            ("Slugify", "slugify lowercases 2", "C D", "c-d"),
        ]
