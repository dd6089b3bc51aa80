"""Tests for Markdown and HTML conversion into post bodies and metadata."""

import datetime

import pytest

from blog_sync.converters import (
    convert,
    extract_title,
    normalize_tags,
    strip_leading_heading,
)

# =============================================================================
# Helpers
# =============================================================================


class TestNormalizeTags:
    def test_comma_string(self):
        assert normalize_tags("python, sync ,python") == ["python", "sync"]

    def test_list_values_stringified(self):
        assert normalize_tags(["a", 1, None, ""]) == ["a", "1"]

    def test_none(self):
        assert normalize_tags(None) == []


class TestStripLeadingHeading:
    def test_matching_heading_removed(self):
        assert strip_leading_heading("\n# Title\nBody", "Title") == "Body"

    def test_other_heading_kept(self):
        assert strip_leading_heading("# Other\nBody", "Title") == "# Other\nBody"

    def test_non_heading_first_line_kept(self):
        body = "Intro\n# Title"
        assert strip_leading_heading(body, "Title") == body


class TestExtractTitle:
    def test_first_h1(self):
        assert extract_title("intro\n## Sub\n# Main\n") == "Main"

    def test_filename_fallback(self):
        assert extract_title("no heading", "posts/my-first_post.md") == (
            "My First Post"
        )


# =============================================================================
# Markdown
# =============================================================================


class TestMarkdown:
    def test_front_matter_split(self):
        result = convert(
            "---\ntitle: Hello\ntags: a, b\n---\n\nBody text\n", "markdown"
        )
        assert result.body == "Body text"
        assert result.metadata == {"title": "Hello", "tags": ["a", "b"]}
        assert result.warnings == []

    def test_title_from_heading_and_heading_removed(self):
        result = convert("# From Heading\n\nBody\n", "markdown")
        assert result.metadata["title"] == "From Heading"
        assert result.body == "Body"

    def test_title_from_path(self):
        result = convert("Just text", "markdown", "2024/hello-world.md")
        assert result.metadata["title"] == "Hello World"

    def test_no_title_warns(self):
        result = convert("Just text", "markdown")
        assert result.warnings

    def test_dates_kept(self):
        result = convert(
            "---\ntitle: T\ndate: 2024-05-01\n---\nBody", "markdown"
        )
        assert result.metadata["date"] == datetime.date(2024, 5, 1)

    def test_body_normalised(self):
        result = convert("---\ntitle: T\n---\nLine  \r\n\r\n", "markdown")
        assert result.body == "Line"

    def test_invalid_front_matter_raises(self):
        with pytest.raises(ValueError, match="front matter"):
            convert("---\ntitle: [unclosed\n---\nBody", "markdown")


# =============================================================================
# HTML
# =============================================================================


_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>My Page</title>
  <meta name="description" content="A short summary">
  <meta name="keywords" content="python, web">
  <style>body { color: red; }</style>
</head>
<body>
  <h1>My Page</h1>
  <p>Hello <strong>world</strong>.</p>
  <script>alert("x")</script>
  <h2>Section</h2>
</body>
</html>
"""


class TestHtml:
    def test_metadata_extracted(self):
        result = convert(_HTML, "html")
        assert result.metadata == {
            "title": "My Page",
            "description": "A short summary",
            "tags": ["python", "web"],
        }

    def test_body_converted_to_markdown(self):
        body = convert(_HTML, "html").body
        assert "Hello **world**." in body
        assert "## Section" in body

    def test_scripts_styles_and_title_heading_dropped(self):
        body = convert(_HTML, "html").body
        assert "alert" not in body
        assert "color: red" not in body
        assert "# My Page" not in body

    def test_h1_used_when_no_title_tag(self):
        result = convert("<h1>Only Heading</h1><p>Text</p>", "html")
        assert result.metadata["title"] == "Only Heading"
        assert result.body == "Text"

    def test_missing_title_warns(self):
        assert convert("<p>Text</p>", "html").warnings


def test_unknown_format_rejected():
    with pytest.raises(ValueError, match="Unsupported content format"):
        convert("text", "rst")
