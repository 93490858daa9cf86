"""Tests for wikilink rewriting."""

import pytest

from garden_publisher.transforms.links import LinkResolver


class TestLinkResolver:
    """Tests for LinkResolver."""

    @pytest.fixture
    def resolver(self, make_vault):
        return LinkResolver(make_vault({
            "A.md": "",
            "folder/Target Note.md": "",
            "boards/Plan.canvas": "{}",
            "pics/cat.png": b"png",
        }))

    def test_pipe_regression(self, resolver):
        result = resolver.convert_links("[[Target Note|My Alias]]", "A.md")
        assert result == "[[folder/Target Note|My Alias]]"
        assert "\\|" not in result

    def test_display_defaults_to_target(self, resolver):
        assert resolver.convert_links("[[Target Note]]", "A.md") == "[[folder/Target Note|Target Note]]"

    def test_fragment_reattached(self, resolver):
        result = resolver.convert_links("[[Target Note#Some Heading]]", "A.md")
        assert result == "[[folder/Target Note#Some Heading|Target Note#Some Heading]]"

    def test_block_fragment_with_alias(self, resolver):
        result = resolver.convert_links("[[Target Note#^abc|see]]", "A.md")
        assert result == "[[folder/Target Note#^abc|see]]"

    def test_unresolved_fallback(self, resolver):
        result = resolver.convert_links("[[Missing Note|Display Text]]", "A.md")
        assert result == "[[Missing Note|Display Text]]"

    def test_unresolved_keeps_fragment(self, resolver):
        assert resolver.convert_links("[[Missing#Part]]", "A.md") == "[[Missing#Part|Missing#Part]]"

    def test_canvas_is_a_page(self, resolver):
        assert resolver.convert_links("[[Plan.canvas|plan]]", "A.md") == "[[boards/Plan|plan]]"

    def test_non_page_left_alone(self, resolver):
        assert resolver.convert_links("[[cat.png]]", "A.md") == "[[cat.png]]"

    def test_escaped_table_pipe(self, resolver):
        assert resolver.convert_links("[[Target Note\\|alias]]", "A.md") == "[[folder/Target Note|alias]]"

    def test_idempotent(self, resolver):
        text = "See [[Target Note]], [[Target Note#H|x]] and [[Missing|y]]."
        once = resolver.convert_links(text, "A.md")
        assert resolver.convert_links(once, "A.md") == once

    def test_code_and_transclusions_untouched(self, resolver):
        text = "`[[Target Note]]`\n```\n[[Target Note]]\n```\n![[Target Note]]"
        assert resolver.convert_links(text, "A.md") == text

    def test_frontmatter_untouched(self, resolver):
        text = '---\n{"title":"[[Target Note]]"}\n---\n[[Target Note]]'
        result = resolver.convert_links(text, "A.md")
        assert result.startswith('---\n{"title":"[[Target Note]]"}\n---\n')
        assert result.endswith("[[folder/Target Note|Target Note]]")
