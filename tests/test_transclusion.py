"""Tests for transclusion."""

import asyncio

import pytest

from garden_publisher.config import CompilerSettings, CustomFilter
from garden_publisher.core.context import CompileContext
from garden_publisher.core.discovery import VaultDiscovery
from garden_publisher.core.models import Heading, ResolvedFile
from garden_publisher.transforms.transclusion import (
    TransclusionResolver,
    generate_transclusion_header,
    slice_heading,
    wrap_embed,
)


def resolve(vault, path, settings=None):
    settings = settings or CompilerSettings()
    context = CompileContext(
        note=vault.get_note(path),
        vault=vault,
        settings=settings,
        is_marked=VaultDiscovery(vault, settings).is_marked,
    )
    text = asyncio.run(vault.read_text(path))
    return asyncio.run(TransclusionResolver(context).resolve(text, path)), context


class TestTransclusionHeader:
    """Tests for generate_transclusion_header."""

    def test_no_alias(self):
        assert generate_transclusion_header(None, ResolvedFile("a/Note.md")) is None

    def test_default_h1(self):
        assert generate_transclusion_header("Summary", ResolvedFile("a/Note.md")) == "# Summary"

    def test_title_placeholder(self):
        header = generate_transclusion_header("##{{title}}", ResolvedFile("a/My Note.md"))
        assert header == "## My Note"


class TestSliceHeading:
    """Tests for slice_heading."""

    TEXT = "# Top\nintro\n## Section A\nalpha\n### Sub\nbeta\n## Section B\ngamma"
    HEADINGS = [
        Heading("Top", 1, 0),
        Heading("Section A", 2, 2),
        Heading("Sub", 3, 4),
        Heading("Section B", 2, 6),
    ]

    def test_stops_at_same_level(self):
        assert slice_heading(self.TEXT, self.HEADINGS, "Section A") == "## Section A\nalpha\n### Sub\nbeta"

    def test_last_section_runs_to_end(self):
        assert slice_heading(self.TEXT, self.HEADINGS, "Section B") == "## Section B\ngamma"

    def test_slug_match(self):
        assert slice_heading(self.TEXT, self.HEADINGS, "section-a").startswith("## Section A")

    def test_unknown_heading_keeps_text(self):
        assert slice_heading(self.TEXT, self.HEADINGS, "Nope") == self.TEXT

    def test_exact_text_match_for_non_latin_heading(self):
        text = "# Первый\none\n# Второй\ntwo"
        headings = [Heading("Первый", 1, 0), Heading("Второй", 1, 2)]
        assert slice_heading(text, headings, "Второй") == "# Второй\ntwo"

    def test_empty_slug_never_matches(self):
        text = "# Первый\none"
        assert slice_heading(text, [Heading("Первый", 1, 0)], "Другой") == text


class TestTransclusionResolver:
    """Tests for TransclusionResolver."""

    def test_embed_wrapper_and_deep_link(self, make_vault):
        vault = make_vault({
            "A.md": '---\n{"publish":true}\n---\n![[B]]',
            "B.md": '---\n{"publish":true}\n---\n# Hi',
        })
        text, _ = resolve(vault, "A.md")
        assert '<div class="transclusion internal-embed is-loaded">' in text
        assert "# Hi" in text
        assert 'href="/B/"' in text
        assert '"publish"' in text.split("<div")[0]

    def test_no_deep_link_to_unpublished_note(self, make_vault):
        vault = make_vault({
            "A.md": "![[B]]",
            "B.md": "private content",
        })
        text, _ = resolve(vault, "A.md")
        assert "private content" in text
        assert "markdown-embed-link" not in text

    def test_non_latin_heading_embed(self, make_vault):
        vault = make_vault({
            "A.md": "![[B#Второй]]",
            "B.md": "# Первый\none\n# Второй\ntwo",
        })
        text, _ = resolve(vault, "A.md")
        assert "# Второй\ntwo" in text
        assert "Первый" not in text

    def test_path_override_in_deep_link(self, make_vault):
        vault = make_vault({
            "A.md": "![[B]]",
            "B.md": "---\npublish: true\npath: blog/Bee.md\n---\nbee",
        })
        text, _ = resolve(vault, "A.md")
        assert 'href="/blog/Bee/"' in text

    def test_user_permalink_in_deep_link(self, make_vault):
        vault = make_vault({
            "A.md": "![[B#Part]]",
            "B.md": "---\npublish: true\npermalink: elsewhere\n---\n## Part\ntext",
        })
        text, _ = resolve(vault, "A.md")
        assert 'href="/elsewhere/#part"' in text

    def test_header_from_alias(self, make_vault):
        vault = make_vault({"A.md": "![[B|Quoted from {{title}}]]", "B.md": "body"})
        text, _ = resolve(vault, "A.md")
        assert '<div class="markdown-embed-title">\n\n# Quoted from B\n\n</div>' in text

    def test_exact_wrapper(self):
        assert wrap_embed("body", None, "") == (
            '\n<div class="transclusion internal-embed is-loaded">'
            '<div class="markdown-embed">\n\n\n\nbody\n\n</div></div>\n'
        )

    def test_heading_slice(self, make_vault):
        vault = make_vault({
            "A.md": "![[B#Section A]]",
            "B.md": "# Top\nintro\n## Section A\nalpha\n## Section B\ngamma",
        })
        text, _ = resolve(vault, "A.md")
        assert "alpha" in text
        assert "intro" not in text
        assert "gamma" not in text

    def test_block_slice(self, make_vault):
        vault = make_vault({
            "A.md": "![[B#^para1]]",
            "B.md": "# Title\n\nFirst line\nsecond line ^para1\n\n- item ^item1\n",
        })
        text, _ = resolve(vault, "A.md")
        assert "First line\nsecond line" in text
        assert "^para1" not in text
        assert "item" not in text

    def test_leftover_anchors_stripped(self, make_vault):
        vault = make_vault({"A.md": "![[B]]", "B.md": "one ^a\ntwo ^b"})
        text, _ = resolve(vault, "A.md")
        assert "^a" not in text
        assert "^b" not in text

    def test_custom_filters_apply_to_embedded_text(self, make_vault):
        vault = make_vault({"A.md": "![[B]]", "B.md": "==hi=="})
        settings = CompilerSettings(custom_filters=(CustomFilter("==(.+?)==", "<mark>$1</mark>"),))
        text, _ = resolve(vault, "A.md", settings)
        assert "<mark>hi</mark>" in text

    def test_depth_bound(self, make_vault):
        vault = make_vault({
            "N1.md": "one ![[N2]]",
            "N2.md": "two ![[N3]]",
            "N3.md": "three ![[N4]]",
            "N4.md": "four ![[N5]]",
            "N5.md": "five",
        })
        text, _ = resolve(vault, "N1.md")
        assert "two" in text
        assert "three" in text
        assert "four ![[N5]]" in text
        assert "five" not in text

    def test_lower_depth_setting(self, make_vault):
        vault = make_vault({"N1.md": "![[N2]]", "N2.md": "two ![[N3]]", "N3.md": "three"})
        text, _ = resolve(vault, "N1.md", CompilerSettings(max_transclusion_depth=2))
        assert "two ![[N3]]" in text
        assert "three" not in text

    def test_cycle_is_skipped_with_warning(self, make_vault):
        vault = make_vault({"A.md": "a ![[B]]", "B.md": "b ![[A]]"})
        text, context = resolve(vault, "A.md")
        assert text.count("b ![[A]]") == 1
        assert len(context.warnings) == 1
        assert "cyclic" in context.warnings[0]

    def test_self_embed_is_skipped(self, make_vault):
        vault = make_vault({"A.md": "a ![[A]]"})
        text, context = resolve(vault, "A.md")
        assert text == "a ![[A]]"
        assert context.warnings

    def test_repeated_sibling_embeds_both_expand(self, make_vault):
        vault = make_vault({"A.md": "![[B]] ![[B]]", "B.md": "bee"})
        text, context = resolve(vault, "A.md")
        assert text.count("bee") == 2
        assert context.warnings == []

    def test_unresolved_left_as_is(self, make_vault):
        vault = make_vault({"A.md": "x ![[Missing]] y"})
        text, _ = resolve(vault, "A.md")
        assert text == "x ![[Missing]] y"

    def test_media_left_for_asset_extraction(self, make_vault):
        vault = make_vault({"A.md": "![[cat.png]]", "cat.png": b"png"})
        text, _ = resolve(vault, "A.md")
        assert text == "![[cat.png]]"

    def test_embeds_disabled(self, make_vault):
        vault = make_vault({"A.md": "![[B]]", "B.md": "bee"})
        text, _ = resolve(vault, "A.md", CompilerSettings(apply_embeds=False))
        assert text == "![[B]]"

    def test_embed_in_code_untouched(self, make_vault):
        vault = make_vault({"A.md": "`![[B]]`\n```\n![[B]]\n```", "B.md": "bee"})
        text, _ = resolve(vault, "A.md")
        assert "bee" not in text


class TestDrawingEmbeds:
    """Tests for embedded Excalidraw drawings."""

    DRAWING = "---\nexcalidraw-plugin: parsed\n---\n# Drawing\n```json\n{\"elements\": []}\n```\n"

    def test_runtime_only_once(self, make_vault):
        vault = make_vault({
            "A.md": "![[Sketch.excalidraw]]\n![[Sketch.excalidraw]]",
            "Sketch.excalidraw.md": self.DRAWING,
        })
        text, context = resolve(vault, "A.md")
        assert text.count("react.production.min.js") == 1
        assert 'id="Sketchexcalidraw.md1"' in text
        assert 'id="Sketchexcalidraw.md2"' in text
        assert context.drawing_count == 2

    def test_excalidraw_disabled(self, make_vault):
        vault = make_vault({"A.md": "![[Sketch.excalidraw]]", "Sketch.excalidraw.md": self.DRAWING})
        text, _ = resolve(vault, "A.md", CompilerSettings(use_excalidraw=False))
        assert text == "![[Sketch.excalidraw]]"

    def test_broken_drawing_left_as_is(self, make_vault):
        vault = make_vault({"A.md": "![[Bad.excalidraw]]", "Bad.excalidraw.md": "no scene"})
        text, context = resolve(vault, "A.md")
        assert text == "![[Bad.excalidraw]]"
        assert context.drawing_count == 0


@pytest.mark.parametrize("target", ["B", "B.md", "folder/B"])
def test_target_spellings(make_vault, target):
    vault = make_vault({"A.md": f"![[{target}]]", "folder/B.md": "bee"})
    text, _ = resolve(vault, "A.md")
    assert "bee" in text
