"""Tests for FileSystemVault."""

import asyncio

import pytest

from garden_publisher.core.models import BlockRange, Heading
from garden_publisher.core.vault import FileSystemVault, VaultIndex, parse_frontmatter_text
from garden_publisher.errors import NoteNotFoundError

BLOCKS_NOTE = """---
publish: true
---
# Title

First paragraph line one
line two ^para1

- item one ^item1
- item two

| a | b |
| - | - |
^table1

```
fake ^infence
```
"""


class TestFileSystemVault:
    """Tests for reading and indexing a vault directory."""

    @pytest.fixture
    def vault(self, make_vault):
        return make_vault({
            "A.md": "---\ntitle: A\ntags: [x]\n---\nBody of A",
            "folder/Target Note.md": "target",
            "others/Target Note.md": "other target",
            "folder/Sibling.md": "[[Target Note]]",
            "pics/cat.png": b"\x89PNG",
            "Blocks.md": BLOCKS_NOTE,
            ".obsidian/config.md": "ignored",
        })

    def test_missing_root(self, tmp_path):
        with pytest.raises(NoteNotFoundError):
            FileSystemVault(tmp_path / "nope")

    def test_satisfies_protocol(self, vault):
        assert isinstance(vault, VaultIndex)

    def test_list_files_skips_app_folder(self, vault):
        files = vault.list_files()
        assert "A.md" in files
        assert "pics/cat.png" in files
        assert not any(f.startswith(".obsidian") for f in files)

    def test_read_text_and_binary(self, vault):
        assert asyncio.run(vault.read_text("A.md")).endswith("Body of A")
        assert asyncio.run(vault.read_binary("pics/cat.png")) == b"\x89PNG"

    def test_read_missing_raises(self, vault):
        with pytest.raises(NoteNotFoundError):
            asyncio.run(vault.read_text("missing.md"))

    def test_get_note(self, vault):
        note = vault.get_note("A.md")
        assert note.metadata == {"title": "A", "tags": ["x"]}
        assert note.created is not None
        assert note.modified is not None

    def test_get_note_missing(self, vault):
        assert vault.get_note("missing.md") is None

    def test_get_frontmatter_non_markdown(self, vault):
        assert vault.get_frontmatter("pics/cat.png") is None

    def test_resolve_exact_path(self, vault):
        assert vault.resolve_link("folder/Target Note", "A.md").path == "folder/Target Note.md"

    def test_resolve_by_name_prefers_shortest_then_alphabetical(self, vault):
        assert vault.resolve_link("Target Note", "A.md").path == "folder/Target Note.md"

    def test_resolve_prefers_same_folder(self, vault):
        assert vault.resolve_link("Target Note", "others/X.md").path == "others/Target Note.md"

    def test_resolve_ignores_fragment_and_case(self, vault):
        assert vault.resolve_link("a#Heading", "x.md").path == "A.md"

    def test_resolve_asset(self, vault):
        assert vault.resolve_link("cat.png", "A.md").path == "pics/cat.png"

    def test_resolve_missing(self, vault):
        assert vault.resolve_link("Nope", "A.md") is None
        assert vault.resolve_link("", "A.md") is None

    def test_get_headings(self, vault):
        assert vault.get_headings("Blocks.md") == [Heading("Title", 1, 3)]

    def test_paragraph_block(self, vault):
        assert vault.get_block_anchor("Blocks.md", "para1") == BlockRange(5, 6)

    def test_list_item_block(self, vault):
        assert vault.get_block_anchor("Blocks.md", "item1") == BlockRange(8, 8)

    def test_standalone_anchor_tags_block_above(self, vault):
        assert vault.get_block_anchor("Blocks.md", "table1") == BlockRange(11, 13)

    def test_anchor_in_fence_ignored(self, vault):
        assert vault.get_block_anchor("Blocks.md", "infence") is None


class TestParseFrontmatterText:
    """Tests for parse_frontmatter_text."""

    def test_yaml(self):
        assert parse_frontmatter_text("---\na: 1\n---\n") == {"a": 1}

    def test_json_is_yaml(self):
        assert parse_frontmatter_text('---\n{"publish":true}\n---\n') == {"publish": True}

    def test_invalid_yaml(self):
        assert parse_frontmatter_text("---\na: [\n---\n") == {}

    def test_non_mapping(self):
        assert parse_frontmatter_text("---\n- a\n---\n") == {}

    def test_no_frontmatter(self):
        assert parse_frontmatter_text("just text") == {}
