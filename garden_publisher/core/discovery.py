"""Vault discovery module for finding notes marked for publishing."""

import logging
from typing import List, Optional, Set, Tuple
from urllib.parse import unquote

from garden_publisher.config import CompilerSettings
from garden_publisher.core.models import SourceNote
from garden_publisher.core.vault import VaultIndex
from garden_publisher.errors import NoteNotFoundError
from garden_publisher.transforms.grammar import SegmentKind, tokenize

logger = logging.getLogger(__name__)


class VaultDiscovery:
    """Discovers notes marked for publishing and the media they embed."""

    def __init__(self, vault: VaultIndex, settings: CompilerSettings):
        """Initialize VaultDiscovery.

        Args:
            vault: Vault index to scan
            settings: Compiler settings (for the publish flag key)
        """
        self.vault = vault
        self.settings = settings

    def discover_all(self) -> List[SourceNote]:
        """Find all notes marked for publishing.

        Notes without the publish flag are skipped silently; that is not an
        error.

        Returns:
            SourceNotes sorted by vault path
        """
        marked = []
        for path in self.vault.list_files():
            if not path.lower().endswith('.md'):
                continue

            note = self.vault.get_note(path)
            if note is None:
                continue

            is_pub, reason = self.is_publishable(note)
            if is_pub:
                marked.append(note)
            else:
                logger.debug("Skipping %s: %s", path, reason)

        return sorted(marked, key=lambda n: n.path)

    def get_note(self, name_or_path: str) -> Optional[SourceNote]:
        """Get a single note by vault path or by link name.

        Args:
            name_or_path: Vault path (with or without .md) or a note name

        Returns:
            SourceNote if found, None otherwise
        """
        note = self.vault.get_note(name_or_path)
        if note is not None:
            return note

        resolved = self.vault.resolve_link(name_or_path, '')
        if resolved is None:
            return None
        return self.vault.get_note(resolved.path)

    def is_publishable(self, note: SourceNote) -> Tuple[bool, str]:
        """Check if a note carries the publish flag.

        Args:
            note: SourceNote to check

        Returns:
            Tuple of (is_publishable, reason)
        """
        if not note.metadata.get(self.settings.publish_key):
            return False, f"Missing '{self.settings.publish_key}: true'"
        return True, "OK"

    def is_marked(self, path: str) -> bool:
        """Whether the note at ``path`` will exist on the published site."""
        frontmatter = self.vault.get_frontmatter(path)
        return bool(frontmatter and frontmatter.get(self.settings.publish_key))

    async def referenced_assets(self, notes: List[SourceNote]) -> List[str]:
        """Vault paths of non-note files embedded by ``notes``.

        Args:
            notes: Notes to scan (usually the result of discover_all)

        Returns:
            Sorted, de-duplicated vault paths
        """
        assets: Set[str] = set()
        for note in notes:
            try:
                text = await self.vault.read_text(note.path)
            except NoteNotFoundError as e:
                logger.warning("Cannot read %s: %s", note.path, e)
                continue

            for segment in tokenize(text):
                if segment.kind is SegmentKind.TRANSCLUSION:
                    target = segment.reference.target
                elif segment.kind is SegmentKind.IMAGE:
                    target = unquote(segment.image_parts[1])
                    if target.startswith(('http:', 'https:')):
                        continue
                else:
                    continue

                resolved = self.vault.resolve_link(target, note.path)
                if resolved is not None and not resolved.is_page:
                    assets.add(resolved.path)

        return sorted(assets)
