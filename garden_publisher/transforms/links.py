"""Wikilink rewriting to full vault paths.

``[[Target Note|My Alias]]`` becomes ``[[folder/Target Note|My Alias]]``.
The separator is always a plain pipe: the site template splits the link on
``|`` and an escaped ``\\|`` breaks it.
"""

import logging

from garden_publisher.core.vault import VaultIndex
from garden_publisher.errors import PublisherError
from garden_publisher.transforms.grammar import Segment, SegmentKind, tokenize

logger = logging.getLogger(__name__)


class LinkResolver:
    """Rewrites wikilinks against the vault's link index."""

    def __init__(self, vault: VaultIndex):
        self.vault = vault

    def convert_links(self, text: str, from_path: str) -> str:
        """Rewrite every wikilink outside code, frontmatter and drawings.

        Args:
            text: Document text
            from_path: Vault path of the linking note

        Returns:
            Text with fully qualified, extensionless link targets
        """
        return ''.join(
            self.rewrite_link(segment, from_path)
            if segment.kind is SegmentKind.WIKILINK else segment.raw
            for segment in tokenize(text)
        )

    def rewrite_link(self, segment: Segment, from_path: str) -> str:
        """Rewrite one wikilink; on any failure return it as written."""
        try:
            reference = segment.reference
            display = reference.alias or reference.raw_target

            linked = self.vault.resolve_link(reference.target, from_path)
            if linked is None:
                logger.debug("Unresolved link %s in %s", segment.raw, from_path)
                return f"[[{reference.raw_target}|{display}]]"

            if linked.is_page:
                return f"[[{linked.extensionless_path}{reference.fragment_suffix}|{display}]]"

            return segment.raw
        except (PublisherError, ValueError) as e:
            logger.warning("Could not convert link %s in %s: %s", segment.raw, from_path, e)
            return segment.raw
