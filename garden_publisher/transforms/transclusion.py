"""Transclusion: inlining ``![[Note]]`` embeds.

Embedded notes are read, sliced to the referenced heading or block, run
through the same text filters as the embedding note and wrapped in an embed
container. Nested embeds are expanded up to the configured depth; an embed
of a note that is already being expanded higher up the chain is skipped.
"""

import logging
from typing import FrozenSet, List, Optional

from garden_publisher.core.context import CompileContext
from garden_publisher.core.models import Heading, ResolvedFile
from garden_publisher.errors import PublisherError
from garden_publisher.transforms.blocks import strip_block_anchors
from garden_publisher.transforms.drawings import drawing_id, render_drawing
from garden_publisher.transforms.filters import apply_custom_filters
from garden_publisher.transforms.frontmatter import note_permalink
from garden_publisher.transforms.grammar import (
    Reference,
    Segment,
    SegmentKind,
    strip_frontmatter,
    tokenize,
)
from garden_publisher.utils import fix_markdown_header_syntax, slugify

logger = logging.getLogger(__name__)

TITLE_PLACEHOLDER = '{{title}}'

EMBED_LINK_ICON = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" '
    'fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" '
    'stroke-linejoin="round" class="svg-icon lucide-link">'
    '<path d="M10 13a5 5 0 0 0 7.54.54l3-3a5 5 0 0 0-7.07-7.07l-1.72 1.71"></path>'
    '<path d="M14 11a5 5 0 0 0-7.54-.54l-3 3a5 5 0 0 0 7.07 7.07l1.71-1.71"></path>'
    '</svg>'
)


def generate_transclusion_header(header: Optional[str], file: ResolvedFile) -> Optional[str]:
    """Heading shown above an embed, or None when the embed has no alias.

    ``{{title}}`` is replaced by the embedded note's name, and a missing or
    badly spaced ``#`` run is normalized (default level is H1).
    """
    if not header:
        return None
    return fix_markdown_header_syntax(header.replace(TITLE_PLACEHOLDER, file.basename))


def slice_heading(text: str, headings: List[Heading], heading: str) -> str:
    """Lines from ``heading`` up to the next heading of the same or higher level.

    The heading text is matched exactly first. Failing that, headings are
    compared by slug, so punctuation the vault's heading index dropped still
    matches; an empty slug never matches. The whole text is returned if
    nothing matches.
    """
    index = _find_heading(headings, heading)
    if index is None:
        return text
    candidate = headings[index]

    end = next(
        (h.start_line for h in headings[index + 1:] if h.level <= candidate.level),
        None,
    )
    return '\n'.join(text.split('\n')[candidate.start_line:end])


def _find_heading(headings: List[Heading], heading: str) -> Optional[int]:
    wanted = heading.strip()
    for index, candidate in enumerate(headings):
        if candidate.text.strip() == wanted:
            return index

    wanted_slug = slugify(wanted)
    if not wanted_slug:
        return None
    for index, candidate in enumerate(headings):
        if slugify(candidate.text) == wanted_slug:
            return index
    return None


def wrap_embed(text: str, header: Optional[str], embed_link: str) -> str:
    header_section = f'<div class="markdown-embed-title">\n\n{header}\n\n</div>\n' if header else ''
    return (
        f'\n<div class="transclusion internal-embed is-loaded">{embed_link}'
        f'<div class="markdown-embed">\n\n{header_section}\n\n'
        f'{text}\n\n</div></div>\n'
    )


class TransclusionResolver:
    """Expands the transclusions of one document.

    One resolver is used per top-level compile; it is not safe to share
    between documents.
    """

    def __init__(self, context: CompileContext):
        self.context = context
        self.vault = context.vault
        self.settings = context.settings

    async def resolve(
        self,
        text: str,
        from_path: str,
        depth: int = 0,
        ancestors: FrozenSet[str] = frozenset(),
    ) -> str:
        """Replace every note or drawing embed in ``text`` with its content.

        Args:
            text: Text to expand
            from_path: Vault path the text belongs to, for relative links
            depth: Depth of ``from_path``; the compiled note is depth 0
            ancestors: Notes already being expanded above ``from_path``

        Returns:
            Expanded text. Embeds that cannot be expanded are left as written.
        """
        if not self.settings.apply_embeds:
            return text

        ancestors = ancestors | {from_path}
        parts = []
        # Sequential: each embed may read files and recurse
        for segment in tokenize(text):
            if segment.kind is SegmentKind.TRANSCLUSION:
                parts.append(await self._expand(segment, from_path, depth, ancestors))
            else:
                parts.append(segment.raw)
        return ''.join(parts)

    async def _expand(
        self,
        segment: Segment,
        from_path: str,
        depth: int,
        ancestors: FrozenSet[str],
    ) -> str:
        reference = segment.reference
        try:
            linked = self.vault.resolve_link(reference.target, from_path)
            if linked is None:
                logger.info("Cannot find embedded file %s from %s", reference.target, from_path)
                return segment.raw

            if linked.is_drawing:
                if not self.settings.use_excalidraw:
                    return segment.raw
                return await self._embed_drawing(linked)

            if linked.extension != 'md':
                return segment.raw

            child_depth = depth + 1
            if child_depth >= self.settings.max_transclusion_depth:
                logger.debug("Embed depth limit reached at %s in %s", segment.raw, from_path)
                return segment.raw

            if linked.path in ancestors:
                self.context.warn(
                    f"Skipping cyclic embed of {linked.path} in {from_path}"
                )
                return segment.raw

            return await self._embed_note(linked, reference, child_depth, ancestors)
        except (PublisherError, OSError, ValueError) as e:
            logger.warning("Could not embed %s in %s: %s", segment.raw, from_path, e)
            return segment.raw

    async def _embed_note(
        self,
        linked: ResolvedFile,
        reference: Reference,
        depth: int,
        ancestors: FrozenSet[str],
    ) -> str:
        text = await self.vault.read_text(linked.path)
        section_id = ''

        if reference.block_id is not None:
            section_id = '#' + slugify(reference.block_id)
            block = self.vault.get_block_anchor(linked.path, reference.block_id)
            if block is not None:
                lines = text.split('\n')[block.start_line:block.end_line + 1]
                text = '\n'.join(lines).replace(f'^{reference.block_id}', '', 1)
        elif reference.heading:
            section_id = '#' + slugify(reference.heading)
            text = slice_heading(text, self.vault.get_headings(linked.path), reference.heading)

        text = strip_frontmatter(text)
        text = apply_custom_filters(text, self.settings.custom_filters, self.context.warn)
        text = strip_block_anchors(text)
        text = await self.resolve(text, linked.path, depth, ancestors)

        header = generate_transclusion_header(reference.alias, linked)
        return wrap_embed(text, header, self._embed_link(linked, section_id))

    async def _embed_drawing(self, linked: ResolvedFile) -> str:
        text = await self.vault.read_text(linked.path)
        count = self.context.drawing_count + 1
        payload = render_drawing(
            text,
            drawing_id(linked.name, str(count)),
            include_runtime=count == 1,
        )
        self.context.drawing_count = count
        return payload

    def _embed_link(self, linked: ResolvedFile, section_id: str) -> str:
        """Deep link to the embedded note, only if it is published too."""
        if not self.context.is_marked(linked.path):
            return ''
        href = self.published_url(linked) + section_id
        return f'<a class="markdown-embed-link" href="{href}" aria-label="Open link">{EMBED_LINK_ICON}</a>'

    def published_url(self, linked: ResolvedFile) -> str:
        frontmatter = self.vault.get_frontmatter(linked.path) or {}
        return note_permalink(frontmatter, linked.path, self.settings)
