"""Block anchor rewriting.

``paragraph ^my-id`` becomes the paragraph followed by a ``{ #my-id}``
attribute line that the site's markdown renderer turns into an element id.
"""

from garden_publisher.transforms.grammar import (
    BLOCK_ANCHOR_ANY_RE,
    BLOCK_ANCHOR_INLINE_RE,
    BLOCK_ANCHOR_LINE_RE,
    rewrite_text,
)


def _attribute_line(match) -> str:
    return f"\n{{ #{match.group(1)}}}\n"


def replace_block_ids(text: str) -> str:
    """Rewrite every block anchor outside code into an attribute line.

    Both the trailing form (``text ^id``) and the standalone form (``^id``
    on its own line) are handled. Anchors in fenced or inline code, in
    frontmatter and in links are left alone.
    """
    def rewrite(chunk: str) -> str:
        chunk = BLOCK_ANCHOR_LINE_RE.sub(_attribute_line, chunk)
        return BLOCK_ANCHOR_INLINE_RE.sub(_attribute_line, chunk)

    return rewrite_text(text, rewrite)


def strip_block_anchors(text: str) -> str:
    """Remove raw ``^id`` anchors, used on transcluded text."""
    return rewrite_text(text, lambda chunk: BLOCK_ANCHOR_ANY_RE.sub('', chunk))
