"""Recognizers for the inline constructs of vault markdown.

A document is split once into a flat list of segments. Each compiler step
rewrites the segments it cares about and joins the list back together.
Frontmatter, fenced code, inline code and drawing scripts are segments of
their own, so no step can rewrite inside them by accident.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple


class SegmentKind(Enum):
    TEXT = 'text'
    FRONTMATTER = 'frontmatter'
    CODE_FENCE = 'code_fence'
    INLINE_CODE = 'inline_code'
    SCRIPT = 'script'
    WIKILINK = 'wikilink'
    TRANSCLUSION = 'transclusion'
    IMAGE = 'image'


PROTECTED_KINDS = frozenset({
    SegmentKind.FRONTMATTER,
    SegmentKind.CODE_FENCE,
    SegmentKind.INLINE_CODE,
    SegmentKind.SCRIPT,
})

FRONTMATTER_RE = re.compile(
    r'\A[ \t\r\n]*---[ \t]*\r?\n(?:(?P<content>.*?)\r?\n)?---[ \t]*(?=\r?\n|\Z)',
    re.DOTALL,
)

_TOKEN_RE = re.compile(
    r'(?P<fence>(?s:```.*?(?:```|\Z)))'
    r'|(?P<code>`[^`\n]+`)'
    r'|(?P<script>(?si:<script\b.*?</script>))'
    r'|!\[\[(?P<embed>[^\[\]\n]+?)\]\]'
    r'|\[\[(?P<link>[^\[\]\n]+?)\]\]'
    r'|!\[(?P<alt>[^\[\]\n]*)\]\((?P<src>[^()\n]+)\)'
)

_GROUP_KINDS = (
    ('fence', SegmentKind.CODE_FENCE),
    ('code', SegmentKind.INLINE_CODE),
    ('script', SegmentKind.SCRIPT),
    ('embed', SegmentKind.TRANSCLUSION),
    ('link', SegmentKind.WIKILINK),
    ('alt', SegmentKind.IMAGE),
)

# "some paragraph ^block-id" at the end of a line
BLOCK_ANCHOR_INLINE_RE = re.compile(r' \^([\w-]+)[ \t]*$', re.MULTILINE)
# "^block-id" alone on the line after a list or table
BLOCK_ANCHOR_LINE_RE = re.compile(r'\n\^([\w-]+)[ \t]*(?=\n|\Z)')
# Any leftover anchor, used on transcluded text
BLOCK_ANCHOR_ANY_RE = re.compile(r'(?:^|[ \t]+)\^[\w-]+[ \t]*$', re.MULTILINE)


@dataclass(frozen=True)
class Reference:
    """Parsed body of a ``[[...]]`` or ``![[...]]`` marker.

    ``[[folder/Note#Heading|Shown text]]`` has target ``folder/Note``,
    fragment ``Heading`` and options ``("Shown text",)``.
    """
    target: str
    fragment: str
    options: Tuple[str, ...]

    @property
    def alias(self) -> Optional[str]:
        return self.options[0] if self.options else None

    @property
    def raw_target(self) -> str:
        """Target as written, including the fragment."""
        return f"{self.target}#{self.fragment}" if self.fragment else self.target

    @property
    def fragment_suffix(self) -> str:
        return f"#{self.fragment}" if self.fragment else ''

    @property
    def block_id(self) -> Optional[str]:
        if self.fragment.startswith('^'):
            return self.fragment[1:]
        return None

    @property
    def heading(self) -> Optional[str]:
        """Innermost heading of a ``#H1#H2`` fragment."""
        if not self.fragment or self.block_id is not None:
            return None
        return self.fragment.split('#')[-1]


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    raw: str

    @property
    def is_protected(self) -> bool:
        return self.kind in PROTECTED_KINDS

    @property
    def body(self) -> str:
        """Text between the brackets of a wikilink or transclusion."""
        if self.kind is SegmentKind.WIKILINK:
            return self.raw[2:-2]
        if self.kind is SegmentKind.TRANSCLUSION:
            return self.raw[3:-2]
        raise ValueError(f"{self.kind.value} segment has no reference body")

    @property
    def reference(self) -> Reference:
        return parse_reference(self.body)

    @property
    def image_parts(self) -> Tuple[str, str]:
        """``(alt, src)`` of a ``![alt](src)`` image."""
        match = _TOKEN_RE.fullmatch(self.raw)
        if self.kind is not SegmentKind.IMAGE or match is None:
            raise ValueError(f"{self.kind.value} segment is not an image")
        return match.group('alt'), match.group('src')


def parse_reference(body: str) -> Reference:
    """Split a marker body into target, fragment and ``|`` options.

    A trailing backslash on the target (``[[Note\\|alias]]``, the table
    escaped form) is dropped.
    """
    target_part, *options = body.split('|')
    if target_part.endswith('\\'):
        target_part = target_part[:-1]
    target, _, fragment = target_part.partition('#')
    return Reference(target=target.strip(), fragment=fragment.strip(), options=tuple(options))


def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """Split ``text`` into its raw frontmatter block and the rest.

    Returns:
        Tuple of (frontmatter block including delimiters or None, remainder)
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(0), text[match.end():]


def frontmatter_content(text: str) -> Optional[str]:
    """Text between the frontmatter delimiters, or None if there is no block."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None
    return match.group('content') or ''


def strip_frontmatter(text: str) -> str:
    return FRONTMATTER_RE.sub('', text, count=1)


def tokenize(text: str) -> List[Segment]:
    """Split a document into segments; ``join(tokenize(t)) == t`` always holds."""
    segments: List[Segment] = []

    frontmatter, body = split_frontmatter(text)
    if frontmatter is not None:
        segments.append(Segment(SegmentKind.FRONTMATTER, frontmatter))

    position = 0
    for match in _TOKEN_RE.finditer(body):
        if match.start() > position:
            segments.append(Segment(SegmentKind.TEXT, body[position:match.start()]))
        segments.append(Segment(_kind_of(match), match.group(0)))
        position = match.end()

    if position < len(body):
        segments.append(Segment(SegmentKind.TEXT, body[position:]))

    return segments


def join(segments: List[Segment]) -> str:
    return ''.join(segment.raw for segment in segments)


def rewrite_text(text: str, rewrite: Callable[[str], str]) -> str:
    """Apply ``rewrite`` to the plain text segments only."""
    return ''.join(
        rewrite(segment.raw) if segment.kind is SegmentKind.TEXT else segment.raw
        for segment in tokenize(text)
    )


def _kind_of(match: "re.Match[str]") -> SegmentKind:
    for group, kind in _GROUP_KINDS:
        if match.group(group) is not None:
            return kind
    raise AssertionError("token pattern matched without a named group")
