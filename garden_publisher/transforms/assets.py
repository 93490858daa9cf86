"""Embedded media: inline SVGs and extraction of binary assets."""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, unquote

from garden_publisher.config import CompilerSettings
from garden_publisher.core.models import Asset, ResolvedFile
from garden_publisher.core.vault import VaultIndex
from garden_publisher.errors import PublisherError
from garden_publisher.transforms.grammar import Segment, SegmentKind, tokenize

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({'png', 'jpg', 'jpeg', 'gif', 'bmp', 'webp', 'avif', 'svg'})
AUDIO_EXTENSIONS = frozenset({'mp3', 'wav', 'm4a', 'ogg', 'flac', 'webm', '3gp'})

_SVG_TAG_RE = re.compile(r'<svg\b[^>]*>', re.IGNORECASE)
_SVG_WIDTH_RE = re.compile(r'\swidth="[^"]*"')
_XML_DECLARATION_RE = re.compile(r'<\?xml[^>]*\?>\s*')
_SIZE_RE = re.compile(r'^\s*\d')


def is_remote(src: str) -> bool:
    return src.startswith(('http:', 'https:'))


def set_svg_width(svg: str, width: str) -> str:
    """Set the width attribute on the outer ``<svg>`` tag."""
    def fix(match: "re.Match[str]") -> str:
        tag = _SVG_WIDTH_RE.sub('', match.group(0))
        return f'{tag[:4]} width="{width}"{tag[4:]}'

    return _SVG_TAG_RE.sub(fix, svg, count=1)


def inline_svg(svg: str, width: Optional[str] = None) -> str:
    """SVG markup ready to sit inside a markdown line."""
    svg = _XML_DECLARATION_RE.sub('', svg)
    if width:
        svg = set_svg_width(svg, width)
    return re.sub(r'[\t\n\r]', '', svg)


async def render_svg_embeds(text: str, from_path: str, vault: VaultIndex) -> str:
    """Replace local ``![[x.svg]]`` and ``![](x.svg)`` embeds with the SVG itself.

    ``![[x.svg|200]]`` sets the width. Missing or unreadable files are left
    as written.
    """
    parts = []
    for segment in tokenize(text):
        if segment.kind is SegmentKind.TRANSCLUSION:
            reference = segment.reference
            width = reference.options[0].strip() if reference.options else None
            parts.append(await _svg_or_raw(segment, reference.target, width, from_path, vault))
        elif segment.kind is SegmentKind.IMAGE:
            src = segment.image_parts[1].strip()
            if is_remote(src):
                parts.append(segment.raw)
            else:
                parts.append(await _svg_or_raw(segment, unquote(src), None, from_path, vault))
        else:
            parts.append(segment.raw)
    return ''.join(parts)


async def _svg_or_raw(
    segment: Segment,
    target: str,
    width: Optional[str],
    from_path: str,
    vault: VaultIndex,
) -> str:
    if not target.lower().endswith('.svg'):
        return segment.raw

    linked = vault.resolve_link(target, from_path)
    if linked is None:
        return segment.raw

    try:
        svg = await vault.read_text(linked.path)
    except (PublisherError, OSError, ValueError) as e:
        logger.warning("Could not inline %s in %s: %s", linked.path, from_path, e)
        return segment.raw

    return inline_svg(svg, width if width and _SIZE_RE.match(width) else None)


def format_qualifiers(options: Sequence[str]) -> str:
    """``|meta|size`` suffix for a rewritten image embed.

    The last option is a size when it starts with a digit; any other options
    are metadata and are joined with spaces.
    """
    if not options:
        return ''

    *meta, last = options
    size = None
    if _SIZE_RE.match(last):
        size = last
    else:
        meta.append(last)

    suffix = ''
    if meta:
        suffix += '|' + ' '.join(meta)
    if size:
        suffix += '|' + size
    return suffix


class AssetExtractor:
    """Collects the binary files a compiled document embeds.

    Embeds are rewritten to point at the publish path of each file.
    """

    def __init__(self, vault: VaultIndex, settings: CompilerSettings):
        self.vault = vault
        self.settings = settings

    def publish_path(self, file: ResolvedFile) -> str:
        """Site path for a vault file, e.g. ``/img/user/pics/a.png``."""
        if file.extension in IMAGE_EXTENSIONS:
            prefix = self.settings.image_publish_prefix
        elif file.extension in AUDIO_EXTENSIONS:
            prefix = self.settings.audio_publish_prefix
        else:
            prefix = self.settings.file_publish_prefix
        return f"{prefix.rstrip('/')}/{file.path}"

    async def extract(self, text: str, from_path: str) -> Tuple[str, List[Asset]]:
        """Rewrite media embeds in ``text`` and return the assets they need.

        Args:
            text: Compiled document text
            from_path: Vault path of the document, for relative links

        Returns:
            Tuple of (rewritten text, assets in order of first use)
        """
        assets: Dict[str, Asset] = {}
        parts = []
        for segment in tokenize(text):
            if segment.kind is SegmentKind.TRANSCLUSION:
                parts.append(await self._extract_embed(segment, from_path, assets))
            elif segment.kind is SegmentKind.IMAGE:
                parts.append(await self._extract_image(segment, from_path, assets))
            else:
                parts.append(segment.raw)
        return ''.join(parts), list(assets.values())

    async def _extract_embed(self, segment: Segment, from_path: str, assets: Dict[str, Asset]) -> str:
        reference = segment.reference
        publish_path = await self._collect(reference.target, from_path, assets)
        if publish_path is None:
            return segment.raw
        name = reference.target + format_qualifiers(reference.options)
        return f"![{name}]({quote(publish_path)})"

    async def _extract_image(self, segment: Segment, from_path: str, assets: Dict[str, Asset]) -> str:
        alt, src = segment.image_parts
        src = src.strip()
        if is_remote(src):
            return segment.raw
        publish_path = await self._collect(unquote(src), from_path, assets)
        if publish_path is None:
            return segment.raw
        return f"![{alt}]({quote(publish_path)})"

    async def _collect(self, target: str, from_path: str, assets: Dict[str, Asset]) -> Optional[str]:
        """Read one embedded file into ``assets``; None if it is not an asset."""
        linked = self.vault.resolve_link(target, from_path)
        if linked is None or linked.is_page:
            return None

        publish_path = self.publish_path(linked)
        if publish_path in assets:
            return publish_path

        try:
            data = await self.vault.read_binary(linked.path)
        except (PublisherError, OSError) as e:
            logger.warning("Could not read asset %s for %s: %s", linked.path, from_path, e)
            return None

        assets[publish_path] = Asset.from_bytes(publish_path, data)
        return publish_path
