"""Vault index: file reads, metadata and link resolution.

The compiler only talks to the :class:`VaultIndex` protocol. Inside a note
taking app the host provides it; :class:`FileSystemVault` is the stand-alone
implementation over a vault directory on disk.
"""

import asyncio
import datetime
import logging
import posixpath
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

import yaml

from garden_publisher.core.models import BlockRange, Heading, ResolvedFile, SourceNote
from garden_publisher.errors import NoteNotFoundError
from garden_publisher.transforms.grammar import FRONTMATTER_RE, frontmatter_content
from garden_publisher.utils import strip_fragment

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r'^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$')
_FENCE_RE = re.compile(r'^[ \t]*(```|~~~)')
_LIST_ITEM_RE = re.compile(r'^[ \t]*(?:[-*+]|\d+[.)])[ \t]')
_IGNORED_DIRS = {'.obsidian', '.git', '.trash'}


@runtime_checkable
class VaultIndex(Protocol):
    """What the compiler needs from the host vault.

    ``read_text``/``read_binary`` raise NoteNotFoundError for missing paths;
    ``resolve_link`` returns None rather than raising.
    """

    async def read_text(self, path: str) -> str: ...

    async def read_binary(self, path: str) -> bytes: ...

    def resolve_link(self, raw_target: str, from_path: str) -> Optional[ResolvedFile]: ...

    def get_frontmatter(self, path: str) -> Optional[Dict[str, Any]]: ...

    def get_headings(self, path: str) -> List[Heading]: ...

    def get_block_anchor(self, path: str, block_id: str) -> Optional[BlockRange]: ...

    def get_file(self, path: str) -> Optional[ResolvedFile]: ...

    def get_note(self, path: str) -> Optional[SourceNote]: ...

    def list_files(self) -> List[str]: ...


def parse_frontmatter_text(text: str) -> Dict[str, Any]:
    """Parse the YAML frontmatter of a note.

    Args:
        text: Full file content

    Returns:
        Frontmatter dict (empty if not found or invalid)
    """
    content = frontmatter_content(text)
    if content is None:
        return {}

    try:
        frontmatter = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.warning("Failed to parse frontmatter YAML: %s", e)
        return {}

    if not isinstance(frontmatter, dict):
        return {}
    return frontmatter


class FileSystemVault:
    """A vault directory on disk.

    Paths are vault-relative with forward slashes, e.g. ``"notes/Idea.md"``.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        if not self.root.is_dir():
            raise NoteNotFoundError(f"Vault directory not found: {self.root}")
        self._files: List[str] = []
        self._lowercase: Dict[str, str] = {}
        self._frontmatter_cache: Dict[str, Dict[str, Any]] = {}
        self.refresh()

    def refresh(self) -> None:
        """Rescan the vault directory and drop cached metadata."""
        files = []
        for path in self.root.rglob('*'):
            relative = path.relative_to(self.root)
            if any(part in _IGNORED_DIRS for part in relative.parts):
                continue
            if path.is_file():
                files.append(relative.as_posix())

        self._files = sorted(files)
        self._lowercase = {f.lower(): f for f in self._files}
        self._frontmatter_cache.clear()

    def list_files(self) -> List[str]:
        return list(self._files)

    def get_file(self, path: str) -> Optional[ResolvedFile]:
        actual = self._lowercase.get(path.lower())
        return ResolvedFile(actual) if actual else None

    async def read_text(self, path: str) -> str:
        return await asyncio.to_thread(self._read_text_sync, path)

    async def read_binary(self, path: str) -> bytes:
        return await asyncio.to_thread(self._read_binary_sync, path)

    def get_note(self, path: str) -> Optional[SourceNote]:
        file = self.get_file(path)
        if file is None:
            return None

        stat = (self.root / file.path).stat()
        return SourceNote(
            path=file.path,
            metadata=self.get_frontmatter(file.path) or {},
            created=datetime.datetime.fromtimestamp(_birth_time(stat), tz=datetime.timezone.utc),
            modified=datetime.datetime.fromtimestamp(stat.st_mtime, tz=datetime.timezone.utc),
        )

    def get_frontmatter(self, path: str) -> Optional[Dict[str, Any]]:
        file = self.get_file(path)
        if file is None or file.extension != 'md':
            return None

        if file.path not in self._frontmatter_cache:
            self._frontmatter_cache[file.path] = parse_frontmatter_text(
                self._read_text_sync(file.path)
            )
        return dict(self._frontmatter_cache[file.path])

    def get_headings(self, path: str) -> List[Heading]:
        headings = []
        for number, line in self._content_lines(path):
            match = _HEADING_RE.match(line)
            if match:
                headings.append(Heading(
                    text=match.group(2),
                    level=len(match.group(1)),
                    start_line=number,
                ))
        return headings

    def get_block_anchor(self, path: str, block_id: str) -> Optional[BlockRange]:
        """Line range of the block tagged ``^block_id``.

        A paragraph owns its anchor from its first line; a list item only its
        own line; an anchor alone on a line tags the block just above it.
        """
        anchor_re = re.compile(r'(?:^|\s)\^' + re.escape(block_id) + r'[ \t]*$')
        lines = self._content_lines(path)

        for index, (number, line) in enumerate(lines):
            if not anchor_re.search(line):
                continue

            standalone = line.strip() == f"^{block_id}"
            if _LIST_ITEM_RE.match(line) and not standalone:
                return BlockRange(number, number)

            cursor = index - 1 if standalone else index
            if cursor < 0 or not lines[cursor][1].strip():
                return BlockRange(number, number)

            while cursor > 0:
                prev_number, prev_line = lines[cursor - 1]
                current_number, current_line = lines[cursor]
                if (
                    prev_number != current_number - 1
                    or not prev_line.strip()
                    or _HEADING_RE.match(prev_line)
                    or _HEADING_RE.match(current_line)
                ):
                    break
                cursor -= 1
            return BlockRange(lines[cursor][0], number)

        return None

    def resolve_link(self, raw_target: str, from_path: str) -> Optional[ResolvedFile]:
        """Resolve a link target the way the note app does.

        Tries the exact vault path, then a path relative to the linking note,
        then a match on the trailing path segments; ties prefer the linking
        note's folder, then the shortest path.
        """
        link = strip_fragment(raw_target).strip().lstrip('/')
        if not link:
            return None

        lowered = link.lower()
        for candidate in (lowered, lowered + '.md'):
            if candidate in self._lowercase:
                return ResolvedFile(self._lowercase[candidate])

        from_dir = posixpath.dirname(from_path)
        relative = posixpath.normpath(posixpath.join(from_dir, link)).lower()
        for candidate in (relative, relative + '.md'):
            if candidate in self._lowercase:
                return ResolvedFile(self._lowercase[candidate])

        suffixes = ('/' + lowered, '/' + lowered + '.md')
        matches = [
            f for f in self._files
            if f.lower().endswith(suffixes) or f.lower() in (lowered, lowered + '.md')
        ]
        if not matches:
            return None

        matches.sort(key=lambda f: (posixpath.dirname(f) != from_dir, len(f), f))
        return ResolvedFile(matches[0])

    def _read_text_sync(self, path: str) -> str:
        file = self.get_file(path)
        if file is None:
            raise NoteNotFoundError(f"Not in vault: {path}")
        return (self.root / file.path).read_text(encoding='utf-8')

    def _read_binary_sync(self, path: str) -> bytes:
        file = self.get_file(path)
        if file is None:
            raise NoteNotFoundError(f"Not in vault: {path}")
        return (self.root / file.path).read_bytes()

    def _content_lines(self, path: str) -> List[Tuple[int, str]]:
        """``(line_number, line)`` pairs outside frontmatter and code fences."""
        try:
            text = self._read_text_sync(path)
        except NoteNotFoundError:
            return []

        lines = text.split('\n')
        skip_until = 0
        match = FRONTMATTER_RE.match(text)
        if match:
            skip_until = text[:match.end()].count('\n') + 1

        result = []
        in_fence = False
        for number, line in enumerate(lines):
            if number < skip_until:
                continue
            if _FENCE_RE.match(line):
                in_fence = not in_fence
                continue
            if not in_fence:
                result.append((number, line))
        return result


def _birth_time(stat: Any) -> float:
    return getattr(stat, 'st_birthtime', None) or stat.st_ctime
