"""Data models for Garden Publisher."""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from garden_publisher.utils import generate_blob_hash_from_bytes

PAGE_EXTENSIONS = frozenset({'md', 'canvas'})


@dataclass(frozen=True)
class ResolvedFile:
    """A vault file as returned by link resolution."""
    path: str

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lstrip('.').lower()

    @property
    def basename(self) -> str:
        """File name without its extension."""
        return PurePosixPath(self.path).stem

    @property
    def extensionless_path(self) -> str:
        if '.' not in self.name:
            return self.path
        return self.path[:self.path.rindex('.')]

    @property
    def is_page(self) -> bool:
        """Notes and canvases become pages; everything else is an asset."""
        return self.extension in PAGE_EXTENSIONS

    @property
    def is_drawing(self) -> bool:
        return self.name.endswith('.excalidraw.md') or self.extension == 'excalidraw'


@dataclass(frozen=True)
class Heading:
    text: str
    level: int
    start_line: int


@dataclass(frozen=True)
class BlockRange:
    start_line: int
    end_line: int


@dataclass
class SourceNote:
    """A note as read from the vault. The pipeline never mutates it.

    Content is not read until compilation; get it via the vault.
    """
    path: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created: Optional[datetime] = None
    modified: Optional[datetime] = None

    @property
    def file(self) -> ResolvedFile:
        return ResolvedFile(self.path)


@dataclass
class Asset:
    """A binary file to upload next to a compiled note."""
    publish_path: str
    content: str
    local_hash: str
    remote_hash: Optional[str] = None

    @classmethod
    def from_bytes(cls, publish_path: str, data: bytes) -> "Asset":
        return cls(
            publish_path=publish_path,
            content=base64.b64encode(data).decode('ascii'),
            local_hash=generate_blob_hash_from_bytes(data),
        )

    @property
    def needs_upload(self) -> bool:
        return self.remote_hash != self.local_hash


@dataclass
class CompiledDocument:
    """Result of compiling one note for publishing."""
    path: str
    text: str
    assets: List[Asset] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class NoteError:
    """An error that occurred while compiling a note in a batch."""
    path: str
    error: str


@dataclass
class BatchResult:
    """Result of compiling several notes."""
    compiled: Dict[str, CompiledDocument] = field(default_factory=dict)
    failures: List[NoteError] = field(default_factory=list)


@dataclass(frozen=True)
class DeletedPath:
    path: str
    sha: str


@dataclass
class PublishStatus:
    """Partition of marked notes relative to the remote site."""
    unpublished: List[CompiledDocument] = field(default_factory=list)
    published: List[CompiledDocument] = field(default_factory=list)
    changed: List[CompiledDocument] = field(default_factory=list)
    deleted_notes: List[DeletedPath] = field(default_factory=list)
    deleted_assets: List[DeletedPath] = field(default_factory=list)
