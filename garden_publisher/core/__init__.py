"""Core components for Garden Publisher."""

from garden_publisher.core.models import Asset, BatchResult, CompiledDocument, NoteError, PublishStatus, SourceNote
from garden_publisher.core.discovery import VaultDiscovery
from garden_publisher.core.processor import PageCompiler
from garden_publisher.core.status import PublishStatusManager, content_hash, get_content_for_hash_comparison
from garden_publisher.core.vault import FileSystemVault, VaultIndex

__all__ = [
    "Asset",
    "BatchResult",
    "CompiledDocument",
    "NoteError",
    "PublishStatus",
    "SourceNote",
    "VaultDiscovery",
    "PageCompiler",
    "PublishStatusManager",
    "content_hash",
    "get_content_for_hash_comparison",
    "FileSystemVault",
    "VaultIndex",
]
