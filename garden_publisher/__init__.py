"""
Garden Publisher - Compile Obsidian notes for a digital garden site

Turns vault notes marked for publishing into self-contained documents
ready to upload, with support for:
- Frontmatter synthesis (permalinks, tags, timestamps)
- Transclusion of notes, headings and blocks
- Wikilink rewriting to full vault paths
- Asset extraction with git blob hashes
- Change detection against the published site
"""

from garden_publisher.config import CompilerSettings, CustomFilter, RewriteRule, load_settings
from garden_publisher.core.models import Asset, BatchResult, CompiledDocument, NoteError, PublishStatus, SourceNote
from garden_publisher.core.discovery import VaultDiscovery
from garden_publisher.core.processor import PageCompiler
from garden_publisher.core.status import PublishStatusManager, content_hash, get_content_for_hash_comparison
from garden_publisher.core.vault import FileSystemVault, VaultIndex
from garden_publisher.errors import ConfigError, MalformedSourceError, NoteNotFoundError, PublisherError, QueryEngineError
from garden_publisher.transforms.queries import QueryEngine

__version__ = "0.1.0"

__all__ = [
    "CompilerSettings",
    "CustomFilter",
    "RewriteRule",
    "load_settings",
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
    "QueryEngine",
    "ConfigError",
    "MalformedSourceError",
    "NoteNotFoundError",
    "PublisherError",
    "QueryEngineError",
]
