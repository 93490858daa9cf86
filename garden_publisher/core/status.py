"""Publish status: which compiled notes differ from what the site has."""

import json
import logging
from typing import Iterable, Mapping, Optional

from garden_publisher.config import CompilerSettings
from garden_publisher.core.models import CompiledDocument, DeletedPath, PublishStatus
from garden_publisher.transforms.frontmatter import CREATED_KEY, UPDATED_KEY, serialize_frontmatter
from garden_publisher.transforms.grammar import FRONTMATTER_RE
from garden_publisher.utils import generate_blob_hash

logger = logging.getLogger(__name__)


def get_content_for_hash_comparison(text: str, settings: CompilerSettings) -> str:
    """Compiled text minus the timestamps taken from the file system.

    Created and updated values filled in from file times change on every
    checkout, so they are dropped before hashing. Values taken from a
    configured frontmatter key are the user's content and stay. The body is
    never touched, and text whose frontmatter is not a JSON object is
    returned unchanged.

    Args:
        text: Compiled document text
        settings: Settings the text was compiled with

    Returns:
        Text to hash; never published
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return text

    try:
        frontmatter = json.loads(match.group('content') or '')
    except ValueError:
        logger.debug("Frontmatter is not JSON, hashing text as is")
        return text
    if not isinstance(frontmatter, dict):
        return text

    derived_keys = []
    if not settings.created_timestamp_key:
        derived_keys.append(CREATED_KEY)
    if not settings.updated_timestamp_key:
        derived_keys.append(UPDATED_KEY)

    present = [key for key in derived_keys if key in frontmatter]
    if not present:
        return text

    for key in present:
        del frontmatter[key]

    block = serialize_frontmatter(frontmatter)
    return block[:-1] + text[match.end():]


def content_hash(text: str, settings: CompilerSettings) -> str:
    """Blob hash used to compare a compiled note with the published one."""
    return generate_blob_hash(get_content_for_hash_comparison(text, settings))


class PublishStatusManager:
    """Compares compiled notes against the hashes of the published site."""

    def __init__(self, settings: CompilerSettings):
        self.settings = settings

    def get_publish_status(
        self,
        compiled: Iterable[CompiledDocument],
        remote_note_hashes: Mapping[str, str],
        remote_asset_hashes: Optional[Mapping[str, str]] = None,
    ) -> PublishStatus:
        """Partition compiled notes into unpublished, published and changed.

        Remote entries with no compiled counterpart are reported as deleted.
        Each asset gets its ``remote_hash`` filled in so the uploader can
        skip unchanged files.

        Args:
            compiled: Compiled documents for every marked note
            remote_note_hashes: Vault path to blob hash of the published notes
            remote_asset_hashes: Publish path to blob hash of the published assets

        Returns:
            PublishStatus with every list sorted by path
        """
        remote_asset_hashes = remote_asset_hashes or {}
        status = PublishStatus()
        note_paths = set()
        asset_paths = set()

        for document in compiled:
            note_paths.add(document.path)
            remote_hash = remote_note_hashes.get(document.path)
            if remote_hash is None:
                status.unpublished.append(document)
            elif remote_hash == content_hash(document.text, self.settings):
                status.published.append(document)
            else:
                status.changed.append(document)

            for asset in document.assets:
                asset_paths.add(asset.publish_path)
                asset.remote_hash = remote_asset_hashes.get(asset.publish_path)

        for documents in (status.unpublished, status.published, status.changed):
            documents.sort(key=lambda d: d.path)

        status.deleted_notes = [
            DeletedPath(path, sha)
            for path, sha in sorted(remote_note_hashes.items())
            if path not in note_paths
        ]
        status.deleted_assets = [
            DeletedPath(path, sha)
            for path, sha in sorted(remote_asset_hashes.items())
            if path not in asset_paths
        ]
        return status
