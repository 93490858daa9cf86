"""Path, slug and hashing helpers shared by the compiler steps."""

import base64
import hashlib
import re
from typing import TYPE_CHECKING, Iterable

import inflection

if TYPE_CHECKING:
    from garden_publisher.config import RewriteRule

_HEADER_RE = re.compile(r'^(?P<hashes>#+)\s?(?P<title>.*)$')
_NON_SLUG_RE = re.compile(r'[^A-Za-z0-9\-_]+')
_DASH_RUN_RE = re.compile(r'-{2,}')


def slugify(text: str, lowercase: bool = True) -> str:
    """Slug for one path segment or heading, e.g. ``"My Note!"`` -> ``"my-note"``.

    Characters without an ASCII transliteration are dropped, so the slug of
    a Cyrillic or CJK string is empty.
    """
    if lowercase:
        return inflection.parameterize(text, separator='-')
    slug = _NON_SLUG_RE.sub('-', inflection.transliterate(text))
    return _DASH_RUN_RE.sub('-', slug).strip('-')


def slugify_segment(segment: str) -> str:
    """Case-preserving slug of a path segment, falling back to the segment
    itself with whitespace runs turned into dashes."""
    return slugify(segment, lowercase=False) or '-'.join(segment.split())


def generate_url_path(file_path: str, slugify_path: bool = True) -> str:
    """Turn a vault path into a site path with a trailing slash.

    ``"Folder/My Note.md"`` becomes ``"Folder/My-Note/"``.
    """
    if not file_path:
        return file_path

    name = file_path.rsplit('/', 1)[-1]
    extensionless = file_path[:file_path.rindex('.')] if '.' in name else file_path

    if not slugify_path:
        return extensionless + '/'

    return '/'.join(slugify_segment(part) for part in extensionless.split('/')) + '/'


def get_garden_path_for_note(vault_path: str, rules: Iterable["RewriteRule"]) -> str:
    """Apply the first matching rewrite rule to a vault path."""
    for rule in rules:
        if rule.from_prefix and vault_path.startswith(rule.from_prefix):
            new_path = rule.to_prefix + vault_path[len(rule.from_prefix):]
            # Rewriting to the site root leaves a leading slash behind
            return new_path[1:] if new_path.startswith('/') else new_path

    return vault_path


def sanitize_permalink(permalink: str) -> str:
    """Make sure a user supplied permalink starts and ends with ``/``."""
    permalink = permalink.strip()
    if not permalink.startswith('/'):
        permalink = '/' + permalink
    if not permalink.endswith('/'):
        permalink += '/'
    return permalink


def fix_markdown_header_syntax(raw_heading: str) -> str:
    """Normalize a heading to ``#... title`` with exactly one space.

    Text without leading hashes becomes an H1.
    """
    match = _HEADER_RE.match(raw_heading.strip())
    if match:
        return f"{match.group('hashes')} {match.group('title').strip()}"
    return f"# {raw_heading.strip()}"


def generate_blob_hash_from_bytes(data: bytes) -> str:
    """SHA-1 of ``data`` framed the way git frames a blob object."""
    header = f"blob {len(data)}\0".encode('utf-8')
    return hashlib.sha1(header + data).hexdigest()


def generate_blob_hash(content: str) -> str:
    """Git blob hash of a UTF-8 string."""
    return generate_blob_hash_from_bytes(content.encode('utf-8'))


def generate_blob_hash_from_base64(content: str) -> str:
    """Git blob hash of base64 encoded content, computed over the decoded bytes."""
    return generate_blob_hash_from_bytes(base64.b64decode(content))


def strip_fragment(link_target: str) -> str:
    """Drop a ``#heading`` or ``#^block`` suffix from a link target."""
    return link_target.split('#', 1)[0]

