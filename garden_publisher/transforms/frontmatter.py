"""Frontmatter synthesis for published notes.

The published frontmatter is built by running the note's raw metadata
through a fixed list of small transforms, each of which adds one group of
fields. The result is written as a delimited block holding a single line
of JSON, which is also valid YAML for the site generator.
"""

import datetime
import json
from typing import Any, Callable, Dict, Iterable, List, Optional

from garden_publisher.config import CompilerSettings
from garden_publisher.core.models import SourceNote
from garden_publisher.utils import generate_url_path, get_garden_path_for_note, sanitize_permalink

FrontmatterTransform = Callable[[Dict[str, Any], Dict[str, Any], SourceNote], Dict[str, Any]]

FRONTMATTER_DELIMITER = '---'

PASS_THROUGH_KEYS = (
    'title',
    'description',
    'draft',
    'lang',
    'comments',
    'enableToc',
    'socialImage',
    'socialDescription',
)

CREATED_KEY = 'created'
UPDATED_KEY = 'updated'
PUBLISHED_KEY = 'published'
HOME_TAG = 'gardenEntry'

_JSON_KEY_TYPES = (str, int, float, bool, type(None))


def serialize_frontmatter(frontmatter: Dict[str, Any]) -> str:
    """Write frontmatter as ``---``, one JSON line, ``---``.

    Lists stay JSON arrays and booleans JSON booleans; a pipe is never
    escaped. Keys YAML parsed as dates become ISO strings. Always closed,
    even for an empty map.
    """
    encoded = json.dumps(
        _with_json_keys(frontmatter),
        ensure_ascii=False,
        separators=(',', ':'),
        default=_json_default,
    )
    return f"{FRONTMATTER_DELIMITER}\n{encoded}\n{FRONTMATTER_DELIMITER}\n"


def format_timestamp(value: Any) -> str:
    """Render a frontmatter or file-system timestamp as a string.

    Args:
        value: Timestamp in various formats (str, datetime, date, None)

    Returns:
        ISO string, the string itself, or empty string
    """
    if value is None:
        return ''

    if isinstance(value, str):
        return value

    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()

    return str(value)


class NoteTimestamps:
    """Works out the created/updated/published values for a note.

    A configured user key always wins over the file-system timestamp. When
    the key is configured but the note does not set it, the value is empty
    rather than falling back to the file system.
    """

    def __init__(self, settings: CompilerSettings):
        self.settings = settings

    def created_at(self, raw: Dict[str, Any], note: SourceNote) -> str:
        return self._resolve(raw, self.settings.created_timestamp_key, note.created)

    def updated_at(self, raw: Dict[str, Any], note: SourceNote) -> str:
        return self._resolve(raw, self.settings.updated_timestamp_key, note.modified)

    def published_at(self, raw: Dict[str, Any], note: SourceNote) -> Optional[str]:
        """Published date only ever comes from the note itself."""
        key = self.settings.published_timestamp_key
        if not key:
            return None
        return format_timestamp(raw.get(key))

    @staticmethod
    def _resolve(raw: Dict[str, Any], key: str, fallback: Optional[datetime.datetime]) -> str:
        if key:
            return format_timestamp(raw.get(key))
        return format_timestamp(fallback)


def publish_flag(settings: CompilerSettings) -> FrontmatterTransform:
    """Create a transform that marks the output as published."""
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        return {**published, settings.publish_key: True}
    return transform


def permalink(settings: CompilerSettings) -> FrontmatterTransform:
    """Create a transform that adds the note's permalink.

    A permalink set by the user wins; otherwise it is derived from the garden
    path. A garden path that differs from the vault path is published under
    the path key so the site can place the note.
    """
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        result = published.copy()
        garden_path = garden_path_for_note(raw, note.path, settings)
        if settings.path_key and garden_path != note.path:
            result[settings.path_key] = garden_path
        result['permalink'] = note_permalink(raw, note.path, settings)
        return result
    return transform


def home_entry(settings: CompilerSettings) -> FrontmatterTransform:
    """Create a transform that tags the garden's home note with ``gardenEntry``."""
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        if not settings.home_key or not raw.get(settings.home_key):
            return published
        tag_list = list(published.get('tags', []))
        if HOME_TAG not in tag_list:
            tag_list.append(HOME_TAG)
        return {**published, 'tags': tag_list}
    return transform


def site_flags(settings: CompilerSettings) -> FrontmatterTransform:
    """Create a transform that copies the site display flags when set.

    Each configured key is published under the name the site expects:
    ``hide``, ``hideInGraph``, ``pinned`` and ``metatags``.
    """
    renames = {
        settings.hide_key: 'hide',
        settings.hide_in_graph_key: 'hideInGraph',
        settings.pinned_key: 'pinned',
        settings.metatags_key: 'metatags',
    }

    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        result = published.copy()
        for key, name in renames.items():
            if key and raw.get(key):
                result[name] = raw[key]
        return result
    return transform


def aliases() -> FrontmatterTransform:
    """Create a transform that merges ``alias`` and ``aliases`` into one string."""
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        merged = _merge_values(raw, 'alias', 'aliases')
        if not merged:
            return published
        return {**published, 'aliases': ' '.join(merged)}
    return transform


def tags() -> FrontmatterTransform:
    """Create a transform that merges ``tag`` and ``tags`` into one list.

    Comma separated strings are split.
    """
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        merged = _merge_values(raw, 'tag', 'tags', split_commas=True)
        if not merged:
            return published
        return {**published, 'tags': merged}
    return transform


def pass_through(keys: Iterable[str] = PASS_THROUGH_KEYS) -> FrontmatterTransform:
    """Create a transform that copies scalar fields verbatim when present."""
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        result = published.copy()
        for key in keys:
            if raw.get(key) is not None:
                result[key] = raw[key]
        return result
    return transform


def css_classes() -> FrontmatterTransform:
    """Create a transform that merges ``cssclass``/``cssclasses`` de-duplicated."""
    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        merged = list(dict.fromkeys(_merge_values(raw, 'cssclass', 'cssclasses')))
        if not merged:
            return published
        return {**published, 'cssclasses': ' '.join(merged)}
    return transform


def timestamps(settings: CompilerSettings) -> FrontmatterTransform:
    """Create a transform that adds the timestamps enabled in settings."""
    resolver = NoteTimestamps(settings)

    def transform(raw: Dict[str, Any], published: Dict[str, Any], note: SourceNote) -> Dict[str, Any]:
        result = published.copy()
        if settings.show_created_timestamp:
            result[CREATED_KEY] = resolver.created_at(raw, note)
        if settings.show_updated_timestamp:
            result[UPDATED_KEY] = resolver.updated_at(raw, note)
        if settings.show_published_timestamp:
            published_at = resolver.published_at(raw, note)
            if published_at is not None:
                result[PUBLISHED_KEY] = published_at
        return result
    return transform


def default_transforms(settings: CompilerSettings) -> List[FrontmatterTransform]:
    return [
        publish_flag(settings),
        permalink(settings),
        aliases(),
        tags(),
        home_entry(settings),
        pass_through(),
        site_flags(settings),
        css_classes(),
        timestamps(settings),
    ]


class FrontmatterCompiler:
    """Builds the published frontmatter block for a note."""

    def __init__(
        self,
        settings: CompilerSettings,
        transforms: Optional[List[FrontmatterTransform]] = None,
    ):
        self.settings = settings
        self.transforms = transforms if transforms is not None else default_transforms(settings)

    def build(self, note: SourceNote) -> Dict[str, Any]:
        """Return the published frontmatter map for ``note``."""
        raw = {k: v for k, v in (note.metadata or {}).items() if k != 'position'}

        published: Dict[str, Any] = {}
        for transform in self.transforms:
            published = transform(raw, published, note)

        if self.settings.include_all_frontmatter:
            return {**published, **raw}
        return published

    def compile(self, note: SourceNote) -> str:
        return serialize_frontmatter(self.build(note))


def permalink_for_path(vault_path: str, settings: CompilerSettings) -> str:
    """Site permalink derived from a vault path, e.g. ``/Notes/My-Note/``."""
    return note_permalink({}, vault_path, settings)


def garden_path_for_note(raw: Dict[str, Any], vault_path: str, settings: CompilerSettings) -> str:
    """The note's path on the site: the user's path override, else the
    vault path after rewrite rules."""
    override = raw.get(settings.path_key) if settings.path_key else None
    if isinstance(override, str) and override.strip():
        return override.strip().lstrip('/')
    return get_garden_path_for_note(vault_path, settings.path_rewrite_rules)


def note_permalink(raw: Dict[str, Any], vault_path: str, settings: CompilerSettings) -> str:
    """Permalink of a note given its raw frontmatter.

    A user permalink wins and is sanitized. Otherwise the permalink is built
    from the garden path.
    """
    user_permalink = raw.get(settings.permalink_key)
    if isinstance(user_permalink, str) and user_permalink.strip():
        return sanitize_permalink(user_permalink)
    garden_path = garden_path_for_note(raw, vault_path, settings)
    return '/' + generate_url_path(garden_path, settings.slugify_permalinks)


def _merge_values(raw: Dict[str, Any], *keys: str, split_commas: bool = False) -> List[str]:
    merged: List[str] = []
    for key in keys:
        value = raw.get(key)
        if value is None or value == '':
            continue
        if isinstance(value, str):
            parts = value.split(',') if split_commas else [value]
            merged.extend(p.strip() for p in parts if p.strip())
        elif isinstance(value, (list, tuple)):
            merged.extend(str(v) for v in value if v is not None and str(v) != '')
        else:
            merged.append(str(value))
    return merged


def _with_json_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_json_key(k): _with_json_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_with_json_keys(v) for v in value]
    return value


def _json_key(key: Any) -> Any:
    if isinstance(key, _JSON_KEY_TYPES):
        return key
    return format_timestamp(key)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)
