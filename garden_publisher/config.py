"""Settings for the note compiler.

Settings are an immutable value built once (usually from a YAML file) and
handed to every compiler component explicitly.
"""

import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from garden_publisher.errors import ConfigError

MAX_TRANSCLUSION_DEPTH = 4

_REGEX_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'x': re.VERBOSE,
}


@dataclass(frozen=True)
class RewriteRule:
    """Maps a vault folder prefix onto a site folder prefix."""
    from_prefix: str
    to_prefix: str


@dataclass(frozen=True)
class CustomFilter:
    """A user supplied regex substitution applied to note text.

    ``flags`` uses JavaScript style letters ("g", "i", "m", "s"). Without
    "g" only the first match is replaced.
    """
    pattern: str
    replace: str = ''
    flags: str = 'g'

    def compile(self) -> "re.Pattern[str]":
        re_flags = 0
        for letter in self.flags:
            if letter == 'g':
                continue
            if letter not in _REGEX_FLAGS:
                raise re.error(f"unsupported flag {letter!r}")
            re_flags |= _REGEX_FLAGS[letter]
        return re.compile(self.pattern, re_flags)

    @property
    def count(self) -> int:
        return 0 if 'g' in self.flags else 1

    @property
    def replacement(self) -> str:
        """Replacement with $1 and $& group references in re.sub syntax."""
        text = self.replace.replace("\\", "\\\\")
        text = text.replace("$&", r"\g<0>")
        return re.sub(r"\$(\d+)", r"\\g<\1>", text)


@dataclass(frozen=True)
class CompilerSettings:
    """Everything the compiler needs to know besides the vault itself."""
    publish_key: str = 'publish'
    permalink_key: str = 'permalink'
    path_rewrite_rules: Tuple[RewriteRule, ...] = ()
    slugify_permalinks: bool = True
    path_key: str = 'path'

    home_key: str = 'home'
    hide_key: str = 'hide'
    hide_in_graph_key: str = 'hide-in-graph'
    pinned_key: str = 'pinned'
    metatags_key: str = 'metatags'

    show_created_timestamp: bool = False
    show_updated_timestamp: bool = False
    show_published_timestamp: bool = False
    created_timestamp_key: str = ''
    updated_timestamp_key: str = ''
    published_timestamp_key: str = ''

    include_all_frontmatter: bool = False
    custom_filters: Tuple[CustomFilter, ...] = ()

    apply_embeds: bool = True
    use_dataview: bool = True
    use_excalidraw: bool = True
    max_transclusion_depth: int = MAX_TRANSCLUSION_DEPTH

    image_publish_prefix: str = '/img/user'
    audio_publish_prefix: str = '/audio/user'
    file_publish_prefix: str = '/files/user'

    dataview_block_keyword: str = 'dataview'
    dataview_inline_prefix: str = '='

    def with_overrides(self, **overrides: Any) -> "CompilerSettings":
        return replace(self, **overrides)


def parse_rewrite_rules(text: str) -> Tuple[RewriteRule, ...]:
    """Parse ``from:to`` lines into rewrite rules.

    Lines without a colon are skipped.

    Args:
        text: One rule per line

    Returns:
        Rules in the order given (first match wins)
    """
    rules = []
    for line in text.splitlines():
        if ':' not in line:
            continue
        from_prefix, to_prefix = line.split(':', 1)
        rules.append(RewriteRule(from_prefix.strip(), to_prefix.strip()))
    return tuple(rules)


def settings_from_dict(data: Dict[str, Any]) -> CompilerSettings:
    """Build settings from a plain mapping, validating keys and types.

    Raises:
        ConfigError: On unknown keys or values of the wrong type
    """
    known = {f.name: f for f in fields(CompilerSettings)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    defaults = CompilerSettings()
    for key, value in data.items():
        if key == 'path_rewrite_rules':
            values[key] = _parse_rules_value(value)
        elif key == 'custom_filters':
            values[key] = _parse_filters_value(value)
        else:
            expected = type(getattr(defaults, key))
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(
                    f"Setting {key!r} must be {expected.__name__}, got {type(value).__name__}"
                )
            values[key] = value

    settings = CompilerSettings(**values)
    if settings.max_transclusion_depth < 1:
        raise ConfigError("max_transclusion_depth must be at least 1")
    return settings


def load_settings(path: Union[str, Path]) -> CompilerSettings:
    """Load settings from a YAML file.

    Args:
        path: Path to the settings file

    Returns:
        CompilerSettings

    Raises:
        ConfigError: If the file is missing, not YAML, or has invalid settings
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return CompilerSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")

    return settings_from_dict(data)


def _parse_rules_value(value: Any) -> Tuple[RewriteRule, ...]:
    if isinstance(value, str):
        return parse_rewrite_rules(value)
    if not isinstance(value, list):
        raise ConfigError("path_rewrite_rules must be a string or a list")

    rules = []
    for item in value:
        if isinstance(item, str):
            rules.extend(parse_rewrite_rules(item))
        elif isinstance(item, dict) and 'from' in item:
            rules.append(RewriteRule(str(item['from']), str(item.get('to') or '')))
        else:
            raise ConfigError(f"Invalid rewrite rule: {item!r}")
    return tuple(rules)


def _parse_filters_value(value: Any) -> Tuple[CustomFilter, ...]:
    if not isinstance(value, list):
        raise ConfigError("custom_filters must be a list")

    filters = []
    for item in value:
        if not isinstance(item, dict) or 'pattern' not in item:
            raise ConfigError(f"Invalid custom filter: {item!r}")
        filters.append(CustomFilter(
            pattern=str(item['pattern']),
            replace=str(item.get('replace', '')),
            flags=str(item.get('flags', 'g')),
        ))
    return tuple(filters)
