"""Tests for settings loading."""

import pytest

from garden_publisher.config import (
    MAX_TRANSCLUSION_DEPTH,
    CompilerSettings,
    CustomFilter,
    RewriteRule,
    load_settings,
    parse_rewrite_rules,
    settings_from_dict,
)
from garden_publisher.errors import ConfigError


class TestCompilerSettings:
    """Tests for CompilerSettings defaults and overrides."""

    def test_defaults(self):
        settings = CompilerSettings()
        assert settings.publish_key == "publish"
        assert settings.max_transclusion_depth == MAX_TRANSCLUSION_DEPTH == 4
        assert settings.image_publish_prefix == "/img/user"

    def test_settings_are_frozen(self):
        settings = CompilerSettings()
        with pytest.raises(Exception):
            settings.publish_key = "dg-publish"

    def test_with_overrides(self):
        settings = CompilerSettings().with_overrides(publish_key="dg-publish")
        assert settings.publish_key == "dg-publish"
        assert CompilerSettings().publish_key == "publish"


class TestParseRewriteRules:
    """Tests for parse_rewrite_rules."""

    def test_parse_lines(self):
        rules = parse_rewrite_rules("Notes:\nprivate/blog:blog\nno colon here")
        assert rules == (RewriteRule("Notes", ""), RewriteRule("private/blog", "blog"))

    def test_empty(self):
        assert parse_rewrite_rules("") == ()


class TestCustomFilter:
    """Tests for CustomFilter."""

    def test_replacement_syntax(self):
        assert CustomFilter("x", "<$1|$&>").replacement == r"<\g<1>|\g<0>>"

    def test_backslash_is_literal(self):
        assert CustomFilter("x", "a\\b").replacement == "a\\\\b"

    def test_count(self):
        assert CustomFilter("x", flags="g").count == 0
        assert CustomFilter("x", flags="i").count == 1


class TestLoadSettings:
    """Tests for settings_from_dict and load_settings."""

    def test_from_dict(self):
        settings = settings_from_dict({
            "publish_key": "dg-publish",
            "show_updated_timestamp": True,
            "path_rewrite_rules": [{"from": "Notes", "to": "garden"}, "a:b"],
            "custom_filters": [{"pattern": "==(.+?)==", "replace": "<mark>$1</mark>"}],
        })
        assert settings.publish_key == "dg-publish"
        assert settings.show_updated_timestamp is True
        assert settings.path_rewrite_rules == (RewriteRule("Notes", "garden"), RewriteRule("a", "b"))
        assert settings.custom_filters[0].flags == "g"

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown settings"):
            settings_from_dict({"publishKey": "x"})

    def test_wrong_type(self):
        with pytest.raises(ConfigError, match="must be bool"):
            settings_from_dict({"apply_embeds": "yes"})

    def test_bool_is_not_int(self):
        with pytest.raises(ConfigError):
            settings_from_dict({"max_transclusion_depth": True})

    def test_depth_must_be_positive(self):
        with pytest.raises(ConfigError):
            settings_from_dict({"max_transclusion_depth": 0})

    def test_invalid_filter(self):
        with pytest.raises(ConfigError):
            settings_from_dict({"custom_filters": [{"replace": "x"}]})

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("publish_key: dg-publish\nslugify_permalinks: false\n")
        settings = load_settings(path)
        assert settings.publish_key == "dg-publish"
        assert settings.slugify_permalinks is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path) == CompilerSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_settings(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("a: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)
