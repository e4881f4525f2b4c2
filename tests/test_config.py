"""Tests for SyncConfig defaults and TOML loading."""

import pytest
from pydantic import ValidationError

from pubsync.config import (
    DEFAULT_SUBSTITUTIONS,
    MAX_FIELD_BYTES,
    PRIMARY_DELIMITER,
    SyncConfig,
    load_sync_config,
)
from pubsync.errors import ConfigError


class TestSyncConfig:
    """Tests for the settings model."""

    def test_defaults(self) -> None:
        config = SyncConfig()
        assert config.primary_delimiter == PRIMARY_DELIMITER == " | "
        assert config.secondary_delimiter == "|"
        assert config.max_field_bytes == MAX_FIELD_BYTES == 32000
        assert config.substitutions == DEFAULT_SUBSTITUTIONS
        assert config.recompute_categories == ("gene",)
        assert config.offset_units == "utf-16"
        assert "authors" in config.text_fields

    def test_frozen(self) -> None:
        config = SyncConfig()
        with pytest.raises(ValidationError):
            config.max_field_bytes = 10

    def test_substitutions_from_table(self) -> None:
        config = SyncConfig(substitutions={"foo": "bar"})
        assert config.substitutions == (("foo", "bar"),)

    def test_substitutions_that_never_settle_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(substitutions=[("a", "aa")])
        with pytest.raises(ValidationError):
            SyncConfig(substitutions=[("", "x")])

    def test_blank_primary_delimiter_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(primary_delimiter="   ")

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig(max_field_bytes=0)
        with pytest.raises(ValidationError):
            SyncConfig(offset_units="bytes")


class TestLoadSyncConfig:
    """Tests for the TOML lookup order."""

    def test_explicit_path(self, tmp_path) -> None:
        path = tmp_path / "pubsync.toml"
        path.write_text(
            '[sync]\nmax_field_bytes = 100\nsubstitutions = [["foo", "bar"]]\nrecompute_categories = ["gene", "mp"]\n',
            encoding="utf-8",
        )
        config = load_sync_config(path)
        assert config.max_field_bytes == 100
        assert config.substitutions == (("foo", "bar"),)
        assert config.recompute_categories == ("gene", "mp")

    def test_missing_explicit_path(self, tmp_path) -> None:
        with pytest.raises(ConfigError):
            load_sync_config(tmp_path / "absent.toml")

    def test_bad_toml(self, tmp_path) -> None:
        path = tmp_path / "pubsync.toml"
        path.write_text("[sync\nmax_field_bytes = ", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_sync_config(path)

    def test_invalid_settings(self, tmp_path) -> None:
        path = tmp_path / "pubsync.toml"
        path.write_text("[sync]\nmax_field_bytes = -1\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_sync_config(path)

    def test_env_var(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "custom.toml"
        path.write_text('[sync]\nsource_literal = "pmc"\n', encoding="utf-8")
        monkeypatch.setenv("PUBSYNC_CONFIG", str(path))
        assert load_sync_config().source_literal == "pmc"

    def test_cwd_file(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "pubsync.toml").write_text("[sync]\nprogress_interval = 7\n", encoding="utf-8")
        monkeypatch.delenv("PUBSYNC_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert load_sync_config().progress_interval == 7

    def test_defaults_when_no_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("PUBSYNC_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert load_sync_config() == SyncConfig()

    def test_file_without_sync_table(self, tmp_path) -> None:
        path = tmp_path / "pubsync.toml"
        path.write_text('[other]\nkey = "value"\n', encoding="utf-8")
        assert load_sync_config(path) == SyncConfig()
