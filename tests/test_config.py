"""Tests for StoreConfig."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from handlestore.config import DEFAULT_TOPICS, ConfigError, StoreConfig


class TestStoreConfig:
    """Tests for construction and validation."""

    def test_defaults(self) -> None:
        """Test default configuration."""
        config = StoreConfig()

        assert config.topics == DEFAULT_TOPICS
        assert config.dir_mode == 0o775
        assert config.tmp_topic == "tmp"
        assert config.cache_topic == "cache"

    def test_topics_list_is_normalized(self) -> None:
        """Test that a list of topics becomes a tuple."""
        config = StoreConfig(topics=["tmp", "cache", "blobs"])
        assert config.topics == ("tmp", "cache", "blobs")

    def test_octal_string_mode(self) -> None:
        """Test parsing an octal string mode."""
        assert StoreConfig(dir_mode="0o750").dir_mode == 0o750
        assert StoreConfig(dir_mode="700").dir_mode == 0o700

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"base_path": ""},
            {"topics": ("tmp", "tmp", "cache")},
            {"topics": ("tmp", "cache", "a/b")},
            {"topics": ("cache",)},
            {"tmp_topic": "scratch"},
            {"cache_topic": "slots"},
            {"dir_mode": 0o17777},
        ],
    )
    def test_invalid_values(self, kwargs) -> None:
        """Test that invalid values raise ValueError."""
        with pytest.raises(ValueError):
            StoreConfig(**kwargs)

    def test_from_dict_ignores_unknown(self) -> None:
        """Test that unknown keys are dropped."""
        config = StoreConfig.from_dict({"base_path": "/srv/store", "color": "blue"})
        assert config.base_path == "/srv/store"

    def test_to_dict_round_trip(self) -> None:
        """Test that to_dict output rebuilds the same config."""
        config = StoreConfig(base_path="/srv/store", dir_mode=0o700)
        assert StoreConfig.from_dict(config.to_dict()) == config


class TestStoreConfigFiles:
    """Tests for file and environment loading."""

    def test_from_yaml(self, tmp_path: Path) -> None:
        """Test loading YAML."""
        path = tmp_path / "handlestore.yaml"
        path.write_text(
            "base_path: /srv/store\n"
            "topics: [cache, tmp, blobs]\n"
            "dir_mode: '0o770'\n"
        )

        config = StoreConfig.from_file(path)

        assert config.base_path == "/srv/store"
        assert config.topics == ("cache", "tmp", "blobs")
        assert config.dir_mode == 0o770

    def test_from_json_with_override(self, tmp_path: Path) -> None:
        """Test loading JSON with an override."""
        path = tmp_path / "handlestore.json"
        path.write_text(json.dumps({"base_path": "/srv/store"}))

        config = StoreConfig.from_file(path, base_path="/elsewhere")

        assert config.base_path == "/elsewhere"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            StoreConfig.from_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path: Path) -> None:
        """Test that unknown suffixes are rejected."""
        path = tmp_path / "handlestore.ini"
        path.write_text("[store]")

        with pytest.raises(ConfigError, match="Unsupported"):
            StoreConfig.from_file(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        """Test that parse errors become ConfigError."""
        path = tmp_path / "handlestore.yaml"
        path.write_text("topics: [cache, tmp\n")

        with pytest.raises(ConfigError, match="Failed to parse"):
            StoreConfig.from_file(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        """Test that a top-level list is rejected."""
        path = tmp_path / "handlestore.yaml"
        path.write_text("- cache\n- tmp\n")

        with pytest.raises(ConfigError, match="mapping"):
            StoreConfig.from_file(path)

    def test_from_env(self, monkeypatch) -> None:
        """Test loading from environment variables."""
        monkeypatch.setenv("HANDLESTORE_BASE_PATH", "/srv/env-store")
        monkeypatch.setenv("HANDLESTORE_TOPICS", "cache, tmp, blobs")
        monkeypatch.setenv("HANDLESTORE_DIR_MODE", "750")

        config = StoreConfig.from_env()

        assert config.base_path == "/srv/env-store"
        assert config.topics == ("cache", "tmp", "blobs")
        assert config.dir_mode == 0o750
