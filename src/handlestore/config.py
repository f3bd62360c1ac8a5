"""Store configuration.

Configuration can be built directly, from a mapping, from a YAML or JSON
file, or from ``HANDLESTORE_*`` environment variables.

Example:
    >>> config = StoreConfig.from_file("handlestore.yaml")
    >>> config.topics
    ('cache', 'images', 'gold', 'tmp')
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from handlestore.base import HandleStoreError

DEFAULT_TOPICS: tuple[str, ...] = ("cache", "images", "gold", "tmp")

ENV_PREFIX = "HANDLESTORE_"


class ConfigError(HandleStoreError):
    """Raised when configuration cannot be loaded."""

    pass


@dataclass
class StoreConfig:
    """Configuration for a LocalStore.

    Attributes:
        base_path: Root directory of the store.
        topics: Topic subdirectories opened on startup.
        dir_mode: Permission bits applied to every topic directory.
        tmp_topic: Topic that holds temporary directories.
        cache_topic: Topic served by a deferred manager by default.
        create_dirs: Whether to create the base directory if missing.
    """

    base_path: str = ".handlestore"
    topics: tuple[str, ...] = field(default_factory=lambda: DEFAULT_TOPICS)
    dir_mode: int = 0o775
    tmp_topic: str = "tmp"
    cache_topic: str = "cache"
    create_dirs: bool = True

    def __post_init__(self) -> None:
        self.topics = tuple(self.topics)
        if isinstance(self.dir_mode, str):
            self.dir_mode = int(self.dir_mode, 8)
        self.validate()

    def validate(self) -> None:
        """Validate configuration values."""
        if not self.base_path:
            raise ValueError("base_path must not be empty")
        if len(set(self.topics)) != len(self.topics):
            raise ValueError(f"topics must be unique: {self.topics}")
        for topic in self.topics:
            if not topic or os.sep in topic or topic in (".", ".."):
                raise ValueError(f"Invalid topic name: {topic!r}")
        if self.tmp_topic not in self.topics:
            raise ValueError(f"tmp_topic {self.tmp_topic!r} is not a configured topic")
        if self.cache_topic not in self.topics:
            raise ValueError(f"cache_topic {self.cache_topic!r} is not a configured topic")
        if not 0 <= self.dir_mode <= 0o7777:
            raise ValueError(f"dir_mode out of range: {oct(self.dir_mode)}")

    @property
    def base(self) -> Path:
        return Path(self.base_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_path": self.base_path,
            "topics": list(self.topics),
            "dir_mode": oct(self.dir_mode),
            "tmp_topic": self.tmp_topic,
            "cache_topic": self.cache_topic,
            "create_dirs": self.create_dirs,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoreConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "StoreConfig":
        """Load configuration from a YAML or JSON file.

        Args:
            path: Path to a ``.yaml``, ``.yml`` or ``.json`` file.
            **overrides: Values that take precedence over the file.

        Raises:
            ConfigError: If the file is missing, malformed or of an
                unsupported format.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()

        try:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif suffix == ".json":
                data = json.loads(content)
            else:
                raise ConfigError(f"Unsupported file format: {suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {path} must be a mapping")

        data.update(overrides)
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides: Any) -> "StoreConfig":
        """Load configuration from environment variables.

        ``HANDLESTORE_BASE_PATH``, ``HANDLESTORE_TOPICS`` (comma separated),
        ``HANDLESTORE_DIR_MODE`` (octal), ``HANDLESTORE_TMP_TOPIC`` and
        ``HANDLESTORE_CACHE_TOPIC`` are recognized.
        """
        data: dict[str, Any] = {}
        env = os.environ

        if f"{prefix}BASE_PATH" in env:
            data["base_path"] = env[f"{prefix}BASE_PATH"]
        if f"{prefix}TOPICS" in env:
            data["topics"] = tuple(
                t.strip() for t in env[f"{prefix}TOPICS"].split(",") if t.strip()
            )
        if f"{prefix}DIR_MODE" in env:
            data["dir_mode"] = env[f"{prefix}DIR_MODE"]
        if f"{prefix}TMP_TOPIC" in env:
            data["tmp_topic"] = env[f"{prefix}TMP_TOPIC"]
        if f"{prefix}CACHE_TOPIC" in env:
            data["cache_topic"] = env[f"{prefix}CACHE_TOPIC"]

        data.update(overrides)
        return cls.from_dict(data)
