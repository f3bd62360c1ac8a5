"""Tests for LocalStore."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

import pytest

from handlestore.base import (
    DoesNotExistError,
    NotADirectoryHandleError,
    TopicInitError,
)
from handlestore.config import DEFAULT_TOPICS, StoreConfig
from handlestore.managers import (
    DeferredFileManager,
    EphemeralFileManager,
    PermanentFileManager,
)
from handlestore.store import LocalStore


@pytest.fixture
def store(tmp_path: Path):
    store = LocalStore.open(tmp_path / "store")
    yield store
    store.close()


class TestLocalStoreInit:
    """Tests for store bootstrapping."""

    def test_creates_default_topics(self, tmp_path: Path) -> None:
        """Test that every default topic is created and opened."""
        base = tmp_path / "store"

        with LocalStore.open(base) as store:
            assert store.topics == list(DEFAULT_TOPICS)
            for topic in DEFAULT_TOPICS:
                assert (base / topic).is_dir()
                assert not store.topic(topic).closed

    def test_topic_permissions(self, store: LocalStore) -> None:
        """Test that topic directories get the configured mode."""
        for topic in store.topics:
            mode = stat.S_IMODE(os.stat(store.topic(topic).name).st_mode)
            assert mode == 0o775

    def test_reopen_existing(self, tmp_path: Path) -> None:
        """Test that an existing layout is reused."""
        base = tmp_path / "store"
        LocalStore.open(base).close()
        (base / "gold" / "kept.bin").write_bytes(b"x")

        with LocalStore.open(base) as store:
            assert os.listdir(store.topic("gold").name) == ["kept.bin"]

    def test_base_path_is_file(self, tmp_path: Path) -> None:
        """Test that a regular file at the base path is rejected."""
        base = tmp_path / "store"
        base.write_text("not a dir")

        with pytest.raises(NotADirectoryHandleError):
            LocalStore.open(base)

    def test_missing_base_without_create(self, tmp_path: Path) -> None:
        """Test create_dirs=False with a missing base path."""
        with pytest.raises(DoesNotExistError):
            LocalStore.open(tmp_path / "missing", create_dirs=False)

    def test_topic_failure_is_aggregated(self, tmp_path: Path, caplog) -> None:
        """Test that failed topics are logged and reported together."""
        base = tmp_path / "store"
        base.mkdir()
        (base / "images").write_text("blocking file")
        (base / "gold").write_text("blocking file")

        with caplog.at_level(logging.ERROR, logger="handlestore"):
            with pytest.raises(TopicInitError) as exc_info:
                LocalStore.open(base)

        assert exc_info.value.failed == ["images", "gold"]
        assert "Unable to initialize store topic images" in caplog.text
        assert "Unable to initialize store topic gold" in caplog.text

    def test_custom_topics(self, tmp_path: Path) -> None:
        """Test a store with a custom topic list."""
        config = StoreConfig(
            base_path=str(tmp_path / "store"),
            topics=("blobs", "scratch", "slots"),
            tmp_topic="scratch",
            cache_topic="slots",
        )

        with LocalStore(config) as store:
            assert store.topics == ["blobs", "scratch", "slots"]
            with pytest.raises(DoesNotExistError):
                store.topic("images")


class TestLocalStoreManagers:
    """Tests for managers handed out by the store."""

    def test_manager_kinds(self, store: LocalStore) -> None:
        """Test that each kind maps to the right manager."""
        permanent = store.manager("gold")
        ephemeral = store.manager("tmp", kind="temporary")
        cache = store.cache()

        assert isinstance(permanent, PermanentFileManager)
        assert isinstance(ephemeral, EphemeralFileManager)
        assert isinstance(cache, DeferredFileManager)
        assert permanent.path == store.topic("gold").name
        assert cache.path == store.topic("cache").name

        for mgr in (permanent, ephemeral, cache):
            mgr.close()

    def test_manager_owns_its_root(self, store: LocalStore) -> None:
        """Test that closing a manager leaves the store's topic open."""
        mgr = store.manager("images")
        mgr.close()

        assert mgr.root.closed
        assert not store.topic("images").closed

    def test_manager_round_trip(self, store: LocalStore) -> None:
        """Test writing through one manager and reading through another."""
        writer = store.manager("images")
        with writer.scoped("cover.png") as stream:
            stream.write(b"\x89PNG")
        writer.close()

        reader = store.manager("images")
        with reader.scoped("cover.png", create=False) as stream:
            assert stream.read() == b"\x89PNG"
        reader.close()


class TestTemporaryDir:
    """Tests for temporary_dir()."""

    def test_temporary_dir_cleans_up(self, store: LocalStore) -> None:
        """Test that the directory and unreleased files are removed."""
        tmp_root = Path(store.topic("tmp").name)

        with store.temporary_dir("render-") as scratch:
            workdir = Path(scratch.path)
            assert workdir.parent == tmp_root
            assert workdir.name.startswith("render-")
            stream, _ = scratch.new("frame")
            stream.write(b"pixels")
            assert Path(stream.name).exists()

        assert not workdir.exists()
        assert stream.closed
        assert list(tmp_root.iterdir()) == []

    def test_temporary_dir_cleans_up_on_error(self, store: LocalStore) -> None:
        """Test cleanup when the block raises."""
        with pytest.raises(RuntimeError):
            with store.temporary_dir() as scratch:
                workdir = Path(scratch.path)
                scratch.new("frame")
                raise RuntimeError("render failed")

        assert not workdir.exists()

    def test_purge_temporary(self, store: LocalStore) -> None:
        """Test removing leftovers from the tmp topic."""
        tmp_root = Path(store.topic("tmp").name)
        (tmp_root / "orphan-dir").mkdir()
        (tmp_root / "orphan-dir" / "file").write_bytes(b"x")
        (tmp_root / "orphan-file").write_bytes(b"x")

        removed = store.purge_temporary()

        assert removed == ["orphan-dir", "orphan-file"]
        assert list(tmp_root.iterdir()) == []


class TestLocalStoreClose:
    """Tests for close()."""

    def test_close_closes_topics(self, tmp_path: Path) -> None:
        """Test that close() releases every directory handle."""
        store = LocalStore.open(tmp_path / "store")
        handles = [store.topic(t) for t in store.topics]

        store.close()

        assert all(h.closed for h in handles)
        assert store.topics == []

    def test_close_twice(self, tmp_path: Path) -> None:
        """Test that a second close is a no-op."""
        store = LocalStore.open(tmp_path / "store")
        store.close()
        store.close()
