"""Local on-disk store.

The store owns a base directory and one subdirectory per topic. It keeps
a directory handle open for each, and hands managers a fresh handle on a
topic so each manager exclusively owns its root.

Example:
    >>> with LocalStore.open("/var/lib/app/store") as store:
    ...     images = store.manager("images")
    ...     stream, release = images.new("cover.png")
    ...     ...
    ...     with store.temporary_dir("render-") as scratch:
    ...         tmp, done = scratch.new("frame")
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Any, Iterator

from handlestore.base import (
    BaseManager,
    CloseFailureError,
    DirectoryHandle,
    DoesNotExistError,
    HandleStoreError,
    NotADirectoryHandleError,
    TopicInitError,
)
from handlestore.config import StoreConfig
from handlestore.factory import get_manager
from handlestore.managers.ephemeral import EphemeralFileManager

logger = logging.getLogger(__name__)


class LocalStore:
    """Base directory plus its topic subdirectories."""

    def __init__(self, config: StoreConfig | None = None) -> None:
        """Open (and if needed create) the store.

        Args:
            config: Store configuration. If None, uses default configuration.

        Raises:
            NotADirectoryHandleError: If the base path is not a directory.
            TopicInitError: If any topic could not be opened.
        """
        self._config = config or StoreConfig()
        self._base = os.path.abspath(self._config.base_path)
        self._topics: dict[str, DirectoryHandle] = {}

        self._prepare_base()
        self._handle = DirectoryHandle.open(self._base)

        try:
            self._open_topics()
        except HandleStoreError:
            self.close()
            raise

    @classmethod
    def open(cls, base_path: str | os.PathLike[str], **overrides: Any) -> "LocalStore":
        """Open a store at ``base_path`` with default configuration."""
        return cls(StoreConfig(base_path=os.fspath(base_path), **overrides))

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def path(self) -> str:
        return self._base

    @property
    def topics(self) -> list[str]:
        return [t for t in self._config.topics if t in self._topics]

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def _prepare_base(self) -> None:
        if os.path.isdir(self._base):
            return
        if os.path.lexists(self._base):
            raise NotADirectoryHandleError(self._base)
        if not self._config.create_dirs:
            raise DoesNotExistError(self._base)
        try:
            os.makedirs(self._base, mode=self._config.dir_mode, exist_ok=True)
        except OSError as e:
            raise HandleStoreError(f"Unable to create work directory {self._base}: {e}") from e

    def _open_topics(self) -> None:
        errors: list[str] = []

        for topic in self._config.topics:
            path = os.path.join(self._base, topic)

            if not os.path.lexists(path):
                try:
                    os.mkdir(path)
                except OSError as e:
                    errors.append(f"Unable to initialize store topic {topic}: {e}")
                    continue
            elif not os.path.isdir(path):
                errors.append(f"Unable to initialize store topic {topic}: not a directory")
                continue

            try:
                os.chmod(path, self._config.dir_mode)
            except OSError as e:
                errors.append(f"Unable to set permissions on store topic {topic}: {e}")
                continue

            try:
                self._topics[topic] = DirectoryHandle.open(path)
            except HandleStoreError as e:
                errors.append(f"Unable to open store topic {topic}: {e}")

        if not errors:
            return

        for message in errors:
            logger.error(message)

        failed = [t for t in self._config.topics if t not in self._topics]
        raise TopicInitError(failed)

    # -------------------------------------------------------------------------
    # Topics and managers
    # -------------------------------------------------------------------------

    def topic(self, name: str) -> DirectoryHandle:
        """Get the store's open handle on a topic directory.

        Raises:
            DoesNotExistError: If the topic is not open in this store.
        """
        handle = self._topics.get(name)
        if handle is None:
            raise DoesNotExistError(os.path.join(self._base, name))
        return handle

    def manager(self, topic: str, kind: str = "permanent") -> BaseManager:
        """Create a manager rooted at a topic.

        The manager gets its own directory handle, so closing it leaves the
        store's topic handle open.

        Args:
            topic: Topic name.
            kind: Manager variant, see :func:`handlestore.factory.get_manager`.
        """
        root = DirectoryHandle.open(self.topic(topic).name)
        try:
            return get_manager(kind, root)
        except HandleStoreError:
            root.close()
            raise

    def cache(self) -> BaseManager:
        """Deferred manager on the configured cache topic."""
        return self.manager(self._config.cache_topic, kind="deferred")

    @contextmanager
    def temporary_dir(self, prefix: str = "") -> Iterator[EphemeralFileManager]:
        """Scope an ephemeral manager to a fresh directory under the tmp topic.

        On exit the manager is closed (errors logged) and the directory is
        removed along with anything left in it.

        Args:
            prefix: Prefix of the generated directory name.

        Yields:
            An ephemeral manager rooted at the new directory.
        """
        base = self.topic(self._config.tmp_topic).name
        temporary_path = tempfile.mkdtemp(dir=base, prefix=prefix)

        try:
            mgr = EphemeralFileManager(DirectoryHandle.open(temporary_path))
        except HandleStoreError:
            shutil.rmtree(temporary_path, ignore_errors=True)
            raise

        try:
            yield mgr
        finally:
            try:
                mgr.close()
            except CloseFailureError as e:
                logger.error(f"Unable to close file manager: {e}")
            shutil.rmtree(temporary_path)

    def purge_temporary(self) -> list[str]:
        """Remove every leftover entry in the tmp topic.

        Returns:
            Names that were removed.
        """
        base = self.topic(self._config.tmp_topic).name
        removed: list[str] = []

        for entry in sorted(os.listdir(base)):
            path = os.path.join(base, entry)
            try:
                if os.path.isdir(path) and not os.path.islink(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
                removed.append(entry)
            except OSError as e:
                logger.warning(f"Unable to remove temporary entry {path}: {e}")

        return removed

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close topic handles, then the base handle.

        Raises:
            CloseFailureError: If the base handle fails to close.
        """
        for topic, handle in self._topics.items():
            try:
                handle.close()
            except CloseFailureError as e:
                logger.warning(f"Error closing storage topic {topic}: {e}")
        self._topics.clear()

        try:
            self._handle.close()
        except CloseFailureError as e:
            logger.warning(f"There was an issue trying to close the local storage: {e}")
            raise

    def __enter__(self) -> "LocalStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LocalStore({self._base!r}, topics={self.topics})"
