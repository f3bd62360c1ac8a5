"""Lazily materialized on-disk resources.

A ScopedResource is bound to a backing path when it is reserved, before
any content exists there. Content arrives later, either written by the
caller after the file appears or linked in from an externally produced
file with ``use()``. Stream access is only allowed while the resource is
loaded.

State machine::

    RESERVED --load()/use()--> LOADED --unload()--> RESERVED
        |                        |
        +-------close()----------+--> CLOSED (terminal, file removed)
"""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from typing import IO

from handlestore.base import (
    AlreadyExistsError,
    AlreadyLoadedError,
    HandleStoreError,
    LinkFailedError,
    NotAFileError,
    NotInitializedError,
    NotLoadedError,
    PathLike,
    ResourceClosedError,
    Source,
    source_path,
)

logger = logging.getLogger(__name__)


class ResourceState(str, Enum):
    """Materialization state of a ScopedResource."""

    RESERVED = "reserved"
    LOADED = "loaded"
    CLOSED = "closed"


class ScopedResource:
    """A named on-disk object that may be reserved before it exists.

    Example:
        >>> resource = ScopedResource.reserve("/store/cache/result-42")
        >>> resource.use(produced_file)
        >>> resource.read()
        b'...'
        >>> resource.close()  # removes /store/cache/result-42
    """

    def __init__(self, path: PathLike, name: str | None = None) -> None:
        self._path = os.path.abspath(os.fspath(path))
        self._name = name or os.path.basename(self._path)
        self._state = ResourceState.RESERVED
        self._handle: IO[bytes] | None = None

    @classmethod
    def reserve(cls, path: PathLike, name: str | None = None) -> "ScopedResource":
        """Reserve a path whose content does not exist yet.

        Args:
            path: Backing path. Fixed for the life of the resource.
            name: Logical name. Defaults to the path's basename.

        Raises:
            AlreadyExistsError: If anything already exists at the path.
        """
        if os.path.lexists(path):
            raise AlreadyExistsError(path)
        return cls(path, name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        return self._path

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is ResourceState.LOADED

    @property
    def closed(self) -> bool:
        return self._state is ResourceState.CLOSED

    # -------------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """Open the backing path and become LOADED.

        The file is opened read/write, or read-only when the caller lacks
        write permission on it.

        Raises:
            AlreadyLoadedError: If a handle is already live.
            ResourceClosedError: If the resource was closed.
            NotInitializedError: If nothing exists at the backing path yet.
            NotAFileError: If the backing path is a directory.
            HandleStoreError: If the backing file cannot be opened at all.
        """
        if self._state is ResourceState.LOADED:
            raise AlreadyLoadedError(self._name)
        if self._state is ResourceState.CLOSED:
            raise ResourceClosedError(self._name)

        try:
            handle = self._open_backing()
        except FileNotFoundError as e:
            raise NotInitializedError(self._name) from e
        except IsADirectoryError as e:
            raise NotAFileError(
                self._path, "Resource has been initialized with a directory, not a file"
            ) from e
        except OSError as e:
            raise HandleStoreError(f"Unable to open resource {self._name}: {e}") from e

        if stat.S_ISDIR(os.fstat(handle.fileno()).st_mode):
            handle.close()
            raise NotAFileError(
                self._path, "Resource has been initialized with a directory, not a file"
            )

        self._handle = handle
        self._state = ResourceState.LOADED

    def _open_backing(self) -> IO[bytes]:
        try:
            return open(self._path, "r+b")
        except PermissionError:
            return open(self._path, "rb")

    def unload(self) -> None:
        """Close the live handle without touching the backing file."""
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                logger.warning(f"Unable to close handle for {self._name} during unload: {e}")
        self._handle = None
        if self._state is ResourceState.LOADED:
            self._state = ResourceState.RESERVED

    def use(self, source: Source) -> None:
        """Hard-link externally produced content onto the reserved path, then load.

        The source stays owned by whoever produced it; only the linked
        path belongs to this resource. If the linked file cannot be
        loaded, the link is removed and the resource stays RESERVED.

        Args:
            source: Open file object or path of the produced file.

        Raises:
            LinkFailedError: If the link cannot be created (target exists,
                cross-device, permissions).
        """
        src = source_path(source)
        try:
            os.link(src, self._path)
        except OSError as e:
            raise LinkFailedError(src, self._path, e.strerror or str(e)) from e

        try:
            self.load()
        except HandleStoreError:
            try:
                os.remove(self._path)
            except OSError as remove_error:
                logger.warning(f"Unable to remove linked file {self._path} during error: {remove_error}")
            raise

    # -------------------------------------------------------------------------
    # Stream access
    # -------------------------------------------------------------------------

    def _live(self) -> IO[bytes]:
        if self._handle is None:
            raise NotLoadedError(self._name)
        return self._handle

    def read(self, size: int = -1) -> bytes:
        return self._live().read(size)

    def write(self, data: bytes) -> int:
        return self._live().write(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._live().seek(offset, whence)

    def tell(self) -> int:
        return self._live().tell()

    def flush(self) -> None:
        self._live().flush()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the handle and remove the backing file.

        A missing backing file means the resource is already gone and is
        not an error, so a second call is a no-op.

        Raises:
            NotAFileError: If a directory sits at the backing path.
            OSError: If the file exists but cannot be removed.
        """
        if self._state is ResourceState.CLOSED:
            return

        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                logger.warning(f"Error closing resource {self._name}: {e}")
            self._handle = None
            self._state = ResourceState.RESERVED

        try:
            st = os.lstat(self._path)
        except FileNotFoundError:
            self._state = ResourceState.CLOSED
            return

        if stat.S_ISDIR(st.st_mode):
            raise NotAFileError(self._path, "Resource is a directory and not a file")

        os.remove(self._path)
        self._state = ResourceState.CLOSED

    def __repr__(self) -> str:
        return f"ScopedResource({self._name!r}, {self._state.value})"
