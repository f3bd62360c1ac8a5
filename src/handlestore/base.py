"""Base classes and interfaces for handle managers.

This module defines the exception taxonomy, the owning directory handle
every manager is rooted at, the release token returned with each acquired
resource, and the abstract manager contract shared by the permanent,
ephemeral and deferred variants.
"""

from __future__ import annotations

import os
import stat
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Iterator, Union

if TYPE_CHECKING:
    from handlestore.table import EntryCloseFailure, HandleTable

PathLike = Union[str, "os.PathLike[str]"]
Source = Union[BinaryIO, PathLike]


# =============================================================================
# Exceptions
# =============================================================================


class HandleStoreError(Exception):
    """Base exception for all handle store errors."""

    pass


class AlreadyExistsError(HandleStoreError):
    """Raised when a path that must be absent already exists."""

    def __init__(self, path: PathLike) -> None:
        self.path = str(path)
        super().__init__(f"File already exists: {self.path}")


class DoesNotExistError(HandleStoreError):
    """Raised when a path that must be present does not exist."""

    def __init__(self, path: PathLike) -> None:
        self.path = str(path)
        super().__init__(f"File does not exist: {self.path}")


class NotAFileError(HandleStoreError):
    """Raised when a regular file was expected but something else was found."""

    def __init__(self, path: PathLike, message: str | None = None) -> None:
        self.path = str(path)
        super().__init__(message or f"Not a regular file: {self.path}")


class IsDirectoryError(NotAFileError):
    """Raised when a directory is handed to an operation that manages files."""

    def __init__(self, path: PathLike) -> None:
        super().__init__(path, f"Unable to manage a directory: {path}")


class NotADirectoryHandleError(NotAFileError):
    """Raised when a manager root or store path is not a directory."""

    def __init__(self, path: PathLike) -> None:
        super().__init__(path, f"Path exists and is not a directory: {path}")


class NotLoadedError(HandleStoreError):
    """Raised on stream access to a resource that has no live handle."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Resource has not been loaded: {name}")


class ResourceClosedError(NotLoadedError):
    """Raised when a closed resource is asked to load again."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Resource has been closed: {name}")


class AlreadyLoadedError(HandleStoreError):
    """Raised when loading a resource that is already loaded."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Resource is already loaded: {name}")


class NotInitializedError(HandleStoreError):
    """Raised when a reserved resource is loaded before its content exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Resource is allocated but not initialized: {name}")


class DuplicateNameError(HandleStoreError):
    """Raised when adopting a file under a name that is already tracked."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unable to manage file with duplicate name: {name}")


class LinkFailedError(HandleStoreError):
    """Raised when hard-linking external content into a manager fails."""

    def __init__(self, source: PathLike, target: PathLike, reason: str) -> None:
        self.source = str(source)
        self.target = str(target)
        super().__init__(f"Unable to link {self.source} to {self.target}: {reason}")


class CloseFailureError(HandleStoreError):
    """Raised when an owning directory handle fails to close."""

    def __init__(self, path: PathLike, reason: str) -> None:
        self.path = str(path)
        super().__init__(f"Unable to close directory handle {self.path}: {reason}")


class ManagerClosedError(HandleStoreError):
    """Raised when acquiring from a manager whose root has been closed."""

    def __init__(self, path: PathLike) -> None:
        self.path = str(path)
        super().__init__(f"Manager has been closed: {self.path}")


class UnsupportedOperationError(HandleStoreError):
    """Raised when a manager variant does not implement an operation."""

    pass


class TopicInitError(HandleStoreError):
    """Raised when one or more store topics could not be opened."""

    def __init__(self, failed: list[str]) -> None:
        self.failed = failed
        super().__init__(f"Error opening the following topics: {', '.join(failed)}")


# =============================================================================
# Filesystem helpers
# =============================================================================


def source_path(source: Source) -> str:
    """Resolve the filesystem path behind an open file object or a path."""
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    name = getattr(source, "name", None)
    if not isinstance(name, str):
        raise HandleStoreError(f"Unable to determine the path of {source!r}")
    return name


def source_is_dir(source: Source) -> bool:
    """Stat an open file object (by descriptor) or a path and report S_ISDIR."""
    if isinstance(source, (str, os.PathLike)):
        st = os.stat(source)
    else:
        st = os.fstat(source.fileno())
    return stat.S_ISDIR(st.st_mode)


# =============================================================================
# Directory handle
# =============================================================================


class DirectoryHandle:
    """Owning reference to an open directory.

    Managers never create their own root: they are handed one of these
    by the store and keep it open for their whole lifetime.

    Example:
        >>> root = DirectoryHandle.open("/var/lib/app/cache")
        >>> root.name
        '/var/lib/app/cache'
        >>> root.close()
    """

    def __init__(self, path: PathLike, fd: int) -> None:
        self._path = os.path.abspath(os.fspath(path))
        self._fd: int | None = fd

    @classmethod
    def open(cls, path: PathLike) -> "DirectoryHandle":
        """Open an existing directory.

        Raises:
            DoesNotExistError: If nothing exists at the path.
            NotADirectoryHandleError: If the path is not a directory.
        """
        try:
            fd = os.open(os.fspath(path), os.O_RDONLY | os.O_DIRECTORY)
        except FileNotFoundError as e:
            raise DoesNotExistError(path) from e
        except NotADirectoryError as e:
            raise NotADirectoryHandleError(path) from e
        return cls(path, fd)

    @property
    def name(self) -> str:
        """Absolute path of the directory."""
        return self._path

    @property
    def path(self) -> Path:
        return Path(self._path)

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        if self._fd is None:
            raise ValueError(f"Directory handle is closed: {self._path}")
        return self._fd

    def join(self, name: str) -> str:
        return os.path.join(self._path, name)

    def close(self) -> None:
        """Close the descriptor. A second call is a no-op.

        Raises:
            CloseFailureError: If the descriptor could not be closed.
        """
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            os.close(fd)
        except OSError as e:
            raise CloseFailureError(self._path, str(e)) from e

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"DirectoryHandle({self._path!r}, {state})"


# =============================================================================
# Release token
# =============================================================================


@dataclass(frozen=True)
class ReleaseToken:
    """One-shot capability that relinquishes one entry of one table.

    Calling the token removes its key from the owning table and tears the
    resource down. Calling it again logs a warning and does nothing.

    Attributes:
        key: Table key the token is bound to.
        table: The table that owns the resource.
    """

    key: Any
    table: "HandleTable[Any, Any]"

    def __call__(self) -> None:
        self.table.release(self.key)

    def __repr__(self) -> str:
        return f"ReleaseToken({self.key!r})"


# =============================================================================
# Abstract manager
# =============================================================================


class BaseManager(ABC):
    """Abstract base class for all handle managers.

    A manager exclusively owns its root DirectoryHandle and every entry in
    its table. It is not thread-safe: callers serialize access to a given
    instance.

    Example:
        >>> with PermanentFileManager(DirectoryHandle.open(root)) as mgr:
        ...     stream, release = mgr.new("report.bin")
        ...     stream.write(b"data")
        ...     release()
    """

    def __init__(self, root: DirectoryHandle) -> None:
        """Initialize the manager.

        Args:
            root: Open directory handle the manager is rooted at.
        """
        if root.closed:
            raise HandleStoreError(f"Manager root is closed: {root.name}")
        self._root = root
        self._table = self._create_table()

    @abstractmethod
    def _create_table(self) -> "HandleTable[Any, Any]":
        """Create the table with this variant's finalizer."""
        pass

    @property
    def root(self) -> DirectoryHandle:
        return self._root

    @property
    def table(self) -> "HandleTable[Any, Any]":
        return self._table

    @property
    def path(self) -> str:
        """Root directory path of this manager."""
        return self._root.name

    # -------------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------------

    @abstractmethod
    def new(self, name: str) -> tuple[Any, ReleaseToken]:
        """Acquire a new resource, or the tracked one for a known name.

        Args:
            name: Logical name (or prefix, for ephemeral managers).

        Returns:
            The live stream and the release token bound to it.
        """
        pass

    def open(self, name: str) -> tuple[Any, ReleaseToken]:
        """Acquire an existing resource by name.

        Raises:
            UnsupportedOperationError: For variants without reopen semantics.
        """
        raise UnsupportedOperationError(
            f"{type(self).__name__} does not support opening by name"
        )

    def _check_open(self) -> None:
        if self._root.closed:
            raise ManagerClosedError(self._root.name)

    def _tracked(self, name: str) -> tuple[Any, ReleaseToken] | None:
        self._check_open()
        resource = self._table.get(name)
        if resource is None:
            return None
        return resource, ReleaseToken(name, self._table)

    @contextmanager
    def scoped(self, name: str, create: bool = True) -> Iterator[Any]:
        """Acquire a resource for the duration of a block.

        Args:
            name: Logical name to acquire.
            create: Use ``new`` when True, ``open`` otherwise.

        Yields:
            The live stream. It is released when the block exits.
        """
        stream, release = self.new(name) if create else self.open(name)
        try:
            yield stream
        finally:
            release()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> list["EntryCloseFailure"]:
        """Close every tracked entry, then the root handle.

        Entry failures are logged and returned; they never stop the loop.
        The root handle is closed even if entries failed.

        Returns:
            Records of the entries that failed to close.

        Raises:
            CloseFailureError: If the root handle fails to close.
        """
        failures = self._table.close_all()
        self._root.close()
        return failures

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __enter__(self) -> "BaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r}, entries={len(self._table)})"
