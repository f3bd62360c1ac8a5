"""Manager for named files that persist under a root directory."""

from __future__ import annotations

import logging
import os
from typing import IO

from handlestore.base import (
    AlreadyExistsError,
    BaseManager,
    DoesNotExistError,
    DuplicateNameError,
    HandleStoreError,
    IsDirectoryError,
    LinkFailedError,
    NotAFileError,
    ReleaseToken,
    Source,
    source_is_dir,
    source_path,
)
from handlestore.table import HandleTable

logger = logging.getLogger(__name__)


def _close_file(name: str, handle: IO[bytes]) -> None:
    handle.close()


class PermanentFileManager(BaseManager):
    """Named files that outlive their handles.

    Releasing a handle closes it; the file stays on disk. ``new`` requires
    the name to be absent, ``open`` requires it to be present.

    Example:
        >>> mgr = PermanentFileManager(DirectoryHandle.open(images_dir))
        >>> stream, release = mgr.new("thumb.png")
        >>> stream.write(png_bytes)
        >>> release()
        >>> stream, release = mgr.open("thumb.png")
    """

    def _create_table(self) -> HandleTable[str, IO[bytes]]:
        return HandleTable(_close_file, label="file")

    def new(self, name: str) -> tuple[IO[bytes], ReleaseToken]:
        """Create a new file under the root, opened read/write.

        Raises:
            AlreadyExistsError: If the target path exists.
        """
        tracked = self._tracked(name)
        if tracked is not None:
            return tracked

        path = self._root.join(name)
        try:
            handle = open(path, "x+b")
        except FileExistsError as e:
            raise AlreadyExistsError(path) from e

        self._table.insert(name, handle)
        return handle, ReleaseToken(name, self._table)

    def open(self, name: str) -> tuple[IO[bytes], ReleaseToken]:
        """Open an existing file under the root for reading.

        Raises:
            DoesNotExistError: If the target path is absent.
            NotAFileError: If the target path is a directory.
        """
        tracked = self._tracked(name)
        if tracked is not None:
            return tracked

        path = self._root.join(name)
        try:
            handle = open(path, "rb")
        except FileNotFoundError as e:
            raise DoesNotExistError(path) from e
        except IsADirectoryError as e:
            raise NotAFileError(path) from e

        self._table.insert(name, handle)
        return handle, ReleaseToken(name, self._table)

    def add(self, source: Source, name: str) -> tuple[IO[bytes], ReleaseToken]:
        """Adopt an external file by hard-linking it under the root.

        The source file remains owned by its producer.

        Args:
            source: Open file object or path of the file to adopt.
            name: Name to manage it under.

        Raises:
            DuplicateNameError: If the name is already tracked.
            IsDirectoryError: If the source is a directory.
            LinkFailedError: If the hard link cannot be created.
            HandleStoreError: If the linked file cannot be opened; the
                link is removed first.
        """
        self._check_open()
        if name in self._table:
            raise DuplicateNameError(name)

        src = source_path(source)
        if source_is_dir(source):
            raise IsDirectoryError(src)

        path = self._root.join(name)
        try:
            os.link(src, path)
        except OSError as e:
            raise LinkFailedError(src, path, e.strerror or str(e)) from e

        try:
            handle = open(path, "rb")
        except OSError as e:
            try:
                os.remove(path)
            except OSError as remove_error:
                logger.warning(f"Unable to remove linked file {path} during error: {remove_error}")
            raise HandleStoreError(f"Unable to open linked file {path}: {e}") from e

        self._table.insert(name, handle)
        return handle, ReleaseToken(name, self._table)
