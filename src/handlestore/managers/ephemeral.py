"""Manager for auto-named temporary files."""

from __future__ import annotations

import itertools
import logging
import os
import tempfile
from typing import IO

from handlestore.base import BaseManager, DirectoryHandle, ReleaseToken
from handlestore.table import HandleTable

logger = logging.getLogger(__name__)


def _discard_file(index: int, handle: IO[bytes]) -> None:
    path = handle.name
    try:
        handle.close()
    except OSError as e:
        logger.warning(f"Error closing temporary file #{index} ({path}): {e}")

    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Error removing temporary file #{index} ({path}): {e}")


class EphemeralFileManager(BaseManager):
    """Uniquely named scratch files that are deleted on release.

    There is no reopen by name: names are generated. Entries are keyed by
    a sequence number that is never reused, so tokens from released files
    cannot reach a newer file.

    Example:
        >>> mgr = EphemeralFileManager(DirectoryHandle.open(tmp_dir))
        >>> stream, release = mgr.new("scratch")
        >>> stream.name
        '/store/tmp/scratchk2j4_8xq'
        >>> release()  # closes and deletes it
    """

    def __init__(self, root: DirectoryHandle) -> None:
        super().__init__(root)
        self._sequence = itertools.count(1)

    def _create_table(self) -> HandleTable[int, IO[bytes]]:
        return HandleTable(_discard_file, label="temporary file")

    def new(self, name: str) -> tuple[IO[bytes], ReleaseToken]:
        """Create a uniquely suffixed file whose name starts with ``name``.

        Args:
            name: Prefix of the generated file name.

        Returns:
            The open read/write stream and its release token.
        """
        self._check_open()
        fd, path = tempfile.mkstemp(dir=self._root.name, prefix=name)
        handle = open(path, "r+b", opener=lambda _path, _flags: fd)

        index = next(self._sequence)
        self._table.insert(index, handle)
        logger.debug(f"Allocated temporary file #{index}: {path}")
        return handle, ReleaseToken(index, self._table)
