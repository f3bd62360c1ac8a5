"""In-memory handle table.

Each manager owns exactly one table mapping a key (a logical name, or a
sequence number for ephemeral files) to the live resource issued for it.
The table is the only place resources are inserted and removed, and it
knows how to tear one entry down through the finalizer its manager
supplies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterator, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Finalizer = Callable[[K, V], None]


@dataclass(frozen=True)
class EntryCloseFailure:
    """An entry that failed to close during bulk teardown.

    Attributes:
        key: Table key of the entry.
        error: The exception raised while finalizing it.
    """

    key: Hashable
    error: BaseException


class HandleTable(Generic[K, V]):
    """Mapping from key to live resource, owned by a single manager.

    Not thread-safe. At most one resource is tracked per key.

    Example:
        >>> table = HandleTable(lambda key, f: f.close(), label="file")
        >>> table.insert("a.bin", open("a.bin", "w+b"))
        >>> table.release("a.bin")
        >>> table.release("a.bin")  # logs a warning, no-op
    """

    def __init__(self, finalize: Finalizer[K, V], label: str = "file") -> None:
        """Initialize the table.

        Args:
            finalize: Tears one entry down (close, and delete if the
                variant requires it). May raise; the table logs.
            label: Noun used in log messages.
        """
        self._entries: dict[K, V] = {}
        self._finalize = finalize
        self._label = label

    def get(self, key: K) -> V | None:
        return self._entries.get(key)

    def insert(self, key: K, resource: V) -> None:
        if key in self._entries:
            raise KeyError(f"Key already tracked: {key!r}")
        self._entries[key] = resource

    def release(self, key: K) -> None:
        """Remove an entry and finalize it.

        Missing keys (already released, or never inserted) are logged at
        warning level and otherwise ignored. Finalizer failures are logged,
        never raised.
        """
        resource = self._entries.pop(key, None)
        if resource is None:
            logger.warning(f"Unable to release already closed {self._label}: {key}")
            return

        try:
            self._finalize(key, resource)
        except Exception as e:
            logger.warning(f"Error releasing {self._label} {key}: {e}")

    def close_all(self) -> list[EntryCloseFailure]:
        """Finalize every entry and empty the table.

        One entry's failure never prevents the rest from closing.

        Returns:
            The entries that failed, in iteration order.
        """
        failures: list[EntryCloseFailure] = []
        entries, self._entries = self._entries, {}

        for key, resource in entries.items():
            try:
                self._finalize(key, resource)
            except Exception as e:
                logger.warning(f"Unable to close {self._label} {key}: {e}")
                failures.append(EntryCloseFailure(key=key, error=e))

        return failures

    def keys(self) -> list[K]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))
