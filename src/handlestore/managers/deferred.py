"""Manager for reserved ("cache") resources.

A cache slot is reserved by name before its content exists. The slot can
be handed to a producer, populated later with ``ScopedResource.use()``,
and loaded for readers once populated::

    slot, release = cache.new("result-42")    # reserve
    slot.use(produced_file)                    # producer links content in
    slot.unload()                              # hand-off
    reader, _ = cache.open("result-42")        # same slot
    reader.load()
    reader.read()
    release()                                  # deletes result-42
"""

from __future__ import annotations

from handlestore.base import BaseManager, ReleaseToken
from handlestore.resource import ScopedResource
from handlestore.table import HandleTable


def _close_resource(name: str, resource: ScopedResource) -> None:
    resource.close()


class DeferredFileManager(BaseManager):
    """Reserve-or-fetch manager over ScopedResource.

    ``new`` and ``open`` behave identically: both return the tracked slot
    for a known name or reserve a fresh one. Releasing a slot deletes its
    backing file.
    """

    def _create_table(self) -> HandleTable[str, ScopedResource]:
        return HandleTable(_close_resource, label="cache file")

    def new(self, name: str) -> tuple[ScopedResource, ReleaseToken]:
        """Reserve a slot, or return the tracked one.

        Raises:
            AlreadyExistsError: If an untracked file already exists at the
                slot's path.
        """
        tracked = self._tracked(name)
        if tracked is not None:
            return tracked

        resource = ScopedResource.reserve(self._root.join(name), name)
        self._table.insert(name, resource)
        return resource, ReleaseToken(name, self._table)

    def open(self, name: str) -> tuple[ScopedResource, ReleaseToken]:
        """Same as :meth:`new`; reservation is idempotent."""
        return self.new(name)
