"""Handle manager variants.

All variants share the ``new`` / ``open`` / ``path`` / ``close`` surface
defined by :class:`handlestore.base.BaseManager`.
"""

from handlestore.managers.deferred import DeferredFileManager
from handlestore.managers.ephemeral import EphemeralFileManager
from handlestore.managers.permanent import PermanentFileManager

__all__ = [
    "DeferredFileManager",
    "EphemeralFileManager",
    "PermanentFileManager",
]
