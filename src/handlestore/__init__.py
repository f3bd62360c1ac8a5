"""handlestore: scoped file handles under a local root directory.

Managers hand out named file handles together with a release token that
closes (and, depending on the variant, deletes) the file exactly once.

Example:
    >>> from handlestore import LocalStore
    >>>
    >>> with LocalStore.open(".handlestore") as store:
    ...     cache = store.cache()
    ...     slot, release = cache.new("result-42")
    ...     slot.use(produced_file)
    ...     data = slot.read()
    ...     release()
"""

from handlestore.base import (
    AlreadyExistsError,
    AlreadyLoadedError,
    BaseManager,
    CloseFailureError,
    DirectoryHandle,
    DoesNotExistError,
    DuplicateNameError,
    HandleStoreError,
    IsDirectoryError,
    LinkFailedError,
    ManagerClosedError,
    NotADirectoryHandleError,
    NotAFileError,
    NotInitializedError,
    NotLoadedError,
    ReleaseToken,
    ResourceClosedError,
    TopicInitError,
    UnsupportedOperationError,
)
from handlestore.config import ConfigError, StoreConfig
from handlestore.factory import get_manager, register_manager
from handlestore.managers import (
    DeferredFileManager,
    EphemeralFileManager,
    PermanentFileManager,
)
from handlestore.resource import ResourceState, ScopedResource
from handlestore.store import LocalStore
from handlestore.table import EntryCloseFailure, HandleTable

__version__ = "0.1.0"

__all__ = [
    # Errors
    "HandleStoreError",
    "AlreadyExistsError",
    "DoesNotExistError",
    "NotAFileError",
    "IsDirectoryError",
    "NotADirectoryHandleError",
    "NotLoadedError",
    "ResourceClosedError",
    "AlreadyLoadedError",
    "NotInitializedError",
    "DuplicateNameError",
    "LinkFailedError",
    "CloseFailureError",
    "ManagerClosedError",
    "UnsupportedOperationError",
    "TopicInitError",
    "ConfigError",
    # Core types
    "DirectoryHandle",
    "ReleaseToken",
    "HandleTable",
    "EntryCloseFailure",
    "ResourceState",
    "ScopedResource",
    # Managers
    "BaseManager",
    "PermanentFileManager",
    "EphemeralFileManager",
    "DeferredFileManager",
    "get_manager",
    "register_manager",
    # Store
    "StoreConfig",
    "LocalStore",
]
