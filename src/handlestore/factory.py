"""Factory functions for creating handle managers.

This module provides a registry-based factory so callers (the store, the
CLI) can pick a manager variant by name. New variants can be registered
at runtime.
"""

from __future__ import annotations

from typing import Callable

from handlestore.base import BaseManager, DirectoryHandle, HandleStoreError

# Type for manager constructor functions
ManagerConstructor = Callable[[DirectoryHandle], BaseManager]

# Registry of manager constructors
_manager_registry: dict[str, ManagerConstructor] = {}

_ALIASES = {
    "permanent": "permanent",
    "file": "permanent",
    "ephemeral": "ephemeral",
    "temporary": "ephemeral",
    "tmp": "ephemeral",
    "deferred": "deferred",
    "cache": "deferred",
}


def register_manager(name: str) -> Callable[[ManagerConstructor], ManagerConstructor]:
    """Decorator to register a manager variant.

    Args:
        name: Name to register the manager under.

    Example:
        >>> @register_manager("readonly")
        ... class ReadOnlyManager(BaseManager):
        ...     pass
    """

    def decorator(cls: ManagerConstructor) -> ManagerConstructor:
        _manager_registry[name] = cls
        return cls

    return decorator


def available_managers() -> list[str]:
    return sorted(set(_manager_registry) | set(_ALIASES))


def get_manager(kind: str, root: DirectoryHandle) -> BaseManager:
    """Create a manager of the given kind rooted at ``root``.

    Args:
        kind: Variant name. Options:
            - "permanent" / "file": persistent named files
            - "ephemeral" / "temporary" / "tmp": delete-on-release scratch files
            - "deferred" / "cache": reserve-then-populate slots
        root: Open directory handle; ownership passes to the manager.

    Raises:
        HandleStoreError: If the kind is unknown.
    """
    kind = kind.lower().strip()

    if kind in _manager_registry:
        return _manager_registry[kind](root)

    resolved = _ALIASES.get(kind)
    if resolved == "permanent":
        from handlestore.managers.permanent import PermanentFileManager

        return PermanentFileManager(root)

    elif resolved == "ephemeral":
        from handlestore.managers.ephemeral import EphemeralFileManager

        return EphemeralFileManager(root)

    elif resolved == "deferred":
        from handlestore.managers.deferred import DeferredFileManager

        return DeferredFileManager(root)

    raise HandleStoreError(
        f"Unknown manager kind: {kind}. "
        f"Available kinds: {', '.join(available_managers())}"
    )
