"""Operator credential storage.

The credential is a single opaque string kept under a fixed key in a
session-scoped key-value storage. It is never validated locally; only the
guardian's answer to an authenticated call says whether it is correct.
"""

from __future__ import annotations

import logging
from typing import Protocol

_LOGGER = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "guardian-ui-key"


class KeyValueStorage(Protocol):
    """Synchronous string key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    """Key-value storage living for the lifetime of the process."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


_session_storage: InMemoryStorage | None = None


def session_storage() -> InMemoryStorage:
    """Return the process-wide storage, creating it on first use."""
    global _session_storage
    if _session_storage is None:
        _session_storage = InMemoryStorage()
    return _session_storage


class CredentialStore:
    """Holds zero or one credential. Writes overwrite, never merge."""

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        *,
        key: str = SESSION_STORAGE_KEY,
    ) -> None:
        self._storage = storage if storage is not None else session_storage()
        self._key = key

    def get(self) -> str | None:
        return self._storage.get_item(self._key)

    def set(self, credential: str) -> None:
        self._storage.set_item(self._key, credential)
        _LOGGER.debug("Stored operator credential")

    def clear(self) -> None:
        self._storage.remove_item(self._key)
        _LOGGER.debug("Cleared operator credential")
