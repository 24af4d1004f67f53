"""Contract for the process-wide key/value session storage.

Why Protocol:
- The engine only consumes and produces the persisted keys; it never
  defines how they are stored (memory, JSON file, keyring...).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Minimal string key/value store. Writes are last-write-wins."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
