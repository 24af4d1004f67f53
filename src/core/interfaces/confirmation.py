"""Interactive yes/no gate required before destructive operations."""

from __future__ import annotations

from typing import Protocol


class Confirm(Protocol):
    def __call__(self, prompt: str) -> bool:
        """Return True only when the user explicitly agreed."""

        ...
