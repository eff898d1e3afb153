"""Key/value storage protocol."""

from __future__ import annotations

from typing import Optional, Protocol


class KeyValueStorage(Protocol):
    """Durable string storage addressed by key; each write replaces the whole value."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key was never written."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete the key; missing keys are ignored."""
        ...
