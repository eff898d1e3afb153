"""SQLModel implementation of the key/value storage."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.storage import StorageEntry


class SQLModelKeyValueStorage:
    """Key/value storage backed by the ``storage_entry`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        with self.session_factory() as session:
            entry = session.exec(select(StorageEntry).where(StorageEntry.key == key)).first()
            return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        with self.session_factory() as session:
            entry = session.exec(select(StorageEntry).where(StorageEntry.key == key)).first()
            if entry:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            else:
                entry = StorageEntry(key=key, value=value)
            session.add(entry)
            session.commit()

    def remove_item(self, key: str) -> None:
        with self.session_factory() as session:
            entry = session.exec(select(StorageEntry).where(StorageEntry.key == key)).first()
            if entry:
                session.delete(entry)
                session.commit()

    def keys(self) -> list[str]:
        with self.session_factory() as session:
            return list(session.exec(select(StorageEntry.key).order_by(StorageEntry.key)).all())


__all__ = ["SQLModelKeyValueStorage"]
