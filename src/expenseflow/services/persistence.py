"""JSON (de)serialization of whole collections into key/value storage."""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from sqlmodel import SQLModel

from ..domain.repositories import KeyValueStorage


class CorruptCollectionError(ValueError):
    """The stored value under a key is not the JSON shape the store expects."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Stored value for {key!r} is unusable: {reason}")
        self.key = key


def read_collection(storage: KeyValueStorage, key: str) -> Optional[list[dict[str, Any]]]:
    """Return the raw records stored under ``key``, or None when nothing was stored."""

    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptCollectionError(key, str(exc)) from exc
    if not isinstance(data, list):
        raise CorruptCollectionError(key, f"expected a list, got {type(data).__name__}")
    return [item for item in data if isinstance(item, dict)]


def write_collection(storage: KeyValueStorage, key: str, records: Iterable[SQLModel]) -> None:
    """Serialize every record and replace the stored value in one write."""

    payload = [record.model_dump(mode="json") for record in records]
    storage.set_item(key, json.dumps(payload))


def read_record(storage: KeyValueStorage, key: str) -> Optional[dict[str, Any]]:
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptCollectionError(key, str(exc)) from exc
    if data is None:
        return None
    if not isinstance(data, dict):
        raise CorruptCollectionError(key, f"expected an object, got {type(data).__name__}")
    return data


def write_record(storage: KeyValueStorage, key: str, record: Optional[SQLModel]) -> None:
    """Store a single record, removing the key when ``record`` is None."""

    if record is None:
        storage.remove_item(key)
        return
    storage.set_item(key, json.dumps(record.model_dump(mode="json")))
