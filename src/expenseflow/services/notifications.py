"""Notification inbox: a newest-first log of system messages with read flags."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from ..domain.repositories import KeyValueStorage
from ..errors import ValidationFailed
from ..logging_config import get_logger
from ..models.notification import NOTIFICATION_TYPES, Notification
from .persistence import CorruptCollectionError, read_collection, write_collection

logger = get_logger(__name__)


class NotificationStore:
    """Owns the notification collection and mirrors it to storage on every change."""

    def __init__(self, storage: KeyValueStorage, *, key: str):
        self.storage = storage
        self.key = key
        self._items: list[Notification] = self._load()

    def _load(self) -> list[Notification]:
        try:
            raw_items = read_collection(self.storage, self.key)
        except CorruptCollectionError as exc:
            logger.error("Discarding stored notifications: %s", exc)
            return []
        items: list[Notification] = []
        for raw in raw_items or []:
            try:
                items.append(Notification.model_validate(raw))
            except ValidationError as exc:
                logger.error("Skipping unreadable notification record: %s", exc)
        return items

    def _commit(self) -> None:
        write_collection(self.storage, self.key, self._items)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def notifications(self) -> list[Notification]:
        return [Notification.model_validate(n.model_dump()) for n in self._items]

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    def unread(self) -> list[Notification]:
        return [n for n in self.notifications if not n.read]

    def by_type(self, notification_type: str) -> list[Notification]:
        return [n for n in self.notifications if n.type == notification_type]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def publish(
        self, message: str, notification_type: str, details: Optional[dict[str, Any]] = None
    ) -> Notification:
        """Insert a new unread notification at the head of the inbox."""

        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationFailed(f"Unknown notification type: {notification_type}")
        notification = Notification(
            message=message, type=notification_type, details=dict(details or {})
        )
        self._items.insert(0, notification)
        self._commit()
        logger.info(
            "Notification published",
            extra={"notification_id": notification.id, "notification_type": notification_type},
        )
        return Notification.model_validate(notification.model_dump())

    def mark_read(self, notification_id: str) -> None:
        for item in self._items:
            if item.id == notification_id:
                if not item.read:
                    item.read = True
                    self._commit()
                return
        logger.debug("mark_read: no notification %s", notification_id)

    def mark_all_read(self) -> None:
        for item in self._items:
            item.read = True
        self._commit()

    def dismiss(self, notification_id: str) -> None:
        remaining = [n for n in self._items if n.id != notification_id]
        if len(remaining) == len(self._items):
            logger.debug("dismiss: no notification %s", notification_id)
            return
        self._items = remaining
        self._commit()

    def dismiss_all(self) -> None:
        self._items = []
        self._commit()
        logger.info("All notifications cleared")
