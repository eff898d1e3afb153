"""Notification record for the admin inbox."""

from __future__ import annotations

from typing import Any

from sqlmodel import Field, SQLModel

from .common import new_id, utcnow_iso

NOTIFICATION_TYPES = (
    "new-user",
    "new-expense",
    "system",
    "expense-pending",
    "expense-approved",
    "expense-rejected",
)


class Notification(SQLModel):
    """A system message. ``details`` carries related ids for filtering and display."""

    id: str = Field(default_factory=lambda: new_id("notification"))
    message: str
    date: str = Field(default_factory=utcnow_iso)
    read: bool = False
    type: str = Field(default="system", max_length=32)
    details: dict[str, Any] = Field(default_factory=dict)
