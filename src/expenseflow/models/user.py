"""User account record."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel

from .common import new_id, utcnow_iso

ROLE_USER = "user"
ROLE_ADMIN = "admin"
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"


class User(SQLModel):
    """Account stored in the users collection.

    ``password_hash`` holds an argon2 hash; plaintext passwords never reach storage.
    """

    id: str = Field(default_factory=lambda: new_id("user"))
    email: str
    full_name: str
    password_hash: str
    role: str = Field(default=ROLE_USER, max_length=16)
    status: str = Field(default=STATUS_PENDING, max_length=16)
    id_number: Optional[str] = Field(default=None, max_length=64)
    registration_date: str = Field(default_factory=utcnow_iso)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED
