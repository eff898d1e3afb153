"""Expense record scoped to one user."""

from __future__ import annotations

from sqlmodel import Field, SQLModel

from .common import new_id, utcnow_iso

EXPENSE_PENDING = "pending"
EXPENSE_APPROVED = "approved"
EXPENSE_REJECTED = "rejected"
EXPENSE_STATUSES = {EXPENSE_PENDING, EXPENSE_APPROVED, EXPENSE_REJECTED}


class Expense(SQLModel):
    """A spending record with a snapshot of its owner taken at creation time."""

    id: str = Field(default_factory=lambda: new_id("expense"))
    user_id: str
    user_id_number: str = "N/A"
    user_email: str
    user_full_name: str
    date: str = Field(description="ISO date (YYYY-MM-DD) the money was spent")
    item_name: str
    amount: float = Field(description="Non-negative amount in currency units")
    year_level: str
    description: str = ""
    created_at: str = Field(default_factory=utcnow_iso)
    status: str = Field(default=EXPENSE_PENDING, max_length=16)

    # TODO(@expenseflow-data): store amounts as integer cents once reports need exact sums.
