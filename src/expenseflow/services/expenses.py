"""Expense store: submission, approval status and role-based visibility."""

from __future__ import annotations

import math
from datetime import date as date_type, datetime
from typing import Any, Optional

from pydantic import ValidationError

from ..config import BaseConfig
from ..domain.repositories import KeyValueStorage
from ..errors import InvalidStatusTransition, NotAdminError, ValidationFailed
from ..logging_config import get_logger
from ..models.expense import (
    EXPENSE_APPROVED,
    EXPENSE_PENDING,
    EXPENSE_REJECTED,
    EXPENSE_STATUSES,
    Expense,
)
from ..models.user import User
from .events import ExpenseApproved, ExpenseRejected, ExpenseSubmitted
from .persistence import CorruptCollectionError, read_collection, write_collection
from .session import SessionContext

logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset({"date", "item_name", "amount", "year_level", "description"})


def _clone(expense: Expense) -> Expense:
    return Expense.model_validate(expense.model_dump())


def normalize_amount(value: Any) -> float:
    """Return ``value`` as a finite, non-negative float or raise ValidationFailed."""

    if isinstance(value, bool):
        raise ValidationFailed("Amount must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailed("Amount must be a number") from exc
    if not math.isfinite(amount) or amount < 0:
        raise ValidationFailed("Amount must be a finite, non-negative number")
    return amount


def normalize_date(value: Any) -> str:
    """Return an ISO ``YYYY-MM-DD`` string for a date, datetime or ISO string."""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date_type):
        return value.isoformat()
    if isinstance(value, str):
        # Only a time part may follow the date.
        if len(value) > 10 and value[10] not in "T ":
            raise ValidationFailed(f"Invalid date: {value}")
        try:
            return date_type.fromisoformat(value[:10]).isoformat()
        except ValueError as exc:
            raise ValidationFailed(f"Invalid date: {value}") from exc
    raise ValidationFailed("Date is required")


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{name} is required")
    return value


def _optional_text(name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationFailed(f"{name} must be text")
    return value


class ExpenseStore:
    """Owns the expense collection; reads the active identity from the session."""

    def __init__(self, storage: KeyValueStorage, session: SessionContext, *, key: str):
        self.storage = storage
        self.session = session
        self.key = key
        self._expenses: list[Expense] = self._load()

    @classmethod
    def from_config(
        cls, storage: KeyValueStorage, session: SessionContext, config: BaseConfig
    ) -> "ExpenseStore":
        return cls(storage, session, key=config.storage_key("expenses"))

    def _load(self) -> list[Expense]:
        try:
            raw_expenses = read_collection(self.storage, self.key)
        except CorruptCollectionError as exc:
            logger.error("Discarding stored expenses: %s", exc)
            return []
        expenses: list[Expense] = []
        for raw in raw_expenses or []:
            raw.setdefault("status", EXPENSE_PENDING)
            if raw["status"] not in EXPENSE_STATUSES:
                logger.error("Skipping expense %s with unknown status %r", raw.get("id"), raw["status"])
                continue
            if not raw.get("user_id"):
                raw["user_id"] = "unknown"
            try:
                expenses.append(Expense.model_validate(raw))
            except ValidationError as exc:
                logger.error("Skipping unreadable expense record: %s", exc)
        return expenses

    def _commit(self) -> None:
        write_collection(self.storage, self.key, self._expenses)

    def _find(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self._expenses if e.id == expense_id), None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def expenses(self) -> list[Expense]:
        """Every record regardless of owner or status."""
        return [_clone(e) for e in self._expenses]

    def get(self, expense_id: str) -> Optional[Expense]:
        expense = self._find(expense_id)
        return _clone(expense) if expense else None

    def own_approved(self) -> list[Expense]:
        active = self.session.current_user
        if active is None:
            return []
        return [
            _clone(e)
            for e in self._expenses
            if e.user_id == active.id and e.status == EXPENSE_APPROVED
        ]

    def all_visible(self) -> list[Expense]:
        """Approved records system-wide for admins, otherwise the caller's own approved ones."""

        if not self.session.is_admin:
            return self.own_approved()
        return [_clone(e) for e in self._expenses if e.status == EXPENSE_APPROVED]

    def pending_for_admin(self) -> list[Expense]:
        if not self.session.is_admin:
            return []
        return [_clone(e) for e in self._expenses if e.status == EXPENSE_PENDING]

    def own_submissions(self) -> list[Expense]:
        """The caller's records in every status."""

        active = self.session.current_user
        if active is None:
            return []
        return [_clone(e) for e in self._expenses if e.user_id == active.id]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def submit(
        self,
        *,
        date: Any,
        item_name: str,
        amount: Any,
        year_level: str,
        description: str = "",
    ) -> ExpenseSubmitted:
        """Record an expense for the active identity.

        Admin submissions are approved immediately; everyone else's wait in
        pending until an admin decides.
        """

        owner = self.session.require_user("User must be logged in to add an expense")
        expense = Expense(
            user_id=owner.id,
            user_id_number=owner.id_number or "N/A",
            user_email=owner.email,
            user_full_name=owner.full_name,
            date=normalize_date(date),
            item_name=_require_text("Item name", item_name),
            amount=normalize_amount(amount),
            year_level=_require_text("Year level", year_level),
            description=_optional_text("Description", description),
            status=EXPENSE_APPROVED if owner.is_admin else EXPENSE_PENDING,
        )
        self._expenses.append(expense)
        self._commit()
        logger.info(
            "Expense submitted",
            extra={"expense_id": expense.id, "user_id": owner.id, "status": expense.status},
        )
        submitted_by = User.model_validate(owner.model_dump())
        return ExpenseSubmitted(expense=_clone(expense), submitted_by=submitted_by)

    def update(self, expense_id: str, **fields: Any) -> None:
        """Merge editable fields into a record.

        Ownership and status are not checked here; callers gate edits.
        """

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        changes = dict(fields)
        if "amount" in changes:
            changes["amount"] = normalize_amount(changes["amount"])
        if "date" in changes:
            changes["date"] = normalize_date(changes["date"])
        if "description" in changes:
            changes["description"] = _optional_text("Description", changes["description"])
        for name in ("item_name", "year_level"):
            if name in changes:
                _require_text(name.replace("_", " ").capitalize(), changes[name])

        expense = self._find(expense_id)
        if expense is None:
            logger.debug("update: no expense %s", expense_id)
            return
        for name, value in changes.items():
            setattr(expense, name, value)
        self._commit()
        logger.info("Expense updated", extra={"expense_id": expense_id, "fields": sorted(changes)})

    def delete(self, expense_id: str) -> None:
        remaining = [e for e in self._expenses if e.id != expense_id]
        if len(remaining) == len(self._expenses):
            logger.debug("delete: no expense %s", expense_id)
            return
        self._expenses = remaining
        self._commit()
        logger.info("Expense deleted", extra={"expense_id": expense_id})

    def _transition(self, expense_id: str, target: str) -> Optional[Expense]:
        if not self.session.is_admin:
            raise NotAdminError("Only admins can approve or reject expenses")
        expense = self._find(expense_id)
        if expense is None:
            logger.debug("%s: no expense %s", target, expense_id)
            return None
        if expense.status != EXPENSE_PENDING:
            raise InvalidStatusTransition(expense_id, expense.status, target)
        expense.status = target
        self._commit()
        logger.info("Expense %s", target, extra={"expense_id": expense_id})
        return _clone(expense)

    def approve(self, expense_id: str) -> Optional[ExpenseApproved]:
        expense = self._transition(expense_id, EXPENSE_APPROVED)
        return ExpenseApproved(expense=expense) if expense else None

    def reject(self, expense_id: str) -> Optional[ExpenseRejected]:
        expense = self._transition(expense_id, EXPENSE_REJECTED)
        return ExpenseRejected(expense=expense) if expense else None
