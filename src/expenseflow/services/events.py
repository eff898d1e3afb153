"""Domain events returned by store mutators and the dispatcher that routes them.

Stores never call each other. A mutator returns an event describing what
changed; the workflow coordinator hands it to an :class:`EventDispatcher`,
whose handlers perform follow-up work such as publishing notifications.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from ..logging_config import get_logger
from ..models.expense import Expense
from ..models.user import User

if TYPE_CHECKING:  # pragma: no cover
    from .notifications import NotificationStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserRegistered:
    user: User


@dataclass(frozen=True)
class UserApproved:
    user: User


@dataclass(frozen=True)
class UserRejected:
    user: User


@dataclass(frozen=True)
class UserDeleted:
    user: User


@dataclass(frozen=True)
class PasswordReset:
    user: User
    temporary_password: str


@dataclass(frozen=True)
class ExpenseSubmitted:
    expense: Expense
    submitted_by: User

    @property
    def requires_approval(self) -> bool:
        return not self.submitted_by.is_admin


@dataclass(frozen=True)
class ExpenseApproved:
    expense: Expense


@dataclass(frozen=True)
class ExpenseRejected:
    expense: Expense


DomainEvent = Union[
    UserRegistered,
    UserApproved,
    UserRejected,
    UserDeleted,
    PasswordReset,
    ExpenseSubmitted,
    ExpenseApproved,
    ExpenseRejected,
]
EventHandler = Callable[[Any], None]


class EventDispatcher:
    """Route events to the handlers subscribed to their exact type."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def dispatch(self, event: Optional[DomainEvent]) -> None:
        """Run every handler for ``event``; None and unsubscribed types are ignored."""

        if event is None:
            return
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            logger.debug("No handlers for %s", type(event).__name__)
        for handler in handlers:
            handler(event)


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def register_notification_handlers(
    dispatcher: EventDispatcher, notifications: "NotificationStore"
) -> None:
    """Subscribe the handlers that turn workflow events into inbox notifications."""

    def on_user_registered(event: UserRegistered) -> None:
        user = event.user
        notifications.publish(
            f"New user registration from: {user.full_name} ({user.email}) - needs approval",
            "new-user",
            {"email": user.email, "fullName": user.full_name},
        )

    def on_user_approved(event: UserApproved) -> None:
        user = event.user
        notifications.publish(
            f'Your account "{user.full_name}" has been approved! You can now log in.',
            "system",
            {"userId": user.id, "email": user.email},
        )

    def on_user_rejected(event: UserRejected) -> None:
        user = event.user
        notifications.publish(
            f'Your account "{user.full_name}" was rejected by admin.',
            "system",
            {"userId": user.id, "email": user.email},
        )

    def on_expense_submitted(event: ExpenseSubmitted) -> None:
        if not event.requires_approval:
            return
        expense = event.expense
        notifications.publish(
            f"New expense pending approval: {expense.item_name} - "
            f"${_format_amount(expense.amount)} by {event.submitted_by.email}",
            "expense-pending",
            {
                "expenseId": expense.id,
                "userId": event.submitted_by.id,
                "userEmail": event.submitted_by.email,
            },
        )

    def on_expense_approved(event: ExpenseApproved) -> None:
        expense = event.expense
        notifications.publish(
            f"Expense approved: {expense.item_name} - ${_format_amount(expense.amount)} "
            f"for {expense.user_email}",
            "expense-approved",
            {"expenseId": expense.id, "userId": expense.user_id},
        )

    def on_expense_rejected(event: ExpenseRejected) -> None:
        expense = event.expense
        notifications.publish(
            f"Expense rejected: {expense.item_name} - ${_format_amount(expense.amount)} "
            f"for {expense.user_email}",
            "expense-rejected",
            {"expenseId": expense.id, "userId": expense.user_id},
        )

    dispatcher.subscribe(UserRegistered, on_user_registered)
    dispatcher.subscribe(UserApproved, on_user_approved)
    dispatcher.subscribe(UserRejected, on_user_rejected)
    dispatcher.subscribe(ExpenseSubmitted, on_expense_submitted)
    dispatcher.subscribe(ExpenseApproved, on_expense_approved)
    dispatcher.subscribe(ExpenseRejected, on_expense_rejected)
