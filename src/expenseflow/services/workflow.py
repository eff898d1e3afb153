"""Coordinator that runs one store mutation and dispatches the resulting event.

This is the caller layer the pages talk to: it validates form input, gates
admin-only and owner-only actions, and routes events to the dispatcher.
"""

from __future__ import annotations

from typing import Any, Optional

from ..errors import NotAdminError, NotOwnerError, ValidationFailed
from ..models.expense import EXPENSE_PENDING, Expense
from ..models.user import User
from .events import EventDispatcher
from .expenses import ExpenseStore
from .identity import IdentityStore
from .notifications import NotificationStore


MIN_PASSWORD_LENGTH = 6


def _check_new_password(password: str, confirm_password: Optional[str]) -> None:
    if not password:
        raise ValidationFailed("Password is required")
    if confirm_password is not None and password != confirm_password:
        raise ValidationFailed("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class Workflow:
    """Application-level operations composed from the three stores."""

    def __init__(
        self,
        identity: IdentityStore,
        expenses: ExpenseStore,
        notifications: NotificationStore,
        dispatcher: EventDispatcher,
    ):
        self.identity = identity
        self.expenses = expenses
        self.notifications = notifications
        self.dispatcher = dispatcher

    def require_admin(self) -> User:
        user = self.identity.session.require_user()
        if not user.is_admin:
            raise NotAdminError()
        return user

    # Accounts -----------------------------------------------------------

    def sign_up(
        self,
        email: str,
        full_name: str,
        password: str,
        confirm_password: Optional[str] = None,
    ) -> User:
        if not email or not full_name or not password:
            raise ValidationFailed("Please fill in all fields")
        _check_new_password(password, confirm_password)
        event = self.identity.register(email, full_name, password)
        self.dispatcher.dispatch(event)
        return event.user

    def sign_in(self, email: str, password: str) -> User:
        return self.identity.authenticate(email, password)

    def sign_out(self) -> None:
        self.identity.sign_out()

    def approve_user(self, user_id: str) -> None:
        self.require_admin()
        self.dispatcher.dispatch(self.identity.approve(user_id))

    def reject_user(self, user_id: str) -> None:
        self.require_admin()
        self.dispatcher.dispatch(self.identity.reject(user_id))

    def delete_user(self, user_id: str) -> None:
        self.require_admin()
        self.dispatcher.dispatch(self.identity.delete_user(user_id))

    def update_profile(self, full_name: str, id_number: Optional[str] = None) -> None:
        self.identity.update_profile(full_name, id_number)

    def change_password(
        self, current_password: str, new_password: str, confirm_password: Optional[str] = None
    ) -> None:
        if not current_password:
            raise ValidationFailed("All fields are required")
        _check_new_password(new_password, confirm_password)
        self.identity.change_password(current_password, new_password)

    def reset_password(self, email: str) -> None:
        self.dispatcher.dispatch(self.identity.reset_password(email))

    def admin_change_password(self, user_id: str, new_password: str) -> None:
        if not new_password:
            raise ValidationFailed("Password is required")
        self.identity.admin_change_password(user_id, new_password)

    def admin_reset_password(self, user_id: str) -> Optional[str]:
        return self.identity.admin_reset_password(user_id)

    # Expenses -----------------------------------------------------------

    def submit_expense(
        self,
        *,
        date: Any,
        item_name: str,
        amount: Any,
        year_level: str,
        description: str = "",
    ) -> Expense:
        event = self.expenses.submit(
            date=date,
            item_name=item_name,
            amount=amount,
            year_level=year_level,
            description=description,
        )
        self.dispatcher.dispatch(event)
        return event.expense

    def approve_expense(self, expense_id: str) -> None:
        self.require_admin()
        self.dispatcher.dispatch(self.expenses.approve(expense_id))

    def reject_expense(self, expense_id: str) -> None:
        self.require_admin()
        self.dispatcher.dispatch(self.expenses.reject(expense_id))

    def delete_expense(self, expense_id: str) -> None:
        """Admin removal, allowed in any status."""

        self.require_admin()
        self.expenses.delete(expense_id)

    def _own_pending(self, expense_id: str) -> Optional[Expense]:
        user = self.identity.session.require_user()
        expense = self.expenses.get(expense_id)
        if expense is None:
            return None
        if expense.user_id != user.id:
            raise NotOwnerError("You can only change your own expenses")
        if expense.status != EXPENSE_PENDING:
            raise NotOwnerError(f"This expense is {expense.status} and can no longer be changed")
        return expense

    def edit_own_expense(self, expense_id: str, **fields: Any) -> None:
        if self._own_pending(expense_id) is not None:
            self.expenses.update(expense_id, **fields)

    def delete_own_expense(self, expense_id: str) -> None:
        if self._own_pending(expense_id) is not None:
            self.expenses.delete(expense_id)
