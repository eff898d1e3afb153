"""Exception types raised by the identity, expense and notification stores.

Every failure is raised synchronously before a store mutates anything, so a
caught error always leaves the stores unchanged. ``str(exc)`` is the message
meant for the person at the keyboard.
"""

from __future__ import annotations


class ExpenseFlowError(Exception):
    """Base class for all store failures."""


class ValidationFailed(ExpenseFlowError, ValueError):
    """A field value is missing or out of range."""


class DuplicateEmailError(ExpenseFlowError, ValueError):
    """Registration with an email that already has an account."""

    def __init__(self, email: str):
        super().__init__("Email already exists")
        self.email = email


class NoSuchAccountError(ExpenseFlowError, LookupError):
    """No account is registered under the given email."""

    def __init__(self, email: str):
        super().__init__("No account found with that email address")
        self.email = email


class InvalidStatusTransition(ExpenseFlowError, ValueError):
    """An approve/reject on an expense that is no longer pending."""

    def __init__(self, expense_id: str, current: str, target: str):
        super().__init__(f"Expense {expense_id} is already {current} and cannot be {target}")
        self.expense_id = expense_id
        self.current = current
        self.target = target


class AuthorizationError(ExpenseFlowError, PermissionError):
    """The active identity may not perform the operation."""


class InvalidCredentialsError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AccountNotApprovedError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Your account is awaiting admin approval.")


class NotAuthenticatedError(AuthorizationError):
    def __init__(self, message: str = "You must be logged in to do that") -> None:
        super().__init__(message)


class WrongCurrentPasswordError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Current password is incorrect")


class NotAdminError(AuthorizationError):
    def __init__(self, message: str = "Only admins can do that") -> None:
        super().__init__(message)


class ProtectedAccountError(AuthorizationError):
    """Deleting the seeded admin account or the signed-in account."""


class NotOwnerError(AuthorizationError):
    """Editing an expense the active identity does not own, or that is no longer pending."""


__all__ = [
    "AccountNotApprovedError",
    "AuthorizationError",
    "DuplicateEmailError",
    "ExpenseFlowError",
    "InvalidCredentialsError",
    "InvalidStatusTransition",
    "NoSuchAccountError",
    "NotAdminError",
    "NotAuthenticatedError",
    "NotOwnerError",
    "ProtectedAccountError",
    "ValidationFailed",
    "WrongCurrentPasswordError",
]
