"""Record models and the storage table."""

from .expense import Expense
from .notification import Notification
from .storage import StorageEntry
from .user import User

__all__ = [
    "Expense",
    "Notification",
    "StorageEntry",
    "User",
]
