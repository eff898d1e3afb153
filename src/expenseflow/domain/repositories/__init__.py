"""Repository protocol definitions for domain layer."""

from .storage import KeyValueStorage

__all__ = ["KeyValueStorage"]
