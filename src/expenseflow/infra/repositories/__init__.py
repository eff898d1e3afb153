"""Concrete repository implementations using SQLModel."""

from .storage import SQLModelKeyValueStorage

__all__ = ["SQLModelKeyValueStorage"]
