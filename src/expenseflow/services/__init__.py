"""Service module exports."""

from . import (
    credentials,
    events,
    expenses,
    identity,
    notifications,
    reports,
    session,
    workflow,
)

__all__ = [
    "credentials",
    "events",
    "expenses",
    "identity",
    "notifications",
    "reports",
    "session",
    "workflow",
]
