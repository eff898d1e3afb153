"""Pytest configuration and shared fixtures for ExpenseFlow tests.

Every test gets its own temporary SQLite database so stores can be reloaded
from storage to check what was persisted.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from expenseflow.infra.database import create_session_factory
from expenseflow.infra.repositories import SQLModelKeyValueStorage
from expenseflow.models.user import User
from expenseflow.services.events import EventDispatcher, register_notification_handlers
from expenseflow.services.expenses import ExpenseStore
from expenseflow.services.identity import SEED_ADMIN_ID, IdentityStore
from expenseflow.services.notifications import NotificationStore
from expenseflow.services.session import SessionContext
from expenseflow.services.workflow import Workflow

ADMIN_EMAIL = "admin@mdc-cast.com"
ADMIN_PASSWORD = "admin123"

USERS_KEY = "mdc-cast-users"
CURRENT_USER_KEY = "mdc-cast-current-user"
EXPENSES_KEY = "mdc-cast-expenses"
NOTIFICATIONS_KEY = "mdc-cast-notifications"


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    # Registers StorageEntry with the metadata
    from expenseflow import models  # noqa: F401

    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def storage(session_factory) -> SQLModelKeyValueStorage:
    return SQLModelKeyValueStorage(session_factory)


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def session() -> SessionContext:
    return SessionContext()


@pytest.fixture
def temp_passwords():
    """Deterministic credential issuer; records every credential it hands out."""

    issued: list[str] = []

    def issue() -> str:
        value = f"temp{1000 + len(issued)}"
        issued.append(value)
        return value

    issue.issued = issued  # type: ignore[attr-defined]
    return issue


@pytest.fixture
def identity_factory(storage, temp_passwords):
    """Build an IdentityStore over the shared storage (call again to simulate a restart)."""

    def _create(session: SessionContext | None = None) -> IdentityStore:
        return IdentityStore(
            storage,
            session or SessionContext(),
            users_key=USERS_KEY,
            current_user_key=CURRENT_USER_KEY,
            admin_email=ADMIN_EMAIL,
            admin_password=ADMIN_PASSWORD,
            issue_credential=temp_passwords,
        )

    return _create


@pytest.fixture
def identity(identity_factory, session) -> IdentityStore:
    return identity_factory(session)


@pytest.fixture
def notifications(storage) -> NotificationStore:
    return NotificationStore(storage, key=NOTIFICATIONS_KEY)


@pytest.fixture
def expenses(storage, session) -> ExpenseStore:
    return ExpenseStore(storage, session, key=EXPENSES_KEY)


@pytest.fixture
def dispatcher(notifications) -> EventDispatcher:
    dispatcher = EventDispatcher()
    register_notification_handlers(dispatcher, notifications)
    return dispatcher


@pytest.fixture
def workflow(identity, expenses, notifications, dispatcher) -> Workflow:
    return Workflow(identity, expenses, notifications, dispatcher)


# =============================================================================
# Account Factories
# =============================================================================


@pytest.fixture
def approved_user(identity):
    """Register and approve an account, returning the stored record.

    Leaves the session signed out.
    """

    def _create(
        email: str = "alice@example.com",
        full_name: str = "Alice Example",
        password: str = "secret1",
        id_number: str | None = None,
    ) -> User:
        event = identity.register(email, full_name, password)
        identity.approve(event.user.id)
        if id_number is not None:
            identity.authenticate(email, password)
            identity.update_profile(full_name, id_number)
            identity.sign_out()
        return identity.get(event.user.id)

    return _create


@pytest.fixture
def sign_in_admin(identity):
    def _sign_in() -> User:
        return identity.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)

    return _sign_in


@pytest.fixture
def admin_id() -> str:
    return SEED_ADMIN_ID
