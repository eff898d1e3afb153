"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlmodel import Session

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelKeyValueStorage
from .logging_config import get_logger
from .models.user import User
from .services.credentials import CredentialIssuer, issue_temporary_password
from .services.events import EventDispatcher, register_notification_handlers
from .services.expenses import ExpenseStore
from .services.identity import IdentityStore
from .services.notifications import NotificationStore
from .services.session import SessionContext
from .services.workflow import Workflow

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Centralized application context with stores and session state."""

    config: BaseConfig
    session_factory: Callable[[], Session]
    storage: SQLModelKeyValueStorage

    session: SessionContext
    identity: IdentityStore
    expenses: ExpenseStore
    notifications: NotificationStore

    dispatcher: EventDispatcher
    workflow: Workflow

    @property
    def current_user(self) -> Optional[User]:
        return self.session.current_user


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    issue_credential: CredentialIssuer = issue_temporary_password,
) -> AppContext:
    """Create the database, load the three stores and wire event handling."""

    if config is None:
        config = BaseConfig()

    _, session_factory = bootstrap_database(config)
    storage = SQLModelKeyValueStorage(session_factory)

    if not config.DEV_MODE and config.uses_default_admin_password:
        logger.warning("The seeded admin account uses the documented default password")

    session = SessionContext()
    identity = IdentityStore.from_config(
        storage, session, config, issue_credential=issue_credential
    )
    notifications = NotificationStore(storage, key=config.storage_key("notifications"))
    expenses = ExpenseStore.from_config(storage, session, config)

    dispatcher = EventDispatcher()
    register_notification_handlers(dispatcher, notifications)
    workflow = Workflow(identity, expenses, notifications, dispatcher)

    return AppContext(
        config=config,
        session_factory=session_factory,
        storage=storage,
        session=session,
        identity=identity,
        expenses=expenses,
        notifications=notifications,
        dispatcher=dispatcher,
        workflow=workflow,
    )
