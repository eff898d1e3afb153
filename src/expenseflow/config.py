"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "ExpenseFlow"
    DB_FILENAME = "expenseflow.db"
    DEFAULT_ADMIN_EMAIL = "admin@mdc-cast.com"
    # Documented default; change it through EXPENSEFLOW_ADMIN_PASSWORD outside demos.
    DEFAULT_ADMIN_PASSWORD = "admin123"
    DEFAULT_STORAGE_PREFIX = "mdc-cast"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("EXPENSEFLOW_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("EXPENSEFLOW_DATABASE_URL", self._build_sqlite_url())
        self.ADMIN_EMAIL = os.getenv("EXPENSEFLOW_ADMIN_EMAIL", self.DEFAULT_ADMIN_EMAIL)
        self.ADMIN_PASSWORD = os.getenv("EXPENSEFLOW_ADMIN_PASSWORD", self.DEFAULT_ADMIN_PASSWORD)
        self.STORAGE_PREFIX = os.getenv("EXPENSEFLOW_STORAGE_PREFIX", self.DEFAULT_STORAGE_PREFIX)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the database and logs live."""

        data_root = os.getenv("EXPENSEFLOW_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations: fall back to user-local storage.
            local_app_data = os.getenv("LOCALAPPDATA") or (Path.home() / ".local" / "share")
            fallback_path = Path(local_app_data).expanduser() / self.APP_NAME
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def storage_key(self, name: str) -> str:
        """Return the storage key for a named collection (``users``, ``expenses``...)."""

        return f"{self.STORAGE_PREFIX}-{name}"

    @property
    def uses_default_admin_password(self) -> bool:
        return self.ADMIN_PASSWORD == self.DEFAULT_ADMIN_PASSWORD

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {"check_same_thread": False}
        engine_options: dict[str, Any] = {"connect_args": connect_args}
        if self.DATABASE_URL in {"sqlite://", "sqlite:///:memory:"}:
            # A single shared connection keeps the in-memory database alive.
            from sqlalchemy.pool import StaticPool

            engine_options["poolclass"] = StaticPool
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Throwaway configuration backed by an in-memory database."""

    __test__ = False  # keep pytest from collecting this class

    DEBUG = True
    TESTING = True

    def __init__(self, data_dir: Path | str | None = None) -> None:
        super().__init__()
        if data_dir is not None:
            self.DATA_DIR = Path(data_dir)
        self.DATABASE_URL = "sqlite://"
        self.ADMIN_EMAIL = self.DEFAULT_ADMIN_EMAIL
        self.ADMIN_PASSWORD = self.DEFAULT_ADMIN_PASSWORD
        self.STORAGE_PREFIX = self.DEFAULT_STORAGE_PREFIX
