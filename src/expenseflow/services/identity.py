"""Identity store: accounts, approval, sign-in and the password lifecycle."""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from ..config import BaseConfig
from ..domain.repositories import KeyValueStorage
from ..errors import (
    AccountNotApprovedError,
    AuthorizationError,
    DuplicateEmailError,
    InvalidCredentialsError,
    NoSuchAccountError,
    NotAdminError,
    ProtectedAccountError,
    ValidationFailed,
    WrongCurrentPasswordError,
)
from ..logging_config import get_logger
from ..models.common import utcnow_iso
from ..models.user import ROLE_ADMIN, ROLE_USER, STATUS_APPROVED, STATUS_PENDING, User
from .credentials import CredentialIssuer, hash_password, issue_temporary_password, verify_password
from .events import PasswordReset, UserApproved, UserDeleted, UserRegistered, UserRejected
from .persistence import CorruptCollectionError, read_collection, read_record, write_collection, write_record
from .session import SessionContext

logger = get_logger(__name__)

SEED_ADMIN_ID = "admin"


def _clone(user: User) -> User:
    return User.model_validate(user.model_dump())


class IdentityStore:
    """Owns the user collection and the active identity.

    Collection changes rewrite the users key; active-identity changes rewrite
    the current-user key. The active identity is a detached copy that is
    replaced whenever the account with the same id changes.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        session: SessionContext,
        *,
        users_key: str,
        current_user_key: str,
        admin_email: str = BaseConfig.DEFAULT_ADMIN_EMAIL,
        admin_password: str = BaseConfig.DEFAULT_ADMIN_PASSWORD,
        issue_credential: CredentialIssuer = issue_temporary_password,
    ):
        self.storage = storage
        self.session = session
        self.users_key = users_key
        self.current_user_key = current_user_key
        self.admin_email = admin_email
        self.admin_password = admin_password
        self.issue_credential = issue_credential
        self._users: list[User] = self._load_users()
        self._restore_session()

    @classmethod
    def from_config(
        cls,
        storage: KeyValueStorage,
        session: SessionContext,
        config: BaseConfig,
        **kwargs,
    ) -> "IdentityStore":
        return cls(
            storage,
            session,
            users_key=config.storage_key("users"),
            current_user_key=config.storage_key("current-user"),
            admin_email=config.ADMIN_EMAIL,
            admin_password=config.ADMIN_PASSWORD,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def _default_users(self) -> list[User]:
        return [
            User(
                id=SEED_ADMIN_ID,
                email=self.admin_email,
                full_name="Administrator",
                password_hash=hash_password(self.admin_password),
                role=ROLE_ADMIN,
                status=STATUS_APPROVED,
            )
        ]

    def _load_users(self) -> list[User]:
        try:
            raw_users = read_collection(self.storage, self.users_key)
        except CorruptCollectionError as exc:
            logger.error("Stored users are unusable, reseeding defaults: %s", exc)
            raw_users = None
        if raw_users is None:
            users = self._default_users()
            write_collection(self.storage, self.users_key, users)
            logger.info("Seeded default admin account", extra={"email": self.admin_email})
            return users

        users: list[User] = []
        for raw in raw_users:
            # Records written before approval existed count as approved.
            raw.setdefault("status", STATUS_APPROVED)
            raw.setdefault("registration_date", utcnow_iso())
            try:
                users.append(User.model_validate(raw))
            except ValidationError as exc:
                logger.error("Skipping unreadable user record: %s", exc)
        return users

    def _restore_session(self) -> None:
        try:
            raw = read_record(self.storage, self.current_user_key)
        except CorruptCollectionError as exc:
            logger.error("Dropping stored session: %s", exc)
            raw = None
        user = self._find(raw.get("id")) if raw else None
        if user is None:
            self.session.clear()
            if raw is not None:
                write_record(self.storage, self.current_user_key, None)
            return
        self.session.sign_in(_clone(user))

    def _commit_users(self) -> None:
        write_collection(self.storage, self.users_key, self._users)

    def _commit_session(self) -> None:
        write_record(self.storage, self.current_user_key, self.session.current_user)

    def _find(self, user_id: Optional[str]) -> Optional[User]:
        return next((u for u in self._users if u.id == user_id), None)

    def _find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users if u.email == email), None)

    def _sync_session(self, user: User) -> None:
        active = self.session.current_user
        if active is not None and active.id == user.id:
            self.session.sign_in(_clone(user))
            self._commit_session()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def users(self) -> list[User]:
        return [_clone(u) for u in self._users]

    @property
    def current_user(self) -> Optional[User]:
        return self.session.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    def get(self, user_id: str) -> Optional[User]:
        user = self._find(user_id)
        return _clone(user) if user else None

    def pending_users(self) -> list[User]:
        return [u for u in self.users if u.status == STATUS_PENDING]

    def approved_users(self) -> list[User]:
        return [u for u in self.users if u.is_approved]

    def search_users(self, text: str, status: Optional[str] = None) -> list[User]:
        """Case-insensitive match on full name, email or ID number."""

        needle = text.strip().lower()
        matches = []
        for user in self.users:
            if status is not None and user.status != status:
                continue
            haystack = (user.full_name, user.email, user.id_number or "")
            if any(needle in field.lower() for field in haystack):
                matches.append(user)
        return matches

    # ------------------------------------------------------------------
    # Registration and sign-in
    # ------------------------------------------------------------------

    def register(self, email: str, full_name: str, password: str) -> UserRegistered:
        """Add a pending account. Emails are compared case-sensitively."""

        if self._find_by_email(email) is not None:
            raise DuplicateEmailError(email)
        user = User(
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            role=ROLE_USER,
            status=STATUS_PENDING,
        )
        self._users.append(user)
        self._commit_users()
        logger.info("User registered", extra={"user_id": user.id, "email": email})
        return UserRegistered(user=_clone(user))

    def authenticate(self, email: str, password: str) -> User:
        user = self._find_by_email(email)
        if user is None or not verify_password(user.password_hash, password):
            logger.info("Failed sign-in", extra={"email": email})
            raise InvalidCredentialsError()
        if not user.is_approved:
            raise AccountNotApprovedError()
        self.session.sign_in(_clone(user))
        self._commit_session()
        logger.info("User signed in", extra={"user_id": user.id})
        return _clone(user)

    def sign_out(self) -> None:
        active = self.session.current_user
        self.session.clear()
        self._commit_session()
        if active is not None:
            logger.info("User signed out", extra={"user_id": active.id})

    # ------------------------------------------------------------------
    # Admin account management
    # ------------------------------------------------------------------

    def approve(self, user_id: str) -> Optional[UserApproved]:
        user = self._find(user_id)
        if user is None:
            logger.debug("approve: no user %s", user_id)
            return None
        user.status = STATUS_APPROVED
        self._commit_users()
        self._sync_session(user)
        logger.info("User approved", extra={"user_id": user_id})
        return UserApproved(user=_clone(user))

    def reject(self, user_id: str) -> Optional[UserRejected]:
        """Remove a pending account outright; rejection keeps no record.

        Approved accounts are left alone and go through :meth:`delete_user`.
        """

        if user_id == SEED_ADMIN_ID:
            raise ProtectedAccountError("The built-in administrator account cannot be rejected")
        user = self._find(user_id)
        if user is None:
            logger.debug("reject: no user %s", user_id)
            return None
        if user.status != STATUS_PENDING:
            logger.debug("reject: user %s is %s, not pending", user_id, user.status)
            return None
        self._users = [u for u in self._users if u.id != user_id]
        self._commit_users()
        logger.info("User rejected", extra={"user_id": user_id})
        return UserRejected(user=_clone(user))

    def delete_user(self, user_id: str) -> Optional[UserDeleted]:
        """Remove one account. Expenses owned by it are left in place."""

        if user_id == SEED_ADMIN_ID:
            raise ProtectedAccountError("The built-in administrator account cannot be deleted")
        active = self.session.current_user
        if active is not None and active.id == user_id:
            raise ProtectedAccountError("You cannot delete the account you are signed in with")
        user = self._find(user_id)
        if user is None:
            logger.debug("delete_user: no user %s", user_id)
            return None
        self._users = [u for u in self._users if u.id != user_id]
        self._commit_users()
        logger.info("User deleted", extra={"user_id": user_id})
        return UserDeleted(user=_clone(user))

    # ------------------------------------------------------------------
    # Profile and passwords
    # ------------------------------------------------------------------

    def update_profile(self, full_name: str, id_number: Optional[str] = None) -> None:
        """Merge profile fields into the active identity; no-op when signed out.

        A non-admin cannot change an ID number once one is set.
        """

        active = self.session.current_user
        if active is None:
            return
        if not full_name or not full_name.strip():
            raise ValidationFailed("Full name is required")
        user = self._find(active.id)
        if user is None:
            return
        if (
            id_number is not None
            and user.id_number
            and id_number != user.id_number
            and not user.is_admin
        ):
            raise AuthorizationError("Your ID number can only be changed by an administrator")
        user.full_name = full_name
        if id_number is not None:
            user.id_number = id_number or None
        self._commit_users()
        self._sync_session(user)
        logger.info("Profile updated", extra={"user_id": user.id})

    def change_password(self, current_password: str, new_password: str) -> None:
        active = self.session.require_user("You must be logged in to change your password")
        user = self._find(active.id)
        if user is None or not verify_password(user.password_hash, current_password):
            raise WrongCurrentPasswordError()
        user.password_hash = hash_password(new_password)
        self._commit_users()
        self._sync_session(user)
        logger.info("Password changed", extra={"user_id": user.id})

    def reset_password(self, email: str) -> PasswordReset:
        """Overwrite the account's password with a temporary credential.

        Delivering the credential is out of scope; it is written to the log.
        """

        user = self._find_by_email(email)
        if user is None:
            raise NoSuchAccountError(email)
        temporary = self.issue_credential()
        user.password_hash = hash_password(temporary)
        self._commit_users()
        self._sync_session(user)
        logger.warning(
            "Temporary password issued",
            extra={"email": email, "temporary_password": temporary},
        )
        return PasswordReset(user=_clone(user), temporary_password=temporary)

    def _require_admin(self, message: str) -> None:
        if not self.session.is_admin:
            raise NotAdminError(message)

    def admin_change_password(self, user_id: str, new_password: str) -> None:
        self._require_admin("Only admins can change user passwords")
        user = self._find(user_id)
        if user is None:
            logger.debug("admin_change_password: no user %s", user_id)
            return
        user.password_hash = hash_password(new_password)
        self._commit_users()
        self._sync_session(user)
        logger.info("Password changed by admin", extra={"user_id": user_id})

    def admin_reset_password(self, user_id: str) -> Optional[str]:
        """Issue and return a temporary credential, or None for an unknown id."""

        self._require_admin("Only admins can reset user passwords")
        user = self._find(user_id)
        if user is None:
            logger.debug("admin_reset_password: no user %s", user_id)
            return None
        temporary = self.issue_credential()
        user.password_hash = hash_password(temporary)
        self._commit_users()
        self._sync_session(user)
        logger.warning(
            "Temporary password issued by admin",
            extra={"user_id": user_id, "temporary_password": temporary},
        )
        return temporary
