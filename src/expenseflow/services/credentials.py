"""Password hashing and temporary credential issuance."""

from __future__ import annotations

import random
from typing import Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

CredentialIssuer = Callable[[], str]

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Return True when ``password`` matches the stored hash."""

    try:
        return _hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHash, VerificationError):
        return False


def issue_temporary_password() -> str:
    """Return a short throwaway password such as ``temp4821``."""

    return f"temp{random.randrange(10000)}"
