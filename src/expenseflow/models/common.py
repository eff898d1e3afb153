"""Id and timestamp helpers shared by the record models."""

from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_id(kind: str) -> str:
    """Return ``<kind>-<epoch millis>-<7 base36 chars>``, e.g. ``expense-1718000000000-k3j9x0a``."""

    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"{kind}-{int(time.time() * 1000)}-{suffix}"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
