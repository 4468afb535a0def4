"""Small helpers shared by the store, engines and API layer."""

import math
import secrets
import string
import time
from datetime import datetime, timezone

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Opaque record id: millisecond clock followed by a random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def round_half_up(value: float, digits: int) -> float:
    """Round with halves going up (4.25 -> 4.3), unlike built-in round()."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
