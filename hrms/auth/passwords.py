"""Password hashing — Argon2id via argon2-cffi.

Hashes are stored in the standard PHC string form
(``$argon2id$v=19$m=...,t=...,p=...$salt$hash``), so cost parameters can
be raised later without invalidating stored hashes.
"""

from __future__ import annotations

from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from hrms.config import settings

_hasher = PasswordHasher(
    time_cost=settings.PASSWORD_HASH_TIME_COST,
    memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, encoded: Optional[str]) -> bool:
    """Check *password* against a stored hash.

    Malformed or missing hashes never verify.
    """
    if not encoded:
        return False
    try:
        return _hasher.verify(encoded, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(encoded: str) -> bool:
    """True when *encoded* was made with different cost parameters."""
    return _hasher.check_needs_rehash(encoded)
