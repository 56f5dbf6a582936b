"""
auth/passwords.py -- bcrypt password hashing and credential checks.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x
rejects. The cost factor comes from Settings.bcrypt_rounds (default 10).

Failure policy: verify_password() returns False for every error it can
hit -- malformed hash, over-long input, non-bcrypt string. A hashing
problem must never read as a successful login.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("usermgmt.auth")

_settings = get_settings()

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str, rounds: int = 0) -> str:
    """Return a bcrypt hash of the given plaintext password.

    rounds=0 means Settings.bcrypt_rounds. Raises ValueError for passwords
    over 72 bytes; registration checks password_too_long() first.
    """
    if password_too_long(plain):
        raise ValueError("password exceeds 72 bytes")
    salt = bcrypt.gensalt(rounds=rounds or _settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Over-long input is refused outright: some bcrypt releases truncate at 72
    bytes instead of raising, which would accept any suffix.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except Exception:
        logger.debug("Password verification error treated as mismatch", exc_info=True)
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. verify_password() always runs, even when the
# email does not exist, so response time does not reveal which accounts exist.
_DUMMY_HASH: str = hash_password("usermgmt_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure. The caller reports both
    failure paths with the same message.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
