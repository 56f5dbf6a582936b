"""
auth/tokens.py -- Session token issue/verify and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, is_admin, iat and exp. Nothing is stored server side, so a
       token stays valid until exp no matter what happens to the account --
       there is no revocation list. The auth gate still rejects tokens whose
       user no longer exists.

  is_admin in the payload is a snapshot taken at issue time. The role gate
       checks the live record instead; the snapshot only describes the
       session (GET /api/profile).

  verify_token() raises TokenError with a TokenFailure kind so the three
       failure modes stay distinguishable in logs. The auth gate collapses
       them into one "Invalid token" response.

  SECRET_KEY: sourced from core.config.get_settings(), which validates the
       key at startup (dev mode auto-generates, production refuses to start
       without one, short keys are rejected).

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

logger = logging.getLogger("usermgmt.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

SESSION_COOKIE = "token"


class TokenFailure(str, Enum):
    malformed = "malformed"
    signature = "signature"
    expired = "expired"


class TokenError(Exception):
    """Raised by verify_token(). failure says which check rejected the token."""

    def __init__(self, failure: TokenFailure) -> None:
        super().__init__(failure.value)
        self.failure = failure


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(user_id: int, is_admin: bool, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user_id.

    Args:
        user_id:        Numeric user ID stored in the DB.
        is_admin:       Admin flag at issue time (not refreshed later).
        expire_seconds: Session duration in seconds. 0 (default) uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {
        "user_id": user_id,
        "is_admin": bool(is_admin),
        "iat": now,
        "exp": now + duration,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    """Verify signature and expiry and return the claims.

    Raises TokenError(malformed) for anything that is not a JWT or lacks
    well-typed user_id / is_admin / exp claims, TokenError(expired) once exp
    has passed, and TokenError(signature) for a bad signature or any other
    claim check failure.
    """
    try:
        jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenError(TokenFailure.malformed) from exc

    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenError(TokenFailure.expired) from exc
    except JWTError as exc:
        raise TokenError(TokenFailure.signature) from exc

    user_id = payload.get("user_id")
    is_admin = payload.get("is_admin")
    expires_at = payload.get("exp")
    # bool is an int subclass; a boolean user_id is not an id.
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise TokenError(TokenFailure.malformed)
    if not isinstance(is_admin, bool) or not isinstance(expires_at, int):
        raise TokenError(TokenFailure.malformed)

    return TokenClaims(
        user_id=user_id,
        is_admin=is_admin,
        issued_at=int(payload.get("iat") or 0),
        expires_at=expires_at,
    )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the token expiry so both lapse together.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_session_cookie(response) -> None:
    """Delete the session cookie. Copies of the token held elsewhere stay valid until exp."""
    response.delete_cookie(SESSION_COOKIE, httponly=True, samesite="lax", secure=_settings.secure_cookies)
