"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; API response shapes live in api/models.py.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PROFILE_PICTURE = "/uploads/default.jpg"


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt hash; the plaintext is never stored and
    the hash never leaves the service (api/models.py projections omit it).

    profile_picture is a public reference such as /uploads/alice_1718000000000.png,
    or DEFAULT_PROFILE_PICTURE when nothing was uploaded.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    profile_picture: str = DEFAULT_PROFILE_PICTURE
    is_admin: bool = False
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token.

    is_admin is the flag as it was when the token was issued. It is not
    refreshed when an admin later toggles the account.
    """

    user_id: int
    is_admin: bool
    issued_at: int
    expires_at: int
