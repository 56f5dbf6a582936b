"""
auth/guards.py -- Request guards for authentication and admin authorization.

A guard is a plain function (request, user) -> Allow | Reject. It never
raises and never writes to the store. Guards are composed explicitly:

    require_user  = GuardPipeline(auth_gate)
    require_admin = GuardPipeline(auth_gate, role_gate)

A GuardPipeline is a FastAPI dependency. It runs its guards in order, feeds
each Allow's user into the next guard, and turns the first Reject into the
matching core.errors exception for the boundary translator in api/main.py.

    @router.get("/users")
    async def route(current_user: User = Depends(require_admin)): ...

auth_gate token sources, in priority order:
  1. Authorization: Bearer <token> header -- API clients.
  2. "token" cookie -- set by POST /api/login.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from fastapi import Request

from auth.models import TokenClaims, User
from auth.tokens import SESSION_COOKIE, TokenError, verify_token
from core.errors import ErrorKind, error_for

logger = logging.getLogger("usermgmt.auth")

MSG_AUTH_REQUIRED = "Authentication required"
MSG_INVALID_TOKEN = "Invalid token"
MSG_ADMIN_REQUIRED = "Admin access required"


@dataclass(frozen=True)
class Allow:
    user: User
    claims: TokenClaims | None = None


@dataclass(frozen=True)
class Reject:
    kind: ErrorKind
    message: str


GuardResult = Union[Allow, Reject]
Guard = Callable[[Request, Union[User, None]], GuardResult]


def extract_token(request: Request) -> str | None:
    """Return the bearer token from the header, else the session cookie, else None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


def auth_gate(request: Request, user: User | None = None) -> GuardResult:
    """Verify the request's token and resolve it to a stored user.

    Expired, forged and malformed tokens all get the same rejection; the
    specific failure is only logged. A valid token whose user has since been
    deleted is rejected the same way.
    """
    token = extract_token(request)
    if token is None:
        return Reject(ErrorKind.authentication, MSG_AUTH_REQUIRED)

    try:
        claims = verify_token(token)
    except TokenError as exc:
        logger.info("Token rejected (%s) on %s %s", exc.failure.value, request.method, request.url.path)
        return Reject(ErrorKind.authentication, MSG_INVALID_TOKEN)

    resolved = request.app.state.user_store.get_by_id(claims.user_id)
    if resolved is None:
        logger.info("Token for unknown user_id=%d rejected", claims.user_id)
        return Reject(ErrorKind.authentication, MSG_INVALID_TOKEN)
    return Allow(resolved, claims)


def role_gate(request: Request, user: User | None) -> GuardResult:
    """Allow only users whose live record has the admin flag set."""
    if user is None or not user.is_admin:
        return Reject(ErrorKind.authorization, MSG_ADMIN_REQUIRED)
    return Allow(user)


class GuardPipeline:
    """Run guards in order; the first Reject stops the request."""

    def __init__(self, *guards: Guard) -> None:
        if not guards:
            raise ValueError("GuardPipeline needs at least one guard")
        self.guards = guards

    def evaluate(self, request: Request) -> GuardResult:
        user: User | None = None
        result: GuardResult = Reject(ErrorKind.authentication, MSG_AUTH_REQUIRED)
        for guard in self.guards:
            result = guard(request, user)
            if isinstance(result, Reject):
                return result
            user = result.user
            if result.claims is not None:
                request.state.claims = result.claims
        request.state.user = user
        return result

    def __call__(self, request: Request) -> User:
        result = self.evaluate(request)
        if isinstance(result, Reject):
            raise error_for(result.kind, result.message)
        return result.user


require_user = GuardPipeline(auth_gate)
require_admin = GuardPipeline(auth_gate, role_gate)
