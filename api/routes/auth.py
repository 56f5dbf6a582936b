"""
api/routes/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/register   -- create an account (multipart form, optional picture)
  POST /api/login      -- email/password login; returns token and sets cookie
  GET  /api/profile    -- the caller's own account (requires auth)
  POST /api/logout     -- clears the session cookie

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  authenticate_user() equalizes timing between unknown email and wrong
  password, and both failures return the identical 401 body.
  Cache-Control: no-store on login responses.
  Logout only clears the cookie. A token copied elsewhere stays valid until
  its exp; there is no server-side revocation.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import LoginRequest, LoginResponse, MessageResponse, UserPublic, UserSummary
from auth.guards import require_user
from auth.models import DEFAULT_PROFILE_PICTURE, User
from auth.passwords import MAX_PASSWORD_BYTES, authenticate_user, hash_password, password_too_long
from auth.store import UserStore
from auth.tokens import clear_session_cookie, issue_token, set_session_cookie
from core.errors import AuthenticationError, ValidationError, internal_failure
from media.store import PictureStore

logger = logging.getLogger("usermgmt.api")

MSG_DUPLICATE_ACCOUNT = "Username or email already exists"
MSG_BAD_CREDENTIALS = "Invalid email or password"
MSG_PASSWORD_REQUIRED = "Password is required"

# Auth policy:
# - POST /api/register: public
# - POST /api/login:    public, rate-limited
# - POST /api/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/profile:  requires auth (require_user)
router = APIRouter()


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    request: Request,
    username: str = Form(..., min_length=1, max_length=255),
    email: str = Form(..., min_length=1, max_length=255),
    password: str = Form(default=""),
    profile_picture: Optional[UploadFile] = File(default=None, alias="profilePicture"),
) -> MessageResponse:
    """Create a non-admin account.

    A taken username or email is reported before the password or picture is
    looked at, so a duplicate always gets the duplicate-account error. The
    password field may arrive empty; it is rejected after that check.

    The existence pre-check gives the common case a clean answer, but the
    UNIQUE constraints decide: an IntegrityError at insert time means another
    request registered the same username or email first, and is reported the
    same way. A picture written before a failed insert is removed again.
    """
    user_store: UserStore = request.app.state.user_store
    pictures: PictureStore = request.app.state.pictures

    with internal_failure("Registration failed"):
        if user_store.exists(username, email):
            raise ValidationError(MSG_DUPLICATE_ACCOUNT)
        if not password:
            raise ValidationError(MSG_PASSWORD_REQUIRED)
        if password_too_long(password):
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        picture = DEFAULT_PROFILE_PICTURE
        if profile_picture is not None and profile_picture.filename:
            picture = await pictures.save(username, profile_picture)

        new_user = User(
            username=username,
            email=email,
            hashed_password=await run_in_threadpool(hash_password, password),
            profile_picture=picture,
        )
        try:
            user_id = user_store.create_user(new_user)
        except IntegrityError as exc:
            pictures.discard(picture)
            logger.info("Registration for %r lost a uniqueness race", username)
            raise ValidationError(MSG_DUPLICATE_ACCOUNT) from exc
        except Exception:
            pictures.discard(picture)
            raise

    logger.info("Registered user id=%d username=%r", user_id, username)
    return MessageResponse(message="User registered successfully")


@limiter.limit(LOGIN_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the token and set the cookie.

    Do NOT inline get_by_email() + verify_password() here -- that
    re-introduces the timing difference authenticate_user() removes.
    """
    user_store: UserStore = request.app.state.user_store
    with internal_failure("Login failed"):
        user = authenticate_user(user_store, body.email, body.password)
        if user is None:
            raise AuthenticationError(MSG_BAD_CREDENTIALS)
        token = issue_token(user.id, user.is_admin)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(token=token, user=UserSummary.from_user(user)).model_dump(by_alias=True),
    )
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User id=%d logged in", user.id)
    return resp


@router.get("/profile", response_model=UserPublic)
async def profile(request: Request, current_user: User = Depends(require_user)) -> UserPublic:
    """Return the caller's account.

    isAdmin is the flag carried by the presented token, i.e. the privilege
    level this session was issued with. This differs on purpose from
    reporting the live record: an admin toggle after login shows up here
    only after the user logs in again. Admin routes always check the live
    record, so the stale claim never grants access.
    """
    return UserPublic.from_user(current_user, is_admin=request.state.claims.is_admin)


@router.post("/logout", response_model=MessageResponse)
async def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content=MessageResponse(message="Logged out successfully").model_dump())
    clear_session_cookie(resp)
    return resp
