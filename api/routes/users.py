"""
api/routes/users.py -- Admin user management REST endpoints.

Routes:
  GET    /api/users       -- list all accounts (admin only)
  DELETE /api/users/{id}  -- delete an account (admin only)
  PATCH  /api/users/{id}  -- flip the admin flag (admin only)

Every route depends on require_admin (auth gate + role gate), so a
non-admin caller is rejected with 403 before any store access happens.

Toggling is unrestricted: an admin can demote themselves, including the
last remaining admin. Tokens issued before a toggle keep their embedded
admin flag until they expire.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import AdminFlag, AdminToggleResponse, MessageResponse, UserPublic
from auth.guards import require_admin
from auth.models import DEFAULT_PROFILE_PICTURE, User
from auth.store import UserStore
from core.errors import NotFoundError, internal_failure
from media.store import PictureStore

logger = logging.getLogger("usermgmt.api")

MSG_USER_NOT_FOUND = "User not found"

router = APIRouter()


@router.get("/users", response_model=list[UserPublic])
async def list_users(
    request: Request,
    current_user: User = Depends(require_admin),
) -> list[UserPublic]:
    """List all accounts, without password hashes."""
    user_store: UserStore = request.app.state.user_store
    with internal_failure("Failed to fetch users"):
        users = user_store.list_users()
    return [UserPublic.from_user(u) for u in users]


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    """Delete an account and its uploaded picture. 404 leaves the store untouched."""
    user_store: UserStore = request.app.state.user_store
    pictures: PictureStore = request.app.state.pictures

    with internal_failure("Failed to delete user"):
        target = user_store.get_by_id(user_id)
        if target is None or not user_store.delete_user(user_id):
            raise NotFoundError(MSG_USER_NOT_FOUND)
        if target.profile_picture != DEFAULT_PROFILE_PICTURE:
            pictures.discard(target.profile_picture)

    logger.info("Admin id=%d deleted user id=%d", current_user.id, user_id)
    return MessageResponse(message="User deleted successfully")


@router.patch("/users/{user_id}", response_model=AdminToggleResponse)
async def toggle_admin(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
) -> AdminToggleResponse:
    """Flip the admin flag and return the new value."""
    user_store: UserStore = request.app.state.user_store

    with internal_failure("Failed to update user"):
        is_admin = user_store.toggle_admin(user_id)
    if is_admin is None:
        raise NotFoundError(MSG_USER_NOT_FOUND)

    logger.info("Admin id=%d set is_admin=%s on user id=%d", current_user.id, is_admin, user_id)
    return AdminToggleResponse(message="Admin status toggled", user=AdminFlag(id=user_id, is_admin=is_admin))
