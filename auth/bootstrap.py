"""
auth/bootstrap.py -- Ensure the configured admin account exists.

Runs once per process from the API lifespan. The insert relies on the
UNIQUE constraints (UserStore.ensure_user), so several processes starting
against the same database at once still produce a single admin record.

An existing account is never modified here: the configured password only
applies when the record is first created. Use `python main.py set-password`
to change it afterwards.
"""

from __future__ import annotations

import logging

from auth.models import User
from auth.passwords import hash_password, verify_password
from auth.store import UserStore
from core.config import DEFAULT_ADMIN_PASSWORD, Settings

logger = logging.getLogger("usermgmt.bootstrap")


def ensure_admin(store: UserStore, settings: Settings) -> bool:
    """Create the bootstrap admin unless it already exists. Returns True if created."""
    admin = User(
        username=settings.admin_username,
        email=settings.admin_email,
        hashed_password=hash_password(settings.admin_password),
        is_admin=True,
    )
    created = store.ensure_user(admin)
    if created:
        logger.info("Admin user created: %s <%s>", settings.admin_username, settings.admin_email)
    else:
        logger.info("Admin user already exists")

    existing = store.get_by_username(settings.admin_username)
    if existing is not None and verify_password(DEFAULT_ADMIN_PASSWORD, existing.hashed_password):
        logger.warning(
            "Admin account %r still uses the default password. Change it with: python main.py set-password %s",
            existing.username,
            existing.email,
        )
    return created
