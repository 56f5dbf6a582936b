#!/usr/bin/env python3
"""
User management -- operator command line.

Works directly against DATABASE_URL, without the HTTP API. This is the
out-of-band path for changing the bootstrap admin password and for creating
accounts before the service is exposed.

Usage:
  python main.py list-users
  python main.py create-user alice alice@example.com
  python main.py create-user root root@example.com --admin
  python main.py set-password admin@example.com

Passwords are prompted for (twice) unless --password is given.

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the user database.
  SECRET_KEY     Required unless DEBUG=true (shared settings with the API).
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES, hash_password, password_too_long
from auth.store import UserStore
from core.config import get_settings


def _read_password(given: Optional[str]) -> Optional[str]:
    """Return --password if given, else prompt twice. None means the input was rejected."""
    if given is not None:
        password = given
    else:
        password = getpass.getpass("  Password: ")
        if getpass.getpass("  Repeat password: ") != password:
            print("  [!] Passwords do not match.")
            return None
    if not password:
        print("  [!] Password must not be empty.")
        return None
    if password_too_long(password):
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return None
    return password


def cmd_list_users(store: UserStore, args: argparse.Namespace) -> int:
    total = store.count_users()
    if not total:
        print("  No users.")
        return 0
    users = store.list_users()
    print(f"  {'ID':>5}  {'USERNAME':<24} {'EMAIL':<32} ADMIN")
    for u in users:
        print(f"  {u.id:>5}  {u.username:<24} {u.email:<32} {'yes' if u.is_admin else 'no'}")
    admins = sum(1 for u in users if u.is_admin)
    print(f"\n  {total} user(s), {admins} admin(s).")
    return 0


def cmd_create_user(store: UserStore, args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    if password is None:
        return 1
    user = User(
        username=args.username,
        email=args.email,
        hashed_password=hash_password(password),
        is_admin=args.admin,
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        print("  [!] Username or email already exists.")
        return 1
    print(f"  Created user {args.username} (id={user_id}{', admin' if args.admin else ''}).")
    return 0


def cmd_set_password(store: UserStore, args: argparse.Namespace) -> int:
    user = store.get_by_email(args.email)
    if user is None:
        print(f"  [!] No user with email {args.email!r}.")
        return 1
    password = _read_password(args.password)
    if password is None:
        return 1
    store.set_password(user.id, hash_password(password))
    print(f"  Password updated for {user.username}. Existing sessions stay valid until they expire.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usermgmt",
        description="Operator commands for the user management service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py list-users
  python main.py create-user alice alice@example.com
  python main.py set-password admin@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_list = sub.add_parser("list-users", help="List all accounts")
    p_list.set_defaults(handler=cmd_list_users)

    p_create = sub.add_parser("create-user", help="Create an account")
    p_create.add_argument("username")
    p_create.add_argument("email")
    p_create.add_argument("--admin", action="store_true", help="Grant the admin flag")
    p_create.add_argument("--password", help="Password (prompted for when omitted)")
    p_create.set_defaults(handler=cmd_create_user)

    p_passwd = sub.add_parser("set-password", help="Replace an account's password")
    p_passwd.add_argument("email")
    p_passwd.add_argument("--password", help="New password (prompted for when omitted)")
    p_passwd.set_defaults(handler=cmd_set_password)

    return parser


def main(argv: Optional[list[str]] = None, store: Optional[UserStore] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 2

    owns_store = store is None
    if store is None:
        store = UserStore(get_settings().database_url)
    try:
        return args.handler(store, args)
    finally:
        if owns_store:
            store.close()


if __name__ == "__main__":
    sys.exit(main())
