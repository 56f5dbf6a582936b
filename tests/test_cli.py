"""
tests/test_cli.py -- Tests for the operator command line in main.py.

The CLI is driven through main(argv, store=...) against an in-memory store,
so nothing touches DATABASE_URL. Prompted passwords are patched via getpass.
"""

from __future__ import annotations

import getpass

from auth.models import User
from auth.passwords import hash_password, verify_password
from main import main


def test_no_command_prints_help(store, capsys):
    assert main([], store=store) == 2
    assert "list-users" in capsys.readouterr().out


def test_list_users_empty(store, capsys):
    assert main(["list-users"], store=store) == 0
    assert "No users." in capsys.readouterr().out


def test_create_user_then_list(store, capsys):
    assert main(["create-user", "alice", "alice@x.com", "--password", "pw-alice"], store=store) == 0
    user = store.get_by_email("alice@x.com")
    assert user is not None and user.is_admin is False
    assert verify_password("pw-alice", user.hashed_password)

    main(["list-users"], store=store)
    out = capsys.readouterr().out
    assert "alice@x.com" in out
    assert "pw-alice" not in out


def test_create_admin(store):
    assert main(["create-user", "root", "root@x.com", "--admin", "--password", "pw"], store=store) == 0
    assert store.get_by_username("root").is_admin is True


def test_create_duplicate_fails(store, capsys):
    main(["create-user", "alice", "alice@x.com", "--password", "pw"], store=store)
    assert main(["create-user", "alice", "other@x.com", "--password", "pw"], store=store) == 1
    assert "already exists" in capsys.readouterr().out
    assert store.count_users() == 1


def test_create_rejects_long_password(store, capsys):
    assert main(["create-user", "alice", "alice@x.com", "--password", "x" * 73], store=store) == 1
    assert store.count_users() == 0


def test_set_password_prompts_twice(store, monkeypatch):
    uid = store.create_user(User(username="bob", email="bob@x.com", hashed_password=hash_password("old")))
    answers = iter(["new-pass", "new-pass"])
    monkeypatch.setattr(getpass, "getpass", lambda prompt="": next(answers))

    assert main(["set-password", "bob@x.com"], store=store) == 0
    assert verify_password("new-pass", store.get_by_id(uid).hashed_password)


def test_set_password_mismatch(store, monkeypatch, capsys):
    uid = store.create_user(User(username="bob", email="bob@x.com", hashed_password=hash_password("old")))
    answers = iter(["one", "two"])
    monkeypatch.setattr(getpass, "getpass", lambda prompt="": next(answers))

    assert main(["set-password", "bob@x.com"], store=store) == 1
    assert "do not match" in capsys.readouterr().out
    assert verify_password("old", store.get_by_id(uid).hashed_password)


def test_set_password_unknown_email(store, capsys):
    assert main(["set-password", "ghost@x.com", "--password", "pw"], store=store) == 1
    assert "No user" in capsys.readouterr().out


def test_list_users_prints_summary(store, capsys):
    main(["create-user", "alice", "alice@x.com", "--password", "pw"], store=store)
    main(["create-user", "root", "root@x.com", "--admin", "--password", "pw"], store=store)
    capsys.readouterr()

    assert main(["list-users"], store=store) == 0
    assert "2 user(s), 1 admin(s)." in capsys.readouterr().out
