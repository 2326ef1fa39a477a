"""Tests for the command line interface."""

import pytest

import cli
from config import get_settings_for_testing
from core.password_hasher import verify_password
from core.user_store import InMemoryUserStore


@pytest.fixture
def store(monkeypatch):
    store = InMemoryUserStore()
    settings = get_settings_for_testing(jwt_secret="test-secret", database_url="sqlite://")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "create_user_store", lambda database_url: store)
    return store


def test_create_user(store, capsys):
    exit_code = cli.main(["create-user", "jane@example.com", "--password", "password123"])

    assert exit_code == 0
    user = store.find_by_email("jane@example.com")
    assert verify_password("password123", user.password_hash)
    assert "jane@example.com" in capsys.readouterr().out


def test_create_duplicate_user_fails(store, capsys):
    cli.main(["create-user", "jane@example.com", "--password", "password123"])

    exit_code = cli.main(["create-user", "jane@example.com", "--password", "password123"])

    assert exit_code == 1
    assert "email already in use" in capsys.readouterr().out


@pytest.mark.parametrize("email,password,field", [
    ("not-an-email", "password123", "email"),
    ("jane@example.com", "x", "password"),
])
def test_create_user_rejects_input_login_would_refuse(store, capsys, email, password, field):
    exit_code = cli.main(["create-user", email, "--password", password])

    assert exit_code == 1
    assert f"Error: {field}:" in capsys.readouterr().out
    assert store.count() == 0


def test_create_user_requires_database(monkeypatch, capsys):
    settings = get_settings_for_testing(jwt_secret="test-secret", database_url=None)
    monkeypatch.setattr(cli, "get_settings", lambda: settings)

    def fail_if_called(database_url):
        raise AssertionError("no store should be built")

    monkeypatch.setattr(cli, "create_user_store", fail_if_called)

    exit_code = cli.main(["create-user", "jane@example.com", "--password", "password123"])

    assert exit_code == 1
    assert "DATABASE_URL" in capsys.readouterr().out


def test_hash_password(monkeypatch, capsys):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": "password123")

    assert cli.main(["hash-password"]) == 0

    stored = capsys.readouterr().out.strip()
    assert verify_password("password123", stored)


def test_mismatched_password_prompt(monkeypatch, capsys):
    answers = iter(["password123", "password124"])
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(answers))

    assert cli.main(["hash-password"]) == 1
    assert "Passwords do not match" in capsys.readouterr().out
