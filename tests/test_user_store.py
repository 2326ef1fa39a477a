"""Tests for the user store implementations."""

import pytest

from core.user_store import (
    InMemoryUserStore,
    SqlAlchemyUserStore,
    create_user_store,
)
from exceptions import DuplicateEmailError


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        yield InMemoryUserStore()
        return
    sql_store = SqlAlchemyUserStore("sqlite://")
    yield sql_store
    sql_store.engine.dispose()


def test_create_and_find(store):
    created = store.create("jane@example.com", "salt:key")

    assert store.find_by_id(created.id).email == "jane@example.com"
    assert store.find_by_email("jane@example.com").id == created.id
    assert store.find_by_email("jane@example.com").password_hash == "salt:key"


def test_missing_lookups_return_none(store):
    assert store.find_by_id("missing") is None
    assert store.find_by_email("nobody@example.com") is None


def test_duplicate_email_raises(store):
    store.create("jane@example.com", "salt:key")
    with pytest.raises(DuplicateEmailError):
        store.create("jane@example.com", "salt:other")


def test_update_email(store):
    user = store.create("old@example.com", "salt:key")

    updated = store.update(user.id, {"email": "new@example.com"})

    assert updated.email == "new@example.com"
    assert store.find_by_email("old@example.com") is None
    assert store.find_by_email("new@example.com").id == user.id


def test_update_to_taken_email_raises(store):
    store.create("taken@example.com", "salt:key")
    user = store.create("mine@example.com", "salt:key")

    with pytest.raises(DuplicateEmailError):
        store.update(user.id, {"email": "taken@example.com"})
    assert store.find_by_id(user.id).email == "mine@example.com"


def test_update_missing_user_returns_none(store):
    assert store.update("missing", {"email": "x@example.com"}) is None


def test_clear_removes_users(store):
    store.create("jane@example.com", "salt:key")
    store.clear()
    assert store.find_by_email("jane@example.com") is None


def test_ping(store):
    assert store.ping() is True


def test_create_user_store_selects_backend():
    assert isinstance(create_user_store(None), InMemoryUserStore)
    assert isinstance(create_user_store(""), InMemoryUserStore)

    sql_store = create_user_store("sqlite://")
    assert isinstance(sql_store, SqlAlchemyUserStore)
    sql_store.engine.dispose()
