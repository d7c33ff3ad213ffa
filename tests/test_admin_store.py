"""Unit tests for auth/store.py -- AdminStore persistence.

Covers:
- create_admin() assigns ids and defaults headings to empty dicts
- duplicate usernames raise IntegrityError
- update_admin() overwrites fields and keeps heading kinds independent
- update_admin() rejects unknown or immutable fields
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Admin
from auth.store import AdminStore


@pytest.fixture
def store():
    s = AdminStore("sqlite:///:memory:")
    yield s
    s.close()


def _admin(username: str = "alice") -> Admin:
    return Admin(username=username, hashed_password="$2b$12$placeholderhashvalue")


def test_create_and_fetch(store):
    admin_id = store.create_admin(_admin())
    by_id = store.get_by_id(admin_id)
    by_name = store.get_by_username("alice")
    assert by_id == by_name
    assert by_id.id == admin_id
    assert by_id.refresh_token is None
    assert by_id.table_headings == {}
    assert by_id.malware_headings == {}
    assert by_id.victim_headings == {}
    assert by_id.created_at


def test_missing_lookups_return_none(store):
    assert store.get_by_id(404) is None
    assert store.get_by_username("nobody") is None


def test_username_lookup_is_case_sensitive(store):
    store.create_admin(_admin("alice"))
    assert store.get_by_username("Alice") is None


def test_duplicate_username_raises(store):
    store.create_admin(_admin())
    with pytest.raises(IntegrityError):
        store.create_admin(_admin())


def test_refresh_token_is_overwritten(store):
    admin_id = store.create_admin(_admin())
    store.update_admin(admin_id, refresh_token="first")
    store.update_admin(admin_id, refresh_token="second")
    assert store.get_by_id(admin_id).refresh_token == "second"


def test_heading_kinds_are_independent(store):
    admin_id = store.create_admin(_admin())
    store.update_admin(admin_id, table_headings={"title": "Title"})
    store.update_admin(admin_id, malware_headings={"family": "Family"})
    admin = store.get_by_id(admin_id)
    assert admin.table_headings == {"title": "Title"}
    assert admin.malware_headings == {"family": "Family"}
    assert admin.victim_headings == {}


def test_heading_update_replaces_not_merges(store):
    admin_id = store.create_admin(_admin())
    store.update_admin(admin_id, victim_headings={"name": "Name", "age": "Age"})
    store.update_admin(admin_id, victim_headings={"city": "City"})
    assert store.get_by_id(admin_id).victim_headings == {"city": "City"}


def test_update_unknown_admin_returns_false(store):
    assert store.update_admin(999, refresh_token="x") is False


@pytest.mark.parametrize("field", ["username", "id", "created_at", "role"])
def test_update_rejects_immutable_or_unknown_fields(store, field):
    admin_id = store.create_admin(_admin())
    with pytest.raises(ValueError):
        store.update_admin(admin_id, **{field: "x"})


def test_list_admins_sorted_by_username(store):
    store.create_admin(_admin("zed"))
    store.create_admin(_admin("amy"))
    assert [a.username for a in store.list_admins()] == ["amy", "zed"]
