"""
tests/test_heading_routes.py -- Integration tests for /headings/{kind}.

Coverage:
  - fresh admins read {} for every kind
  - PUT replaces one kind without touching the others
  - PUT replaces rather than merges
  - unknown kind -> 422, missing auth -> 401
"""

from __future__ import annotations

import pytest


@pytest.fixture
def fresh_headers(api_client, request) -> dict[str, str]:
    """Sign up a new admin per test so heading state does not leak between tests."""
    username = f"headings-{request.node.name}"[:60]
    resp = api_client.client.post("/signup", json={"username": username, "password": "pw-123456"})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}


@pytest.mark.parametrize("kind", ["table", "malware", "victim"])
def test_fresh_admin_has_empty_headings(api_client, fresh_headers, kind):
    resp = api_client.client.get(f"/headings/{kind}", headers=fresh_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"] == {}


def test_update_one_kind_leaves_others(api_client, fresh_headers):
    client = api_client.client
    resp = client.put("/headings/malware", json={"headings": {"family": "Malware family"}}, headers=fresh_headers)
    assert resp.status_code == 200, resp.text
    admin = resp.json()["data"]
    assert admin["malwareHeadings"] == {"family": "Malware family"}
    assert admin["tableHeadings"] == {}
    assert admin["victimHeadings"] == {}

    assert client.get("/headings/malware", headers=fresh_headers).json()["data"] == {"family": "Malware family"}
    assert client.get("/headings/table", headers=fresh_headers).json()["data"] == {}


def test_update_replaces_mapping(api_client, fresh_headers):
    client = api_client.client
    client.put("/headings/table", json={"headings": {"title": "Title", "status": "Status"}}, headers=fresh_headers)
    client.put("/headings/table", json={"headings": {"severity": "Severity"}}, headers=fresh_headers)
    assert client.get("/headings/table", headers=fresh_headers).json()["data"] == {"severity": "Severity"}


def test_headings_are_per_admin(api_client, fresh_headers, admin_headers):
    client = api_client.client
    client.put("/headings/victim", json={"headings": {"name": "Victim"}}, headers=fresh_headers)
    assert client.get("/headings/victim", headers=admin_headers).json()["data"] == {}


def test_unknown_kind_is_422(api_client, fresh_headers):
    assert api_client.client.get("/headings/assets", headers=fresh_headers).status_code == 422


def test_headings_require_auth(api_client):
    assert api_client.client.get("/headings/table").status_code == 401
    assert api_client.client.put("/headings/table", json={"headings": {}}).status_code == 401
