"""Tests HTTP des routes d'administration et du garde de navigation."""

import json

from kyzmat.core.http_constants import (
    HTTP_FORBIDDEN,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
)
from kyzmat.domain.entities import Role
from tests.helpers import bearer, make_account


def test_admin_routes_require_admin(client, container, partner):
    assert client.get("/admin/users").status_code == HTTP_UNAUTHORIZED
    r = client.get("/admin/users", headers=bearer(container, "partner@kyzmat.kg"))
    assert r.status_code == HTTP_FORBIDDEN


def test_admin_lists_users_with_profiles(client, container, admin, partner):
    r = client.get("/admin/users", headers=bearer(container, "admin@kyzmat.kg"))
    assert r.status_code == HTTP_OK
    roles = {u["email"]: u["profile"]["role"] for u in r.json()}
    assert roles == {"admin@kyzmat.kg": "admin", "partner@kyzmat.kg": "partner"}


def test_admin_changes_role(client, container, admin):
    user, _ = make_account(container, "user@kyzmat.kg")
    headers = bearer(container, "admin@kyzmat.kg")
    r = client.put(f"/admin/users/{user.id}/role", json={"role": "partner"}, headers=headers)
    assert r.status_code == HTTP_OK
    assert r.json()["role"] == "partner"

    r = client.put(f"/admin/users/{user.id}/role", json={"role": "owner"}, headers=headers)
    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY
    assert r.json()["details"]["errors"] == {"role": "admin.invalidRole"}

    r = client.put("/admin/users/missing/role", json={"role": "user"}, headers=headers)
    assert r.status_code == HTTP_NOT_FOUND


def test_admin_moderates_items(client, container, admin, partner):
    partner_headers = bearer(container, "partner@kyzmat.kg")
    created = client.post(
        "/services/rentals",
        data={"payload": json.dumps({"name": "Sound kit", "name_ru": "Звук"})},
        headers=partner_headers,
    ).json()["item"]
    headers = bearer(container, "admin@kyzmat.kg")

    rows = client.get("/admin/items/rentals", headers=headers).json()
    assert [(r["name"], r["name_ru"]) for r in rows] == [("Sound kit", "Звук")]

    r = client.delete(f"/admin/items/rentals/{created['id']}", headers=headers)
    assert r.status_code == HTTP_NO_CONTENT
    assert client.get("/admin/items/rentals", headers=headers).json() == []


def test_navigate_anonymous(client):
    r = client.get("/navigate", params={"path": "/catalog"})
    assert r.json()["action"] == "render"

    r = client.get("/navigate", params={"path": "/admin", "lang": "ru"})
    body = r.json()
    assert body["action"] == "redirect"
    assert body["location"] == "/auth"
    assert body["from_path"] == "/admin"
    assert body["message"] == "Необходимо войти в систему"


def test_navigate_by_role(client, container, admin):
    user, _ = make_account(container, "user@kyzmat.kg", Role.USER)
    headers = bearer(container, "user@kyzmat.kg")
    body = client.get("/navigate", params={"path": "/admin"}, headers=headers).json()
    assert body["action"] == "redirect"
    assert body["location"] == "/"
    assert body["from_path"] is None
    assert client.get("/navigate", params={"path": "/profile"}, headers=headers).json()[
        "action"
    ] == "render"

    # promotion par un administrateur: le même jeton ouvre désormais /admin
    r = client.put(
        f"/admin/users/{user.id}/role",
        json={"role": "admin"},
        headers=bearer(container, "admin@kyzmat.kg"),
    )
    assert r.status_code == HTTP_OK
    body = client.get("/navigate", params={"path": "/admin"}, headers=headers).json()
    assert body["action"] == "render"
    assert client.get("/admin/users", headers=headers).status_code == HTTP_OK


def test_navigate_unknown_path(client):
    assert client.get("/navigate", params={"path": "/nowhere"}).json()["action"] == "not_found"
