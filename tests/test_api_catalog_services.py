"""Tests HTTP du catalogue public et de la gestion des services par les partenaires."""

import base64
import json

import pytest

from kyzmat.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_CREATED,
    HTTP_FORBIDDEN,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_PAYLOAD_TOO_LARGE,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
    HTTP_UNSUPPORTED_MEDIA_TYPE,
)
from kyzmat.domain.entities import Role
from tests.helpers import PNG_BYTES, bearer, make_account

PLACE = {"name": "Ала-Тоо зал", "address": "Бишкек, Чуй 1", "price": "1500 сом"}


@pytest.fixture
def partner_headers(container, partner):
    return bearer(container, "partner@kyzmat.kg")


def _create(client, headers, values, kind="places", files=None):
    return client.post(
        f"/services/{kind}", data={"payload": json.dumps(values)}, files=files, headers=headers
    )


def test_create_place_with_image(client, partner_headers):
    r = _create(
        client, partner_headers, PLACE, files={"image": ("hall.png", PNG_BYTES, "image/png")}
    )
    assert r.status_code == HTTP_CREATED
    body = r.json()
    item = body["item"]
    assert item["name"] == "Ала-Тоо зал"
    assert item["image_url"].startswith("/storage/v1/object/public/service-images/")
    assert [n["key"] for n in body["notifications"]] == ["services.messages.createSuccess"]

    served = client.get(item["image_url"])
    assert served.status_code == HTTP_OK
    assert served.content == PNG_BYTES
    assert served.headers["Cache-Control"] == "max-age=3600"
    assert served.headers["X-Content-Type-Options"] == "nosniff"
    assert "sandbox" in served.headers["Content-Security-Policy"]


def test_create_requires_partner(client, container):
    assert _create(client, {}, PLACE).status_code == HTTP_UNAUTHORIZED
    make_account(container, "user@kyzmat.kg")
    r = _create(client, bearer(container, "user@kyzmat.kg"), PLACE)
    assert r.status_code == HTTP_FORBIDDEN
    assert r.json()["details"]["cause"] == "insufficient_role"


def test_create_invalid_payloads(client, partner_headers):
    r = _create(client, partner_headers, {"name": "A"})
    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY
    assert r.json()["details"]["errors"]

    r = client.post("/services/places", data={"payload": "{broken"}, headers=partner_headers)
    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY
    assert r.json()["details"]["errors"] == {"payload": "invalid_json"}


def test_create_rejects_bad_images(client, container, partner_headers):
    r = _create(
        client, partner_headers, PLACE, files={"image": ("notes.txt", b"hello", "text/plain")}
    )
    assert r.status_code == HTTP_UNSUPPORTED_MEDIA_TYPE
    container.settings.IMAGE_MAX_BYTES = 10
    r = _create(client, partner_headers, PLACE, files={"image": ("big.png", PNG_BYTES, "image/png")})
    assert r.status_code == HTTP_PAYLOAD_TOO_LARGE


def test_catalog_listing_language_fallback(client, partner_headers):
    _create(client, partner_headers, {**PLACE, "name_ru": "Зал Ала-Тоо"})
    _create(client, partner_headers, {"name": "Ордо", "address": "Ош, Ленина 5", "price": "900"})

    ky = client.get("/catalog/places").json()
    assert ky["language"] == "ky"
    assert {i["name"] for i in ky["items"]} == {"Ала-Тоо зал", "Ордо"}
    assert all("name_ru" not in i for i in ky["items"])

    ru = client.get("/catalog/places", params={"lang": "ru"}).json()
    assert {i["name"] for i in ru["items"]} == {"Зал Ала-Тоо", "Ордо"}

    asc = client.get("/catalog/places", params={"sort": "asc"}).json()["items"]
    assert [i["name"] for i in asc] == ["Ордо", "Ала-Тоо зал"]

    found = client.get("/catalog/places", params={"q": "орд"}).json()["items"]
    assert [i["name"] for i in found] == ["Ордо"]


def test_catalog_accept_language_header(client, partner_headers):
    _create(client, partner_headers, {**PLACE, "name_ru": "Зал Ала-Тоо"})
    r = client.get("/catalog/places", headers={"Accept-Language": "ru-RU,ru;q=0.9"})
    assert r.json()["items"][0]["name"] == "Зал Ала-Тоо"


def test_catalog_detail_and_unknown_kind(client, partner_headers):
    item_id = _create(client, partner_headers, PLACE).json()["item"]["id"]
    assert client.get(f"/catalog/places/{item_id}").json()["name"] == "Ала-Тоо зал"
    r = client.get("/catalog/places/missing")
    assert r.status_code == HTTP_NOT_FOUND
    assert r.json()["code"] == "NOT_FOUND"
    assert client.get("/catalog/weddings").status_code == HTTP_UNPROCESSABLE_ENTITY


def test_update_and_delete_ownership(client, container, partner_headers):
    item_id = _create(client, partner_headers, PLACE).json()["item"]["id"]

    make_account(container, "other@kyzmat.kg", Role.PARTNER)
    other = bearer(container, "other@kyzmat.kg")
    r = client.put(
        f"/services/places/{item_id}", data={"payload": json.dumps({"name": "Hijack"})}, headers=other
    )
    assert r.status_code == HTTP_FORBIDDEN
    assert client.delete(f"/services/places/{item_id}", headers=other).status_code == HTTP_FORBIDDEN

    r = client.put(
        f"/services/places/{item_id}",
        data={"payload": json.dumps({"price": "2000 сом"})},
        headers=partner_headers,
    )
    assert r.status_code == HTTP_OK
    assert r.json()["item"]["price"] == "2000 сом"
    assert r.json()["item"]["name"] == "Ала-Тоо зал"

    r = client.delete(f"/services/places/{item_id}", headers=partner_headers)
    assert r.status_code == HTTP_NO_CONTENT
    assert client.get(f"/catalog/places/{item_id}").status_code == HTTP_NOT_FOUND


def test_draft_lifecycle(client, partner_headers):
    assert client.get("/services/artists/draft", headers=partner_headers).status_code == HTTP_NOT_FOUND

    draft = {"formData": {"name": "Айгүл", "genre": "фольк"}, "imageUrl": None}
    r = client.put("/services/artists/draft", json=draft, headers=partner_headers)
    assert r.status_code == HTTP_OK
    r = client.get("/services/artists/draft", headers=partner_headers)
    assert r.json()["formData"] == {"name": "Айгүл", "genre": "фольк"}

    r = client.post(
        "/services/artists", data={"payload": "{}", "use_draft": "true"}, headers=partner_headers
    )
    assert r.status_code == HTTP_CREATED
    assert r.json()["item"]["genre"] == "фольк"
    # la création réussie efface le brouillon
    assert client.get("/services/artists/draft", headers=partner_headers).status_code == HTTP_NOT_FOUND


def test_draft_delete(client, partner_headers):
    client.put("/services/rentals/draft", json={"formData": {"name": "Sound"}}, headers=partner_headers)
    assert client.delete("/services/rentals/draft", headers=partner_headers).status_code == HTTP_NO_CONTENT
    assert client.get("/services/rentals/draft", headers=partner_headers).status_code == HTTP_NOT_FOUND


def test_my_services(client, container, partner_headers):
    _create(client, partner_headers, PLACE)
    _create(client, partner_headers, {"name": "Sound kit"}, kind="rentals")
    make_account(container, "other@kyzmat.kg", Role.PARTNER)
    _create(client, bearer(container, "other@kyzmat.kg"), {"name": "DJ Bek"}, kind="artists")

    body = client.get("/profile/services", headers=partner_headers).json()
    assert [i["name"] for i in body["items"]["places"]] == ["Ала-Тоо зал"]
    assert [i["name"] for i in body["items"]["rentals"]] == ["Sound kit"]
    assert body["items"]["artists"] == []


def test_public_storage_missing_object(client):
    r = client.get("/storage/v1/object/public/service-images/nobody/none.png")
    assert r.status_code == HTTP_NOT_FOUND
    r = client.get("/storage/v1/object/public/service-images/../../etc/passwd")
    assert r.status_code == HTTP_NOT_FOUND


def _data_url(content_type, data):
    return f"data:{content_type};base64,{base64.b64encode(data).decode()}"


def test_draft_rejects_unsafe_images(client, container, partner_headers):
    script = _data_url("text/html", b"<script>alert(1)</script>")
    r = client.put(
        "/services/places/draft", json={"formData": {}, "imageUrl": script}, headers=partner_headers
    )
    assert r.status_code == HTTP_UNSUPPORTED_MEDIA_TYPE
    assert r.json()["details"]["cause"] == "not_image"

    container.settings.IMAGE_MAX_BYTES = 10
    r = client.put(
        "/services/places/draft",
        json={"formData": {}, "imageUrl": _data_url("image/png", PNG_BYTES)},
        headers=partner_headers,
    )
    assert r.status_code == HTTP_PAYLOAD_TOO_LARGE

    r = client.put(
        "/services/places/draft",
        json={"formData": {}, "imageUrl": "data:image/png;base64,%%%"},
        headers=partner_headers,
    )
    assert r.status_code == HTTP_BAD_REQUEST
    assert client.get("/services/places/draft", headers=partner_headers).status_code == HTTP_NOT_FOUND


def test_stored_unsafe_draft_image_is_never_uploaded(client, container, partner, partner_headers):
    identity, _ = partner
    drafts = container.kv.namespaced(f"user:{identity.id}")
    drafts.set(
        "artist-form-draft",
        json.dumps(
            {"formData": {"name": "DJ Bek"}, "imageUrl": _data_url("text/html", b"<script>1</script>")}
        ),
    )
    r = client.post(
        "/services/artists", data={"payload": "{}", "use_draft": "true"}, headers=partner_headers
    )
    assert r.status_code == HTTP_CREATED
    assert r.json()["item"]["image_url"] is None
    keys = [n["key"] for n in r.json()["notifications"]]
    assert "forms.imageUpload.notImage" in keys


def test_partner_cannot_delete_another_partners_image(client, container, partner_headers):
    victim_url = _create(
        client, partner_headers, PLACE, files={"image": ("hall.png", PNG_BYTES, "image/png")}
    ).json()["item"]["image_url"]

    make_account(container, "other@kyzmat.kg", Role.PARTNER)
    other = bearer(container, "other@kyzmat.kg")
    r = client.put(
        "/services/places/draft", json={"formData": PLACE, "imageUrl": victim_url}, headers=other
    )
    assert r.status_code == HTTP_FORBIDDEN
    assert r.json()["details"]["cause"] == "foreign_reference"

    # brouillon écrit directement dans le stockage, sans passer par l'API
    other_id = container.user_repo.get_by_email("other@kyzmat.kg")["id"]
    container.kv.namespaced(f"user:{other_id}").set(
        "place-form-draft", json.dumps({"formData": PLACE, "imageUrl": victim_url})
    )
    created = client.post(
        "/services/places", data={"payload": "{}", "use_draft": "true"}, headers=other
    ).json()["item"]
    assert created["image_url"] is None
    assert client.delete(f"/services/places/{created['id']}", headers=other).status_code == HTTP_NO_CONTENT

    assert client.get(victim_url).status_code == HTTP_OK
