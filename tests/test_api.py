# tests/test_api.py
"""
Integration Tests for the pagesync HTTP API.

Focus
-----
These tests verify the HTTP contract (request/response schemas, status codes)
and that every confirmed change is broadcast on the app's hub. Each test gets
its own application with an in-memory snapshot medium and a temporary upload
directory, so nothing leaks between tests.

Scenarios
---------
1. **Health Check**: service is up.
2. **Pages**: unique slugs, 422 validation bodies, 409 conflicts, broadcasts.
3. **Menus**: string or structured items, recursive item validation.
4. **Media**: multipart upload, size/type rejection.
5. **Preview**: write → read, quota failures as 507, relayed updates.
6. **Templates & landings**: element-tree content, PATCH semantics.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from pagesync.api.app import create_app
from pagesync.api.media_store import MediaStore
from pagesync.api.state import AppState
from pagesync.core.errors import SlugConflict
from pagesync.core.settings import load_settings
from pagesync.core.snapshot.medium import MemoryMedium


@pytest.fixture  # type: ignore[misc]
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture  # type: ignore[misc]
def client(tmp_path: Path, medium: MemoryMedium) -> Generator[TestClient, None, None]:
    """A fresh app per test: its own hub, stores and media directory."""
    app = create_app(medium=medium, media_store=MediaStore(base_dir=tmp_path / "uploads"))
    with TestClient(app) as c:
        yield c


def state_of(client: TestClient) -> AppState:
    state: AppState = client.app.state.pagesync  # type: ignore[attr-defined]
    return state


def section(element_id: str) -> dict[str, object]:
    return {"id": element_id, "type": "section", "children": []}


# --------------------------------------------------------------------------- #
# System
# --------------------------------------------------------------------------- #


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "version" in data


# --------------------------------------------------------------------------- #
# Pages
# --------------------------------------------------------------------------- #


def test_create_page_generates_unique_slugs(client: TestClient) -> None:
    first = client.post("/pages", json={"title": "About Us"})
    second = client.post("/pages", json={"title": "About Us"})
    third = client.post("/pages", json={"title": "About Us", "slug": "about-us"})

    assert first.status_code == 201, first.text
    assert [r.json()["slug"] for r in (first, second, third)] == [
        "about-us",
        "about-us-2",
        "about-us-3",
    ]
    assert first.json()["content"] == "[]"


def test_create_page_with_element_content_is_stringified(client: TestClient) -> None:
    response = client.post("/pages", json={"title": "Home", "content": [section("s1")]})
    assert response.status_code == 201
    assert response.json()["content"] == '[{"id": "s1", "type": "section", "children": []}]'


def test_create_page_validation_error_body(client: TestClient) -> None:
    response = client.post(
        "/pages", json={"title": "  ", "visibility": "password_protected", "password": "123"}
    )
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Validation failed"
    assert [e["field"] for e in body["errors"]] == ["title", "password"]
    assert body["fields"]["password"] == "Password must be at least 6 characters long"


def test_create_page_broadcasts(client: TestClient) -> None:
    page = client.post("/pages", json={"title": "Blog"}).json()
    history = state_of(client).hub.history()
    assert [(u.subject, u.action) for u in history] == [("page", "create")]
    assert history[0].payload["id"] == page["id"]


def test_get_list_update_delete_page(client: TestClient) -> None:
    page = client.post("/pages", json={"title": "Pricing"}).json()

    assert client.get(f"/pages/{page['id']}").json()["title"] == "Pricing"
    assert [p["id"] for p in client.get("/pages").json()] == [page["id"]]

    updated = client.put(f"/pages/{page['id']}", json={"title": "Plans", "header_menu": "m1"})
    assert updated.status_code == 200
    assert updated.json()["title"] == "Plans"
    assert updated.json()["slug"] == "pricing"

    deleted = client.delete(f"/pages/{page['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/pages/{page['id']}").status_code == 404

    actions = [(u.subject, u.action) for u in state_of(client).hub.history()]
    assert actions == [
        ("page", "create"),
        ("page", "update"),
        ("page-menu", "update"),
        ("page", "delete"),
    ]


def test_update_page_rejects_bad_slug(client: TestClient) -> None:
    page = client.post("/pages", json={"title": "Team"}).json()
    response = client.put(f"/pages/{page['id']}", json={"slug": "Not A Slug"})
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "slug"


def test_update_page_slug_conflict(client: TestClient) -> None:
    client.post("/pages", json={"title": "First"})
    second = client.post("/pages", json={"title": "Second"}).json()
    response = client.put(f"/pages/{second['id']}", json={"slug": "first"})
    assert response.status_code == 409


def test_store_enforces_slug_uniqueness(client: TestClient) -> None:
    """The store is the backstop behind the advisory slug lookup."""
    pages = state_of(client).pages
    pages.create(title="A", slug="taken")
    with pytest.raises(SlugConflict):
        pages.create(title="B", slug="taken")


def test_missing_page_is_404(client: TestClient) -> None:
    assert client.get("/pages/nope").status_code == 404
    assert client.put("/pages/nope", json={"title": "x"}).status_code == 404
    assert client.delete("/pages/nope").status_code == 404


# --------------------------------------------------------------------------- #
# Menus
# --------------------------------------------------------------------------- #


def test_create_menu_with_structured_items(client: TestClient) -> None:
    items = [{"id": "1", "label": "Home", "url": "/", "children": []}]
    response = client.post("/menus", json={"name": "Main", "items": items})
    assert response.status_code == 201, response.text
    menu = response.json()
    assert menu["items"] == '[{"id": "1", "label": "Home", "url": "/", "children": []}]'
    assert state_of(client).hub.history()[-1].subject == "menu"


def test_create_menu_reports_nested_item_errors(client: TestClient) -> None:
    items = [{"id": "1", "label": "Docs", "url": "/docs", "children": [{"id": "2", "label": "x"}]}]
    response = client.post("/menus", json={"name": "Main", "items": items})
    assert response.status_code == 422
    assert response.json()["fields"]["items"] == (
        "Menu item at [0].children[0] is missing required fields (id, label, or url)"
    )


def test_menu_crud(client: TestClient) -> None:
    menu = client.post("/menus", json={"name": "Footer", "items": "[]"}).json()
    assert client.get(f"/menus/{menu['id']}").status_code == 200

    renamed = client.put(f"/menus/{menu['id']}", json={"name": "Legal"})
    assert renamed.json()["name"] == "Legal"
    assert client.put(f"/menus/{menu['id']}", json={"name": ""}).status_code == 422

    assert client.delete(f"/menus/{menu['id']}").status_code == 204
    assert client.get("/menus").json() == []


def test_menu_items_are_decoded(client: TestClient) -> None:
    items = [
        {
            "id": "1",
            "label": "Docs",
            "url": "/docs",
            "children": [{"id": "2", "label": "API", "url": "/docs/api"}],
        }
    ]
    menu = client.post("/menus", json={"name": "Main", "items": items}).json()

    response = client.get(f"/menus/{menu['id']}/items")
    assert response.status_code == 200
    decoded = response.json()
    assert decoded[0]["label"] == "Docs"
    assert decoded[0]["children"][0]["url"] == "/docs/api"
    assert client.get("/menus/ghost/items").status_code == 404


# --------------------------------------------------------------------------- #
# Media
# --------------------------------------------------------------------------- #


def test_upload_media(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/media", files={"file": ("logo.png", b"\x89PNG", "image/png")})
    assert response.status_code == 200, response.text
    item = response.json()
    assert item["type"] == "image"
    assert item["url"].startswith("/uploads/")
    assert (tmp_path / "uploads" / item["url"].removeprefix("/uploads/")).exists()


def test_upload_rejected_type(client: TestClient) -> None:
    response = client.post("/media", files={"file": ("x.sh", b"echo", "text/x-shellscript")})
    assert response.status_code == 400
    assert response.json()["detail"] == "File type not allowed"


def test_upload_without_file(client: TestClient) -> None:
    assert client.post("/media").status_code == 400


def test_uploaded_file_is_served(client: TestClient) -> None:
    item = client.post("/media", files={"file": ("logo.png", b"\x89PNG", "image/png")}).json()
    served = client.get(item["url"])
    assert served.status_code == 200
    assert served.content == b"\x89PNG"


def test_list_media(client: TestClient) -> None:
    assert client.get("/media").json() == {"media": []}

    client.post("/media", files={"file": ("a.pdf", b"%PDF", "application/pdf")})
    client.post("/media", files={"file": ("b.mp4", b"\x00\x01", "video/mp4")})

    media = client.get("/media").json()["media"]
    assert len(media) == 2
    assert {m["type"] for m in media} == {"document", "video"}
    assert all("createdAt" in m and m["url"].startswith("/uploads/") for m in media)


def test_upload_path_like_filename(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/media", files={"file": ("x./../y", b"\x89PNG", "image/png")})
    assert response.status_code == 200, response.text
    assert response.json()["url"].endswith(".bin")
    assert len(list((tmp_path / "uploads").iterdir())) == 1


# --------------------------------------------------------------------------- #
# Preview
# --------------------------------------------------------------------------- #


def test_preview_round_trip(client: TestClient) -> None:
    assert client.get("/preview").status_code == 404

    written = client.put("/preview", json={"elements": [section("s1")]})
    assert written.status_code == 200
    assert written.json()["elements"] == 1

    read = client.get("/preview").json()
    assert read["elements"][0]["id"] == "s1"
    assert read["elements"][0]["type"] == "section"

    updates = client.get("/updates").json()
    assert updates[-1]["subject"] == "page"
    assert updates[-1]["payload"]["elements"][0]["id"] == "s1"


def test_preview_rejects_duplicate_ids(client: TestClient) -> None:
    response = client.put("/preview", json={"elements": [section("s1"), section("s1")]})
    assert response.status_code == 422
    assert response.json()["errors"][0]["message"] == 'Duplicate element id "s1"'


def test_preview_malformed_element_is_422(client: TestClient) -> None:
    response = client.put("/preview", json={"elements": [{"id": "s1"}]})
    assert response.status_code == 422


def test_preview_quota_exceeded_is_507(tmp_path: Path) -> None:
    app = create_app(medium=MemoryMedium(quota_bytes=64), media_store=MediaStore(tmp_path))
    with TestClient(app) as c:
        big = {"id": "s1", "type": "section", "children": [], "content": {"text": "x" * 200}}
        response = c.put("/preview", json={"elements": [big]})
    assert response.status_code == 507


def test_corrupt_preview_snapshot_is_400(client: TestClient, medium: MemoryMedium) -> None:
    medium.set("pagebuilder-preview", "{corrupt", origin="elsewhere")
    assert client.get("/preview").status_code == 400


def test_latest_update_is_relayed(client: TestClient, medium: MemoryMedium) -> None:
    assert client.get("/updates/latest").status_code == 404

    client.post("/pages", json={"title": "Relayed", "content": "x"})
    latest = client.get("/updates/latest").json()
    assert (latest["subject"], latest["action"]) == ("page", "create")
    assert latest["payload"]["slug"] == "relayed"
    assert medium.get("pagebuilder-update") is not None


# --------------------------------------------------------------------------- #
# Templates & landing pages
# --------------------------------------------------------------------------- #


def test_template_crud(client: TestClient) -> None:
    created = client.post("/templates", json={"content": [section("s1")]})
    assert created.status_code == 201
    template = created.json()
    assert template["name"] == "Untitled Template"
    assert '"s1"' in template["content"]

    patched = client.patch(f"/templates/{template['id']}", json={"name": "Hero"})
    assert patched.json()["name"] == "Hero"
    assert patched.json()["content"] == template["content"]

    assert [t["id"] for t in client.get("/templates").json()] == [template["id"]]
    assert client.delete(f"/templates/{template['id']}").status_code == 204
    assert client.get(f"/templates/{template['id']}").status_code == 404


def test_template_with_malformed_tree_is_400(client: TestClient) -> None:
    response = client.post("/templates", json={"name": "Broken", "content": [{"id": "s1"}]})
    assert response.status_code == 400
    assert client.get("/templates").json() == []


def test_landing_crud(client: TestClient) -> None:
    created = client.post("/landings", json={"campaign": "spring", "content": "[]"})
    assert created.status_code == 201
    landing = created.json()
    assert landing["title"] == "Untitled Landing"
    assert landing["campaign"] == "spring"
    assert landing["content"] == "[]"

    patched = client.patch(
        f"/landings/{landing['id']}", json={"title": "Spring Sale", "content": [section("s1")]}
    )
    assert patched.status_code == 200
    assert patched.json()["title"] == "Spring Sale"
    assert patched.json()["campaign"] == "spring"

    assert client.patch("/landings/ghost", json={"title": "x"}).status_code == 404
    assert client.delete(f"/landings/{landing['id']}").status_code == 204
    assert client.get("/landings").json() == []


def test_docs_are_disabled_in_prod(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAGESYNC_ENV", "prod")
    load_settings.cache_clear()
    try:
        app = create_app(medium=MemoryMedium(), media_store=MediaStore(tmp_path))
        with TestClient(app) as c:
            assert c.get("/docs").status_code == 404
            assert c.get("/health").json()["environment"] == "prod"
    finally:
        load_settings.cache_clear()
