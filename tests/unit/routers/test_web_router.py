"""Tests for the static download form."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.routers.web_router import STATIC_DIR, mount_web_ui


def build_client() -> TestClient:
    app = FastAPI()
    mount_web_ui(app)
    return TestClient(app)


def test_static_dir_contains_form():
    assert (STATIC_DIR / "index.html").is_file()


def test_root_redirects_to_form():
    response = build_client().get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/web/"


def test_form_page_is_served():
    response = build_client().get("/web/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/download?url=" in response.text
