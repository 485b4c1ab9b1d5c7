"""Tests for the shipped web client and the config it loads."""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

PACKAGE_DIR = Path(__file__).resolve().parents[1] / "memora"


def test_index_template_wires_upload_and_auth_views() -> None:
    html = (PACKAGE_DIR / "templates" / "index.html").read_text(encoding="utf-8")

    assert 'id="file-input"' in html
    assert 'id="btn-generate"' in html
    assert 'id="btn-download"' in html
    for view in ("sign_in", "sign_up", "email_otp", "verify_otp"):
        assert f'data-view="{view}"' in html
    assert 'type="module" src="/static/app.js"' in html


def test_client_script_posts_image_and_prompt() -> None:
    script = (PACKAGE_DIR / "static" / "app.js").read_text(encoding="utf-8")

    assert 'formData.append("image", state.file)' in script
    assert 'formData.append("prompt", state.stylePrompt)' in script
    assert "response.status === 401" in script
    assert 'link.download = "memora-sticker.png"' in script


def test_index_is_served(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert "Memora" in response.text


def test_static_assets_are_served(client: TestClient) -> None:
    assert client.get("/static/app.js").status_code == 200
    assert client.get("/static/app.css").status_code == 200


def test_config_exposes_style_prompt(client: TestClient) -> None:
    body = client.get("/api/config").json()

    assert "Memora Style" in body["stylePrompt"]
    assert "1024x1024" in body["stylePrompt"]
    assert body["acceptedTypes"] == ["image/png", "image/jpeg", "image/webp"]
