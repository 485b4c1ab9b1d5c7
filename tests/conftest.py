"""Shared fixtures: in-memory collaborators for the sticker pipeline."""

from __future__ import annotations

import base64
from dataclasses import replace
from io import BytesIO
from typing import Any

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from memora.api.context import AppContext
from memora.api.main import create_app
from memora.auth.session import ACCESS_TOKEN_COOKIE, UserSession
from memora.config.settings import Settings
from memora.errors import StorageUploadFailed
from memora.imgproc.normalize import ImageNormalizer
from memora.services.sticker import StickerService


def make_image_bytes(size: tuple[int, int], fmt: str = "JPEG", color: str = "orange") -> bytes:
    mode = "RGB" if fmt == "JPEG" else "RGBA"
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_png_b64(size: tuple[int, int] = (16, 16)) -> str:
    return base64.b64encode(make_image_bytes(size, fmt="PNG")).decode("ascii")


class FakeGenerator:
    """Replays queued outcomes: a string is returned, an exception is raised."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes) or [make_png_b64()]
        self.calls: list[tuple[bytes, str]] = []

    async def edit_image(self, image_png: bytes, prompt: str) -> str:
        self.calls.append((image_png, prompt))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        return None


class FakeStorage:
    """Object storage double keeping uploads in a dict."""

    def __init__(self, *, fail_edited: bool = False, fail_archive: bool = False, public_urls: bool = True) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_edited = fail_edited
        self.fail_archive = fail_archive
        self.public_urls = public_urls

    async def save(self, path: str, data: bytes, *, content_type: str) -> str:
        edited = path.startswith("public/edited-")
        if (edited and self.fail_edited) or (not edited and self.fail_archive):
            raise StorageUploadFailed.from_storage("The resource already exists")
        self.objects[path] = (data, content_type)
        return path

    async def public_url(self, path: str) -> str | None:
        if not self.public_urls:
            return None
        return f"https://storage.test/object/public/uploads/{path}"


class FakeSessions:
    """Session provider double; any access token maps to ``session``."""

    def __init__(self, session: UserSession | None = None, error: Exception | None = None) -> None:
        self.session = session
        self.error = error
        self.calls: list[tuple[str | None, str | None]] = []

    async def resolve(self, access_token: str | None, refresh_token: str | None = None) -> UserSession | None:
        self.calls.append((access_token, refresh_token))
        if self.error is not None:
            raise self.error
        if not access_token:
            return None
        return self.session


async def _no_sleep(_: float) -> None:
    return None


def make_service(generator: FakeGenerator, storage: FakeStorage) -> StickerService:
    return StickerService(generator, storage, ImageNormalizer(128), sleep=_no_sleep)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://project.supabase.test",
        supabase_anon_key="anon-key",
        openai_api_key="test-openai",
    )


@pytest.fixture
def user_session() -> UserSession:
    return UserSession(user_id="user-123", email="user@example.com", access_token="access-token")


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def sessions(user_session: UserSession) -> FakeSessions:
    return FakeSessions(session=user_session)


@pytest.fixture
def sticker_service(generator: FakeGenerator, storage: FakeStorage) -> StickerService:
    return make_service(generator, storage)


@pytest.fixture
def context(settings: Settings, sessions: FakeSessions, sticker_service: StickerService) -> AppContext:
    return AppContext(settings=settings, sessions=sessions, stickers=sticker_service)  # type: ignore[arg-type]


@pytest.fixture
def client(context: AppContext) -> TestClient:
    app = create_app(context=context)
    return TestClient(app, cookies={ACCESS_TOKEN_COOKIE: "access-token"})


@pytest.fixture
def anonymous_client(context: AppContext) -> TestClient:
    return TestClient(create_app(context=context))


@pytest.fixture
def prod_settings(settings: Settings) -> Settings:
    return replace(settings, environment="prod")
