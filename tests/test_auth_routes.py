"""HTTP tests for the /auth routes and session cookies."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import pytest_mock
from fastapi.testclient import TestClient
from supabase_auth.errors import AuthApiError

from memora.api.context import AppContext
from memora.api.main import create_app
from memora.auth.session import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, SessionProvider


def _auth_response(access: str = "access-1", refresh: str = "refresh-1") -> SimpleNamespace:
    return SimpleNamespace(
        user=SimpleNamespace(id="user-1", email="a@example.com"),
        session=SimpleNamespace(access_token=access, refresh_token=refresh),
    )


@pytest.fixture
def supabase(mocker: pytest_mock.MockerFixture):
    return mocker.MagicMock()


@pytest.fixture
def auth_context(context: AppContext, supabase) -> AppContext:
    context.sessions = SessionProvider(lambda: supabase)
    return context


@pytest.fixture
def auth_client(auth_context: AppContext) -> TestClient:
    return TestClient(create_app(context=auth_context))


def _set_cookies(response) -> str:
    return "\n".join(response.headers.get_list("set-cookie"))


def test_sign_in_sets_http_only_cookies(auth_client: TestClient, supabase) -> None:
    supabase.auth.sign_in_with_password.return_value = _auth_response()

    response = auth_client.post("/auth/sign-in", json={"email": "a@example.com", "password": "secret"})

    assert response.status_code == 200
    assert response.json() == {"authenticated": True, "user_id": "user-1", "email": "a@example.com"}
    cookies = _set_cookies(response)
    assert f"{ACCESS_TOKEN_COOKIE}=access-1" in cookies
    assert f"{REFRESH_TOKEN_COOKIE}=refresh-1" in cookies
    assert "HttpOnly" in cookies


def test_sign_in_rejected(auth_client: TestClient, supabase) -> None:
    supabase.auth.sign_in_with_password.side_effect = AuthApiError(
        "Invalid login credentials", 400, "invalid_credentials"
    )

    response = auth_client.post("/auth/sign-in", json={"email": "a@example.com", "password": "nope"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid login credentials"}


def test_sign_up_password_mismatch(auth_client: TestClient, supabase) -> None:
    response = auth_client.post(
        "/auth/sign-up",
        json={"email": "a@example.com", "password": "one", "confirm_password": "two"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Passwords do not match."}
    supabase.auth.sign_up.assert_not_called()


def test_sign_up_moves_to_otp_step(auth_client: TestClient, supabase) -> None:
    supabase.auth.sign_up.return_value = SimpleNamespace(
        user=SimpleNamespace(id="user-1", email="a@example.com"), session=None
    )

    response = auth_client.post(
        "/auth/sign-up",
        json={"email": "a@example.com", "password": "secret", "confirm_password": "secret"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "verify_otp"
    assert body["email"] == "a@example.com"
    assert not response.headers.get_list("set-cookie")


def test_sign_up_with_immediate_session(auth_client: TestClient, supabase) -> None:
    supabase.auth.sign_up.return_value = _auth_response()

    response = auth_client.post(
        "/auth/sign-up",
        json={"email": "a@example.com", "password": "secret", "confirm_password": "secret"},
    )

    assert response.json()["view"] == "signed_in"
    assert f"{ACCESS_TOKEN_COOKIE}=access-1" in _set_cookies(response)


def test_send_otp(auth_client: TestClient, supabase) -> None:
    response = auth_client.post("/auth/otp", json={"email": "a@example.com"})

    assert response.status_code == 200
    assert response.json()["view"] == "verify_otp"
    supabase.auth.sign_in_with_otp.assert_called_once()


def test_verify_otp_signs_in(auth_client: TestClient, supabase) -> None:
    supabase.auth.verify_otp.return_value = _auth_response()

    response = auth_client.post(
        "/auth/verify-otp",
        json={"email": "a@example.com", "token": "123456", "type": "signup"},
    )

    assert response.status_code == 200
    assert response.json()["authenticated"] is True
    assert f"{ACCESS_TOKEN_COOKIE}=access-1" in _set_cookies(response)
    supabase.auth.verify_otp.assert_called_once_with(
        {"email": "a@example.com", "token": "123456", "type": "signup"}
    )


def test_verify_otp_rejects_unknown_type(auth_client: TestClient) -> None:
    response = auth_client.post(
        "/auth/verify-otp",
        json={"email": "a@example.com", "token": "123456", "type": "sms"},
    )

    assert response.status_code == 422


def test_sign_out_clears_cookies(auth_context: AppContext, supabase) -> None:
    client = TestClient(create_app(context=auth_context), cookies={ACCESS_TOKEN_COOKIE: "access-1"})

    response = client.post("/auth/sign-out")

    assert response.status_code == 200
    assert response.json()["authenticated"] is False
    supabase.auth.admin.sign_out.assert_called_once_with("access-1")
    cookies = _set_cookies(response)
    assert f'{ACCESS_TOKEN_COOKIE}=""' in cookies
    assert f'{REFRESH_TOKEN_COOKIE}=""' in cookies


def test_session_info_anonymous(auth_client: TestClient) -> None:
    response = auth_client.get("/auth/session")

    assert response.json() == {"authenticated": False, "user_id": None, "email": None}


def test_refreshed_session_rewrites_cookies(auth_context: AppContext, supabase) -> None:
    supabase.auth.get_user.side_effect = AuthApiError("JWT expired", 401, "bad_jwt")
    supabase.auth.refresh_session.return_value = _auth_response(access="access-2", refresh="refresh-2")
    client = TestClient(
        create_app(context=auth_context),
        cookies={ACCESS_TOKEN_COOKIE: "expired", REFRESH_TOKEN_COOKIE: "refresh-1"},
    )

    response = client.get("/auth/session")

    assert response.json()["authenticated"] is True
    cookies = _set_cookies(response)
    assert f"{ACCESS_TOKEN_COOKIE}=access-2" in cookies
    assert f"{REFRESH_TOKEN_COOKIE}=refresh-2" in cookies
