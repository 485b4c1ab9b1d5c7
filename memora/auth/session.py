"""Supabase-backed sessions: cookie token validation and the sign-in flows."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar

from supabase import Client
from supabase_auth.errors import AuthError, AuthRetryableError

from memora.errors import AuthCheckFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"


class OtpType(str, Enum):
    """Verification flows supported by the OTP form."""

    SIGNUP = "signup"
    EMAIL = "email"


@dataclass(slots=True)
class UserSession:
    """Identity resolved from a valid set of session tokens."""

    user_id: str
    email: str | None
    access_token: str
    refresh_token: str | None = None
    refreshed: bool = False


@dataclass(slots=True)
class SignUpResult:
    """Outcome of a password sign-up: either signed in or awaiting an OTP."""

    email: str
    session: UserSession | None


class AuthFlowError(RuntimeError):
    """Raised when the auth provider rejects a sign-in, sign-up or OTP request."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_rejection(exc: Exception) -> bool:
    """Return ``True`` when the provider refused the credentials rather than failing."""

    if isinstance(exc, AuthRetryableError) or not isinstance(exc, AuthError):
        return False
    status = getattr(exc, "status", None)
    return status is None or 400 <= int(status) < 500


def _flow_error(exc: AuthError) -> AuthFlowError:
    status = getattr(exc, "status", None) or 400
    return AuthFlowError(getattr(exc, "message", None) or str(exc), status_code=int(status))


def _to_session(response: Any, *, refreshed: bool = False) -> UserSession | None:
    session = getattr(response, "session", None)
    user = getattr(response, "user", None) or getattr(session, "user", None)
    if session is None or user is None:
        return None
    return UserSession(
        user_id=str(user.id),
        email=getattr(user, "email", None),
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        refreshed=refreshed,
    )


class SessionProvider:
    """Wraps Supabase auth; every call runs on a fresh client in a worker thread."""

    def __init__(self, client_factory: Callable[[], Client]) -> None:
        self._client_factory = client_factory

    async def _call(self, operation: Callable[[Client], T]) -> T:
        def _run() -> T:
            return operation(self._client_factory())

        return await asyncio.to_thread(_run)

    async def resolve(self, access_token: str | None, refresh_token: str | None = None) -> UserSession | None:
        """Return the session for the given cookie tokens, or ``None`` when signed out.

        Raises:
            AuthCheckFailed: the provider could not be asked (network, 5xx, SDK failure)
        """

        if not access_token and not refresh_token:
            return None

        if access_token:
            try:
                response = await self._call(lambda client: client.auth.get_user(access_token))
            except Exception as exc:
                if not _is_rejection(exc):
                    logger.error("Supabase session error: %s", exc)
                    raise AuthCheckFailed(details=str(exc)) from exc
                logger.info("Access token rejected by auth provider: %s", exc)
            else:
                user = getattr(response, "user", None)
                if user is not None:
                    return UserSession(
                        user_id=str(user.id),
                        email=getattr(user, "email", None),
                        access_token=access_token,
                        refresh_token=refresh_token,
                    )

        if not refresh_token:
            return None
        return await self._refresh(refresh_token)

    async def _refresh(self, refresh_token: str) -> UserSession | None:
        try:
            response = await self._call(lambda client: client.auth.refresh_session(refresh_token))
        except Exception as exc:
            if _is_rejection(exc):
                logger.info("Refresh token rejected by auth provider: %s", exc)
                return None
            logger.error("Supabase session refresh error: %s", exc)
            raise AuthCheckFailed(details=str(exc)) from exc
        return _to_session(response, refreshed=True)

    async def sign_in_with_password(self, email: str, password: str) -> UserSession:
        response = await self._flow(
            lambda client: client.auth.sign_in_with_password({"email": email, "password": password})
        )
        session = _to_session(response)
        if session is None:
            raise AuthFlowError("An unexpected error occurred during sign in.")
        return session

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        """Create an account; without an immediate session the user must confirm an OTP."""

        response = await self._flow(
            lambda client: client.auth.sign_up({"email": email, "password": password})
        )
        if getattr(response, "user", None) is None:
            raise AuthFlowError("An unexpected error occurred during sign up.")
        return SignUpResult(email=email, session=_to_session(response))

    async def send_email_otp(self, email: str) -> None:
        await self._flow(
            lambda client: client.auth.sign_in_with_otp(
                {"email": email, "options": {"should_create_user": True}}
            )
        )

    async def verify_otp(self, email: str, token: str, otp_type: OtpType) -> UserSession:
        response = await self._flow(
            lambda client: client.auth.verify_otp(
                {"email": email, "token": token, "type": otp_type.value}
            )
        )
        session = _to_session(response)
        if session is None:
            raise AuthFlowError("Verification failed. Invalid code or expired.")
        return session

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind ``access_token``; provider errors are logged only."""

        try:
            await self._call(lambda client: client.auth.admin.sign_out(access_token))
        except AuthError as exc:
            logger.warning("Supabase sign-out failed: %s", exc)

    async def _flow(self, operation: Callable[[Client], T]) -> T:
        try:
            return await self._call(operation)
        except AuthError as exc:
            if _is_rejection(exc):
                raise _flow_error(exc) from exc
            logger.error("Auth provider failure: %s", exc)
            raise AuthFlowError(getattr(exc, "message", None) or str(exc), status_code=502) from exc
