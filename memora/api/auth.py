"""Authentication helpers and route dependencies."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from memora.api.context import AppContext, get_context
from memora.api.schemas import (
    AuthStep,
    Credentials,
    EmailRequest,
    SessionInfo,
    SignUpRequest,
    VerifyOtpRequest,
)
from memora.auth.session import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthFlowError,
    UserSession,
)
from memora.errors import Unauthorized

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 7


def write_session_cookies(response: Response, session: UserSession, *, secure: bool) -> None:
    """Store the session tokens as HttpOnly cookies on ``response``."""

    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=SESSION_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            session.refresh_token,
            max_age=SESSION_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=secure,
        )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)


async def current_session(
    request: Request,
    response: Response,
    context: AppContext = Depends(get_context),
) -> UserSession | None:
    """Resolve the caller's session from cookies; ``None`` when signed out.

    Refreshed tokens are written back to the outgoing cookies.
    """

    session = await context.sessions.resolve(
        request.cookies.get(ACCESS_TOKEN_COOKIE),
        request.cookies.get(REFRESH_TOKEN_COOKIE),
    )
    if session is not None and session.refreshed:
        write_session_cookies(response, session, secure=context.settings.session_cookie_secure)
    return session


async def require_session(session: UserSession | None = Depends(current_session)) -> UserSession:
    """Reject anonymous callers with ``Unauthorized``."""

    if session is None:
        raise Unauthorized()
    logger.info("Authenticated user ID: %s", session.user_id)
    return session


SessionDependency = Depends(require_session)


def _signed_in(response: Response, session: UserSession, context: AppContext) -> SessionInfo:
    write_session_cookies(response, session, secure=context.settings.session_cookie_secure)
    return SessionInfo(authenticated=True, user_id=session.user_id, email=session.email)


@router.get("/session", response_model=SessionInfo)
async def session_info(session: UserSession | None = Depends(current_session)) -> SessionInfo:
    if session is None:
        return SessionInfo(authenticated=False)
    return SessionInfo(authenticated=True, user_id=session.user_id, email=session.email)


@router.post("/sign-in", response_model=SessionInfo)
async def sign_in(
    body: Credentials,
    response: Response,
    context: AppContext = Depends(get_context),
) -> SessionInfo:
    session = await context.sessions.sign_in_with_password(body.email, body.password)
    return _signed_in(response, session, context)


@router.post("/sign-up", response_model=AuthStep)
async def sign_up(
    body: SignUpRequest,
    response: Response,
    context: AppContext = Depends(get_context),
) -> AuthStep:
    """Create an account; usually the next step is entering the emailed code."""

    if body.password != body.confirm_password:
        raise AuthFlowError("Passwords do not match.")

    result = await context.sessions.sign_up(body.email, body.password)
    if result.session is not None:
        write_session_cookies(response, result.session, secure=context.settings.session_cookie_secure)
        return AuthStep(view="signed_in", email=result.email, message="Account created and logged in!")
    return AuthStep(
        view="verify_otp",
        email=result.email,
        message="Account created! Check your email for the verification code.",
    )


@router.post("/otp", response_model=AuthStep)
async def send_otp(body: EmailRequest, context: AppContext = Depends(get_context)) -> AuthStep:
    await context.sessions.send_email_otp(body.email)
    return AuthStep(view="verify_otp", email=body.email, message="Check your email for the login code.")


@router.post("/verify-otp", response_model=SessionInfo)
async def verify_otp(
    body: VerifyOtpRequest,
    response: Response,
    context: AppContext = Depends(get_context),
) -> SessionInfo:
    session = await context.sessions.verify_otp(body.email, body.token, body.type)
    return _signed_in(response, session, context)


@router.post("/sign-out", response_model=SessionInfo)
async def sign_out(
    request: Request,
    response: Response,
    context: AppContext = Depends(get_context),
) -> SessionInfo:
    access_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if access_token:
        await context.sessions.sign_out(access_token)
    clear_session_cookies(response)
    return SessionInfo(authenticated=False)
