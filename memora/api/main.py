"""FastAPI entrypoint and HTTP routes.

========  =====================  =========================================
Method    Path                   Purpose
========  =====================  =========================================
GET       ``/``                  Upload / generate / download page
GET       ``/health``            Readiness probe
GET       ``/api/config``        Style prompt and accepted upload types
POST      ``/api/sticker``       Turn an uploaded photo into a sticker
ANY       ``/auth/*``            Sign-in, sign-up, OTP and sign-out
GET       ``/metrics``           Prometheus exposition
========  =====================  =========================================
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import make_asgi_app
from starlette.datastructures import UploadFile

from memora import __version__
from memora.api.auth import SessionDependency
from memora.api.auth import router as auth_router
from memora.api.context import AppContext, build_context, get_context
from memora.api.schemas import ClientConfig, ErrorResponse, StickerResponse
from memora.auth.session import AuthFlowError, UserSession
from memora.config.settings import Settings, get_settings
from memora.errors import InternalError, MissingInput, StickerError
from memora.imggen.prompt_builder import StickerPromptBuilder
from memora.monitoring.logging import configure_logging

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

ACCEPTED_IMAGE_TYPES = ["image/png", "image/jpeg", "image/webp"]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def create_app(settings: Settings | None = None, context: AppContext | None = None) -> FastAPI:
    """Initialise the FastAPI application.

    When ``context`` is given it is used as-is; otherwise the production
    clients are built on startup and closed on shutdown.
    """

    if settings is None:
        settings = context.settings if context is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned: AppContext | None = None
        if app.state.context is None:
            configure_logging(settings)
            owned = app.state.context = build_context(settings)
            logger.info("Application context initialised.")
        yield
        if owned is not None:
            await owned.close()

    app = FastAPI(
        title="Memora Sticker API",
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.context = context
    app.include_router(auth_router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(StickerError)
    async def sticker_error_handler(request: Request, exc: StickerError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(AuthFlowError)
    async def auth_flow_error_handler(request: Request, exc: AuthFlowError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness probes."""

        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> HTMLResponse:
        html = (TEMPLATES_DIR / "index.html").read_text(encoding="utf-8")
        return HTMLResponse(content=html)

    @app.get("/api/config", response_model=ClientConfig, tags=["sticker"])
    async def client_config() -> ClientConfig:
        return ClientConfig(
            style_prompt=StickerPromptBuilder().build(size=settings.image_size),
            accepted_types=ACCEPTED_IMAGE_TYPES,
        )

    @app.post(
        "/api/sticker",
        response_model=StickerResponse,
        responses=ERROR_RESPONSES,
        tags=["sticker"],
    )
    async def create_sticker(
        request: Request,
        background_tasks: BackgroundTasks,
        session: UserSession = SessionDependency,
        context: AppContext = Depends(get_context),
    ) -> StickerResponse:
        """Render the uploaded ``image`` as a sticker and return its public URL.

        The untouched upload is archived after the response has been sent.
        """

        form = await request.form()
        image = form.get("image")
        if not isinstance(image, UploadFile):
            raise MissingInput()
        prompt = form.get("prompt")
        if not isinstance(prompt, str):
            prompt = None

        image_bytes = await image.read()
        logger.info("Received user image: %s Size: %d (user %s)", image.filename, len(image_bytes), session.user_id)

        try:
            result = await context.stickers.generate(image_bytes, prompt)
        except StickerError:
            raise
        except Exception as exc:
            logger.exception("Sticker generation failed unexpectedly")
            raise InternalError(details=str(exc) or "Unknown error") from exc

        background_tasks.add_task(
            context.stickers.archive_original,
            image_bytes,
            image.filename,
            image.content_type,
        )
        return StickerResponse(image_url=result.image_url)

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""

    import uvicorn

    uvicorn.run("memora.api.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
