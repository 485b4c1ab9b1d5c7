"""Shared dependencies handed to the HTTP routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from memora.auth.session import SessionProvider
from memora.config.settings import Settings
from memora.imggen.generator_client import StickerGeneratorClient
from memora.imgproc.normalize import ImageNormalizer
from memora.services.sticker import StickerService
from memora.storage.backend import SupabaseStorage
from memora.supabase_client import create_supabase, supabase_factory


@dataclass(slots=True)
class AppContext:
    """Container for objects shared across requests."""

    settings: Settings
    sessions: SessionProvider
    stickers: StickerService
    generator: StickerGeneratorClient | None = None

    async def close(self) -> None:
        if self.generator is not None:
            await self.generator.close()


def build_context(settings: Settings) -> AppContext:
    """Create the production clients from ``settings``."""

    generator = StickerGeneratorClient(settings)
    storage = SupabaseStorage(
        create_supabase(settings),
        settings.supabase_bucket,
        cache_control=settings.storage_cache_control,
    )
    stickers = StickerService(
        generator,
        storage,
        ImageNormalizer(settings.resize_max_side),
        max_attempts=settings.image_max_attempts,
        retry_delay=settings.image_retry_delay,
    )
    return AppContext(
        settings=settings,
        sessions=SessionProvider(supabase_factory(settings)),
        stickers=stickers,
        generator=generator,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context stored on ``app.state``."""

    return request.app.state.context
