"""Connectivity checks for the image provider and object storage."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from memora.config.settings import get_settings
from memora.imggen.generator_client import StickerGeneratorClient
from memora.storage.backend import SupabaseStorage
from memora.supabase_client import create_supabase


@dataclass(slots=True)
class IntegrationCheckResult:
    """Structured result describing the integration check outcome."""

    name: str
    success: bool
    message: str


async def _run_check(
    name: str,
    factory: Callable[[], Awaitable[bool]],
    success_message: str,
) -> IntegrationCheckResult:
    try:
        result = await factory()
    except Exception as exc:
        return IntegrationCheckResult(name=name, success=False, message=str(exc))

    if result:
        return IntegrationCheckResult(name=name, success=True, message=success_message)
    return IntegrationCheckResult(
        name=name,
        success=False,
        message="Service responded with non-success status.",
    )


async def check_image_provider() -> IntegrationCheckResult:
    """Ping the image provider and return the result."""

    async def _ping() -> bool:
        client = StickerGeneratorClient(get_settings())
        try:
            return await client.ping()
        finally:
            await client.close()

    return await _run_check(
        name="Image provider",
        factory=_ping,
        success_message="Image provider API is reachable.",
    )


async def check_storage() -> IntegrationCheckResult:
    """Fetch the configured bucket and return the result."""

    async def _ping() -> bool:
        settings = get_settings()
        storage = SupabaseStorage(create_supabase(settings), settings.supabase_bucket)
        return await storage.ping()

    return await _run_check(
        name="Object storage",
        factory=_ping,
        success_message="Storage bucket is reachable.",
    )


async def run_all_checks() -> list[IntegrationCheckResult]:
    """Execute all integration checks concurrently."""

    return list(await asyncio.gather(check_image_provider(), check_storage()))
