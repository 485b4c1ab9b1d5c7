"""Supabase client construction shared by storage and auth."""

from __future__ import annotations

import logging
from typing import Callable

from supabase import Client, create_client
from supabase.client import ClientOptions

from memora.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SupabaseFactory = Callable[[], Client]


def create_supabase(settings: Settings | None = None) -> Client:
    """Create a Supabase client that keeps no session between calls.

    Raises:
        RuntimeError: If required settings are missing
    """

    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError(
            "Supabase is not configured. Please set SUPABASE_URL and SUPABASE_ANON_KEY."
        )

    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


def supabase_factory(settings: Settings | None = None) -> SupabaseFactory:
    """Return a callable building a fresh client per call (one per auth request)."""

    settings = settings or get_settings()

    def _factory() -> Client:
        return create_supabase(settings)

    # Fail on startup rather than on the first request.
    _factory()
    logger.info("Supabase client factory initialised for %s", settings.supabase_url)
    return _factory
