"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    environment: str = "dev"
    log_level: str = "INFO"

    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_bucket: str = "uploads"
    storage_cache_control: str = "3600"

    openai_api_key: str = ""
    openai_base_url: str = ""
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    image_timeout: float = 60.0
    image_max_attempts: int = 2
    image_retry_delay: float = 2.0

    resize_max_side: int = 128
    session_cookie_secure: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "prod"


def _build_settings() -> Settings:
    _load_env_file()

    environment = os.getenv("ENVIRONMENT", "dev")
    return Settings(
        environment=environment,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        supabase_bucket=os.getenv("SUPABASE_BUCKET", "uploads"),
        storage_cache_control=os.getenv("STORAGE_CACHE_CONTROL", "3600"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
        image_model=os.getenv("IMAGE_MODEL", "gpt-image-1"),
        image_size=os.getenv("IMAGE_SIZE", "1024x1024"),
        image_timeout=float(os.getenv("IMAGE_TIMEOUT", "60")),
        image_max_attempts=max(1, int(os.getenv("IMAGE_MAX_ATTEMPTS", "2"))),
        image_retry_delay=float(os.getenv("IMAGE_RETRY_DELAY", "2")),
        resize_max_side=int(os.getenv("RESIZE_MAX_SIDE", "128")),
        session_cookie_secure=_env_flag("SESSION_COOKIE_SECURE", environment == "prod"),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
