"""Integration check helpers."""

from .checks import (
    IntegrationCheckResult,
    check_image_provider,
    check_storage,
    run_all_checks,
)

__all__ = [
    "IntegrationCheckResult",
    "check_image_provider",
    "check_storage",
    "run_all_checks",
]
