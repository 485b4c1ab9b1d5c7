"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter


sticker_generation_total = Counter(
    "sticker_generation_total",
    "Sticker generation requests by outcome.",
    ["outcome"],
)

sticker_provider_retries_total = Counter(
    "sticker_provider_retries_total",
    "Image provider calls retried after a transient failure.",
)

sticker_archive_total = Counter(
    "sticker_archive_total",
    "Background uploads of original images by outcome.",
    ["outcome"],
)
