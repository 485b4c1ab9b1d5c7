"""Memora sticker service: restyle an uploaded photo and publish the result."""

__version__ = "0.1.0"
