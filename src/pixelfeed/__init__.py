"""Pixelfeed - AI image generation gallery with a shared, heartable feed."""

__version__ = "0.1.0"

from pixelfeed.core.config import PixelfeedConfig, config

__all__ = [
    "PixelfeedConfig",
    "config",
]
