"""Core functionality for the Pixelfeed service.

This package holds everything that does not depend on HTTP:

- **PixelfeedConfig** / **config**: configuration using Pydantic Settings
  (``PIXELFEED_`` prefix, ``.env`` support).
- **ImagesDB**: SQLite-backed store for published images and user profiles.
- **ImageProvider**: OpenAI Images client with error translation.
- **GenerationCooldown**: per-caller cooldown driven by caller-held tokens.

The FastAPI layer in :mod:`pixelfeed.api` constructs these objects in its
lifespan and exposes them through ``app.state``.
"""

from pixelfeed.core.config import PixelfeedConfig, config
from pixelfeed.core.cooldown import CooldownActive, CooldownTicket, GenerationCooldown
from pixelfeed.core.image_provider import ImageProvider, ImageProviderError
from pixelfeed.core.images_db import DatastoreError, ImageNotFoundError, ImagesDB, PublishedImage

__all__ = [
    "CooldownActive",
    "CooldownTicket",
    "DatastoreError",
    "GenerationCooldown",
    "ImageNotFoundError",
    "ImageProvider",
    "ImageProviderError",
    "ImagesDB",
    "PixelfeedConfig",
    "PublishedImage",
    "config",
]
