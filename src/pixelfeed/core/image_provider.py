"""Image-generation provider client for Pixelfeed.

This module provides :class:`ImageProvider`, the single point of contact with
the OpenAI Images API.  It mirrors the lifecycle of the other long-lived
objects on ``app.state``: created in the FastAPI lifespan, lazily connected on
first use, closed on shutdown.

Key Responsibilities
--------------------
- **Lazy client creation**: the ``AsyncOpenAI`` client is only built when
  :meth:`ImageProvider.generate` is first called.
- **No retries**: the client is built with ``max_retries=0``; a failed call
  is surfaced to the caller immediately.
- **Error translation**: OpenAI SDK exceptions are mapped onto the small
  :class:`ImageProviderError` hierarchy so the API layer never depends on
  SDK exception types.

Usage
-----
::

    from pixelfeed.core.config import config
    from pixelfeed.core.image_provider import ImageProvider

    provider = ImageProvider(config)
    url = await provider.generate("a lighthouse at dusk")
    await provider.aclose()
"""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from pixelfeed.core.config import PixelfeedConfig

logger = logging.getLogger(__name__)


class ImageProviderError(Exception):
    """Base class for failures talking to the image provider."""


class ProviderAuthError(ImageProviderError):
    """The provider rejected our credentials, or none are configured."""


class ProviderRateLimitError(ImageProviderError):
    """The provider throttled the request."""


class ImageProvider:
    """Generate images through the OpenAI Images API.

    Attributes:
        _config (PixelfeedConfig):
            Application configuration: API key, model, size and timeout.
        _client (AsyncOpenAI | None):
            The SDK client, or ``None`` until the first generation.
    """

    def __init__(self, config: PixelfeedConfig) -> None:
        self._config = config
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._config.has_openai_key():
                raise ProviderAuthError("OpenAI API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self._config.openai_api_key,
                timeout=self._config.provider_timeout,
                max_retries=0,
            )
            logger.info(f"Created OpenAI client for model {self._config.image_model}")
        return self._client

    async def generate(self, prompt: str) -> str:
        """Generate one image and return its URL.

        Args:
            prompt: Already-trimmed, non-empty prompt text

        Returns:
            URL of the generated image

        Raises:
            ProviderAuthError: If credentials are missing or rejected
            ProviderRateLimitError: If the provider throttled the request
            ImageProviderError: For every other provider failure
        """
        client = self._get_client()

        try:
            response = await client.images.generate(
                model=self._config.image_model,
                prompt=prompt,
                size=self._config.image_size,
                n=1,
            )
        except openai.AuthenticationError as e:
            logger.error("Image provider rejected the configured credentials")
            raise ProviderAuthError("Image provider authentication failed") from e
        except openai.RateLimitError as e:
            logger.warning("Image provider rate limit hit")
            raise ProviderRateLimitError("Image provider rate limit exceeded") from e
        except openai.APIError as e:
            logger.error(f"Image provider error: {e.message}")
            raise ImageProviderError(e.message) from e

        if not response.data or not response.data[0].url:
            logger.error("Image provider returned no image URL")
            raise ImageProviderError("Image provider returned no image")

        return response.data[0].url

    async def aclose(self) -> None:
        """Close the SDK client if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("OpenAI client closed")
