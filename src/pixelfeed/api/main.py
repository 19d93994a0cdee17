"""Pixelfeed — FastAPI Application.

This module is the single entry point for the web service.  It defines the
:func:`create_app` factory, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application follows a stateless REST pattern:

- **Configuration** comes from :class:`~pixelfeed.core.config.PixelfeedConfig`
  (environment variables with the ``PIXELFEED_`` prefix).
- **Persistence** goes through :class:`~pixelfeed.core.images_db.ImagesDB`,
  a SQLite store constructed in the lifespan and kept on ``app.state``.
- **Image generation** is delegated to
  :class:`~pixelfeed.core.image_provider.ImageProvider` (OpenAI Images).
- **Rate limiting** of generation is done by
  :class:`~pixelfeed.core.cooldown.GenerationCooldown` from tokens the
  caller presents in request headers; the server remembers nothing between
  requests.

Endpoints
---------
========  ==========================  ======================================
Method    Path                        Purpose
========  ==========================  ======================================
GET       ``/api/health``             Liveness and version
GET       ``/api/feed``               Paginated feed, newest first
PUT       ``/api/feed``               Set the heart count of an image
GET       ``/api/feed/{id}``          Single published image
POST      ``/api/generate``           Generate an image (cooldown applies)
POST      ``/api/publish``            Publish a generated image
GET       ``/api/my-images``          Images published by an owner email
POST      ``/api/users``              Create or update a user profile
========  ==========================  ======================================

Usage
-----
CLI (installed entry point)::

    pixelfeed

Direct invocation::

    python -m pixelfeed.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from pixelfeed import __version__
from pixelfeed.api.errors import (
    ConflictError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
    register_exception_handlers,
)
from pixelfeed.api.feed import resolve_window, total_pages
from pixelfeed.api.models import (
    FeedPage,
    GenerateRequest,
    GenerateResponse,
    HeartsUpdateRequest,
    OwnedImageOut,
    OwnedImages,
    PublishedImageOut,
    PublishRequest,
    UserProfileOut,
    UserProfileRequest,
)
from pixelfeed.core.config import PixelfeedConfig, config
from pixelfeed.core.cooldown import (
    IDENTITY_HEADER,
    LAST_REQUEST_HEADER,
    CooldownActive,
    GenerationCooldown,
)
from pixelfeed.core.image_provider import (
    ImageProvider,
    ImageProviderError,
    ProviderAuthError,
    ProviderRateLimitError,
)
from pixelfeed.core.images_db import (
    DatastoreError,
    EmailInUseError,
    ImageNotFoundError,
    ImagesDB,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Accessors for lifespan-owned collaborators.
# ---------------------------------------------------------------------------


def _images_db(request: Request) -> ImagesDB:
    return request.app.state.images_db


def _image_provider(request: Request) -> ImageProvider:
    return request.app.state.image_provider


def _cooldown(request: Request) -> GenerationCooldown:
    return request.app.state.cooldown


def _settings(request: Request) -> PixelfeedConfig:
    return request.app.state.config


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/health")
async def health() -> dict:
    """Return service liveness and version."""
    return {"status": "ok", "version": __version__}


@router.get("/feed")
async def list_feed(
    request: Request,
    page: str | None = None,
    limit: str | None = None,
) -> FeedPage:
    """Return one page of published images, newest first.

    ``page`` and ``limit`` are taken as raw strings so that garbage values
    fall back to defaults instead of failing validation.

    Args:
        request: Incoming request (used to reach ``app.state``).
        page: One-based page number; defaults to 1.
        limit: Page size; defaults to 10, clamped to 50.

    Returns:
        The page of images with ``total``, ``page`` and ``totalPages``.

    Raises:
        UpstreamError: 500 if the datastore fails.
    """
    settings = _settings(request)
    window = resolve_window(
        page,
        limit,
        default_limit=settings.feed_default_limit,
        max_limit=settings.feed_max_limit,
    )

    try:
        images, total = _images_db(request).list_page(skip=window.skip, take=window.limit)
    except DatastoreError as exc:
        raise UpstreamError("Failed to fetch feed") from exc

    return FeedPage(
        images=[PublishedImageOut.from_record(image) for image in images],
        total=total,
        page=window.page,
        total_pages=total_pages(total, window.limit),
    )


@router.put("/feed")
async def update_hearts(req: HeartsUpdateRequest, request: Request) -> PublishedImageOut:
    """Set the heart count of a published image.

    Args:
        req: Validated :class:`HeartsUpdateRequest` payload.
        request: Incoming request.

    Returns:
        The full updated image record.

    Raises:
        NotFoundError: 404 if no image has the given id.
        UpstreamError: 500 for any other datastore failure.
    """
    try:
        image = _images_db(request).update_hearts(req.id, req.hearts)
    except ImageNotFoundError as exc:
        raise NotFoundError("Image") from exc
    except DatastoreError as exc:
        raise UpstreamError("Failed to update hearts") from exc

    return PublishedImageOut.from_record(image)


@router.get("/feed/{image_id}")
async def get_image(image_id: int, request: Request) -> PublishedImageOut:
    """Return a single published image by id.

    Raises:
        NotFoundError: 404 if the image is not found.
    """
    try:
        image = _images_db(request).get_image(image_id)
    except ImageNotFoundError as exc:
        raise NotFoundError("Image") from exc
    except DatastoreError as exc:
        raise UpstreamError("Failed to fetch image") from exc

    return PublishedImageOut.from_record(image)


@router.post("/generate")
async def generate_image(
    req: GenerateRequest,
    request: Request,
    response: Response,
) -> GenerateResponse:
    """Generate one image from a prompt, subject to the caller's cooldown.

    The caller's identity and last-request tokens are read from the
    ``X-Client-Token`` and ``X-Last-Generate-At`` headers.  Updated tokens are
    returned in the same headers on success and on upstream failure, since
    both count as an admitted attempt.

    Args:
        req: Validated :class:`GenerateRequest`; ``prompt`` is already trimmed.
        request: Incoming request carrying the token headers.
        response: Outgoing response, used to hand the tokens back.

    Returns:
        ``{imageUrl, prompt}`` with the trimmed prompt echoed.

    Raises:
        RateLimitedError: 429 inside the cooldown window (with ``retryAfter``)
            or when the provider throttles us.
        UpstreamError: 500 for provider authentication or other failures.
    """
    try:
        ticket = _cooldown(request).admit(
            request.headers.get(IDENTITY_HEADER),
            request.headers.get(LAST_REQUEST_HEADER),
        )
    except CooldownActive as exc:
        raise RateLimitedError(
            f"Please wait {exc.wait_seconds} seconds before generating another image.",
            retry_after=exc.wait_seconds,
            headers=exc.headers,
        ) from exc

    try:
        image_url = await _image_provider(request).generate(req.prompt)
    except ProviderAuthError as exc:
        # Never echo provider auth detail back to the caller.
        raise UpstreamError(
            "Image generation service is unavailable",
            headers=ticket.headers,
        ) from exc
    except ProviderRateLimitError as exc:
        raise RateLimitedError(
            "Rate limit exceeded. Please try again later.",
            headers=ticket.headers,
        ) from exc
    except ImageProviderError as exc:
        raise UpstreamError(
            str(exc) or "Failed to generate image",
            headers=ticket.headers,
        ) from exc

    for name, value in ticket.headers.items():
        response.headers[name] = value

    return GenerateResponse(image_url=image_url, prompt=req.prompt)


@router.post("/publish")
async def publish_image(req: PublishRequest, request: Request) -> OwnedImageOut:
    """Publish a generated image to the shared feed.

    Args:
        req: Validated :class:`PublishRequest` payload.
        request: Incoming request.

    Returns:
        The created record, including its server-assigned id and zero hearts.

    Raises:
        UpstreamError: 500 if the datastore fails.
    """
    try:
        image = _images_db(request).create_image(
            image_url=req.image_url,
            prompt=req.prompt,
            owner_id=req.user_id,
            owner_name=req.user_name,
        )
    except DatastoreError as exc:
        raise UpstreamError("Failed to publish image") from exc

    return OwnedImageOut.from_record(image)


@router.get("/my-images")
async def list_my_images(request: Request, email: str | None = None) -> OwnedImages:
    """Return every image published by the owner with this email.

    A missing or blank ``email`` yields an empty list rather than an error.
    """
    email = (email or "").strip()
    if not email:
        return OwnedImages(images=[])

    try:
        images = _images_db(request).list_by_owner_email(email)
    except DatastoreError as exc:
        raise UpstreamError("Failed to fetch images") from exc

    return OwnedImages(images=[OwnedImageOut.from_record(image) for image in images])


@router.post("/users")
async def upsert_user(req: UserProfileRequest, request: Request) -> UserProfileOut:
    """Create or update the profile that links a user id to an email.

    Raises:
        ConflictError: 409 if the email belongs to a different user.
        UpstreamError: 500 if the datastore fails.
    """
    try:
        profile = _images_db(request).upsert_user(req.user_id, req.email, req.display_name)
    except EmailInUseError as exc:
        raise ConflictError("Email is already registered to another user") from exc
    except DatastoreError as exc:
        raise UpstreamError("Failed to save user") from exc

    return UserProfileOut.from_record(profile)


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(settings: PixelfeedConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration to serve with.  Defaults to the global
            :data:`~pixelfeed.core.config.config` instance.

    Returns:
        A configured FastAPI application.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the datastore handle and provider client for the app's lifetime.

        On startup:
            Opens the :class:`ImagesDB` (creating the schema if needed) and
            creates the :class:`ImageProvider` and :class:`GenerationCooldown`.
            The provider does not connect until the first generation.

        On shutdown:
            Closes the provider's HTTP client.
        """
        # --- Startup -------------------------------------------------------
        app.state.config = settings
        app.state.images_db = ImagesDB(settings.database_path)
        app.state.image_provider = ImageProvider(settings)
        app.state.cooldown = GenerationCooldown(settings.generate_cooldown_ms)
        logger.info(f"Pixelfeed started (database {settings.database_path}).")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await app.state.image_provider.aclose()
        logger.info("Pixelfeed stopped.")

    app = FastAPI(
        title="Pixelfeed",
        description="AI image generation with a shared, heartable feed.",
        version=__version__,
        lifespan=lifespan,
    )

    # Browser clients must be able to read the token headers to send them
    # back on their next generation.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[IDENTITY_HEADER, LAST_REQUEST_HEADER, "Retry-After"],
    )

    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~pixelfeed.core.config.config`
    (``PIXELFEED_SERVER_HOST``, ``PIXELFEED_SERVER_PORT``,
    ``PIXELFEED_LOG_LEVEL``).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``pixelfeed`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "pixelfeed.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
