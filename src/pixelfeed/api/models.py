"""Pydantic request and response models for the Pixelfeed API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

The wire format is camelCase (``imageUrl``, ``totalPages``) while the Python
attributes stay snake_case; the alias generator bridges the two.  Numeric and
string fields are strict so that ``"3"`` is not silently accepted where an
integer is required, and ``true`` is never taken for ``1``.

Field order matters for the request models: when several fields are invalid
the first one reported decides the response status (see
:mod:`pixelfeed.api.errors`).

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
HeartsUpdateRequest
    Payload for ``PUT /api/feed``.
PublishRequest
    Payload for ``POST /api/publish``.
UserProfileRequest
    Payload for ``POST /api/users``.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
)
from pydantic.alias_generators import to_camel

from pixelfeed.core.images_db import PublishedImage, UserProfile


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_text(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must be a non-empty string")
    return stripped


# A string that is trimmed and must not be blank afterwards.
NonBlankStr = Annotated[StrictStr, AfterValidator(_require_text)]


# ---------------------------------------------------------------------------
# Requests.
# ---------------------------------------------------------------------------


class GenerateRequest(CamelModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Text description of the image.  Leading and trailing
            whitespace is removed; the trimmed value must not be empty.
    """

    prompt: NonBlankStr = Field(
        ...,
        description="Text prompt sent to the image provider.",
    )


class HeartsUpdateRequest(CamelModel):
    """Request body for the ``PUT /api/feed`` endpoint.

    Attributes:
        id: Id of the published image.
        hearts: New heart count; a non-negative integer.
    """

    id: StrictInt = Field(..., description="Id of the published image.")
    hearts: StrictInt = Field(..., ge=0, description="New, non-negative heart count.")


class PublishRequest(CamelModel):
    """Request body for the ``POST /api/publish`` endpoint.

    Attributes:
        image_url: URL of the generated image (``imageUrl``).  Trimmed; must
            not be empty.
        prompt: Prompt the image came from.  Required, but may be empty.
        user_id: Identifier of the publishing user (``userId``).
        user_name: Optional display name (``userName``).  Blank becomes
            ``None``.
    """

    image_url: NonBlankStr = Field(..., description="URL of the generated image.")
    prompt: StrictStr = Field(..., description="Prompt used; may be empty.")
    user_id: StrictStr = Field(..., min_length=1, description="Publishing user id.")
    user_name: StrictStr | None = Field(default=None, description="Display name.")

    @field_validator("user_name")
    @classmethod
    def blank_name_is_none(cls, value: str | None) -> str | None:
        return value or None


class UserProfileRequest(CamelModel):
    """Request body for the ``POST /api/users`` endpoint."""

    user_id: StrictStr = Field(..., min_length=1, description="External auth uid.")
    email: NonBlankStr = Field(..., description="Email address, unique per user.")
    display_name: StrictStr | None = Field(default=None, description="Display name.")


# ---------------------------------------------------------------------------
# Responses.
# ---------------------------------------------------------------------------


class PublishedImageOut(CamelModel):
    """A published image as it appears in the feed."""

    id: int
    image_url: str
    prompt: str
    hearts: int
    created_at: str

    @classmethod
    def from_record(cls, image: PublishedImage) -> PublishedImageOut:
        return cls(
            id=image.id,
            image_url=image.image_url,
            prompt=image.prompt,
            hearts=image.hearts,
            created_at=image.created_at,
        )


class OwnedImageOut(PublishedImageOut):
    """A published image including its owner fields."""

    user_id: str | None = None
    user_name: str | None = None

    @classmethod
    def from_record(cls, image: PublishedImage) -> OwnedImageOut:
        return cls(
            id=image.id,
            image_url=image.image_url,
            prompt=image.prompt,
            hearts=image.hearts,
            created_at=image.created_at,
            user_id=image.owner_id,
            user_name=image.owner_name,
        )


class FeedPage(CamelModel):
    """Response body of ``GET /api/feed``."""

    images: list[PublishedImageOut]
    total: int
    page: int
    total_pages: int


class OwnedImages(CamelModel):
    """Response body of ``GET /api/my-images``."""

    images: list[OwnedImageOut]


class GenerateResponse(CamelModel):
    """Response body of ``POST /api/generate``."""

    image_url: str
    prompt: str


class UserProfileOut(CamelModel):
    """Response body of ``POST /api/users``."""

    user_id: str
    email: str
    display_name: str | None = None

    @classmethod
    def from_record(cls, profile: UserProfile) -> UserProfileOut:
        return cls(user_id=profile.id, email=profile.email, display_name=profile.name)
