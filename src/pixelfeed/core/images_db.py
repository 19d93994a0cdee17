"""SQLite database for published images and user profiles.

:class:`ImagesDB` is the single datastore handle of the application.  It is
constructed once in the FastAPI lifespan and handed to route handlers through
``app.state``; nothing in this module keeps a module-level connection.

Every public method opens its own connection, so one instance can be shared
between the event loop and FastAPI's threadpool.  Single-record mutations
(publishing, heart updates) rely on SQLite's per-statement atomicity.

Failures are logged and re-raised as :class:`DatastoreError` so the API layer
can answer with a generic 500 instead of leaking SQL detail.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class DatastoreError(Exception):
    """Raised when the underlying SQLite database fails."""


class ImageNotFoundError(DatastoreError):
    """Raised when no published image has the requested id."""

    def __init__(self, image_id: int):
        self.image_id = image_id
        super().__init__(f"Image {image_id} not found")


class EmailInUseError(DatastoreError):
    """Raised when a profile email already belongs to another user."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered to another user")


def format_timestamp(moment: datetime) -> str:
    """Render a datetime in the canonical UTC form, e.g. ``2024-05-01T12:30:00.123Z``.

    Naive datetimes are assumed to already be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PublishedImage:
    """A generated image that has been published to the shared feed."""

    id: int
    image_url: str
    prompt: str
    hearts: int
    created_at: str
    owner_id: str | None = None
    owner_name: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Minimal profile used to resolve an owner from an email address."""

    id: str
    email: str
    name: str | None = None


_IMAGE_COLUMNS = "id, image_url, prompt, hearts, created_at, owner_id, owner_name"


def _row_to_image(row: sqlite3.Row) -> PublishedImage:
    return PublishedImage(
        id=row["id"],
        image_url=row["image_url"],
        prompt=row["prompt"],
        hearts=row["hearts"],
        created_at=row["created_at"],
        owner_id=row["owner_id"],
        owner_name=row["owner_name"],
    )


class ImagesDB:
    """Manage published images and user profiles using SQLite.

    Supports publishing, paginated feed reads ordered newest first, atomic
    heart updates and per-owner listings.

    Integers too large for a SQLite column are reported as
    :class:`DatastoreError` like any other storage failure.
    """

    def __init__(self, db_path: Path):
        """Initialize the images database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized images database at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        email TEXT NOT NULL UNIQUE,
                        name TEXT
                    )
                    """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS published_images (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        image_url TEXT NOT NULL,
                        prompt TEXT NOT NULL DEFAULT '',
                        hearts INTEGER NOT NULL DEFAULT 0 CHECK (hearts >= 0),
                        created_at TEXT NOT NULL,
                        owner_id TEXT,
                        owner_name TEXT
                    )
                    """)

                # Feed reads are always newest first
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_published_images_created_at
                    ON published_images(created_at DESC)
                    """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_published_images_owner_id
                    ON published_images(owner_id)
                    """)

                conn.commit()

        except sqlite3.Error as e:
            logger.error(f"Error initializing images database {self.db_path}: {e}")
            raise DatastoreError("Failed to initialize database") from e

    def create_image(
        self,
        image_url: str,
        prompt: str,
        owner_id: str | None = None,
        owner_name: str | None = None,
    ) -> PublishedImage:
        """Persist a new published image.

        Hearts start at zero and ``created_at`` is stamped here, never by the
        caller.

        Args:
            image_url: URL of the generated image
            prompt: Prompt the image was generated from (may be empty)
            owner_id: Identifier of the publishing user
            owner_name: Display name of the publishing user

        Returns:
            The stored record with its server-assigned id
        """
        created_at = format_timestamp(utc_now())

        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO published_images
                        (image_url, prompt, hearts, created_at, owner_id, owner_name)
                    VALUES (?, ?, 0, ?, ?, ?)
                    """,
                    (image_url, prompt, created_at, owner_id, owner_name),
                )
                conn.commit()
                image_id = cursor.lastrowid

        except sqlite3.Error as e:
            logger.error(f"Error publishing image {image_url}: {e}")
            raise DatastoreError("Failed to publish image") from e

        logger.info(f"Published image {image_id} for owner {owner_id}")
        return PublishedImage(
            id=image_id,
            image_url=image_url,
            prompt=prompt,
            hearts=0,
            created_at=created_at,
            owner_id=owner_id,
            owner_name=owner_name,
        )

    def get_image(self, image_id: int) -> PublishedImage:
        """Fetch a single published image.

        Raises:
            ImageNotFoundError: If no image has this id
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT {_IMAGE_COLUMNS} FROM published_images WHERE id = ?",
                    (image_id,),
                )
                row = cursor.fetchone()

        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Error fetching image {image_id}: {e}")
            raise DatastoreError("Failed to fetch image") from e

        if row is None:
            raise ImageNotFoundError(image_id)
        return _row_to_image(row)

    def list_page(self, skip: int, take: int) -> tuple[list[PublishedImage], int]:
        """Read one page of the feed together with the total image count.

        Both reads share a connection so a failure never yields a page
        without its count.

        Args:
            skip: Number of newest images to skip
            take: Maximum number of images to return

        Returns:
            Tuple of (images newest first, total number of images)
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM published_images")
                total = cursor.fetchone()[0]

                cursor.execute(
                    f"""
                    SELECT {_IMAGE_COLUMNS} FROM published_images
                    ORDER BY created_at DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (take, skip),
                )
                rows = cursor.fetchall()

        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Error reading feed page (skip={skip}, take={take}): {e}")
            raise DatastoreError("Failed to fetch feed") from e

        return [_row_to_image(row) for row in rows], total

    def update_hearts(self, image_id: int, hearts: int) -> PublishedImage:
        """Set the heart count of an image.

        The UPDATE is a single statement keyed by id, so concurrent writers
        never observe a half-applied change.  Setting the current value again
        is a no-op that still returns the record.

        Args:
            image_id: Id of the image to update
            hearts: New, non-negative heart count

        Returns:
            The updated record

        Raises:
            ImageNotFoundError: If no image has this id
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "UPDATE published_images SET hearts = ? WHERE id = ?",
                    (hearts, image_id),
                )
                if cursor.rowcount == 0:
                    raise ImageNotFoundError(image_id)

                cursor.execute(
                    f"SELECT {_IMAGE_COLUMNS} FROM published_images WHERE id = ?",
                    (image_id,),
                )
                row = cursor.fetchone()
                conn.commit()

        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Error updating hearts for image {image_id}: {e}")
            raise DatastoreError("Failed to update hearts") from e

        logger.debug(f"Image {image_id} now has {hearts} hearts")
        return _row_to_image(row)

    def upsert_user(self, user_id: str, email: str, name: str | None = None) -> UserProfile:
        """Create or update a user profile.

        Raises:
            EmailInUseError: If the email belongs to a different user id
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO users (id, email, name) VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET email = excluded.email, name = excluded.name
                    """,
                    (user_id, email, name),
                )
                conn.commit()

        except sqlite3.IntegrityError as e:
            logger.info(f"Rejected profile for {user_id}: email {email} already taken")
            raise EmailInUseError(email) from e
        except sqlite3.Error as e:
            logger.error(f"Error saving profile for {user_id}: {e}")
            raise DatastoreError("Failed to save user") from e

        return UserProfile(id=user_id, email=email, name=name)

    def list_by_owner_email(self, email: str) -> list[PublishedImage]:
        """Get every image published by the user with this email.

        Returns:
            Images newest first; empty if the email is unknown
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT i.id, i.image_url, i.prompt, i.hearts, i.created_at,
                           i.owner_id, i.owner_name
                    FROM published_images AS i
                    JOIN users AS u ON u.id = i.owner_id
                    WHERE u.email = ?
                    ORDER BY i.created_at DESC, i.id DESC
                    """,
                    (email,),
                )
                rows = cursor.fetchall()

        except sqlite3.Error as e:
            logger.error(f"Error listing images for {email}: {e}")
            raise DatastoreError("Failed to fetch images") from e

        return [_row_to_image(row) for row in rows]
