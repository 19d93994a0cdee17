"""Shared pytest fixtures for Pixelfeed tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pixelfeed.api.main import create_app
from pixelfeed.core.config import PixelfeedConfig
from pixelfeed.core.cooldown import GenerationCooldown
from pixelfeed.core.images_db import ImagesDB

FAKE_IMAGE_URL = "https://images.example.com/generated/abc123.png"


class FakeImageProvider:
    """Stand-in for ImageProvider that records prompts and never hits the network.

    Set ``error`` to an exception instance to make the next generations fail.
    """

    def __init__(self, image_url: str = FAKE_IMAGE_URL):
        self.image_url = image_url
        self.error: Exception | None = None
        self.prompts: list[str] = []
        self.closed = False

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.image_url

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Controllable epoch-millisecond clock for cooldown tests."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PixelfeedConfig:
    """Create a test configuration pointing at a throwaway database.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PixelfeedConfig instance for testing
    """
    return PixelfeedConfig(
        _env_file=None,
        database_path=temp_dir / "data" / "pixelfeed-test.db",
        openai_api_key="sk-test-not-a-real-key",
        generate_cooldown_seconds=30,
    )


@pytest.fixture
def images_db(temp_dir: Path) -> ImagesDB:
    """Create an empty ImagesDB in the temporary directory."""
    return ImagesDB(temp_dir / "images.db")


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    """Image provider double that returns a fixed URL."""
    return FakeImageProvider()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock double for the generation cooldown."""
    return FakeClock()


@pytest.fixture
def app(test_config: PixelfeedConfig) -> FastAPI:
    """Build an application bound to the test configuration."""
    return create_app(test_config)


@pytest.fixture
def test_client(
    app: FastAPI,
    test_config: PixelfeedConfig,
    fake_provider: FakeImageProvider,
    fake_clock: FakeClock,
) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running and external collaborators faked.

    The real ImagesDB created by the lifespan is kept; the provider and the
    cooldown clock are swapped for doubles once startup has completed.
    """
    with TestClient(app) as client:
        app.state.image_provider = fake_provider
        app.state.cooldown = GenerationCooldown(test_config.generate_cooldown_ms, clock=fake_clock)
        yield client


@pytest.fixture
def publish_payload() -> dict:
    """A valid ``POST /api/publish`` body."""
    return {
        "imageUrl": FAKE_IMAGE_URL,
        "prompt": "A lighthouse at dusk",
        "userId": "uid-alice",
        "userName": "Alice",
    }
