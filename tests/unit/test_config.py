"""Tests for pixelfeed.core.config — configuration management.

Tests cover:
- Default values for all configuration fields.
- Environment variable overrides via the PIXELFEED_ prefix.
- The OPENAI_API_KEY fallback.
- Automatic creation of the database directory.
- Pydantic validation constraints.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from pixelfeed.core.config import PixelfeedConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any configuration the developer's shell may carry."""
    for name in (
        "OPENAI_API_KEY",
        "PIXELFEED_OPENAI_API_KEY",
        "PIXELFEED_GENERATE_COOLDOWN_SECONDS",
        "PIXELFEED_SERVER_PORT",
        "PIXELFEED_IMAGE_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    """Verify that PixelfeedConfig provides sensible defaults."""

    def test_default_cooldown(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.generate_cooldown_seconds == 30
        assert cfg.generate_cooldown_ms == 30_000

    def test_default_feed_limits(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.feed_default_limit == 10
        assert cfg.feed_max_limit == 50

    def test_default_image_settings(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.image_model == "dall-e-2"
        assert cfg.image_size == "512x512"

    def test_no_key_by_default(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.openai_api_key == ""
        assert cfg.has_openai_key() is False

    def test_default_server_port(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.server_port == 7860


class TestConfigEnvironment:
    """Verify environment variable overrides."""

    def test_prefixed_override(self, clean_env, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("PIXELFEED_GENERATE_COOLDOWN_SECONDS", "5")
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.generate_cooldown_seconds == 5

    def test_openai_key_from_conventional_variable(self, clean_env, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.openai_api_key == "sk-from-env"
        assert cfg.has_openai_key() is True

    def test_openai_key_from_prefixed_variable(self, clean_env, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("PIXELFEED_OPENAI_API_KEY", "sk-prefixed")
        cfg = PixelfeedConfig(_env_file=None, database_path=temp_dir / "db.sqlite")
        assert cfg.openai_api_key == "sk-prefixed"

    def test_keyword_key(self, clean_env, temp_dir: Path):
        cfg = PixelfeedConfig(
            _env_file=None,
            database_path=temp_dir / "db.sqlite",
            openai_api_key="sk-kw",
        )
        assert cfg.openai_api_key == "sk-kw"


class TestConfigDirectoryCreation:
    """Verify that PixelfeedConfig creates the database directory."""

    def test_database_parent_created(self, temp_dir: Path):
        db_path = temp_dir / "nested" / "data" / "pixelfeed.db"
        PixelfeedConfig(_env_file=None, database_path=db_path)
        assert db_path.parent.is_dir()


class TestConfigValidation:
    """Verify Pydantic constraints."""

    def test_port_below_range(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            PixelfeedConfig(_env_file=None, database_path=temp_dir / "db", server_port=80)

    def test_negative_cooldown(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            PixelfeedConfig(
                _env_file=None,
                database_path=temp_dir / "db",
                generate_cooldown_seconds=-1,
            )

    def test_unsupported_image_size(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            PixelfeedConfig(_env_file=None, database_path=temp_dir / "db", image_size="9x9")
