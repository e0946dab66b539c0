"""Lifespan startup and shutdown without external services."""

import logging

import pytest
from fastapi import FastAPI

from basin.core.config import Settings
from basin.core.lifespan import _warn_on_partial_config, create_lifespan


async def test_lifespan_without_redis_leaves_cache_unset() -> None:
    app = FastAPI()
    async with create_lifespan(app):
        assert app.state.cache is None
    assert app.state.cache is None


def test_missing_database_and_secret_are_reported(caplog: pytest.LogCaptureFixture) -> None:
    """Startup names the settings that will make item requests fail."""
    settings = Settings(_env_file=None, secret_key="", database_url="", redis_enabled=False)
    with caplog.at_level(logging.INFO, logger="basin.core.lifespan"):
        _warn_on_partial_config(settings)
    text = caplog.text
    assert "SECRET_KEY is not set" in text
    assert "DATABASE_URL is not set" in text
    assert "Permission cache disabled" in text
