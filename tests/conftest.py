"""
Pytest configuration file for the Live Captions relay test suite.

This file contains fixtures that are shared across multiple test files.
"""

import asyncio

import pytest

from livecaptions.config.models import ApplicationConfig
from livecaptions.config.settings import set_config

@pytest.fixture(autouse=True)
def app_config():
    """Install a default configuration so tests never depend on a .env file."""
    config = ApplicationConfig()
    set_config(config)
    yield config
    set_config(None)

@pytest.fixture
def wait_until():
    """Poll a predicate while letting background tasks run."""

    async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Timed out waiting for condition")
            await asyncio.sleep(interval)

    return _wait_until
