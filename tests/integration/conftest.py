"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from pyparticle import ParticleClient
from pyparticle.const import DEFAULT_BASE_URL


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str | None]:
    """Load integration test configuration from environment.

    Returns:
        Dictionary with API credentials and configuration.
    """
    config = {
        "access_token": os.getenv("PARTICLE_ACCESS_TOKEN"),
        "username": os.getenv("PARTICLE_USERNAME"),
        "password": os.getenv("PARTICLE_PASSWORD"),
        "client_id": os.getenv("PARTICLE_CLIENT_ID", "particle"),
        "base_url": os.getenv("PARTICLE_API_BASE_URL", DEFAULT_BASE_URL),
    }

    if not config["access_token"] and not (config["username"] and config["password"]):
        pytest.skip("Set PARTICLE_ACCESS_TOKEN or PARTICLE_USERNAME and PARTICLE_PASSWORD in .env")

    return config


@pytest.fixture
async def client(integration_config: dict[str, str | None]) -> AsyncGenerator[ParticleClient]:
    """Create a logged-in client for tests.

    An existing token is reused when configured so the suite does not mint
    a new token on every run.
    """
    client = ParticleClient(
        base_url=integration_config["base_url"] or DEFAULT_BASE_URL,
        access_token=integration_config["access_token"],
    )

    async with client:
        if not client.auth.ready():
            await client.api.login(
                integration_config["client_id"] or "particle",
                integration_config["username"] or "",
                integration_config["password"] or "",
            )
        yield client


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Add delay between integration tests to stay clear of API rate limits."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(1.0)
