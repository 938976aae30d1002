"""Pytest fixtures and shared test configuration.

Fixtures:
    - relay_config: Valid configuration with a dummy key
    - fake_upstream: Programmable completion provider
    - relay_service: RelayService wired to the fake provider
    - relay_app: FastAPI app using that service
    - async_client: HTTPX client for API testing
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sonic_chat.api.app import create_app
from sonic_chat.api.chat import relay_service as relay_service_dependency
from sonic_chat.relay.config import RelayConfig
from sonic_chat.relay.service import RelayService
from tests.helpers import FakeUpstream


@pytest.fixture
def relay_config() -> RelayConfig:
    """Return configuration that never touches the environment."""
    return RelayConfig(
        api_key="sk-test-key",
        organization=None,
        project=None,
        base_url="https://llm.test/v1",
        model_name="gpt-4o-mini",
        temperature=None,
        request_timeout=5.0,
    )


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def relay_service(
    relay_config: RelayConfig, fake_upstream: FakeUpstream
) -> AsyncGenerator[RelayService]:
    """Relay service whose upstream calls go to the fake provider."""
    client = fake_upstream.client()
    yield RelayService(relay_config, client=client)
    await client.aclose()


@pytest.fixture
def relay_app(relay_service: RelayService) -> FastAPI:
    """Application with the relay dependency overridden."""
    app = create_app()
    app.dependency_overrides[relay_service_dependency] = lambda: relay_service
    return app


@pytest.fixture
async def async_client(relay_app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=relay_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
