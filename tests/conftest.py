"""Pytest configuration and fixtures."""

from pathlib import Path

import httpx
import pytest

from parceltrack.config import Settings
from parceltrack.upstream import UpstreamFetcher


@pytest.fixture
def settings():
    """Settings that ignore the environment and any .env file."""
    return Settings(_env_file=None, carrier_registry_config_file=None)


@pytest.fixture
def write_config(tmp_path):
    """Write a carrier registry YAML file and return its path."""

    def write(text: str) -> Path:
        path = tmp_path / "carriers.yaml"
        path.write_text(text)
        return path

    return write


@pytest.fixture
async def mock_fetcher():
    """Build upstream fetchers backed by an httpx.MockTransport handler."""
    clients = []

    def build(handler, carrier_id: str = "test.carrier") -> UpstreamFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return UpstreamFetcher(carrier_id, client)

    yield build

    for client in clients:
        await client.aclose()
