"""
Shared fixtures for the unit and CLI suites.
"""
from unittest.mock import AsyncMock

import pytest

from stremio_manager.core.storage import InMemoryKeyValueStore
from stremio_manager.integrations.stremio_client import StremioClient
from tests.lib import make_cipher


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def cipher():
    return make_cipher()


@pytest.fixture
def client():
    """Remote boundary double; every method is an AsyncMock."""
    return AsyncMock(spec=StremioClient)
