"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from titlesplit.main import app
from titlesplit.services.extraction import MockListingExtractor, get_extractor
from titlesplit.services.sessions import get_session_store


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


@pytest.fixture(scope="session")
def anyio_backend():
    """Backend for async tests."""
    return "asyncio"


def override_get_extractor():
    """Mock extractor without the simulated network delay."""
    return MockListingExtractor(delay_seconds=0)


@pytest.fixture(autouse=True)
def reset_app_state():
    """Use the instant extractor and start every test with no sessions."""
    app.dependency_overrides[get_extractor] = override_get_extractor
    get_session_store().clear()
    yield
    get_session_store().clear()
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)
