"""Shared fixtures for the Showcase API test suites."""

import pytest
from fastapi.testclient import TestClient

from api.src.config import Settings, get_current_settings
from api.src.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment, saving uploads under tmp_path."""
    return get_current_settings(
        upload_dir=tmp_path,
        long_async_delay=0.05,
        shutdown_timeout=2.0,
        upstream_url="http://upstream.test/resource",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client running the application lifespan."""
    with TestClient(app) as test_client:
        yield test_client
