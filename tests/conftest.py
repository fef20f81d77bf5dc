"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, mock browser resources and an HTTP test client.
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from html2img.api.main import create_app
from html2img.api.security import reset_rate_limiter
from html2img.config import settings as settings_module
from html2img.config.settings import Settings
from html2img.core.rendering import capture as capture_module
from html2img.core.rendering.browser import set_browser_manager
from html2img.core.rendering.capture import CaptureEngine

from tests.utils.mocks import MockBrowser, MockBrowserProvider

TEST_API_KEY = "test-api-key-123"


def make_test_settings(**overrides) -> Settings:
    """Build settings for tests without reading a .env file."""
    values = dict(
        environment="testing",
        debug=True,
        api_key=TEST_API_KEY,
        selector_timeout=500,
        font_settle_delay=0,
        request_timeout=10000,
        log_level="DEBUG",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Install test settings and reset process-wide singletons around each test."""
    settings = make_test_settings()
    monkeypatch.setattr(settings_module, "settings", settings)
    monkeypatch.setattr(capture_module, "_capture_engine", None)
    reset_rate_limiter()
    set_browser_manager(None)
    yield settings
    reset_rate_limiter()
    set_browser_manager(None)


@pytest.fixture
def override_settings(monkeypatch: pytest.MonkeyPatch):
    """Replace the active settings with specific overrides."""

    def apply(**overrides) -> Settings:
        settings = make_test_settings(**overrides)
        monkeypatch.setattr(settings_module, "settings", settings)
        monkeypatch.setattr(capture_module, "_capture_engine", None)
        reset_rate_limiter()
        return settings

    return apply


@pytest.fixture
def mock_browser() -> MockBrowser:
    """Mock Playwright browser for unit tests."""
    return MockBrowser()


@pytest.fixture
def browser_provider(mock_browser: MockBrowser) -> Generator[MockBrowserProvider, None, None]:
    """Mock browser provider installed as the process-wide browser manager."""
    provider = MockBrowserProvider(mock_browser)
    set_browser_manager(provider)
    yield provider
    set_browser_manager(None)


@pytest.fixture
def capture_engine(browser_provider: MockBrowserProvider) -> CaptureEngine:
    """Capture engine wired to the mock browser provider."""
    return CaptureEngine(browser_provider)


@pytest.fixture
def client(browser_provider: MockBrowserProvider) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by the mock browser."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def api_params() -> dict:
    """Query parameters carrying a valid API key."""
    return {"apiKey": TEST_API_KEY}
