import os

# Select the testing configuration before any render_crawler module loads the global config.
os.environ.setdefault("APP_ENV", "testing")

import pytest
from unittest.mock import AsyncMock, MagicMock

from render_crawler.components.renderer.page_session import PageSession
from render_crawler.core.models import DEFAULT_VIEWPORT


def build_mock_page(content="<html><head></head><body></body></html>", evaluate_result=None):
    """A stand-in for a Playwright Page: async methods are AsyncMocks, sync ones MagicMocks."""
    page = MagicMock()
    page.goto = AsyncMock(return_value=None)
    page.content = AsyncMock(return_value=content)
    page.title = AsyncMock(return_value="")
    page.evaluate = AsyncMock(return_value=evaluate_result)
    page.close = AsyncMock(return_value=None)
    page.set_viewport_size = AsyncMock(return_value=None)
    page.route = AsyncMock(return_value=None)
    page.wait_for_load_state = AsyncMock(return_value=None)
    page.wait_for_selector = AsyncMock(return_value=None)
    page.wait_for_timeout = AsyncMock(return_value=None)
    page.set_default_timeout = MagicMock()
    page.is_closed = MagicMock(return_value=False)
    return page


@pytest.fixture
def mock_page():
    return build_mock_page()


@pytest.fixture
def mock_session(mock_page):
    return PageSession(
        page=mock_page,
        timeout=30000,
        user_agent=None,
        viewport=DEFAULT_VIEWPORT,
        block_images=True,
        block_fonts=True,
        block_stylesheets=False,
    )


@pytest.fixture
def mock_browser(mock_page):
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=mock_page)
    browser.is_connected = MagicMock(return_value=True)
    return browser


@pytest.fixture
def mock_browser_manager(mock_browser):
    manager = MagicMock()
    manager.get_browser = AsyncMock(return_value=mock_browser)
    return manager


@pytest.fixture
def visible_style():
    return {"display": "block", "visibility": "visible", "opacity": "1", "width": 200, "height": 20}


@pytest.fixture
def hidden_style():
    return {"display": "none", "visibility": "visible", "opacity": "1", "width": 0, "height": 0}
