"""
Renderer component for render_crawler.

This sub-package owns the headless browser (`PlaywrightManager`) and the
per-call page sessions created from it (`setup_page` / `close_page`).
"""
from .playwright_manager import PlaywrightManager, get_shared_manager
from .page_session import PageSession, setup_page, close_page, navigate, should_block_request

__all__ = [
    "PlaywrightManager",
    "get_shared_manager",
    "PageSession",
    "setup_page",
    "close_page",
    "navigate",
    "should_block_request",
]
