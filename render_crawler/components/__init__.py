"""
Components sub-package for render_crawler.

This package contains the building blocks of an extraction call: the
renderer (browser and page sessions), the extractors and the dynamic-content
orchestrator.

The `__all__` variable defines the public API of this sub-package,
making key components directly importable from `render_crawler.components`.
"""
from .renderer.playwright_manager import PlaywrightManager
from .renderer.page_session import PageSession, setup_page, close_page
from .extractor.metadata_parser import MetadataParser
from .orchestrator.dynamic_content import DynamicContentOrchestrator

__all__ = [
    "PlaywrightManager",
    "PageSession",
    "setup_page",
    "close_page",
    "MetadataParser",
    "DynamicContentOrchestrator",
]
