"""
Manages the process-wide Playwright browser used for page rendering.

This module provides the `PlaywrightManager` class, which owns one Playwright
engine and one browser. The browser is launched lazily on first use and then
reused by every extraction call; concurrent first callers wait on the same
launch instead of racing to start duplicates. The manager is also an
asynchronous context manager for scripts and tests that want explicit teardown.
"""
import asyncio
from playwright.async_api import async_playwright, Playwright, Browser
from typing import List, Optional

from render_crawler.core.config import BrowserSettings, ConfigurationManager
from render_crawler.core.exceptions import RendererError
from render_crawler.core.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_BROWSER_TYPES = ('chromium', 'firefox', 'webkit')


class PlaywrightManager:
    """
    Owner of the shared Playwright browser.

    Attributes:
        browser_type (str): The type of browser to launch (e.g., 'chromium').
        headless (bool): Whether the browser runs without a window.
        launch_args (List[str]): Extra command-line arguments for the browser.
        playwright (Optional[Playwright]): The Playwright engine instance.
        browser (Optional[Browser]): The launched browser instance.
    """
    DEFAULT_BROWSER_TYPE = 'chromium'

    def __init__(self, config: Optional[ConfigurationManager] = None):
        """
        Args:
            config (Optional[ConfigurationManager]): Source of the browser settings
                (`browser_settings()`). Defaults are used when None.

        Raises:
            RendererError: If an unsupported browser type is configured.
        """
        settings = config.browser_settings() if config is not None else BrowserSettings()
        self.browser_type = settings.browser_type
        self.headless = settings.headless
        self.launch_args: List[str] = list(settings.launch_args)

        logger.info(f"PlaywrightManager configured to use browser: {self.browser_type} (headless={self.headless})")

        if self.browser_type not in SUPPORTED_BROWSER_TYPES:
            logger.error(f"Unsupported browser type configured: {self.browser_type}")
            raise RendererError(f"Unsupported browser type: {self.browser_type}. Must be 'chromium', 'firefox', or 'webkit'.")

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._launch_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self.browser is not None and self.browser.is_connected()

    async def get_browser(self) -> Browser:
        """
        Returns the shared browser, launching it on first use.

        A browser that has disconnected (crash, external kill) is replaced.

        Raises:
            RendererError: If Playwright fails to start or the browser fails to launch.
                           This can happen if browser binaries are not installed.
        """
        if self.is_running:
            return self.browser

        async with self._launch_lock:
            # Another caller may have finished the launch while we waited.
            if self.is_running:
                return self.browser
            if self.browser is not None:
                logger.warning(f"{self.browser_type} browser disconnected; launching a new one.")
                await self.close()
            await self._launch()
            return self.browser

    async def _launch(self) -> None:
        logger.debug(f"Starting Playwright and launching {self.browser_type} browser.")
        try:
            self.playwright = await async_playwright().start()
            browser_launcher = getattr(self.playwright, self.browser_type)
            self.browser = await browser_launcher.launch(headless=self.headless, args=self.launch_args)
            logger.info(f"{self.browser_type} browser launched successfully.")
        except Exception as e:
            logger.error(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}", exc_info=True)
            if self.playwright:
                try:
                    await self.playwright.stop()
                except Exception as stop_e:
                    logger.error(f"Error stopping Playwright during launch cleanup: {stop_e}", exc_info=True)
            self.playwright = None
            self.browser = None
            raise RendererError(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}")

    async def close(self) -> None:
        """Closes the browser and stops the Playwright engine. Errors are logged, not raised."""
        if self.browser:
            try:
                await self.browser.close()
                logger.info("Browser closed successfully.")
            except Exception as e:
                logger.error(f"Error closing browser: {e}", exc_info=True)
        if self.playwright:
            try:
                await self.playwright.stop()
                logger.info("Playwright stopped successfully.")
            except Exception as e:
                logger.error(f"Error stopping Playwright: {e}", exc_info=True)

        self.browser = None
        self.playwright = None

    async def __aenter__(self) -> 'PlaywrightManager':
        await self.get_browser()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


_shared_manager: Optional[PlaywrightManager] = None


def get_shared_manager(config: Optional[ConfigurationManager] = None) -> PlaywrightManager:
    """
    Returns the process-wide `PlaywrightManager`, creating it on first call.

    Only the manager object is created here; the browser itself starts on the
    first `get_browser()`. In server mode it is never torn down explicitly.
    """
    global _shared_manager
    if _shared_manager is None:
        _shared_manager = PlaywrightManager(config=config)
    return _shared_manager
