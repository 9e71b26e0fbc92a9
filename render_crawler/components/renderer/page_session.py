"""
Page session setup and teardown.

A `PageSession` wraps one Playwright page that belongs to exactly one
extraction call. `setup_page` applies the crawler configuration (timeout,
user agent, viewport, resource blocking); `close_page` releases the page and is
safe to call on any path, any number of times.
"""
from dataclasses import dataclass
from playwright.async_api import Browser, Page, Route
from typing import Awaitable, Callable, Optional

from render_crawler.core.exceptions import RendererError, SessionError
from render_crawler.core.logger import get_logger
from render_crawler.core.models import CrawlerConfig, ReadinessStrategy, Viewport

logger = get_logger(__name__)


@dataclass
class PageSession:
    """
    Exclusively-owned handle to one rendered page.

    Attributes:
        page (Page): The Playwright page.
        timeout (int): Default timeout applied to the page, in milliseconds.
        user_agent (Optional[str]): User agent the page was created with, if overridden.
        viewport (Viewport): Viewport dimensions applied to the page.
        block_images (bool): Whether image requests are aborted.
        block_fonts (bool): Whether font requests are aborted.
        block_stylesheets (bool): Whether stylesheet requests are aborted.
    """
    page: Page
    timeout: int
    user_agent: Optional[str]
    viewport: Viewport
    block_images: bool
    block_fonts: bool
    block_stylesheets: bool
    released: bool = False


def should_block_request(resource_type: str, config: CrawlerConfig) -> bool:
    """Returns True when a request of `resource_type` must be aborted under `config`."""
    return (
        (config.block_images and resource_type == 'image')
        or (config.block_fonts and resource_type == 'font')
        or (config.block_stylesheets and resource_type == 'stylesheet')
    )


def make_request_filter(config: CrawlerConfig) -> Callable[[Route], Awaitable[None]]:
    """Builds the route handler that aborts blocked resource types and continues the rest."""
    async def _filter(route: Route) -> None:
        if should_block_request(route.request.resource_type, config):
            await route.abort()
        else:
            await route.continue_()

    return _filter


async def setup_page(browser: Browser, config: CrawlerConfig) -> PageSession:
    """
    Acquires a new page from `browser` and configures it.

    Args:
        browser (Browser): The shared Playwright browser.
        config (CrawlerConfig): Timeout, user agent, viewport and blocking flags.

    Returns:
        PageSession: The configured session. The caller owns it and must pass it to `close_page`.

    Raises:
        SessionError: If the page cannot be created or configured. A half-configured
                      page is closed before raising.
    """
    page: Optional[Page] = None
    try:
        # Playwright fixes the user agent when the page's context is created.
        if config.user_agent:
            page = await browser.new_page(user_agent=config.user_agent)
        else:
            page = await browser.new_page()

        page.set_default_timeout(config.timeout)
        await page.set_viewport_size({"width": config.viewport.width, "height": config.viewport.height})
        await page.route("**/*", make_request_filter(config))
    except Exception as e:
        logger.error(f"Failed to set up page: {e}", exc_info=True)
        if page is not None:
            await _release(page)
        raise SessionError(f"Failed to set up page: {e}") from e

    logger.debug(
        f"Page session ready (timeout={config.timeout}ms, viewport={config.viewport.width}x{config.viewport.height}, "
        f"block images/fonts/stylesheets={config.block_images}/{config.block_fonts}/{config.block_stylesheets})."
    )
    return PageSession(
        page=page,
        timeout=config.timeout,
        user_agent=config.user_agent,
        viewport=config.viewport,
        block_images=config.block_images,
        block_fonts=config.block_fonts,
        block_stylesheets=config.block_stylesheets,
    )


async def navigate(session: PageSession, url: str, wait_until: ReadinessStrategy, timeout: int) -> None:
    """
    Navigates the session's page to `url` and waits for the readiness strategy.

    Raises:
        RendererError: If navigation fails or times out; the message carries the underlying error.
    """
    logger.debug(f"Navigating to {url} (wait_until={wait_until.value}, timeout={timeout}ms).")
    try:
        await session.page.goto(url, wait_until=wait_until.value, timeout=timeout)
    except Exception as e:
        logger.error(f"Navigation to '{url}' failed: {e}")
        raise RendererError(f"Failed to navigate to '{url}': {e}") from e


async def _release(page: Page) -> None:
    try:
        if not page.is_closed():
            await page.close()
    except Exception as e:
        logger.error(f"Error closing page: {e}", exc_info=True)


async def close_page(session: Optional[PageSession]) -> None:
    """
    Releases a page session. Idempotent, accepts None, never raises.

    Closing the page also closes the browser context Playwright created for it.
    """
    if session is None or session.released:
        return
    session.released = True
    await _release(session.page)
