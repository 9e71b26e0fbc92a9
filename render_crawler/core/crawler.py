"""
Crawler façade.

`Crawler` turns "a URL plus extraction intent" into a `ResponseEnvelope`. Every
operation follows the same shape: take the shared browser, open a fresh page
session, navigate, delegate to an extractor or the dynamic-content orchestrator,
and wrap the result. Any exception becomes a status 500 envelope carrying the
error message, and the page session is always released.
"""
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from render_crawler.components.extractor.markup import extract_markup
from render_crawler.components.extractor.metadata_parser import extract_page_metadata
from render_crawler.components.extractor.selector import (
    extract_attribute_by_selector,
    extract_by_selector,
    extract_text_by_selector,
)
from render_crawler.components.extractor.text import extract_text
from render_crawler.components.orchestrator.dynamic_content import DynamicContentOrchestrator
from render_crawler.components.renderer.page_session import PageSession, close_page, navigate, setup_page
from render_crawler.components.renderer.playwright_manager import PlaywrightManager
from render_crawler.core.exceptions import OrchestrationError, error_message
from render_crawler.core.logger import get_logger
from render_crawler.core.models import (
    CrawlerConfig,
    CustomScriptRequest,
    DynamicOptions,
    DynamicRequest,
    DynamicSelectorRequest,
    MarkupOptions,
    MarkupRequest,
    ReadinessStrategy,
    ResponseEnvelope,
    SelectorOptions,
    SelectorRequest,
    TextOptions,
    TextRequest,
)

logger = get_logger(__name__)

SessionOperation = Callable[[PageSession], Awaitable[Dict[str, Any]]]


class Crawler:
    """
    Entry point for every extraction kind.

    Attributes:
        browser_manager (PlaywrightManager): Owner of the shared browser.
        config (CrawlerConfig): Navigation and session settings, fixed for the crawler's lifetime.
    """
    def __init__(self, browser_manager: PlaywrightManager, config: Optional[CrawlerConfig] = None):
        self.browser_manager = browser_manager
        self.config = config or CrawlerConfig()
        logger.debug(
            f"Crawler initialized (timeout={self.config.timeout}ms, wait_until={self.config.wait_until.value})."
        )

    async def _run(
        self,
        url: str,
        operation: Optional[SessionOperation] = None,
        wait_until: Optional[ReadinessStrategy] = None,
    ) -> ResponseEnvelope:
        session: Optional[PageSession] = None
        try:
            browser = await self.browser_manager.get_browser()
            session = await setup_page(browser, self.config)
            await navigate(session, url, wait_until or self.config.wait_until, self.config.timeout)
            content = await operation(session) if operation else {}
            return ResponseEnvelope.success(url, **content)
        except Exception as e:
            logger.error(f"Error crawling {url}: {e}", exc_info=True)
            return ResponseEnvelope.failure(url, error_message(e))
        finally:
            await close_page(session)

    async def crawl(self, url: str) -> ResponseEnvelope:
        """Navigates to `url` and reports whether the page loaded, without extracting anything."""
        logger.info(f"Crawling {url}")
        return await self._run(url)

    async def extract_markup(self, url: str, options: MarkupOptions = MarkupOptions()) -> ResponseEnvelope:
        """
        Returns the serialized document of `url`, optionally cleaned and with page metadata.

        Args:
            url (str): Absolute http(s) URL to render.
            options (MarkupOptions): Script/style removal and metadata settings.

        Returns:
            ResponseEnvelope: `html` (and `metadata` when requested) on success.
        """
        logger.info(f"Extracting markup from {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            html = await extract_markup(session, options)
            content: Dict[str, Any] = {"html": html}
            if options.include_metadata:
                # Metadata is read from the document as served, before any cleanup.
                content["metadata"] = await extract_page_metadata(session)
            return content

        return await self._run(url, _operation)

    async def extract_text(self, url: str, options: TextOptions = TextOptions()) -> ResponseEnvelope:
        logger.info(f"Extracting text from {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            return {"text": await extract_text(session, options)}

        return await self._run(url, _operation)

    async def extract_by_selector(
        self,
        url: str,
        selectors: Union[str, Sequence[str]],
        options: SelectorOptions = SelectorOptions(),
    ) -> ResponseEnvelope:
        """
        Extracts the elements matching each selector.

        An invalid selector yields an errored entry in `elements`; the envelope
        itself stays at status 200.
        """
        logger.info(f"Extracting selectors {selectors!r} from {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            return {"elements": await extract_by_selector(session, selectors, options)}

        return await self._run(url, _operation)

    async def extract_texts_by_selector(self, url: str, selector: str) -> ResponseEnvelope:
        """Reports the trimmed text of every element matching `selector` as `result`."""
        logger.info(f"Reading texts of '{selector}' from {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            return {"result": await extract_text_by_selector(session, selector)}

        return await self._run(url, _operation)

    async def extract_attributes_by_selector(self, url: str, selector: str, attribute: str) -> ResponseEnvelope:
        """Reports the values of `attribute` on the elements matching `selector` as `result`."""
        logger.info(f"Reading attribute '{attribute}' of '{selector}' from {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            return {"result": await extract_attribute_by_selector(session, selector, attribute)}

        return await self._run(url, _operation)

    async def _run_dynamic(
        self,
        url: str,
        options: DynamicOptions,
        selectors: Optional[Sequence[str]] = None,
        selector_options: SelectorOptions = SelectorOptions(),
    ) -> ResponseEnvelope:
        async def _operation(session: PageSession) -> Dict[str, Any]:
            orchestrator = DynamicContentOrchestrator()
            outcome = await orchestrator.run(session, options, selectors=selectors, selector_options=selector_options)
            if outcome.failed:
                raise OrchestrationError(outcome.error, state=orchestrator.state.value)
            content: Dict[str, Any] = {"html": outcome.html, "text": outcome.text}
            if outcome.elements is not None:
                content["elements"] = outcome.elements
            return content

        return await self._run(url, _operation, wait_until=options.wait_until)

    async def extract_dynamic(self, url: str, options: DynamicOptions = DynamicOptions()) -> ResponseEnvelope:
        """
        Extracts markup and text from a page that builds its content on the client side.

        Args:
            url (str): Absolute http(s) URL to render.
            options (DynamicOptions): Waits, injected script and markup cleanup. A
                `wait_until` here replaces the configured readiness strategy.

        Returns:
            ResponseEnvelope: `html` and `text` on success. Soft wait timeouts do not fail the call.
        """
        logger.info(f"Extracting dynamic content from {url}")
        return await self._run_dynamic(url, options)

    async def extract_dynamic_by_selector(
        self,
        url: str,
        selectors: Union[str, Sequence[str]],
        options: DynamicOptions = DynamicOptions(),
        selector_options: SelectorOptions = SelectorOptions(),
    ) -> ResponseEnvelope:
        logger.info(f"Extracting dynamic content with selectors {selectors!r} from {url}")
        selector_list = [selectors] if isinstance(selectors, str) else list(selectors)
        return await self._run_dynamic(url, options, selectors=selector_list, selector_options=selector_options)

    async def execute_custom_script(self, url: str, script: str, args: Sequence[Any] = ()) -> ResponseEnvelope:
        """
        Evaluates `script` in the page and returns its result.

        Without `args` the script may be an expression or function source. With
        `args` it must be function source; it is called with the args spread as
        positional parameters. Promises are awaited; the resolved value must be
        serializable.
        """
        logger.info(f"Executing custom script on {url}")

        async def _operation(session: PageSession) -> Dict[str, Any]:
            if args:
                wrapped = f"(args) => ({script})(...args)"
                result = await session.page.evaluate(wrapped, list(args))
            else:
                result = await session.page.evaluate(script)
            return {"result": result}

        return await self._run(url, _operation)

    async def execute(self, request) -> ResponseEnvelope:
        """
        Runs any `ExtractionRequest` variant by dispatching on its `kind` tag.

        Args:
            request (ExtractionRequest): A validated request model.

        Returns:
            ResponseEnvelope: Whatever the matching operation returns.
        """
        handler = self._dispatch_table.get(request.kind)
        if handler is None:
            return ResponseEnvelope.failure(request.url, f"Unsupported extraction kind: {request.kind}")
        return await handler(self, request)

    async def _execute_markup(self, request: MarkupRequest) -> ResponseEnvelope:
        return await self.extract_markup(request.url, request.options)

    async def _execute_text(self, request: TextRequest) -> ResponseEnvelope:
        return await self.extract_text(request.url, request.options)

    async def _execute_selector(self, request: SelectorRequest) -> ResponseEnvelope:
        return await self.extract_by_selector(request.url, request.selectors, request.options)

    async def _execute_dynamic(self, request: DynamicRequest) -> ResponseEnvelope:
        return await self.extract_dynamic(request.url, request.options)

    async def _execute_dynamic_selector(self, request: DynamicSelectorRequest) -> ResponseEnvelope:
        return await self.extract_dynamic_by_selector(
            request.url, request.selectors, request.options, request.selector_options
        )

    async def _execute_custom_script(self, request: CustomScriptRequest) -> ResponseEnvelope:
        return await self.execute_custom_script(request.url, request.script, request.args)

    _dispatch_table = {
        "markup": _execute_markup,
        "text": _execute_text,
        "selector": _execute_selector,
        "dynamic": _execute_dynamic,
        "dynamic-selector": _execute_dynamic_selector,
        "custom-script": _execute_custom_script,
    }
