"""
Dynamic-content orchestrator.

Sequences the readiness waits and script injection that pages built on the
client side need before their content is worth extracting:

    START -> NETWORK_IDLE_WAIT -> SELECTOR_WAIT -> SCRIPT_INJECTION
          -> FIXED_DELAY -> EXTRACT -> DONE | FAILED

Network-idle and selector waits are best effort: a timeout there is logged as a
warning and the sequence carries on with whatever state the document reached.
Only an exception escaping the sequence itself produces a failed outcome.
"""
from enum import Enum
from typing import Optional, Sequence

from render_crawler.components.extractor.markup import extract_markup
from render_crawler.components.extractor.selector import extract_by_selector
from render_crawler.components.extractor.text import extract_text
from render_crawler.core.exceptions import error_message
from render_crawler.core.logger import get_logger
from render_crawler.core.models import (
    DynamicOptions,
    ExtractionOutcome,
    MarkupOptions,
    SelectorOptions,
    TextOptions,
)

logger = get_logger(__name__)

# Runs the script body as a function inside the page and reports any exception
# it throws as a string instead of rejecting the evaluate call.
INJECT_SCRIPT_JS = """
async (script) => {
  try {
    await new Function(script)();
    return null;
  } catch (e) {
    return String(e);
  }
}
"""


class OrchestratorState(str, Enum):
    START = "START"
    NETWORK_IDLE_WAIT = "NETWORK_IDLE_WAIT"
    SELECTOR_WAIT = "SELECTOR_WAIT"
    SCRIPT_INJECTION = "SCRIPT_INJECTION"
    FIXED_DELAY = "FIXED_DELAY"
    EXTRACT = "EXTRACT"
    DONE = "DONE"
    FAILED = "FAILED"


class DynamicContentOrchestrator:
    """
    Runs the dynamic-content sequence against an already navigated page session.

    The crawler creates one orchestrator per call. `state` records the last
    transition reached, so a finished run reports DONE or FAILED.
    """

    def __init__(self):
        self.state = OrchestratorState.START

    def _transition(self, state: OrchestratorState) -> None:
        self.state = state
        logger.debug(f"Dynamic content orchestrator state: {state.value}")

    async def run(
        self,
        session,
        options: DynamicOptions = DynamicOptions(),
        selectors: Optional[Sequence[str]] = None,
        selector_options: SelectorOptions = SelectorOptions(),
    ) -> ExtractionOutcome:
        """
        Waits for the page to settle, injects the optional script and extracts content.

        Args:
            session (PageSession): A session whose page has already been navigated.
            options (DynamicOptions): Wait, injection and markup-cleanup settings.
            selectors (Optional[Sequence[str]]): When given, elements matching these
                selectors are extracted as well.
            selector_options (SelectorOptions): Options for the selector extraction.

        Returns:
            ExtractionOutcome: html and text (plus elements when selectors were given),
            or only `error` when the sequence itself failed.
        """
        page = session.page
        self._transition(OrchestratorState.START)
        try:
            if options.wait_for_network_idle:
                self._transition(OrchestratorState.NETWORK_IDLE_WAIT)
                try:
                    await page.wait_for_load_state("networkidle", timeout=options.network_idle_time)
                except Exception as e:
                    logger.warning(f"Network idle wait did not complete within {options.network_idle_time}ms: {e}")

            if options.wait_for_selector:
                self._transition(OrchestratorState.SELECTOR_WAIT)
                try:
                    await page.wait_for_selector(options.wait_for_selector, timeout=options.selector_timeout)
                except Exception as e:
                    logger.warning(
                        f"Selector '{options.wait_for_selector}' did not appear within {options.selector_timeout}ms: {e}"
                    )

            if options.custom_script:
                self._transition(OrchestratorState.SCRIPT_INJECTION)
                script_error = await page.evaluate(INJECT_SCRIPT_JS, options.custom_script)
                if script_error:
                    logger.warning(f"Injected script raised in the page: {script_error}")

            if options.wait_time > 0:
                self._transition(OrchestratorState.FIXED_DELAY)
                await page.wait_for_timeout(options.wait_time)

            self._transition(OrchestratorState.EXTRACT)
            html = await extract_markup(
                session,
                MarkupOptions(remove_scripts=options.remove_scripts, remove_styles=options.remove_styles),
            )
            text = await extract_text(session, TextOptions())
            elements = None
            if selectors is not None:
                elements = await extract_by_selector(session, selectors, selector_options)

            self._transition(OrchestratorState.DONE)
            return ExtractionOutcome(html=html, text=text, elements=elements)
        except Exception as e:
            failed_in = self.state
            self._transition(OrchestratorState.FAILED)
            logger.error(f"Dynamic content extraction failed during {failed_in.value}: {e}", exc_info=True)
            return ExtractionOutcome(error=f"Dynamic content extraction failed during {failed_in.value}: {error_message(e)}")
