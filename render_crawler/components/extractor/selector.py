"""
CSS selector extractor.

All selectors are evaluated in a single page round trip. Each selector runs in
its own try/catch inside the page and is converted in its own try/except here,
so one invalid selector yields an errored `SelectorResult` while the rest of the
batch is reported normally. A selector with no matches is not an error.

`extract_text_by_selector` and `extract_attribute_by_selector` are plain
single-selector lookups without visibility filtering; they raise on failure.
"""
from typing import Any, Dict, List, Mapping, Sequence, Union

from render_crawler.components.extractor.visibility import STYLE_SNAPSHOT_JS, is_visible
from render_crawler.core.exceptions import ExtractorError
from render_crawler.core.models import Attribute, ElementResult, SelectorOptions, SelectorResult
from render_crawler.core.logger import get_logger

logger = get_logger(__name__)

SELECTOR_BATCH_JS = """
([selectors, includeHtml]) => {
%s
  return selectors.map((selector) => {
    try {
      const elements = Array.from(document.querySelectorAll(selector));
      return {
        selector,
        elements: elements.map((element) => {
          const rect = element.getBoundingClientRect();
          return {
            text: (element.textContent || '').trim(),
            html: includeHtml ? element.innerHTML : null,
            attributes: Array.from(element.attributes).map((attr) => ({ name: attr.name, value: attr.value })),
            rect: { top: rect.top, left: rect.left, width: rect.width, height: rect.height },
            style: snapshot(element),
          };
        }),
      };
    } catch (e) {
      return { selector, elements: [], error: (e && e.message) ? e.message : String(e) };
    }
  });
}
""" % STYLE_SNAPSHOT_JS


def filter_attributes(raw_attributes: Sequence[Mapping[str, str]], whitelist: Sequence[str]) -> List[Attribute]:
    """
    Returns every attribute when `whitelist` is empty; otherwise only the whitelisted
    ones, in whitelist order and under the requested names. Attribute names are
    matched case-insensitively, as HTML does.
    """
    if not whitelist:
        return [Attribute(name=attr["name"], value=attr["value"]) for attr in raw_attributes]

    by_name = {attr["name"].lower(): attr["value"] for attr in raw_attributes}
    attributes: List[Attribute] = []
    for name in whitelist:
        value = by_name.get(name.lower())
        if value is not None:
            attributes.append(Attribute(name=name, value=value))
    return attributes


def build_element_result(raw: Mapping[str, Any], options: SelectorOptions) -> ElementResult:
    fields: Dict[str, Any] = {"text": raw.get("text") or ""}
    if options.include_html:
        fields["html"] = raw.get("html") or ""
    if options.include_attributes:
        fields["attributes"] = filter_attributes(raw.get("attributes") or [], options.attributes)
    if options.include_position:
        rect = raw.get("rect") or {}
        for key in ("top", "left", "width", "height"):
            fields[key] = float(rect.get(key) or 0.0)
    return ElementResult(**fields)


def build_selector_result(raw: Mapping[str, Any], options: SelectorOptions) -> SelectorResult:
    selector = raw.get("selector", "")
    if raw.get("error") is not None:
        logger.warning(f"Selector '{selector}' could not be evaluated: {raw['error']}")
        return SelectorResult(selector=selector, results=[], error=str(raw["error"]))

    elements = raw.get("elements") or []
    if options.visible_only:
        elements = [element for element in elements if is_visible(element.get("style"))]
    return SelectorResult(
        selector=selector,
        results=[build_element_result(element, options) for element in elements],
    )


async def extract_by_selector(
    session,
    selectors: Union[str, Sequence[str]],
    options: SelectorOptions = SelectorOptions(),
) -> List[SelectorResult]:
    """
    Extracts content from the elements matching each selector.

    Args:
        session (PageSession): The active page session.
        selectors (Union[str, Sequence[str]]): One selector or a list of selectors.
        options (SelectorOptions): Which element fields to report and whether hidden
            elements are dropped.

    Returns:
        List[SelectorResult]: One entry per selector, in input order. Evaluation errors are
        captured per selector and never raised.
    """
    selector_list = [selectors] if isinstance(selectors, str) else list(selectors)
    if not selector_list:
        return []

    raw_results = await session.page.evaluate(SELECTOR_BATCH_JS, [selector_list, options.include_html])

    results: List[SelectorResult] = []
    for selector, raw in zip(selector_list, raw_results):
        try:
            results.append(build_selector_result(raw, options))
        except Exception as e:
            logger.error(f"Failed to build results for selector '{selector}': {e}", exc_info=True)
            results.append(SelectorResult(selector=selector, results=[], error=str(e)))

    logger.debug(
        f"Evaluated {len(selector_list)} selectors; "
        f"{sum(len(r.results) for r in results)} elements kept, "
        f"{sum(1 for r in results if r.error)} selectors errored."
    )
    return results


TEXTS_BY_SELECTOR_JS = """
(selector) => Array.from(document.querySelectorAll(selector)).map((element) => (element.textContent || '').trim())
"""

ATTRIBUTE_BY_SELECTOR_JS = """
([selector, attribute]) => Array.from(document.querySelectorAll(selector))
  .map((element) => element.getAttribute(attribute))
  .filter((value) => value !== null)
"""


async def extract_text_by_selector(session, selector: str) -> List[str]:
    """
    Returns the trimmed text of every element matching `selector`, in document
    order. No visibility filtering is applied.

    Raises:
        ExtractorError: If the selector is invalid or the page cannot be evaluated.
    """
    try:
        return await session.page.evaluate(TEXTS_BY_SELECTOR_JS, selector)
    except Exception as e:
        logger.error(f"Text lookup for selector '{selector}' failed: {e}")
        raise ExtractorError(f"Failed to read text for selector '{selector}': {e}") from e


async def extract_attribute_by_selector(session, selector: str, attribute: str) -> List[str]:
    """
    Returns the value of `attribute` on every element matching `selector`;
    elements without the attribute are skipped.

    Raises:
        ExtractorError: If the selector is invalid or the page cannot be evaluated.
    """
    try:
        return await session.page.evaluate(ATTRIBUTE_BY_SELECTOR_JS, [selector, attribute])
    except Exception as e:
        logger.error(f"Attribute lookup '{attribute}' for selector '{selector}' failed: {e}")
        raise ExtractorError(f"Failed to read attribute '{attribute}' for selector '{selector}': {e}") from e
