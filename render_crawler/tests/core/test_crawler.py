import pytest
from unittest.mock import AsyncMock

from render_crawler.components.extractor.selector import SELECTOR_BATCH_JS
from render_crawler.components.extractor.text import TEXT_NODES_JS
from render_crawler.core.crawler import Crawler
from render_crawler.core.exceptions import RendererError
from render_crawler.core.models import (
    CrawlerConfig,
    DynamicOptions,
    MarkupOptions,
    ReadinessStrategy,
    ResponseEnvelope,
    parse_extraction_request,
)

URL = "https://example.com/page"
VISIBLE = {"display": "block", "visibility": "visible", "opacity": "1", "width": 300, "height": 20}
PAGE_HTML = (
    "<html><head><title>Example</title><meta name=\"description\" content=\"Demo\"></head>"
    "<body><script>alert(1)</script><p>Kept</p></body></html>"
)


@pytest.fixture
def crawler(mock_browser_manager, mock_page):
    mock_page.content.return_value = PAGE_HTML
    return Crawler(mock_browser_manager, CrawlerConfig(timeout=20000, wait_until="load"))


@pytest.mark.asyncio
async def test_crawl_navigates_and_releases_page(crawler, mock_page):
    envelope = await crawler.crawl(URL)

    assert envelope.ok
    assert envelope.to_dict().keys() == {"url", "status", "timestamp"}
    mock_page.goto.assert_awaited_once_with(URL, wait_until="load", timeout=20000)
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_markup_success(crawler, mock_page):
    envelope = await crawler.extract_markup(URL, MarkupOptions(remove_scripts=True))

    assert envelope.status == 200
    assert envelope.url == URL
    assert "<p>Kept</p>" in envelope.html
    assert "<script>" not in envelope.html
    assert envelope.metadata is None
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_markup_with_metadata(crawler):
    envelope = await crawler.extract_markup(URL, MarkupOptions(include_metadata=True))

    assert envelope.metadata == {"title": "Example", "description": "Demo"}


@pytest.mark.asyncio
async def test_navigation_failure_yields_error_envelope(crawler, mock_page):
    mock_page.goto.side_effect = Exception("Timeout 20000ms exceeded.")

    envelope = await crawler.extract_markup(URL)

    assert envelope.status == 500
    # The driver's own message is reported, without the component wrapping.
    assert envelope.error == "Timeout 20000ms exceeded."
    assert envelope.html is None
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_browser_launch_failure_yields_error_envelope(crawler, mock_browser_manager, mock_browser):
    mock_browser_manager.get_browser.side_effect = RendererError("Failed to initialize Playwright or launch browser chromium: missing")

    envelope = await crawler.extract_text(URL)

    assert envelope.status == 500
    assert envelope.error == "Failed to initialize Playwright or launch browser chromium: missing"
    mock_browser.new_page.assert_not_awaited()


@pytest.mark.asyncio
async def test_session_setup_failure_yields_error_envelope(crawler, mock_page):
    mock_page.set_viewport_size.side_effect = Exception("context closed")

    envelope = await crawler.extract_text(URL)

    assert envelope.status == 500
    assert envelope.error == "context closed"
    mock_page.goto.assert_not_awaited()
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_text(crawler, mock_page):
    mock_page.evaluate.return_value = {
        "nodes": [{"text": "Secret", "tag": "p", "style": {"display": "none"}},
                  {"text": "Hello", "tag": "p", "style": VISIBLE}],
        "images": [],
    }

    envelope = await crawler.extract_text(URL)

    assert envelope.ok
    assert envelope.text == "Hello"
    mock_page.evaluate.assert_awaited_once_with(TEXT_NODES_JS)


@pytest.mark.asyncio
async def test_extract_by_selector_keeps_status_ok_with_bad_selector(crawler, mock_page):
    mock_page.evaluate.return_value = [
        {"selector": "h1", "elements": []},
        {"selector": "h1[", "elements": [], "error": "not a valid selector"},
    ]

    envelope = await crawler.extract_by_selector(URL, ["h1", "h1["])

    assert envelope.ok
    assert [r.selector for r in envelope.elements] == ["h1", "h1["]
    assert envelope.elements[0].error is None
    assert envelope.elements[1].error == "not a valid selector"


@pytest.mark.asyncio
async def test_extract_dynamic_overrides_readiness(crawler, mock_page):
    mock_page.evaluate.return_value = {"nodes": [{"text": "Kept", "tag": "p", "style": VISIBLE}], "images": []}

    envelope = await crawler.extract_dynamic(URL, DynamicOptions(wait_until="domcontentloaded", wait_time=0))

    assert envelope.ok
    assert envelope.html == PAGE_HTML
    assert envelope.text == "Kept"
    mock_page.goto.assert_awaited_once_with(URL, wait_until="domcontentloaded", timeout=20000)


@pytest.mark.asyncio
async def test_extract_dynamic_inherits_configured_readiness(crawler, mock_page):
    mock_page.evaluate.return_value = {"nodes": [], "images": []}

    await crawler.extract_dynamic(URL, DynamicOptions(wait_time=0))

    assert mock_page.goto.await_args.kwargs["wait_until"] == ReadinessStrategy.LOAD.value


@pytest.mark.asyncio
async def test_extract_dynamic_failure_becomes_error_envelope(crawler, mock_page):
    mock_page.wait_for_timeout.side_effect = Exception("Target closed")

    envelope = await crawler.extract_dynamic(URL)

    assert envelope.status == 500
    assert envelope.error == "Dynamic content extraction failed during FIXED_DELAY: Target closed"
    assert envelope.html is None and envelope.text is None
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_extract_dynamic_by_selector(crawler, mock_page):
    async def _evaluate(expression, arg=None):
        if expression == SELECTOR_BATCH_JS:
            return [{"selector": "#app", "elements": [
                {"text": "App", "html": "App", "attributes": [],
                 "rect": {"top": 0, "left": 0, "width": 10, "height": 10}, "style": VISIBLE},
            ]}]
        return {"nodes": [], "images": []}

    mock_page.evaluate.side_effect = _evaluate

    envelope = await crawler.extract_dynamic_by_selector(URL, "#app", DynamicOptions(wait_time=0))

    assert envelope.ok
    assert envelope.elements[0].selector == "#app"
    assert envelope.elements[0].results[0].text == "App"
    assert envelope.html == PAGE_HTML


@pytest.mark.asyncio
async def test_execute_custom_script_without_args(crawler, mock_page):
    mock_page.evaluate.return_value = "Example"

    envelope = await crawler.execute_custom_script(URL, "document.title")

    assert envelope.ok
    assert envelope.result == "Example"
    mock_page.evaluate.assert_awaited_once_with("document.title")


@pytest.mark.asyncio
async def test_execute_custom_script_with_args(crawler, mock_page):
    mock_page.evaluate.return_value = 5

    envelope = await crawler.execute_custom_script(URL, "(a, b) => a + b", [2, 3])

    assert envelope.result == 5
    mock_page.evaluate.assert_awaited_once_with("(args) => ((a, b) => a + b)(...args)", [2, 3])


@pytest.mark.asyncio
async def test_execute_custom_script_page_error(crawler, mock_page):
    mock_page.evaluate.side_effect = Exception("ReferenceError: foo is not defined")

    envelope = await crawler.execute_custom_script(URL, "foo()")

    assert envelope.status == 500
    assert "ReferenceError" in envelope.error
    mock_page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_execute_dispatches_on_kind(crawler):
    expected = ResponseEnvelope.success(URL, text="dispatched")
    crawler.extract_text = AsyncMock(return_value=expected)
    crawler.execute_custom_script = AsyncMock(return_value=expected)

    text_request = parse_extraction_request({"kind": "text", "url": URL, "options": {"min_text_length": 3}})
    assert await crawler.execute(text_request) is expected
    crawler.extract_text.assert_awaited_once_with(URL, text_request.options)

    script_request = parse_extraction_request({"kind": "custom-script", "url": URL, "script": "(x) => x", "args": [7]})
    await crawler.execute(script_request)
    crawler.execute_custom_script.assert_awaited_once_with(URL, "(x) => x", (7,))


@pytest.mark.asyncio
async def test_execute_runs_markup_request_end_to_end(crawler):
    envelope = await crawler.execute(parse_extraction_request({"kind": "markup", "url": URL}))

    assert envelope.ok
    assert envelope.html == PAGE_HTML


@pytest.mark.asyncio
async def test_extract_texts_and_attributes_by_selector(crawler, mock_page):
    mock_page.evaluate.return_value = ["/docs", "/blog"]

    texts = await crawler.extract_texts_by_selector(URL, "nav a")
    attributes = await crawler.extract_attributes_by_selector(URL, "nav a", "href")

    assert texts.ok and texts.result == ["/docs", "/blog"]
    assert attributes.ok and attributes.to_dict()["result"] == ["/docs", "/blog"]
    assert mock_page.close.await_count == 2


@pytest.mark.asyncio
async def test_invalid_single_selector_reports_driver_message(crawler, mock_page):
    mock_page.evaluate.side_effect = Exception("'a[' is not a valid selector")

    envelope = await crawler.extract_texts_by_selector(URL, "a[")

    assert envelope.status == 500
    assert envelope.error == "'a[' is not a valid selector"
