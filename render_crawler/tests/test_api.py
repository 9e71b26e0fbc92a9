import json
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from render_crawler.api.main import app
from render_crawler.api.routes.crawler_routes import get_browser_manager, parse_selectors, validate_url
from render_crawler.components.extractor.selector import SELECTOR_BATCH_JS
from render_crawler.components.extractor.text import TEXT_NODES_JS
from render_crawler.components.orchestrator.dynamic_content import INJECT_SCRIPT_JS
from render_crawler.core.crawler import Crawler
from render_crawler.core.exceptions import RequestValidationError

TARGET = "https://example.com/"
PAGE_HTML = "<html><head><title>Example Domain</title></head><body><h1>Example Domain</h1></body></html>"
VISIBLE = {"display": "block", "visibility": "visible", "opacity": "1", "width": 300, "height": 30}
LIST_ITEMS = [
    {"text": text, "html": text, "attributes": [], "rect": {"top": 0, "left": 0, "width": 100, "height": 20}, "style": VISIBLE}
    for text in ("One", "Two")
]


@pytest.fixture
def client(mock_browser_manager, mock_page):
    """TestClient whose routes render into the mocked page instead of a real browser."""
    mock_page.content.return_value = PAGE_HTML

    async def _evaluate(expression, arg=None):
        if expression == TEXT_NODES_JS:
            return {"nodes": [{"text": "Example Domain", "tag": "h1", "style": VISIBLE}], "images": []}
        if expression == SELECTOR_BATCH_JS:
            selectors, _include_html = arg
            return [{"selector": s, "elements": LIST_ITEMS if s == "li" else []} for s in selectors]
        if expression == INJECT_SCRIPT_JS:
            return None
        return "evaluated"

    mock_page.evaluate.side_effect = _evaluate
    app.dependency_overrides[get_browser_manager] = lambda: mock_browser_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_read_root(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Welcome to the Render Crawler API"
    assert "html" in data["endpoints"]


def test_html_requires_url(client):
    response = client.get("/crawler/html")
    assert response.status_code == 400
    assert response.json() == {"error": "URL query parameter is required"}


@pytest.mark.parametrize("bad_url", ["example.com", "ftp://example.com/file", "/relative/path", "https://"])
def test_html_rejects_non_http_urls(client, bad_url):
    response = client.get("/crawler/html", params={"url": bad_url})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid URL")


def test_html_success_uses_configured_defaults(client, mock_browser, mock_page):
    response = client.get("/crawler/html", params={"url": TARGET})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == 200
    assert data["url"] == TARGET
    assert data["html"] == PAGE_HTML
    assert "error" not in data
    # Values from config/testing.yaml.
    mock_browser.new_page.assert_awaited_once_with(user_agent="render-crawler-tests/0.1")
    mock_page.goto.assert_awaited_once_with(TARGET, wait_until="load", timeout=15000)
    mock_page.set_viewport_size.assert_awaited_once_with({"width": 1024, "height": 768})
    mock_page.close.assert_awaited_once()


def test_html_with_metadata(client):
    response = client.get("/crawler/html", params={"url": TARGET, "includeMetadata": "true"})
    assert response.json()["metadata"] == {"title": "Example Domain"}


def test_crawler_option_overrides(client, mock_browser, mock_page):
    response = client.get("/crawler/html", params={
        "url": TARGET,
        "timeout": 5000,
        "waitUntil": "networkidle2",
        "userAgent": "custom-agent",
        "viewportWidth": 640,
        "viewportHeight": 480,
        "blockCSS": "true",
    })

    assert response.status_code == 200
    mock_browser.new_page.assert_awaited_once_with(user_agent="custom-agent")
    mock_page.goto.assert_awaited_once_with(TARGET, wait_until="networkidle", timeout=5000)
    mock_page.set_viewport_size.assert_awaited_once_with({"width": 640, "height": 480})
    mock_page.set_default_timeout.assert_called_once_with(5000)


def test_single_viewport_dimension_is_ignored(client, mock_page):
    client.get("/crawler/html", params={"url": TARGET, "viewportWidth": 640})
    mock_page.set_viewport_size.assert_awaited_once_with({"width": 1024, "height": 768})


def test_invalid_wait_until_is_rejected(client):
    response = client.get("/crawler/html", params={"url": TARGET, "waitUntil": "eventually"})
    assert response.status_code == 400
    assert "Invalid crawler options" in response.json()["error"]


def test_non_numeric_timeout_fails_type_validation(client):
    response = client.get("/crawler/html", params={"url": TARGET, "timeout": "soon"})
    assert response.status_code == 422
    assert response.json()["error"] == "Request validation failed"


def test_negative_min_text_length_is_rejected(client):
    response = client.get("/crawler/text", params={"url": TARGET, "minTextLength": -2})
    assert response.status_code == 400


def test_text_success(client):
    response = client.get("/crawler/text", params={"url": TARGET, "preserveWhitespace": "false"})
    assert response.status_code == 200
    assert response.json()["text"] == "Example Domain"


def test_failed_extraction_is_reported_in_envelope(client, mock_page):
    mock_page.goto.side_effect = Exception("net::ERR_CONNECTION_REFUSED")

    response = client.get("/crawler/text", params={"url": TARGET})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == 500
    assert "ERR_CONNECTION_REFUSED" in data["error"]
    assert "text" not in data


def test_selector_requires_selectors(client):
    response = client.get("/crawler/selector", params={"url": TARGET})
    assert response.status_code == 400
    assert response.json() == {"error": "Selectors parameter is required"}


@pytest.mark.parametrize("raw", ['["h1", ".missing"]', "h1, .missing"])
def test_selector_accepts_json_array_and_comma_list(client, mock_page, raw):
    response = client.get("/crawler/selector", params={"url": TARGET, "selectors": raw, "includeHtml": "false"})

    assert response.status_code == 200
    elements = response.json()["elements"]
    assert [e["selector"] for e in elements] == ["h1", ".missing"]
    assert all(e["results"] == [] for e in elements)
    mock_page.evaluate.assert_any_await(SELECTOR_BATCH_JS, [["h1", ".missing"], False])


def test_js_get(client, mock_page):
    response = client.get("/crawler/js", params={"url": TARGET, "waitTime": 0, "waitForSelector": "h1"})

    assert response.status_code == 200
    data = response.json()
    assert data["html"] == PAGE_HTML
    assert data["text"] == "Example Domain"
    assert "elements" not in data
    mock_page.wait_for_selector.assert_awaited_once_with("h1", timeout=5000)
    mock_page.wait_for_timeout.assert_not_awaited()


def test_js_post_with_custom_script(client, mock_page):
    script = "document.body.innerHTML += '<p>Injected</p>';"

    response = client.post("/crawler/js", params={"url": TARGET, "waitTime": 0}, json={"customScript": script})

    assert response.status_code == 200
    mock_page.evaluate.assert_any_await(INJECT_SCRIPT_JS, script)


def test_js_post_with_invalid_json(client):
    response = client.post(
        "/crawler/js",
        params={"url": TARGET},
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON in request body"}


def test_js_with_selectors_returns_elements(client):
    response = client.get("/crawler/js", params={"url": TARGET, "waitTime": 0, "selectors": "h1"})

    data = response.json()
    assert data["status"] == 200
    assert [e["selector"] for e in data["elements"]] == ["h1"]
    assert data["html"] == PAGE_HTML


def test_execute_script_with_args(client, mock_page):
    response = client.post(
        "/crawler/execute",
        params={"url": TARGET},
        json={"script": "(a, b) => a * b", "args": [6, 7]},
    )

    assert response.status_code == 200
    assert response.json()["result"] == "evaluated"
    mock_page.evaluate.assert_awaited_once_with("(args) => ((a, b) => a * b)(...args)", [6, 7])


def test_execute_script_without_args(client, mock_page):
    response = client.post("/crawler/execute", params={"url": TARGET}, json={"script": "document.title"})

    assert response.json()["result"] == "evaluated"
    mock_page.evaluate.assert_awaited_once_with("document.title")


def test_execute_requires_body(client):
    response = client.post("/crawler/execute", params={"url": TARGET})
    assert response.status_code == 400
    assert response.json() == {"error": "Request body is required for custom script execution"}


def test_execute_requires_script(client):
    response = client.post("/crawler/execute", params={"url": TARGET}, json={"args": [1]})
    assert response.status_code == 400
    assert response.json() == {"error": "Script is required in request body"}


def test_execute_is_post_only(client):
    response = client.get("/crawler/execute", params={"url": TARGET})
    assert response.status_code == 405


def test_parse_selectors_helper():
    assert parse_selectors(json.dumps(["a", "b"])) == ["a", "b"]
    assert parse_selectors("a, ,b") == ["a", "b"]
    # A JSON value that is not a list of strings is read as a comma list.
    assert parse_selectors('{"a": 1}') == ['{"a": 1}']
    assert parse_selectors(None) is None
    with pytest.raises(RequestValidationError):
        parse_selectors(" , ", required=True)


def test_validate_url_helper():
    assert validate_url("http://localhost:8080/page") == "http://localhost:8080/page"
    with pytest.raises(RequestValidationError):
        validate_url("")


# --- output switch of JS extraction ---

def test_js_output_text_with_selectors_joins_element_text(client):
    response = client.get("/crawler/js", params={"url": TARGET, "waitTime": 0, "selectors": "li,.missing", "output": "text"})

    data = response.json()
    assert data["status"] == 200
    assert data["text"] == "One Two\n\n"
    assert "html" not in data
    assert [e["selector"] for e in data["elements"]] == ["li", ".missing"]


def test_js_output_html_with_selectors_omits_text(client):
    response = client.get("/crawler/js", params={"url": TARGET, "waitTime": 0, "selectors": "li", "output": "html"})

    data = response.json()
    assert data["html"] == PAGE_HTML
    assert "text" not in data
    assert [r["text"] for r in data["elements"][0]["results"]] == ["One", "Two"]


def test_js_output_without_selectors_reports_html_and_text(client):
    response = client.get("/crawler/js", params={"url": TARGET, "waitTime": 0, "output": "text"})

    data = response.json()
    assert data["html"] == PAGE_HTML
    assert data["text"] == "Example Domain"


def test_js_rejects_unknown_output(client):
    response = client.get("/crawler/js", params={"url": TARGET, "output": "markdown"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid 'output' parameter. Must be 'html' or 'text'."}


# --- single /crawler?type=... route ---

@pytest.mark.parametrize("extraction_type, field, expected", [
    (None, "html", PAGE_HTML),
    ("html", "html", PAGE_HTML),
    ("TEXT", "text", "Example Domain"),
    ("js", "text", "Example Domain"),
])
def test_typed_route_get(client, extraction_type, field, expected):
    params = {"url": TARGET, "waitTime": 0}
    if extraction_type is not None:
        params["type"] = extraction_type

    response = client.get("/crawler", params=params)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == 200
    assert data[field] == expected


def test_typed_route_dispatches_through_crawler_execute(client):
    dispatched = []
    original_execute = Crawler.execute

    async def recording_execute(self, request):
        dispatched.append(request)
        return await original_execute(self, request)

    with patch.object(Crawler, "execute", recording_execute):
        response = client.get("/crawler", params={"url": TARGET, "type": "selector", "selectors": '["li"]'})

    assert response.status_code == 200
    (request,) = dispatched
    assert request.kind == "selector"
    assert request.selectors == ("li",)
    assert [r["text"] for r in response.json()["elements"][0]["results"]] == ["One", "Two"]


def test_typed_route_selector_requires_selectors(client):
    response = client.get("/crawler", params={"url": TARGET, "type": "selector"})
    assert response.status_code == 400
    assert response.json() == {"error": "Selectors parameter is required"}


def test_typed_route_js_post_with_selectors_and_text_output(client, mock_page):
    script = "window.ready = true;"

    response = client.post(
        "/crawler",
        params={"url": TARGET, "type": "js", "waitTime": 0, "selectors": "li", "output": "text"},
        json={"customScript": script},
    )

    data = response.json()
    assert data["text"] == "One Two"
    assert "html" not in data
    mock_page.evaluate.assert_any_await(INJECT_SCRIPT_JS, script)


def test_typed_route_execute(client, mock_page):
    response = client.post("/crawler", params={"url": TARGET, "type": "execute"}, json={"script": "document.title"})

    assert response.status_code == 200
    assert response.json()["result"] == "evaluated"
    mock_page.evaluate.assert_awaited_once_with("document.title")


def test_typed_route_rejects_unknown_type(client):
    response = client.get("/crawler", params={"url": TARGET, "type": "sitemap"})
    assert response.status_code == 400
    assert response.json() == {"error": "Unsupported legacy type: sitemap"}


@pytest.mark.parametrize("method, extraction_type", [("GET", "execute"), ("POST", "html"), ("POST", "selector")])
def test_typed_route_rejects_wrong_method_for_type(client, method, extraction_type):
    response = client.request(method, "/crawler", params={"url": TARGET, "type": extraction_type})
    assert response.status_code == 405
    assert response.json() == {"error": f"Method {method} not allowed for type '{extraction_type}'"}


def test_typed_route_rejects_other_methods(client):
    response = client.put("/crawler", params={"url": TARGET})
    assert response.status_code == 405


def test_typed_route_validates_url_after_type(client):
    response = client.get("/crawler", params={"type": "text"})
    assert response.status_code == 400
    assert response.json() == {"error": "URL query parameter is required"}
