"""
API routes for extraction operations in render_crawler.

Each route validates the target URL and the query options, builds a `Crawler`
for the request's configuration and returns the crawler's response envelope as
JSON. The envelope carries its own status (200 or 500); the HTTP status is 200
whenever the request itself was valid. Malformed requests are answered with
HTTP 400 and `{"error": ...}`. `/crawler?type=...` is the older single-route
form and dispatches through the tagged extraction requests.
"""
import json
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlparse

from render_crawler.components.renderer.playwright_manager import PlaywrightManager, get_shared_manager
from render_crawler.core.config import config_manager
from render_crawler.core.crawler import Crawler
from render_crawler.core.exceptions import RequestValidationError
from render_crawler.core.logger import get_logger
from render_crawler.core.models import (
    CrawlerConfig,
    DynamicOptions,
    ExtractionRequest,
    MarkupOptions,
    ResponseEnvelope,
    SelectorOptions,
    TextOptions,
    Viewport,
    parse_extraction_request,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JS_OUTPUT_TYPES = ("html", "text")

router = APIRouter()


# --- Request bodies ---

class JsExtractionBody(BaseModel):
    """Optional body of `POST /crawler/js`."""
    customScript: Optional[str] = None


class ExecuteScriptBody(BaseModel):
    """Body of `POST /crawler/execute`."""
    script: str = Field(min_length=1)
    args: List[Any] = Field(default_factory=list)


# --- Parsing helpers ---

def validate_url(url: Optional[str]) -> str:
    """
    Checks that `url` is present and is an absolute http(s) URL.

    Raises:
        RequestValidationError: If the URL is missing or unusable.
    """
    if not url:
        raise RequestValidationError("URL query parameter is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise RequestValidationError(f"Invalid URL: {url}")
    return url


def parse_selectors(raw: Optional[str], required: bool = False) -> Optional[List[str]]:
    """
    Parses the `selectors` parameter, given either as a JSON array of strings or
    as a comma-separated list. Blank entries are dropped.

    Returns:
        Optional[List[str]]: The selectors, or None when absent and not required.

    Raises:
        RequestValidationError: If selectors are required but missing or empty.
    """
    if not raw:
        if required:
            raise RequestValidationError("Selectors parameter is required")
        return None

    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, list) or not all(isinstance(s, str) for s in parsed):
            raise ValueError("Parsed JSON is not an array of strings")
        selectors = parsed
    except ValueError:
        selectors = raw.split(",")

    selectors = [s.strip() for s in selectors if s.strip()]
    if not selectors:
        if required:
            raise RequestValidationError("Selectors parameter cannot be empty")
        return None
    return selectors


def parse_attribute_list(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    return [name.strip() for name in raw.split(",") if name.strip()]


def build_options(model: Type[ModelT], **values: Any) -> ModelT:
    """Validates the given values (None means "use the default") into an options model."""
    try:
        return model(**{key: value for key, value in values.items() if value is not None})
    except ValidationError as e:
        raise RequestValidationError(f"Invalid {model.__name__}: {e}")


async def read_json_body(request: Request) -> Any:
    """Returns the decoded JSON body, or None for an empty body."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise RequestValidationError("Invalid JSON in request body")


async def read_custom_script(request: Request) -> Optional[str]:
    """Returns `customScript` from a POST body, or None for GET requests and bodies without one."""
    if request.method != "POST":
        return None
    data = await read_json_body(request)
    if data is None:
        return None
    try:
        body = JsExtractionBody.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(f"Invalid request body: {e}")
    return body.customScript or None


def with_custom_script(options: DynamicOptions, script: Optional[str]) -> DynamicOptions:
    if not script:
        return options
    return options.model_copy(update={"custom_script": script})


async def read_execute_body(request: Request) -> ExecuteScriptBody:
    data = await read_json_body(request)
    if data is None:
        raise RequestValidationError("Request body is required for custom script execution")
    try:
        return ExecuteScriptBody.model_validate(data)
    except ValidationError:
        raise RequestValidationError("Script is required in request body")


def validate_output(output: Optional[str]) -> str:
    """Checks the `output` parameter of JS extraction; 'html' when absent."""
    value = output or "html"
    if value not in JS_OUTPUT_TYPES:
        raise RequestValidationError("Invalid 'output' parameter. Must be 'html' or 'text'.")
    return value


def build_extraction_request(data: Dict[str, Any]) -> ExtractionRequest:
    try:
        return parse_extraction_request(data)
    except ValidationError as e:
        raise RequestValidationError(f"Invalid extraction request: {e}")


# --- Dependencies ---

def get_browser_manager() -> PlaywrightManager:
    """Process-wide browser manager. Tests override this dependency."""
    return get_shared_manager(config_manager)


def get_base_crawler_config() -> CrawlerConfig:
    return config_manager.crawler_config()


def target_url(url: Optional[str] = Query(None, description="Absolute http(s) URL of the page to render.")) -> str:
    return validate_url(url)


def js_output(output: Optional[str] = Query(None, description="'html' (default) or 'text'.")) -> str:
    return validate_output(output)


def crawler_config(
    base: CrawlerConfig = Depends(get_base_crawler_config),
    timeout: Optional[int] = Query(None, description="Navigation and page timeout in milliseconds."),
    wait_until: Optional[str] = Query(None, alias="waitUntil"),
    user_agent: Optional[str] = Query(None, alias="userAgent"),
    viewport_width: Optional[int] = Query(None, alias="viewportWidth"),
    viewport_height: Optional[int] = Query(None, alias="viewportHeight"),
    block_images: Optional[bool] = Query(None, alias="blockImages"),
    block_fonts: Optional[bool] = Query(None, alias="blockFonts"),
    block_css: Optional[bool] = Query(None, alias="blockCSS"),
) -> CrawlerConfig:
    """Applies the per-request overrides to the configured crawler settings."""
    try:
        viewport = None
        # A viewport override needs both dimensions.
        if viewport_width is not None and viewport_height is not None:
            viewport = Viewport(width=viewport_width, height=viewport_height)
        return base.with_overrides(
            timeout=timeout,
            wait_until=wait_until,
            user_agent=user_agent,
            viewport=viewport,
            block_images=block_images,
            block_fonts=block_fonts,
            block_stylesheets=block_css,
        )
    except ValidationError as e:
        raise RequestValidationError(f"Invalid crawler options: {e}")


def markup_options(
    remove_scripts: Optional[bool] = Query(None, alias="removeScripts"),
    remove_styles: Optional[bool] = Query(None, alias="removeStyles"),
    include_metadata: Optional[bool] = Query(None, alias="includeMetadata"),
) -> MarkupOptions:
    return build_options(
        MarkupOptions,
        remove_scripts=remove_scripts,
        remove_styles=remove_styles,
        include_metadata=include_metadata,
    )


def text_options(
    min_text_length: Optional[int] = Query(None, alias="minTextLength"),
    include_image_alt: Optional[bool] = Query(None, alias="includeImageAlt"),
    preserve_whitespace: Optional[bool] = Query(None, alias="preserveWhitespace"),
) -> TextOptions:
    return build_options(
        TextOptions,
        min_text_length=min_text_length,
        include_image_alt=include_image_alt,
        preserve_whitespace=preserve_whitespace,
    )


def selector_options(
    include_attributes: Optional[bool] = Query(None, alias="includeAttributes"),
    include_position: Optional[bool] = Query(None, alias="includePosition"),
    include_html: Optional[bool] = Query(None, alias="includeHtml"),
    visible_only: Optional[bool] = Query(None, alias="visibleOnly"),
    attributes: Optional[str] = Query(None, description="Comma-separated attribute whitelist."),
) -> SelectorOptions:
    attribute_list = parse_attribute_list(attributes)
    return build_options(
        SelectorOptions,
        include_attributes=include_attributes,
        include_position=include_position,
        include_html=include_html,
        visible_only=visible_only,
        attributes=tuple(attribute_list) if attribute_list else None,
    )


def dynamic_options(
    remove_scripts: Optional[bool] = Query(None, alias="removeScripts"),
    remove_styles: Optional[bool] = Query(None, alias="removeStyles"),
    wait_time: Optional[int] = Query(None, alias="waitTime"),
    wait_until: Optional[str] = Query(None, alias="waitUntil"),
    wait_for_network_idle: Optional[bool] = Query(None, alias="waitForNetworkIdle"),
    network_idle_time: Optional[int] = Query(None, alias="networkIdleTime"),
    wait_for_selector: Optional[str] = Query(None, alias="waitForSelector"),
    selector_timeout: Optional[int] = Query(None, alias="selectorTimeout"),
) -> DynamicOptions:
    return build_options(
        DynamicOptions,
        remove_scripts=remove_scripts,
        remove_styles=remove_styles,
        wait_time=wait_time,
        wait_until=wait_until,
        wait_for_network_idle=wait_for_network_idle,
        network_idle_time=network_idle_time,
        wait_for_selector=wait_for_selector or None,
        selector_timeout=selector_timeout,
    )


def envelope_response(envelope: ResponseEnvelope) -> JSONResponse:
    if not envelope.ok:
        logger.warning(f"Extraction for {envelope.url} failed: {envelope.error}")
    return JSONResponse(content=envelope.to_dict())


def shape_js_envelope(envelope: ResponseEnvelope, output: str, with_selectors: bool) -> ResponseEnvelope:
    """
    Applies the `output` choice of JS extraction to a selector result.

    With selectors, `elements` is always reported, accompanied by the rendered
    markup (`html`) or by the elements' text (`text`): the texts of one
    selector's matches joined by a space, selectors separated by a blank line.
    Without selectors, and for error envelopes, the envelope is returned as is.
    """
    if not envelope.ok or not with_selectors:
        return envelope
    elements = envelope.elements or []
    content: Dict[str, Any] = {"elements": elements}
    if output == "text":
        content["text"] = "\n\n".join(" ".join(r.text for r in element.results) for element in elements)
    else:
        content["html"] = envelope.html
    return ResponseEnvelope(url=envelope.url, status=envelope.status, timestamp=envelope.timestamp, **content)


# --- Routes ---

@router.get("/html", summary="Extract the rendered markup of a page")
async def extract_html_endpoint(
    url: str = Depends(target_url),
    config: CrawlerConfig = Depends(crawler_config),
    options: MarkupOptions = Depends(markup_options),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    crawler = Crawler(browser_manager, config)
    return envelope_response(await crawler.extract_markup(url, options))


@router.get("/text", summary="Extract the visible text of a page")
async def extract_text_endpoint(
    url: str = Depends(target_url),
    config: CrawlerConfig = Depends(crawler_config),
    options: TextOptions = Depends(text_options),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    crawler = Crawler(browser_manager, config)
    return envelope_response(await crawler.extract_text(url, options))


@router.get("/selector", summary="Extract the elements matching CSS selectors")
async def extract_selector_endpoint(
    url: str = Depends(target_url),
    selectors: Optional[str] = Query(None, description="JSON array or comma-separated list of CSS selectors."),
    config: CrawlerConfig = Depends(crawler_config),
    options: SelectorOptions = Depends(selector_options),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    selector_list = parse_selectors(selectors, required=True)
    crawler = Crawler(browser_manager, config)
    return envelope_response(await crawler.extract_by_selector(url, selector_list, options))

@router.api_route("/js", methods=["GET", "POST"], summary="Extract content after client-side rendering")
async def extract_js_endpoint(
    request: Request,
    url: str = Depends(target_url),
    selectors: Optional[str] = Query(None, description="JSON array or comma-separated list of CSS selectors."),
    output: str = Depends(js_output),
    config: CrawlerConfig = Depends(crawler_config),
    options: DynamicOptions = Depends(dynamic_options),
    element_options: SelectorOptions = Depends(selector_options),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    """
    Waits for dynamic content before extracting markup and text. A POST body may
    carry `{"customScript": "..."}` to run inside the page before extraction; with
    `selectors`, matching elements are extracted as well and `output` picks
    whether markup or the elements' joined text accompanies them.
    """
    options = with_custom_script(options, await read_custom_script(request))
    selector_list = parse_selectors(selectors)
    crawler = Crawler(browser_manager, config)
    if selector_list:
        envelope = await crawler.extract_dynamic_by_selector(url, selector_list, options, element_options)
    else:
        envelope = await crawler.extract_dynamic(url, options)
    return envelope_response(shape_js_envelope(envelope, output, with_selectors=bool(selector_list)))


@router.post("/execute", summary="Evaluate a script in a rendered page")
async def execute_script_endpoint(
    request: Request,
    url: str = Depends(target_url),
    config: CrawlerConfig = Depends(crawler_config),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    """
    Evaluates `script` from the JSON body in the page. When `args` is a non-empty
    list the script must be function source; it is called with the args.
    """
    body = await read_execute_body(request)
    crawler = Crawler(browser_manager, config)
    return envelope_response(await crawler.execute_custom_script(url, body.script, body.args))


# Methods accepted by the single `/crawler?type=...` entry point, per type.
LEGACY_TYPE_METHODS = {
    "html": ("GET",),
    "text": ("GET",),
    "selector": ("GET",),
    "js": ("GET", "POST"),
    "execute": ("POST",),
}


@router.api_route("", methods=["GET", "POST"], summary="Run the extraction selected by `type`")
async def legacy_extraction_endpoint(
    request: Request,
    extraction_type: Optional[str] = Query(None, alias="type", description="html, text, selector, js or execute."),
    url: Optional[str] = Query(None, description="Absolute http(s) URL of the page to render."),
    selectors: Optional[str] = Query(None, description="JSON array or comma-separated list of CSS selectors."),
    output: Optional[str] = Query(None, description="For type=js: 'html' or 'text'."),
    config: CrawlerConfig = Depends(crawler_config),
    markup: MarkupOptions = Depends(markup_options),
    text: TextOptions = Depends(text_options),
    element_options: SelectorOptions = Depends(selector_options),
    dynamic: DynamicOptions = Depends(dynamic_options),
    browser_manager: PlaywrightManager = Depends(get_browser_manager),
):
    """
    Older single-route form of the endpoints above: `type` (default `html`)
    selects the extraction, and the remaining parameters mean what they mean on
    the dedicated route. The request is built as a tagged extraction request
    and dispatched through `Crawler.execute`.
    """
    kind = (extraction_type or "html").strip().lower()
    allowed_methods = LEGACY_TYPE_METHODS.get(kind)
    if allowed_methods is None:
        raise RequestValidationError(f"Unsupported legacy type: {kind}")
    if request.method not in allowed_methods:
        raise RequestValidationError(f"Method {request.method} not allowed for type '{kind}'", status=405)

    target = validate_url(url)
    if kind == "html":
        data = {"kind": "markup", "options": markup}
    elif kind == "text":
        data = {"kind": "text", "options": text}
    elif kind == "selector":
        data = {"kind": "selector", "selectors": parse_selectors(selectors, required=True), "options": element_options}
    elif kind == "js":
        output = validate_output(output)
        dynamic = with_custom_script(dynamic, await read_custom_script(request))
        selector_list = parse_selectors(selectors)
        if selector_list:
            data = {
                "kind": "dynamic-selector",
                "selectors": selector_list,
                "options": dynamic,
                "selector_options": element_options,
            }
        else:
            data = {"kind": "dynamic", "options": dynamic}
    else:
        body = await read_execute_body(request)
        data = {"kind": "custom-script", "script": body.script, "args": body.args}

    extraction = build_extraction_request({"url": target, **data})
    logger.debug(f"Legacy route type '{kind}' dispatched as '{extraction.kind}' for {target}")
    envelope = await Crawler(browser_manager, config).execute(extraction)
    if kind == "js":
        envelope = shape_js_envelope(envelope, output, with_selectors=extraction.kind == "dynamic-selector")
    return envelope_response(envelope)
