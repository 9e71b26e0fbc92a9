"""
Main application file for the render_crawler API.

This file initializes the FastAPI application, sets up logging,
registers global exception handlers, and includes the extraction router.
It also defines a root endpoint for basic API information.
"""
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from render_crawler.api.routes import crawler_routes
from render_crawler.core.config import config_manager
from render_crawler.core.exceptions import RenderCrawlerError, RequestValidationError as CrawlerRequestValidationError
from render_crawler.core.logger import setup_logging, get_logger

# --- Logging Setup ---
# ConfigurationManager (via global `config_manager`) has already loaded the
# configuration selected by APP_ENV (default 'development').
try:
    setup_logging(config_manager)
    logger = get_logger(__name__)
    logger.info("Logging successfully initialized for FastAPI application.")
except Exception as e:
    import logging as py_logging
    py_logging.basicConfig(level=py_logging.WARNING, format="%(asctime)s - %(levelname)s - CRITICAL - Failed to setup custom logging: %(message)s")
    py_logging.critical(f"Failed to initialize custom logging via ConfigurationManager: {e}", exc_info=True)
    logger = py_logging.getLogger(__name__)


# --- FastAPI Application Initialization ---
api_settings = config_manager.api_settings()
app = FastAPI(
    title=api_settings.title,
    description="Renders pages in a headless browser and extracts markup, visible text, "
                "selector-matched elements or the result of an injected script.",
    version=api_settings.version,
)


# --- Global Exception Handlers ---

@app.exception_handler(CrawlerRequestValidationError)
async def crawler_request_validation_handler(request: Request, exc: CrawlerRequestValidationError):
    """
    Handles malformed extraction requests (missing URL, empty selectors, bad body).

    Returns:
        JSONResponse: `{"error": message}` with the status carried by the exception (400 by default).
    """
    logger.warning(f"Rejected request {request.method} {request.url}: {exc.message}")
    return JSONResponse(status_code=exc.status, content={"error": exc.message})


@app.exception_handler(RenderCrawlerError)
async def render_crawler_exception_handler(request: Request, exc: RenderCrawlerError):
    """
    Handles framework errors raised outside the crawler's own envelope handling,
    such as an invalid crawler configuration section.
    """
    logger.error(
        f"RenderCrawlerError caught: {exc.__class__.__name__} - {exc.message} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles FastAPI's own validation of query parameter types (e.g. a non-numeric
    `timeout`). Returns HTTP 422 with the validation details.
    """
    logger.warning(
        f"RequestValidationError caught for: {request.method} {request.url}. Errors: {exc.errors()}",
        exc_info=False
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Request validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.critical(
        f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected server error occurred."},
    )


# --- API Router Inclusion ---
app.include_router(
    crawler_routes.router,
    prefix="/crawler",
    tags=["Extraction"]
)


# --- Root Endpoint ---
@app.get("/", tags=["General"], summary="API Root Endpoint")
async def read_root():
    """Lists the extraction endpoints and links to the API documentation."""
    return {
        "message": "Welcome to the Render Crawler API",
        "version": app.version,
        "endpoints": {
            "html": "GET /crawler/html?url=...",
            "text": "GET /crawler/text?url=...",
            "selector": "GET /crawler/selector?url=...&selectors=...",
            "js": "GET|POST /crawler/js?url=...",
            "execute": "POST /crawler/execute?url=...",
            "typed": "GET|POST /crawler?type=html|text|selector|js|execute&url=...",
        },
        "documentation_url": app.docs_url,
        "redoc_url": app.redoc_url
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Uvicorn server directly for local development/testing (not for production)...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
