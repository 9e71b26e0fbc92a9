from .config import (
    config_manager,
    ConfigurationManager,
    ConfigFileNotFoundError,
    InvalidYamlError,
    BrowserSettings,
    LoggingSettings,
    ApiSettings,
)
from .exceptions import (
    RenderCrawlerError,
    ConfigurationError,
    RequestValidationError,
    ComponentError,
    RendererError,
    SessionError,
    ExtractorError,
    OrchestrationError,
    error_message,
)
from .logger import setup_logging, get_logger
from .models import (
    CrawlerConfig,
    ReadinessStrategy,
    Viewport,
    MarkupOptions,
    TextOptions,
    SelectorOptions,
    DynamicOptions,
    ExtractionRequest,
    parse_extraction_request,
    ElementResult,
    SelectorResult,
    ExtractionOutcome,
    ResponseEnvelope,
)

# The Crawler façade lives in `render_crawler.core.crawler`; it is not re-exported
# here because it imports the components, which import this package.

__all__ = [
    # Config
    "config_manager",
    "ConfigurationManager",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    "BrowserSettings",
    "LoggingSettings",
    "ApiSettings",
    # Logger
    "setup_logging",
    "get_logger",
    # Exceptions
    "RenderCrawlerError",
    "ConfigurationError",
    "RequestValidationError",
    "ComponentError",
    "RendererError",
    "SessionError",
    "ExtractorError",
    "OrchestrationError",
    "error_message",
    # Models
    "CrawlerConfig",
    "ReadinessStrategy",
    "Viewport",
    "MarkupOptions",
    "TextOptions",
    "SelectorOptions",
    "DynamicOptions",
    "ExtractionRequest",
    "parse_extraction_request",
    "ElementResult",
    "SelectorResult",
    "ExtractionOutcome",
    "ResponseEnvelope",
]
