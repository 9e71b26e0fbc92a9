"""
Custom exception classes for the render crawler.
"""
from typing import Optional


class RenderCrawlerError(Exception):
    """
    Base class for all custom exceptions in the render crawler.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(RenderCrawlerError):
    """
    Raised for errors related to application configuration, such as a
    crawler section holding values that cannot be turned into a `CrawlerConfig`.
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Request Related Exceptions ---
class RequestValidationError(RenderCrawlerError):
    """
    Raised by the API layer when an inbound request is malformed
    (missing or relative URL, empty selector list, unparsable body).

    Attributes:
        status (int): HTTP status code to answer with.
    """
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


# --- Component Related Exceptions ---
class ComponentError(RenderCrawlerError):
    """
    A general base class for errors originating from within a specific component
    (Renderer, PageSession, Extractor, Orchestrator).

    Attributes:
        component_name (str): Name of the component where the error originated.
        detail (str): The message without the component prefix.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name
        self.detail = message


class RendererError(ComponentError):
    """Raised for browser launch and navigation failures."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


class SessionError(ComponentError):
    """Raised when a page session cannot be set up."""
    def __init__(self, message: str):
        super().__init__(component_name="PageSession", message=message)


class ExtractorError(ComponentError):
    """Raised for errors specific to the Extractor component (markup retrieval, selector batches)."""
    def __init__(self, message: str):
        super().__init__(component_name="Extractor", message=message)


class OrchestrationError(ComponentError):
    """
    Raised when the dynamic-content sequence fails as a whole.

    Attributes:
        state (Optional[str]): The orchestrator state that was active when the failure happened.
    """
    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(component_name="Orchestrator", message=message)
        self.state = state


def error_message(exc: BaseException) -> str:
    """
    Returns the text to report for an exception in a response envelope.

    A component error raised from a driver exception reports the driver's own
    message; other component errors report their message without the component
    prefix. Anything else falls back to `str(exc)`, and an exception with an
    empty message is reported by its class name.
    """
    if isinstance(exc, ComponentError):
        if exc.__cause__ is not None:
            return error_message(exc.__cause__)
        return exc.detail
    if isinstance(exc, RenderCrawlerError):
        return exc.message
    return str(exc) or exc.__class__.__name__
