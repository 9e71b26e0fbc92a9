"""
Value objects shared by the crawler façade, the extractors and the API layer.

Everything here is a pydantic model so that options arriving from the API are
validated once, and results can be serialized without a separate schema layer.
Option and configuration models are frozen: they are handed around as values,
never mutated after construction.
"""
import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from render_crawler.core.exceptions import ConfigurationError

STATUS_OK = 200
STATUS_ERROR = 500


class ReadinessStrategy(str, Enum):
    """Navigation-completion condition handed to `page.goto(wait_until=...)`."""
    LOAD = "load"
    DOM_CONTENT_LOADED = "domcontentloaded"
    NETWORK_IDLE = "networkidle"
    COMMIT = "commit"

    @classmethod
    def parse(cls, value: Union[str, "ReadinessStrategy"]) -> "ReadinessStrategy":
        """
        Accepts the canonical values plus the spellings used by other browser drivers
        ("network-idle", "networkidle0", "networkidle2").

        Raises:
            ValueError: If the value names no known strategy.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized in _READINESS_ALIASES:
            return _READINESS_ALIASES[normalized]
        return cls(normalized)


_READINESS_ALIASES = {
    "network-idle": ReadinessStrategy.NETWORK_IDLE,
    "networkidle0": ReadinessStrategy.NETWORK_IDLE,
    "networkidle2": ReadinessStrategy.NETWORK_IDLE,
    "dom-content-loaded": ReadinessStrategy.DOM_CONTENT_LOADED,
}


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=800, gt=0)


DEFAULT_VIEWPORT = Viewport()


class CrawlerConfig(BaseModel):
    """
    Immutable configuration snapshot supplied once to a `Crawler`.

    Attributes:
        timeout (int): Default timeout in milliseconds for navigation and page operations.
        wait_until (ReadinessStrategy): Readiness strategy used for navigation.
        user_agent (Optional[str]): User agent override; the browser default when None.
        viewport (Viewport): Page viewport dimensions.
        block_images (bool): Abort requests whose resource type is "image".
        block_fonts (bool): Abort requests whose resource type is "font".
        block_stylesheets (bool): Abort requests whose resource type is "stylesheet".
    """
    model_config = ConfigDict(frozen=True)

    timeout: int = Field(default=30000, gt=0)
    wait_until: ReadinessStrategy = ReadinessStrategy.NETWORK_IDLE
    user_agent: Optional[str] = None
    viewport: Viewport = DEFAULT_VIEWPORT
    block_images: bool = True
    block_fonts: bool = True
    block_stylesheets: bool = False

    @field_validator("wait_until", mode="before")
    @classmethod
    def _parse_wait_until(cls, value: Any) -> ReadinessStrategy:
        return ReadinessStrategy.parse(value)

    @classmethod
    def from_config(cls, config: Any, section: str = "components.crawler") -> "CrawlerConfig":
        """
        Builds a snapshot from the `components.crawler` section of a `ConfigurationManager`.

        Keys missing from the section keep their defaults.

        Raises:
            ConfigurationError: If the section holds values that do not validate.
        """
        settings = config.get(section, {}) if config is not None else {}
        if not isinstance(settings, dict):
            raise ConfigurationError(f"Configuration section '{section}' must be a mapping.")
        values = {key: value for key, value in settings.items() if value is not None}
        try:
            return cls.model_validate(values)
        except ValueError as e:
            raise ConfigurationError(f"Invalid crawler configuration in '{section}': {e}")

    def with_overrides(self, **overrides: Any) -> "CrawlerConfig":
        """Returns a new snapshot with the non-None overrides applied; self is left untouched."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        return self.__class__.model_validate({**self.model_dump(), **updates})


# --- Extraction options ---

class MarkupOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    remove_scripts: bool = False
    remove_styles: bool = False
    include_metadata: bool = False


class TextOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    preserve_whitespace: bool = False
    include_image_alt: bool = True
    min_text_length: int = Field(default=1, ge=0)


class SelectorOptions(BaseModel):
    """
    Options for selector extraction. An empty `attributes` tuple means
    "report every attribute"; a non-empty one is a whitelist.
    """
    model_config = ConfigDict(frozen=True)

    include_attributes: bool = True
    include_position: bool = True
    include_html: bool = True
    attributes: Tuple[str, ...] = ()
    visible_only: bool = True


class DynamicOptions(BaseModel):
    """
    Options for the dynamic-content orchestrator. Times are milliseconds.
    `wait_until` overrides the crawler's readiness strategy for navigation;
    None keeps the configured one.
    """
    model_config = ConfigDict(frozen=True)

    wait_time: int = Field(default=1000, ge=0)
    wait_until: Optional[ReadinessStrategy] = None
    custom_script: Optional[str] = None
    wait_for_network_idle: bool = True
    network_idle_time: int = Field(default=500, ge=0)
    wait_for_selector: Optional[str] = None
    selector_timeout: int = Field(default=5000, ge=0)
    remove_scripts: bool = False
    remove_styles: bool = False

    @field_validator("wait_until", mode="before")
    @classmethod
    def _parse_wait_until(cls, value: Any) -> Optional[ReadinessStrategy]:
        if value is None:
            return None
        return ReadinessStrategy.parse(value)


# --- Extraction requests (tagged on `kind`) ---

class _RequestBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class MarkupRequest(_RequestBase):
    kind: Literal["markup"] = "markup"
    options: MarkupOptions = MarkupOptions()


class TextRequest(_RequestBase):
    kind: Literal["text"] = "text"
    options: TextOptions = TextOptions()


class SelectorRequest(_RequestBase):
    kind: Literal["selector"] = "selector"
    selectors: Tuple[str, ...]
    options: SelectorOptions = SelectorOptions()


class DynamicRequest(_RequestBase):
    kind: Literal["dynamic"] = "dynamic"
    options: DynamicOptions = DynamicOptions()


class DynamicSelectorRequest(_RequestBase):
    kind: Literal["dynamic-selector"] = "dynamic-selector"
    selectors: Tuple[str, ...]
    options: DynamicOptions = DynamicOptions()
    selector_options: SelectorOptions = SelectorOptions()


class CustomScriptRequest(_RequestBase):
    kind: Literal["custom-script"] = "custom-script"
    script: str
    args: Tuple[Any, ...] = ()


ExtractionRequest = Annotated[
    Union[
        MarkupRequest,
        TextRequest,
        SelectorRequest,
        DynamicRequest,
        DynamicSelectorRequest,
        CustomScriptRequest,
    ],
    Field(discriminator="kind"),
]

_extraction_request_adapter = TypeAdapter(ExtractionRequest)


def parse_extraction_request(data: Dict[str, Any]):
    """Validates a plain mapping into the matching `ExtractionRequest` variant."""
    return _extraction_request_adapter.validate_python(data)


# --- Results ---

class Attribute(BaseModel):
    name: str
    value: str


class ElementResult(BaseModel):
    """
    One matched element. Geometry fields are either all present or all absent;
    `attributes` holds the full attribute set or the requested whitelist.
    """
    text: str
    html: Optional[str] = None
    attributes: Optional[List[Attribute]] = None
    top: Optional[float] = None
    left: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @model_validator(mode="after")
    def _geometry_all_or_nothing(self) -> "ElementResult":
        geometry = (self.top, self.left, self.width, self.height)
        if any(v is not None for v in geometry) and any(v is None for v in geometry):
            raise ValueError("Element geometry must provide top, left, width and height together.")
        return self


class SelectorResult(BaseModel):
    selector: str
    results: List[ElementResult] = Field(default_factory=list)
    error: Optional[str] = None


class ExtractionOutcome(BaseModel):
    """Result of one orchestrated extraction: content fields or an error, never both."""
    html: Optional[str] = None
    text: Optional[str] = None
    elements: Optional[List[SelectorResult]] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _error_excludes_content(self) -> "ExtractionOutcome":
        if self.error is not None and any(v is not None for v in (self.html, self.text, self.elements)):
            raise ValueError("An extraction outcome cannot carry content alongside an error.")
        return self

    @property
    def failed(self) -> bool:
        return self.error is not None


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


class ResponseEnvelope(BaseModel):
    """
    Uniform response of every crawler operation.

    Status 200 means the requested content fields are present, status 500 means
    `error` is present; the two never mix. Fields that were never set are left
    out of `to_dict()`, so a custom script returning null still reports `result`.
    """
    url: str
    status: int
    timestamp: int = Field(default_factory=current_timestamp_ms)
    html: Optional[str] = None
    text: Optional[str] = None
    elements: Optional[List[SelectorResult]] = None
    result: Any = None
    metadata: Optional[Dict[str, str]] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _status_matches_error(self) -> "ResponseEnvelope":
        if self.status == STATUS_OK and self.error is not None:
            raise ValueError("A status 200 envelope cannot carry an error.")
        if self.status == STATUS_ERROR:
            if self.error is None:
                raise ValueError("A status 500 envelope must carry an error.")
            if any(v is not None for v in (self.html, self.text, self.elements, self.result, self.metadata)):
                raise ValueError("A status 500 envelope cannot carry content.")
        if self.status not in (STATUS_OK, STATUS_ERROR):
            raise ValueError(f"Unsupported envelope status: {self.status}")
        return self

    @classmethod
    def success(cls, url: str, **content: Any) -> "ResponseEnvelope":
        return cls(url=url, status=STATUS_OK, timestamp=current_timestamp_ms(), **content)

    @classmethod
    def failure(cls, url: str, message: str) -> "ResponseEnvelope":
        return cls(url=url, status=STATUS_ERROR, timestamp=current_timestamp_ms(), error=message)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
