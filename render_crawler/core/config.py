"""
Environment-specific settings for the render crawler.

`ConfigurationManager` reads `config/<env>.yaml`, where the environment is the
explicit argument to `load_config`, else `APP_ENV`, else 'development'. Besides
raw dot-notation lookups it hands out validated snapshots of the sections the
crawler runs on:

- `crawler_config()`: `components.crawler` as a `CrawlerConfig`
- `browser_settings()`: `components.playwright_manager` as `BrowserSettings`
- `logging_settings()`: `logging` as `LoggingSettings`
- `api_settings()`: `api` as `ApiSettings`

A snapshot is validated the first time it is asked for and cached until the
next `load_config`, so a broken section fails loudly once instead of on every
request.
"""
import logging
import os
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Any, Callable, Dict, List, Optional, TypeVar

from render_crawler.core.exceptions import ConfigurationError
from render_crawler.core.models import CrawlerConfig

CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "config")
DEFAULT_ENV = "development"

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"

SnapshotT = TypeVar("SnapshotT")


class ConfigFileNotFoundError(ConfigurationError):
    """No `<env>.yaml` exists in the configuration directory."""


class InvalidYamlError(ConfigurationError):
    """The file is not valid YAML, or its top level is not a mapping."""


# --- Section snapshots ---

class BrowserSettings(BaseModel):
    """Launch settings for the shared browser (`components.playwright_manager`)."""
    model_config = ConfigDict(frozen=True)

    browser_type: str = "chromium"
    headless: bool = True
    launch_args: List[str] = Field(default_factory=list)


class LogHandlerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    path: Optional[str] = None
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    backup_count: int = Field(default=5, ge=0)


class LoggingSettings(BaseModel):
    """
    The `logging` section.

    Attributes:
        level (str): Root logger level name.
        format (str): Format string shared by every handler.
        handlers (Dict[str, LogHandlerSettings]): `console` and `file` handler settings.
        loggers (Dict[str, str]): Per-logger level overrides, e.g. to quiet `httpx`.
    """
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    handlers: Dict[str, LogHandlerSettings] = Field(default_factory=dict)
    loggers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        return _validate_level_name(value)

    @field_validator("loggers")
    @classmethod
    def _known_logger_levels(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {name: _validate_level_name(level) for name, level in value.items()}

    def handler(self, name: str) -> LogHandlerSettings:
        return self.handlers.get(name) or LogHandlerSettings()


class ApiSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = "Render Crawler API"
    version: str = "0.1.0"

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> str:
        # YAML reads `version: 1.0` as a float.
        return str(value)


def _validate_level_name(value: str) -> str:
    name = str(value).upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"Unknown log level: {value}")
    return name


class ConfigurationManager:
    """
    Process-wide holder of the loaded configuration (singleton).

    The first instantiation loads the configuration; later ones return the same
    object. Tests point `CONFIG_DIR` elsewhere and call `load_config` to switch.
    """
    CONFIG_DIR: str = CONFIG_DIR
    _instance: Optional["ConfigurationManager"] = None

    def __new__(cls) -> "ConfigurationManager":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._config = {}
            instance._current_env = ""
            instance._snapshots = {}
            cls._instance = instance
            instance.load_config()
        return cls._instance

    def load_config(self, env: Optional[str] = None) -> None:
        """
        Loads `<env>.yaml` and drops every cached section snapshot.

        Args:
            env (Optional[str]): Environment to load. Falls back to `APP_ENV`, then 'development'.

        Raises:
            ConfigFileNotFoundError: If the file for the environment does not exist.
            InvalidYamlError: If the file cannot be parsed or is not a mapping.
        """
        target_env = env or os.getenv("APP_ENV", DEFAULT_ENV)
        path = os.path.join(self.CONFIG_DIR, f"{target_env}.yaml")

        try:
            with open(path, "r") as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(
                f"No configuration for environment '{target_env}': expected '{target_env}.yaml' in '{self.CONFIG_DIR}'."
            )
        except yaml.YAMLError as e:
            raise InvalidYamlError(f"Could not parse configuration file '{path}': {e}")
        if not isinstance(loaded, dict):
            raise InvalidYamlError(f"Configuration file '{path}' does not contain a valid YAML dictionary.")

        self._config = loaded
        self._current_env = target_env
        self._snapshots = {}
        logging.getLogger(__name__).debug(f"Loaded '{target_env}' configuration from {path}.")

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Looks up a dot-separated key such as "components.crawler.timeout".

        Returns `default` when any step is missing or descends into a non-mapping.
        """
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    @property
    def current_environment(self) -> str:
        return self._current_env

    def _section(self, key: str) -> Dict[str, Any]:
        section = self.get(key)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Configuration section '{key}' must be a mapping.")
        return {name: value for name, value in section.items() if value is not None}

    def _snapshot(self, key: str, build: Callable[[], SnapshotT]) -> SnapshotT:
        if key not in self._snapshots:
            self._snapshots[key] = build()
        return self._snapshots[key]

    def _validated(self, model, key: str):
        try:
            return model.model_validate(self._section(key))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in '{key}': {e}")

    def crawler_config(self) -> CrawlerConfig:
        """
        Navigation and session defaults for every `Crawler`.

        Raises:
            ConfigurationError: If `components.crawler` holds invalid values.
        """
        return self._snapshot("components.crawler", lambda: CrawlerConfig.from_config(self))

    def browser_settings(self) -> BrowserSettings:
        return self._snapshot(
            "components.playwright_manager",
            lambda: self._validated(BrowserSettings, "components.playwright_manager"),
        )

    def logging_settings(self) -> Optional[LoggingSettings]:
        """The `logging` section, or None when the file has none."""
        if not self.get("logging"):
            return None
        return self._snapshot("logging", lambda: self._validated(LoggingSettings, "logging"))

    def api_settings(self) -> ApiSettings:
        return self._snapshot("api", lambda: self._validated(ApiSettings, "api"))


# Created on first import, which loads the configuration selected by APP_ENV.
config_manager = ConfigurationManager()
