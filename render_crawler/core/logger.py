"""
Logging setup for the render crawler.

`setup_logging()` turns the validated `logging` section into handlers on the
root logger: a console handler, a rotating file handler, and per-logger level
overrides (used to keep chatty libraries such as `httpx` or `asyncio` quiet
while the crawler itself logs at DEBUG). `get_logger(name)` runs the setup on
first use, so modules can create their logger at import time.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from render_crawler.core.config import ConfigurationManager, LoggingSettings

# Relative log file paths are resolved against the project root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_LOG_FILE = "logs/render_crawler.log"

_logging_initialized = False
# Only handlers installed here are replaced on a forced re-setup; handlers that
# other code (uvicorn, pytest) attached to the root logger are left in place.
_installed_handlers: List[logging.Handler] = []


def _remove_installed_handlers(root_logger: logging.Logger) -> None:
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()


def _install(root_logger: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    _installed_handlers.append(handler)


def _file_handler(settings: LoggingSettings) -> Optional[RotatingFileHandler]:
    file_settings = settings.handler("file")
    path = os.path.join(PROJECT_ROOT, file_settings.path or DEFAULT_LOG_FILE)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return RotatingFileHandler(
            filename=path,
            maxBytes=file_settings.max_bytes,
            backupCount=file_settings.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        logging.error(f"File logging disabled: cannot open '{path}': {e}", exc_info=True)
        return None


def setup_logging(config: Optional[ConfigurationManager] = None, force: bool = False) -> None:
    """
    Configures the root logger from the `logging` section of the configuration.

    Runs once per process unless `force` is set. Without a `logging` section,
    falls back to `logging.basicConfig` at INFO.

    Args:
        config (Optional[ConfigurationManager]): Source of the settings; the global
            `config_manager` when None.
        force (bool): Re-run the setup, replacing the handlers installed by an earlier call.

    Raises:
        ConfigurationError: If the `logging` section holds invalid values.
    """
    global _logging_initialized
    if _logging_initialized and not force:
        return

    if config is None:
        from render_crawler.core.config import config_manager as config
    settings = config.logging_settings()

    root_logger = logging.getLogger()
    _remove_installed_handlers(root_logger)

    if settings is None:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        logging.warning("No 'logging' section in the configuration; using basicConfig.")
        _logging_initialized = True
        return

    root_logger.setLevel(settings.level)
    formatter = logging.Formatter(settings.format)

    if settings.handler("console").enabled:
        _install(root_logger, logging.StreamHandler(), formatter)
    if settings.handler("file").enabled:
        file_handler = _file_handler(settings)
        if file_handler is not None:
            _install(root_logger, file_handler, formatter)

    for name, level in settings.loggers.items():
        logging.getLogger(name).setLevel(level)

    _logging_initialized = True
    logging.getLogger(__name__).info(
        f"Logging initialized (level={settings.level}, handlers={[type(h).__name__ for h in _installed_handlers]})."
    )


def get_logger(name: str) -> logging.Logger:
    """Returns the logger for `name`, setting up logging first if nothing has yet."""
    if not _logging_initialized:
        setup_logging()
    return logging.getLogger(name)
