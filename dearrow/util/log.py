import logging
import logging.handlers
import pathlib
from typing import Any

import structlog

from dearrow.internal.env_settings import ApplicationSettings

LOGGER_NAME = "dearrow"

_shared_processors: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _renderer(log_format: str) -> Any:
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(app: ApplicationSettings) -> None:
    """
    Route the client's structlog events through the ``dearrow`` stdlib logger.

    Only the ``dearrow`` logger is touched, so an embedding application keeps
    its own root configuration. Console output is always on; ``app.log_file``
    adds a rotating file under ``<config_dir>/logs``. ``app.debug`` forces
    DEBUG, which also surfaces per-fetch cache/dedup events.

    Safe to call again after settings change; previous handlers are closed.
    """
    level = logging.DEBUG if app.debug else getattr(logging, app.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(app.log_format),
        ],
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(level)
    package_logger.propagate = False

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if app.log_file:
        log_path = pathlib.Path(app.config_dir) / "logs"
        log_path.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_path / app.log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=3,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        package_logger.addHandler(handler)


def get_logger() -> structlog.stdlib.BoundLogger:
    """Get the structured logger for the ``dearrow`` package."""
    return structlog.stdlib.get_logger(LOGGER_NAME)


logger = get_logger()
