"""Structured logging configuration using structlog.

Log records from structlog and from the standard library (uvicorn, for
instance) are rendered by the same stdlib handlers:
- stderr: console renderer, or JSON when HWSENSE_LOG_FORMAT=json
- optional rotating JSON-lines file under `log_dir` (HWSENSE_LOG_TO_FILE)

stdout is left alone; it carries sensor readings.
"""

import logging
import logging.handlers
import pathlib
import sys
from typing import Any

import structlog

LOG_FILE_NAME = "hwsense.jsonl"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 3


def _get_log_level() -> str:
    # Settings may not be importable yet, so read the environment directly.
    from hwsense.config.bootstrap import get_bootstrap_log_level  # noqa: PLC0415

    return get_bootstrap_log_level()


def _get_log_format() -> str:
    from hwsense.config.bootstrap import get_bootstrap_log_format  # noqa: PLC0415

    return get_bootstrap_log_format()


def _get_log_dir() -> pathlib.Path | None:
    """Directory for the JSON-lines file, or None when file logging is off.

    Also None while the settings module is itself being imported, which
    happens when a config module logs during first configuration, and when
    the settings fail to load. Invalid settings surface later, where they
    are used.
    """
    try:
        from hwsense.config.settings import get_settings  # noqa: PLC0415

        settings = get_settings()
    except Exception:
        logging.getLogger(__name__).debug("log_dir_settings_unavailable", exc_info=True)
        return None
    return settings.log_dir if settings.log_to_file else None


def _add_component_from_event_dict(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Tag events with the last segment of the logger name.

    "hwsense.sensors.discovery" becomes "discovery".
    """
    logger_name = event_dict.get("logger") or "unknown"
    event_dict["component"] = logger_name.rsplit(".", 1)[-1]
    return event_dict


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering both structlog and plain stdlib records."""
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_component_from_event_dict,
        ],
    )


def _configure_file_handler(log_dir: pathlib.Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=str(log_dir / LOG_FILE_NAME),
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    handler.setLevel(logging.INFO)
    return handler


def _configure_console_handler(log_format: str, level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    handler.setFormatter(_formatter(renderer))
    handler.setLevel(level)
    return handler


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the root stdlib logger.

    Safe to call more than once: root handlers are replaced, so the CLI can
    reconfigure once a --verbose flag is known.

    Args:
        level: Console log level. Defaults to HWSENSE_LOG_LEVEL (or WARNING).
    """
    console_level = getattr(logging, (level or _get_log_level()).upper(), logging.WARNING)
    log_dir = _get_log_dir()

    # Handlers do the level gating; the root passes everything through.
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    if log_dir is not None:
        root_logger.addHandler(_configure_file_handler(log_dir))
    root_logger.addHandler(_configure_console_handler(_get_log_format(), console_level))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_component_from_event_dict,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:  # Returns structlog.stdlib.BoundLogger
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger instance.

    Example:
        >>> from hwsense.telemetry import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("device_discovered", backend="hwmon", location="/sys/class/hwmon/hwmon0")
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name)
