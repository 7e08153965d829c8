"""
Logging Module - Rich console and file logging for the assistant.
=================================================================

One root configuration shared by the HTTP service, the CLI and the
evaluation runner. Handler choice comes from the `logging` settings
section; LOG_LEVEL in the environment overrides the configured level.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Client libraries log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "requests", "openai", "uvicorn.access")

_configured = False
_stderr = Console(stderr=True)


def _console_handler(use_rich: bool, log_format: str) -> logging.Handler:
    if use_rich:
        handler: logging.Handler = RichHandler(
            console=_stderr,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(log_format))
    return handler


def _file_handler(log_file: str, log_format: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(log_format))
    return handler


def setup_logging(
    level: str = "INFO",
    use_rich: bool = True,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Install the root handlers.

    Args:
        level: Log level name; unknown names fall back to INFO
        use_rich: Rich console handler instead of a plain stdout stream
        log_file: Also append records to this file
        log_format: Format for the plain and file handlers
        force: Replace an existing configuration

    Only the first call takes effect unless force is set.
    """
    global _configured

    if _configured and not force:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    log_format = log_format or DEFAULT_FORMAT

    handlers = [_console_handler(use_rich, log_format)]
    if log_file:
        handlers.append(_file_handler(log_file, log_format))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    logging.getLogger(__name__).debug(
        f"Logging configured: level={level}, rich={use_rich}, file={log_file}"
    )


def setup_logging_from_settings(settings, level: Optional[str] = None) -> None:
    """Configure logging from a Settings instance, optionally forcing a level."""
    setup_logging(
        level=level or settings.get_effective_log_level(),
        use_rich=settings.logging.rich_console,
        log_file=settings.logging.file or None,
        log_format=settings.logging.format,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger, installing the default handlers on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Routing started")
    """
    if not _configured:
        setup_logging()
    return logging.getLogger(name)
