"""Logging configuration for the STOMP client."""

import logging
import logging.handlers
import structlog
from pathlib import Path
from typing import List, Optional

# Protocol trace lines (">>> SEND ...", "<<< MESSAGE ...") are logged here
TRACE_LOGGER = "stompws.trace"
TRANSPORT_LOGGER = "stompws.network"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _handlers(log_file: Optional[str], max_size: int, backup_count: int) -> List[logging.Handler]:
    # stderr, so message bodies printed by the CLI stay clean on stdout
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=max_size,
            backupCount=backup_count
        ))

    for handler in handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handlers


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[str] = None,
                  max_size: int = 10485760,
                  backup_count: int = 5,
                  trace: bool = False,
                  transport_level: Optional[str] = None):
    """
    Set up logging for the client and command line tool.

    Args:
        log_level: Level for everything not configured below
        log_file: Optional log file path (rotated at max_size)
        max_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
        trace: Log every frame sent and received, whatever log_level is
        transport_level: Level for the WebSocket transport (log_level if None)
    """
    level = log_level.upper()

    logging.basicConfig(
        level=getattr(logging, level),
        handlers=_handlers(log_file, max_size, backup_count),
        force=True
    )

    # Without trace the frame dump stays off even at DEBUG
    logging.getLogger(TRACE_LOGGER).setLevel(logging.DEBUG if trace else logging.WARNING)
    logging.getLogger(TRANSPORT_LOGGER).setLevel(getattr(logging, (transport_level or level).upper()))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if level == "DEBUG" or trace else structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def get_trace_logger() -> structlog.BoundLogger:
    """Logger receiving protocol trace lines."""
    return structlog.get_logger(TRACE_LOGGER)
