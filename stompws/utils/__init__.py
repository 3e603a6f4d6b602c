"""Utility modules for the STOMP client."""

from .logger import setup_logging, get_logger, get_trace_logger, TRACE_LOGGER

__all__ = [
    "setup_logging",
    "get_logger",
    "get_trace_logger",
    "TRACE_LOGGER",
]
