"""Network layer for the STOMP client."""

from .base import Transport
from .websocket import WebSocketTransport, DEFAULT_PROTOCOLS

__all__ = [
    "Transport",
    "WebSocketTransport",
    "DEFAULT_PROTOCOLS",
]
