"""STOMP client over WebSocket and other message transports."""

__version__ = "0.1.0"

from .client import Client, ClientConfig, ClientListener, ConnectionState, client, over
from .heartbeat import AsyncioScheduler, HeartbeatConfig, Scheduler, TimerHandle
from .network import Transport, WebSocketTransport
from .protocol import (
    Command,
    ConnectionLost,
    Frame,
    FrameParser,
    MalformedFrame,
    StompError,
)
from .session import Subscription, Transaction

__all__ = [
    "Client",
    "ClientConfig",
    "ClientListener",
    "ConnectionState",
    "client",
    "over",
    "AsyncioScheduler",
    "HeartbeatConfig",
    "Scheduler",
    "TimerHandle",
    "Transport",
    "WebSocketTransport",
    "Command",
    "ConnectionLost",
    "Frame",
    "FrameParser",
    "MalformedFrame",
    "StompError",
    "Subscription",
    "Transaction",
]
