"""Heartbeat components for the STOMP client."""

from .scheduler import Scheduler, TimerHandle, AsyncioScheduler
from .monitor import HeartbeatConfig, HeartbeatMonitor, negotiate, parse_heartbeat

__all__ = [
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    "HeartbeatConfig",
    "HeartbeatMonitor",
    "negotiate",
    "parse_heartbeat",
]
