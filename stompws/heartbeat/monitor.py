"""Heartbeat negotiation and liveness monitoring."""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .scheduler import Scheduler, TimerHandle
from ..utils.logger import get_logger


logger = get_logger(__name__)


@dataclass
class HeartbeatConfig:
    """Client heartbeat proposal, in milliseconds (0 disables a direction)."""
    outgoing: int = 10000  # How often we can send
    incoming: int = 10000  # How often we want to hear from the server

    def __post_init__(self):
        if self.outgoing < 0 or self.incoming < 0:
            raise ValueError(f"Heartbeat intervals must be >= 0, got {self.outgoing},{self.incoming}")

    def header(self) -> str:
        """Value for the CONNECT heart-beat header."""
        return f"{self.outgoing},{self.incoming}"


def parse_heartbeat(value: Optional[str]) -> Tuple[int, int]:
    """
    Parse a heart-beat header.

    Args:
        value: Header value "<outgoing>,<incoming>" as sent by its author

    Returns:
        Tuple of (outgoing, incoming), (0, 0) if missing or invalid
    """
    if not value:
        return 0, 0

    parts = value.split(",")
    if len(parts) != 2:
        return 0, 0

    try:
        outgoing, incoming = int(parts[0]), int(parts[1])
    except ValueError:
        return 0, 0

    return max(outgoing, 0), max(incoming, 0)


def negotiate(client: HeartbeatConfig, server_header: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Compute effective heartbeat intervals.

    Args:
        client: Client proposal
        server_header: heart-beat header of the CONNECTED frame

    Returns:
        Tuple of (ping interval, pong check interval) in milliseconds,
        None where the direction is disabled on either side
    """
    server_outgoing, server_incoming = parse_heartbeat(server_header)

    ping = None
    if client.outgoing and server_incoming:
        ping = max(client.outgoing, server_incoming)

    pong = None
    if client.incoming and server_outgoing:
        pong = max(client.incoming, server_outgoing)

    return ping, pong


class HeartbeatMonitor:
    """
    Sends pings and watches for server activity.

    The pinger sends a single EOL every ping interval. The ponger checks,
    every pong interval, how long ago the server was last heard from and
    gives up on the connection after twice that interval.
    """

    def __init__(self,
                 scheduler: Scheduler,
                 send_ping: Callable[[], None],
                 on_timeout: Callable[[float], None]):
        """
        Initialize heartbeat monitor.

        Args:
            scheduler: Timer facility
            send_ping: Sends one heartbeat to the server
            on_timeout: Called with the silence in ms when the server is
                presumed dead; timers are already stopped at that point
        """
        self.scheduler = scheduler
        self.send_ping = send_ping
        self.on_timeout = on_timeout

        self.ping_interval: Optional[int] = None
        self.pong_interval: Optional[int] = None
        self.last_activity = scheduler.now()

        self.pinger: Optional[TimerHandle] = None
        self.ponger: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        """True while either timer is active."""
        return self.pinger is not None or self.ponger is not None

    def start(self, ping_interval: Optional[int], pong_interval: Optional[int]):
        """
        Start the timers for the negotiated intervals.

        Args:
            ping_interval: Ping period in ms, None or 0 to skip
            pong_interval: Activity check period in ms, None or 0 to skip
        """
        self.stop()
        self.ping_interval = ping_interval or None
        self.pong_interval = pong_interval or None

        if self.ping_interval:
            logger.debug("Sending PING", interval_ms=self.ping_interval)
            self.pinger = self.scheduler.schedule_repeating(self.ping_interval / 1000.0, self._ping)

        if self.pong_interval:
            logger.debug("Checking PONG", interval_ms=self.pong_interval)
            self.touch()
            self.ponger = self.scheduler.schedule_repeating(self.pong_interval / 1000.0, self._check)

    def stop(self):
        """Cancel both timers."""
        if self.pinger:
            self.pinger.cancel()
            self.pinger = None
        if self.ponger:
            self.ponger.cancel()
            self.ponger = None

    def touch(self):
        """Record server activity."""
        self.last_activity = self.scheduler.now()

    def silence(self) -> float:
        """Milliseconds since the server was last heard from."""
        return (self.scheduler.now() - self.last_activity) * 1000.0

    def _ping(self):
        self.send_ping()

    def _check(self):
        delta = self.silence()
        if delta > self.pong_interval * 2:
            logger.warning("No server activity", silence_ms=round(delta), pong_interval=self.pong_interval)
            self.stop()
            self.on_timeout(delta)
