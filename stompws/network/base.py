"""Transport interface used by the STOMP client."""

from abc import ABC, abstractmethod
from typing import Callable, Optional


class Transport(ABC):
    """
    Ordered, message-oriented channel to a broker.

    Implementations deliver events by calling the callback attributes:
    on_open() once the channel is usable, on_message(data) for every
    received message, and on_close(reason) exactly once when the channel
    goes away (including after close() and after a failed open).
    """

    def __init__(self):
        self.on_open: Optional[Callable[[], None]] = None
        self.on_message: Optional[Callable[[bytes], None]] = None
        self.on_close: Optional[Callable[[str], None]] = None

    @property
    @abstractmethod
    def url(self) -> Optional[str]:
        """Address of the remote end, for diagnostics."""

    @abstractmethod
    def open(self) -> None:
        """Start opening the channel."""

    @abstractmethod
    def send(self, data: bytes) -> None:
        """Queue data as one transport message."""

    @abstractmethod
    def close(self) -> None:
        """Close the channel after pending sends."""

    async def wait_closed(self) -> None:
        """Wait until the channel is fully closed."""
        return None
