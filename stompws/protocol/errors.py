"""STOMP client exceptions."""

from typing import Optional


class StompError(Exception):
    """Base class for STOMP client errors."""

    pass


class MalformedFrame(StompError):
    """Raised when wire data cannot be decoded into a frame."""

    def __init__(self, message: str, data: bytes = b"") -> None:
        self.data = data
        super().__init__(message)


class ConnectionLost(StompError):
    """The transport closed while the session was connecting or connected."""

    def __init__(self, url: Optional[str], reason: str = "") -> None:
        self.url = url
        self.reason = reason
        message = f"Lost connection to {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


__all__ = ["StompError", "MalformedFrame", "ConnectionLost"]
