"""STOMP frame type definitions."""

from enum import Enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Union


class Command(str, Enum):
    """STOMP commands."""
    # Client frames
    CONNECT = "CONNECT"
    SEND = "SEND"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    BEGIN = "BEGIN"
    COMMIT = "COMMIT"
    ABORT = "ABORT"
    ACK = "ACK"
    NACK = "NACK"
    DISCONNECT = "DISCONNECT"

    # Server frames
    CONNECTED = "CONNECTED"
    MESSAGE = "MESSAGE"
    RECEIPT = "RECEIPT"
    ERROR = "ERROR"


# Well-known header names
DESTINATION = "destination"
ID = "id"
SUBSCRIPTION = "subscription"
MESSAGE_ID = "message-id"
TRANSACTION = "transaction"
HEART_BEAT = "heart-beat"
VERSION = "version"
ACCEPT_VERSION = "accept-version"
CONTENT_LENGTH = "content-length"
RECEIPT = "receipt"
RECEIPT_ID = "receipt-id"
SERVER = "server"

# Protocol versions
V1_0 = "1.0"
V1_1 = "1.1"
V1_2 = "1.2"
SUPPORTED_VERSIONS = "1.1,1.0"
HEARTBEAT_VERSIONS = (V1_1, V1_2)

LF = b"\n"
NULL = b"\x00"

Headers = Dict[str, str]
Body = Union[str, bytes]


def command_name(command: Union[Command, str]) -> str:
    """Return the wire name of a command."""
    if isinstance(command, Command):
        return command.value
    return command


def parse_command(name: str) -> Union[Command, str]:
    """Map a wire command name to a Command, keeping unknown names as-is."""
    try:
        return Command(name)
    except ValueError:
        return name


def encode_body(body: Optional[Body]) -> bytes:
    """Encode a frame body to bytes (UTF-8 for text)."""
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)


@dataclass(frozen=True)
class Frame:
    """A single STOMP frame.

    Headers are exposed read-only in wire order. MESSAGE frames handed to a
    subscription callback also carry ``ack`` and ``nack`` callables bound to
    the frame's message-id and subscription.
    """
    command: Union[Command, str]
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    ack: Optional[Callable[..., None]] = field(default=None, compare=False, repr=False)
    nack: Optional[Callable[..., None]] = field(default=None, compare=False, repr=False)

    # Header mappings are not hashable
    __hash__ = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "body", encode_body(self.body))

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        lines = [command_name(self.command)]
        lines.extend(f"{name}:{value}" for name, value in self.headers.items())
        return "\n".join(lines) + "\n\n" + self.text
