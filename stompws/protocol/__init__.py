"""STOMP protocol implementation."""

from .frames import Command, Frame, Headers
from .parser import FrameParser
from .fragmentation import FrameBuffer, Fragmenter
from .errors import StompError, MalformedFrame, ConnectionLost

__all__ = [
    "Command",
    "Frame",
    "Headers",
    "FrameParser",
    "FrameBuffer",
    "Fragmenter",
    "StompError",
    "MalformedFrame",
    "ConnectionLost",
]
