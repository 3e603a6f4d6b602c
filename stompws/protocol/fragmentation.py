"""Outbound chunking and inbound frame reassembly."""

from typing import List, Optional

from .errors import MalformedFrame
from .frames import Frame
from .parser import FrameParser


class FrameBuffer:
    """Collects transport messages and reassembles frames split across them."""

    def __init__(self):
        self.partial = b""

    def feed(self, chunk: bytes) -> List[Frame]:
        """
        Add a transport message and return the frames it completes.

        Args:
            chunk: Data received from the transport

        Returns:
            Complete frames in wire order (possibly empty)

        Raises:
            MalformedFrame: If a complete segment cannot be decoded. The
                buffered remainder is dropped so the next message starts clean.
        """
        try:
            frames, self.partial = FrameParser.unmarshal(self.partial + chunk)
        except MalformedFrame:
            self.partial = b""
            raise
        return frames

    def reset(self):
        """Drop any buffered partial frame."""
        self.partial = b""

    def __len__(self) -> int:
        return len(self.partial)


class Fragmenter:
    """Splits marshalled frames into transport-sized messages."""

    def __init__(self, max_frame_size: Optional[int] = 16 * 1024):
        """
        Initialize fragmenter.

        Args:
            max_frame_size: Largest transport message in bytes, None to
                send every frame as a single message
        """
        if max_frame_size is not None and max_frame_size < 1:
            raise ValueError(f"max_frame_size must be positive, got {max_frame_size}")
        self.max_frame_size = max_frame_size

    def fragment(self, data: bytes) -> List[bytes]:
        """
        Split data into chunks of at most max_frame_size bytes.

        The receiving side must concatenate the chunks back into one byte
        stream for the frame to survive.

        Args:
            data: Marshalled frame

        Returns:
            List of chunks, a single element if no split is needed
        """
        size = self.max_frame_size
        if size is None or len(data) <= size:
            return [data]

        return [data[start:start + size] for start in range(0, len(data), size)]
