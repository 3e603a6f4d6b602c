"""STOMP frame parser for encoding and decoding wire format."""

import re
from typing import List, Mapping, Optional, Tuple, Union

from .errors import MalformedFrame
from .frames import (
    Body,
    Command,
    CONTENT_LENGTH,
    Frame,
    command_name,
    encode_body,
    parse_command,
)

# A frame ends with NUL, optionally followed by EOLs (heartbeats).
_FRAME_END = re.compile(b"\x00\n*")


class FrameParser:
    """Parser for STOMP wire format."""

    @staticmethod
    def marshal(command: Union[Command, str],
                headers: Optional[Mapping[str, str]] = None,
                body: Optional[Body] = b"",
                content_length: bool = True) -> bytes:
        """
        Encode a frame to STOMP wire format.

        Format: COMMAND\\nname:value\\n...\\n\\nBODY\\0

        A caller supplied content-length header is always discarded. When the
        body is non-empty and content_length is true, the header is computed
        from the encoded body and written after the caller's headers.

        Args:
            command: Frame command
            headers: Frame headers, written in mapping order
            body: Frame body (str bodies are UTF-8 encoded)
            content_length: False to suppress the content-length header

        Returns:
            Encoded frame as bytes, NUL terminated
        """
        payload = encode_body(body)

        lines = [command_name(command)]
        for name, value in (headers or {}).items():
            if name == CONTENT_LENGTH:
                continue
            lines.append(f"{name}:{value}")

        if payload and content_length:
            lines.append(f"{CONTENT_LENGTH}:{len(payload)}")

        head = "\n".join(lines) + "\n\n"
        return head.encode("utf-8") + payload + b"\x00"

    @staticmethod
    def unmarshal_single(data: bytes) -> Frame:
        """
        Decode a single frame (without its NUL terminator).

        Args:
            data: Raw frame bytes

        Returns:
            Decoded frame

        Raises:
            MalformedFrame: If no command line can be extracted
        """
        # EOLs ahead of a frame are heartbeats
        data = data.lstrip(b"\r\n")

        divider = data.find(b"\n\n")
        if divider == -1:
            head, start = data, len(data)
        else:
            head, start = data[:divider], divider + 2

        try:
            lines = head.decode("utf-8").split("\n")
        except UnicodeDecodeError as exc:
            raise MalformedFrame(f"Header block is not UTF-8: {exc}", data) from exc

        command = lines[0].strip()
        if not command:
            raise MalformedFrame("Frame has no command line", data)

        # Repeated headers: the first occurrence wins
        headers = {}
        for line in lines[1:]:
            if ":" not in line:
                continue
            name, value = line.split(":", 1)
            name = name.strip()
            if name not in headers:
                headers[name] = value.strip()

        length = None
        if headers.get(CONTENT_LENGTH):
            try:
                length = int(headers[CONTENT_LENGTH])
            except ValueError:
                length = None

        if length is not None and length >= 0:
            body = data[start:start + length]
        else:
            end = data.find(b"\x00", start)
            body = data[start:] if end == -1 else data[start:end]

        return Frame(command=parse_command(command), headers=headers, body=body)

    @staticmethod
    def unmarshal(buffer: bytes) -> Tuple[List[Frame], bytes]:
        """
        Split accumulated data into complete frames.

        A transport message may hold several frames, and one frame may be
        spread over several transport messages. Everything after the last
        frame terminator is returned as the partial remainder, to be prefixed
        onto the next chunk.

        Args:
            buffer: Partial remainder of the previous call plus the new chunk

        Returns:
            Tuple of (frames in wire order, partial remainder)
        """
        segments = _FRAME_END.split(buffer)

        frames = []
        for segment in segments[:-1]:
            if not segment.strip(b"\r\n"):
                continue  # heartbeat
            frames.append(FrameParser.unmarshal_single(segment))

        last = segments[-1]
        partial = last if last.strip(b"\r\n") else b""

        return frames, partial
