"""WebSocket transport built on the websockets library."""

import asyncio
import logging
from typing import Any, Callable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from .base import Transport


logger = logging.getLogger(__name__)

DEFAULT_PROTOCOLS = ["v10.stomp", "v11.stomp"]

# Queued after the last send to close the socket
_CLOSE = object()


class WebSocketTransport(Transport):
    """Transport over a single WebSocket connection."""

    def __init__(self,
                 url: str,
                 protocols: Optional[List[str]] = None,
                 connector: Optional[Callable[..., Any]] = None,
                 **connect_kwargs):
        """
        Initialize WebSocket transport.

        Args:
            url: ws:// or wss:// URL of the broker endpoint
            protocols: WebSocket subprotocols to offer
            connector: Replacement for websockets.connect
            **connect_kwargs: Extra arguments for the connector
        """
        super().__init__()
        self._url = url
        self.protocols = list(DEFAULT_PROTOCOLS if protocols is None else protocols)
        self.connector = connector or websockets.connect
        self.connect_kwargs = connect_kwargs

        self.connection = None
        self.connected = False
        self.closing = False
        self.closed = False

        self.outgoing: Optional[asyncio.Queue] = None
        self.receive_task: Optional[asyncio.Task] = None
        self.send_task: Optional[asyncio.Task] = None

    @property
    def url(self) -> str:
        return self._url

    def open(self):
        """Start connecting on the running event loop; reconnects once closed."""
        if self.receive_task is not None and not self.closed:
            logger.warning("WebSocket transport already opened")
            return

        self.connection = None
        self.connected = False
        self.closing = False
        self.closed = False
        self.send_task = None

        self.outgoing = asyncio.Queue()
        self.receive_task = asyncio.get_running_loop().create_task(self._run())

    def send(self, data: bytes):
        """Queue a message; dropped with a warning if the socket is not usable."""
        if not self.connected or self.closing:
            logger.warning(f"WebSocket not connected - {len(data)} bytes not sent")
            return

        self.outgoing.put_nowait(data)

    def close(self):
        """Close after everything already queued has been sent."""
        if self.closing or self.closed:
            return
        self.closing = True

        if self.connected:
            self.outgoing.put_nowait(_CLOSE)
        elif self.receive_task is not None:
            # Still connecting
            self.receive_task.cancel()
        else:
            self._closed("closed before open")

    async def wait_closed(self):
        """Wait for the receive loop to finish."""
        if self.receive_task is not None:
            try:
                await self.receive_task
            except asyncio.CancelledError:
                pass

    async def _run(self):
        """Connect, then receive until the socket closes."""
        reason = "connection closed"

        try:
            logger.info(f"Connecting to {self._url}")
            self.connection = await self.connector(
                self._url,
                subprotocols=self.protocols,
                **self.connect_kwargs
            )
        except asyncio.CancelledError:
            self._closed("connect cancelled")
            return
        except Exception as e:
            logger.error(f"Failed to connect to {self._url}: {e}")
            self._closed(f"connect failed: {e}")
            return

        self.connected = True
        self.send_task = asyncio.get_running_loop().create_task(self._send_loop())
        logger.info(f"Connected to {self._url}")
        self._call(self.on_open)

        try:
            async for message in self.connection:
                if isinstance(message, str):
                    message = message.encode("utf-8")
                self._call(self.on_message, message)
        except ConnectionClosed as e:
            reason = str(e)
        except asyncio.CancelledError:
            reason = "receive cancelled"
        except Exception as e:
            logger.error(f"Error in receive loop: {e}")
            reason = f"receive failed: {e}"
        finally:
            self.connected = False
            if self.send_task and not self.send_task.done():
                self.send_task.cancel()
            self._closed(reason)

    async def _send_loop(self):
        """Write queued messages in order."""
        while True:
            data = await self.outgoing.get()
            if data is _CLOSE:
                await self.connection.close()
                return

            try:
                await self.connection.send(data)
            except ConnectionClosed:
                logger.warning("WebSocket closed while sending")
                return
            except Exception as e:
                logger.error(f"Error sending message: {e}")
                await self.connection.close()
                return

    def _closed(self, reason: str):
        if self.closed:
            return
        self.closed = True
        self.connected = False
        logger.info(f"Disconnected from {self._url}: {reason}")
        self._call(self.on_close, reason)

    def _call(self, callback: Optional[Callable], *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in transport callback: {e}")
