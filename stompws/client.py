"""STOMP client: connection handshake, frame dispatch and the public API."""

import dataclasses
import functools
import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Mapping, Optional, Union

from .heartbeat import AsyncioScheduler, HeartbeatConfig, HeartbeatMonitor, Scheduler, negotiate
from .network import Transport, WebSocketTransport
from .protocol import Command, ConnectionLost, Frame, FrameBuffer, FrameParser, Fragmenter, MalformedFrame, StompError
from .protocol.frames import (
    ACCEPT_VERSION,
    Body,
    DESTINATION,
    HEART_BEAT,
    HEARTBEAT_VERSIONS,
    ID,
    LF,
    MESSAGE_ID,
    SERVER,
    SUBSCRIPTION,
    SUPPORTED_VERSIONS,
    TRANSACTION,
    V1_0,
    VERSION,
)
from .session import Subscription, SubscriptionRegistry, Transaction, TransactionRegistry
from .session.subscriptions import MessageCallback
from .utils import get_logger, get_trace_logger


ErrorCallback = Callable[[Union[Frame, StompError]], None]


class ConnectionState(Enum):
    """STOMP session states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class ClientConfig:
    """Client tuning."""
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)
    max_frame_size: Optional[int] = 16 * 1024  # None sends frames unsplit


class ClientListener:
    """
    Receives session events.

    Subclass and override what you need. Callbacks given to
    Client.connect() take precedence over on_connected and on_error.
    """

    def on_connected(self, frame: Frame):
        pass

    def on_error(self, error: Union[Frame, StompError]):
        pass

    def on_receipt(self, frame: Frame):
        pass

    def on_message(self, frame: Frame):
        """Called for MESSAGE frames with no registered subscription."""
        get_logger(__name__).debug("Unhandled MESSAGE dropped",
                                   subscription=frame.headers.get(SUBSCRIPTION),
                                   destination=frame.headers.get(DESTINATION))


class Client:
    """STOMP client over an arbitrary message transport."""

    def __init__(self,
                 transport: Transport,
                 scheduler: Optional[Scheduler] = None,
                 config: Optional[ClientConfig] = None,
                 listener: Optional[ClientListener] = None,
                 debug: Optional[Callable[[str], None]] = None):
        """
        Initialize STOMP client.

        Args:
            transport: Channel to the broker
            scheduler: Timer facility for heartbeats (asyncio if None)
            config: Client configuration (defaults if None)
            listener: Receiver of session events
            debug: Optional sink for protocol trace lines (the
                stompws.trace logger if None)
        """
        self.transport = transport
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = config or ClientConfig()
        self.listener = listener or ClientListener()
        self.logger = get_logger(__name__)
        self.trace = get_trace_logger()
        self._debug = debug

        self.state = ConnectionState.DISCONNECTED
        self.version: Optional[str] = None
        self.server: Optional[str] = None

        # Subscription and transaction ids share one sequence
        self.counter = itertools.count()
        self.subscriptions = SubscriptionRegistry(self.counter)
        self.transactions = TransactionRegistry(self.counter)

        self.buffer = FrameBuffer()
        self.fragmenter = Fragmenter(self.config.max_frame_size)
        self.heartbeat = HeartbeatMonitor(
            self.scheduler,
            send_ping=self._send_ping,
            on_timeout=self._on_heartbeat_timeout
        )

        self._connect_headers: dict = {}
        self._on_connected: Optional[Callable[[Frame], None]] = None
        self._on_error: Optional[ErrorCallback] = None

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def debug(self, message: str):
        """Emit a protocol trace line."""
        if self._debug is not None:
            self._debug(message)
        else:
            self.trace.debug(message)

    # Connection lifecycle

    def connect(self,
                headers: Optional[Mapping[str, str]] = None,
                on_connected: Optional[Callable[[Frame], None]] = None,
                on_error: Optional[ErrorCallback] = None):
        """
        Open the transport and send CONNECT once it is up.

        accept-version and heart-beat are added to the headers; login,
        passcode, host and any other headers are passed through untouched.

        Args:
            headers: CONNECT headers
            on_connected: Called with the CONNECTED frame
            on_error: Called with ERROR frames and connection failures
        """
        if self.state != ConnectionState.DISCONNECTED:
            self.logger.warning("Connect ignored", state=self.state.value)
            return

        self._connect_headers = dict(headers or {})
        self._on_connected = on_connected
        self._on_error = on_error

        self.transport.on_open = self._on_open
        self.transport.on_message = self._on_message
        self.transport.on_close = self._on_close

        self.state = ConnectionState.CONNECTING
        self.debug("Opening Web Socket...")
        self.transport.open()

    def disconnect(self,
                   on_disconnected: Optional[Callable[[], None]] = None,
                   headers: Optional[Mapping[str, str]] = None):
        """
        Send DISCONNECT and close the transport.

        The error callback is not invoked for this close.

        Args:
            on_disconnected: Called once the session is torn down
            headers: Extra DISCONNECT headers (e.g. receipt)
        """
        self._transmit(Command.DISCONNECT, headers)
        self.transport.on_close = None
        self.transport.close()
        self._clean_up()

        if on_disconnected:
            on_disconnected()

    def _clean_up(self):
        self.state = ConnectionState.DISCONNECTED
        self.heartbeat.stop()
        self.subscriptions.clear()
        self.transactions.clear()
        self.buffer.reset()

    # Transport events

    def _on_open(self):
        self.debug("Web Socket Opened...")
        self.heartbeat.touch()

        headers = dict(self._connect_headers)
        headers[ACCEPT_VERSION] = SUPPORTED_VERSIONS
        headers[HEART_BEAT] = self.config.heartbeat.header()
        self._transmit(Command.CONNECT, headers)

    def _on_message(self, data: Union[bytes, str]):
        if isinstance(data, str):
            data = data.encode("utf-8")

        self.heartbeat.touch()

        if data == LF:
            self.debug("<<< PONG")
            return

        self.debug("<<< " + data.decode("utf-8", errors="replace"))

        try:
            frames = self.buffer.feed(data)
        except MalformedFrame as e:
            self.logger.warning("Malformed frame", error=str(e))
            self._notify_error(e)
            return

        for frame in frames:
            self._dispatch(frame)

    def _on_close(self, reason: str = ""):
        if self.state == ConnectionState.DISCONNECTED:
            self.debug(f"Transport closed while disconnected: {reason}")
            return

        error = ConnectionLost(self.transport.url, reason)
        self.debug(str(error))
        self._clean_up()
        self._notify_error(error)

    def _on_heartbeat_timeout(self, silence: float):
        self.debug(f"did not receive server activity for the last {round(silence)}ms")
        self.transport.close()

    def _send_ping(self):
        self.transport.send(LF)
        self.debug(">>> PING")

    # Inbound dispatch

    def _dispatch(self, frame: Frame):
        command = frame.command

        if command == Command.CONNECTED:
            self._handle_connected(frame)
        elif command == Command.MESSAGE:
            self._handle_message(frame)
        elif command == Command.RECEIPT:
            self.listener.on_receipt(frame)
        elif command == Command.ERROR:
            self._notify_error(frame)
        else:
            self.logger.debug("Unhandled frame dropped", command=str(command))

    def _handle_connected(self, frame: Frame):
        self.state = ConnectionState.CONNECTED
        self.version = frame.headers.get(VERSION, V1_0)
        self.server = frame.headers.get(SERVER)
        self.debug(f"connected to server {self.server}")

        if self.version in HEARTBEAT_VERSIONS:
            ping, pong = negotiate(self.config.heartbeat, frame.headers.get(HEART_BEAT))
            self.heartbeat.start(ping, pong)

        if self._on_connected is not None:
            self._on_connected(frame)
        else:
            self.listener.on_connected(frame)

    def _handle_message(self, frame: Frame):
        subscription_id = frame.headers.get(SUBSCRIPTION)
        subscription = self.subscriptions.get(subscription_id)

        if subscription is None:
            self.listener.on_message(frame)
            return

        message_id = frame.headers.get(MESSAGE_ID)
        if message_id is None:
            self.logger.warning("MESSAGE without message-id cannot be acknowledged",
                                subscription=subscription_id)
            subscription.callback(frame)
            return

        delivered = dataclasses.replace(
            frame,
            ack=functools.partial(self.ack, message_id, subscription_id),
            nack=functools.partial(self.nack, message_id, subscription_id)
        )
        subscription.callback(delivered)

    def _notify_error(self, error: Union[Frame, StompError]):
        if self._on_error is not None:
            self._on_error(error)
        else:
            self.listener.on_error(error)

    # Outbound

    def _transmit(self,
                  command: Command,
                  headers: Optional[Mapping[str, str]] = None,
                  body: Optional[Body] = b"",
                  content_length: bool = True):
        out = FrameParser.marshal(command, headers, body, content_length=content_length)
        self.debug(">>> " + out.decode("utf-8", errors="replace"))

        chunks = self.fragmenter.fragment(out)
        remaining = len(out)
        for chunk in chunks:
            self.transport.send(chunk)
            remaining -= len(chunk)
            if len(chunks) > 1:
                self.debug(f"remaining = {remaining}")

    def send(self,
             destination: str,
             headers: Optional[Mapping[str, str]] = None,
             body: Optional[Body] = "",
             content_length: bool = True):
        """
        Send a message to a destination.

        Args:
            destination: Broker destination
            headers: Extra SEND headers (transaction, receipt, content-type...)
            body: Message body
            content_length: False to omit the content-length header
        """
        headers = dict(headers or {})
        headers[DESTINATION] = destination
        self._transmit(Command.SEND, headers, body, content_length=content_length)

    def subscribe(self,
                  destination: str,
                  callback: MessageCallback,
                  headers: Optional[Mapping[str, str]] = None) -> Subscription:
        """
        Subscribe to a destination.

        Args:
            destination: Broker destination
            callback: Called with each MESSAGE frame for this subscription
            headers: Extra SUBSCRIBE headers; an "id" header sets the
                subscription id, otherwise one is generated

        Returns:
            Subscription handle
        """
        headers = dict(headers or {})
        if not headers.get(ID):
            headers[ID] = self.subscriptions.next_id()
        headers[DESTINATION] = destination

        subscription = self.subscriptions.add(Subscription(
            id=headers[ID],
            destination=destination,
            callback=callback,
            _unsubscribe=self.unsubscribe
        ))
        self._transmit(Command.SUBSCRIBE, headers)
        return subscription

    def unsubscribe(self, subscription_id: str):
        """
        Cancel a subscription. UNSUBSCRIBE is sent even for ids unknown here.

        Args:
            subscription_id: Subscription id
        """
        self.subscriptions.remove(subscription_id)
        self._transmit(Command.UNSUBSCRIBE, {ID: subscription_id})

    def begin(self, transaction: Optional[str] = None) -> Transaction:
        """
        Begin a transaction.

        Args:
            transaction: Transaction id (generated if None)

        Returns:
            Transaction handle
        """
        txid = self.transactions.resolve(transaction)
        self.transactions.begin(txid)
        self._transmit(Command.BEGIN, {TRANSACTION: txid})
        return Transaction(id=txid, _commit=self.commit, _abort=self.abort)

    def commit(self, transaction: str):
        self.transactions.end(transaction)
        self._transmit(Command.COMMIT, {TRANSACTION: transaction})

    def abort(self, transaction: str):
        self.transactions.end(transaction)
        self._transmit(Command.ABORT, {TRANSACTION: transaction})

    def ack(self, message_id: str, subscription: str, headers: Optional[Mapping[str, str]] = None):
        """
        Acknowledge a message.

        Args:
            message_id: message-id of the MESSAGE frame
            subscription: Subscription the message arrived on
            headers: Extra ACK headers (e.g. transaction)
        """
        headers = dict(headers or {})
        headers[MESSAGE_ID] = message_id
        headers[SUBSCRIPTION] = subscription
        self._transmit(Command.ACK, headers)

    def nack(self, message_id: str, subscription: str, headers: Optional[Mapping[str, str]] = None):
        """Reject a message; arguments as for ack()."""
        headers = dict(headers or {})
        headers[MESSAGE_ID] = message_id
        headers[SUBSCRIPTION] = subscription
        self._transmit(Command.NACK, headers)


def over(transport: Transport,
         scheduler: Optional[Scheduler] = None,
         config: Optional[ClientConfig] = None,
         listener: Optional[ClientListener] = None,
         debug: Optional[Callable[[str], None]] = None) -> Client:
    """Create a client over an existing transport."""
    return Client(transport, scheduler=scheduler, config=config, listener=listener, debug=debug)


def client(url: str,
           protocols: Optional[List[str]] = None,
           config: Optional[ClientConfig] = None,
           listener: Optional[ClientListener] = None,
           debug: Optional[Callable[[str], None]] = None,
           **connect_kwargs) -> Client:
    """
    Create a client for a WebSocket broker endpoint.

    Must be connected from within a running asyncio event loop.

    Args:
        url: ws:// or wss:// URL
        protocols: WebSocket subprotocols (v10.stomp, v11.stomp if None)
        config: Client configuration
        listener: Receiver of session events
        debug: Optional sink for protocol trace lines
        **connect_kwargs: Passed to websockets.connect

    Returns:
        Disconnected client
    """
    transport = WebSocketTransport(url, protocols, **connect_kwargs)
    return Client(transport, scheduler=AsyncioScheduler(), config=config, listener=listener, debug=debug)
