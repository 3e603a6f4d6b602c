import asyncio

from stompws import AsyncioScheduler, ConnectionState, over
from stompws.network import DEFAULT_PROTOCOLS, WebSocketTransport
from stompws.protocol import ConnectionLost, FrameParser


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = False

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self.incoming.put_nowait(None)

    def feed(self, message):
        self.incoming.put_nowait(message)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self.incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


class FakeConnector:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.connection = None

    async def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        self.connection = FakeConnection()
        return self.connection


class Events:
    def __init__(self, transport):
        self.opened = 0
        self.messages = []
        self.closes = []
        transport.on_open = self.on_open
        transport.on_message = self.messages.append
        transport.on_close = self.closes.append

    def on_open(self):
        self.opened += 1


async def until(predicate, steps=200):
    for _ in range(steps):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def test_open_send_receive_close():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("ws://broker/ws", connector=connector)
        events = Events(transport)

        transport.open()
        await until(lambda: events.opened)

        transport.send(b"one")
        transport.send(b"two")
        connector.connection.feed("text frame")
        connector.connection.feed(b"binary frame")
        await until(lambda: len(events.messages) == 2)

        transport.close()
        await transport.wait_closed()
        return connector, events, transport

    connector, events, transport = asyncio.run(scenario())

    assert connector.calls == [("ws://broker/ws", {"subprotocols": DEFAULT_PROTOCOLS})]
    assert events.messages == [b"text frame", b"binary frame"]
    assert connector.connection.sent == [b"one", b"two"]
    assert connector.connection.closed
    assert events.closes == ["connection closed"]
    assert transport.closed


def test_connect_kwargs_are_passed_through():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("wss://broker/ws", ["v12.stomp"], connector=connector, open_timeout=5)
        Events(transport)
        transport.open()
        await until(lambda: connector.calls)
        transport.close()
        await transport.wait_closed()
        return connector

    connector = asyncio.run(scenario())

    assert connector.calls == [("wss://broker/ws", {"subprotocols": ["v12.stomp"], "open_timeout": 5})]


def test_failed_connect_reports_close():
    async def scenario():
        transport = WebSocketTransport("ws://broker/ws", connector=FakeConnector(OSError("refused")))
        events = Events(transport)
        transport.open()
        await transport.wait_closed()
        return events

    events = asyncio.run(scenario())

    assert events.opened == 0
    assert len(events.closes) == 1
    assert events.closes[0].startswith("connect failed")


def test_remote_close_reports_once():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("ws://broker/ws", connector=connector)
        events = Events(transport)
        transport.open()
        await until(lambda: events.opened)

        connector.connection.feed(None)
        await transport.wait_closed()
        transport.close()
        return events, transport

    events, transport = asyncio.run(scenario())

    assert len(events.closes) == 1
    assert not transport.connected


def test_send_before_open_is_dropped():
    transport = WebSocketTransport("ws://broker/ws", connector=FakeConnector())

    transport.send(b"lost")

    assert transport.outgoing is None


def test_close_before_open():
    transport = WebSocketTransport("ws://broker/ws", connector=FakeConnector())
    events = Events(transport)

    transport.close()
    transport.close()

    assert events.closes == ["closed before open"]


def test_callback_errors_do_not_stop_receiving():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("ws://broker/ws", connector=connector)
        events = Events(transport)
        received = []

        def on_message(data):
            received.append(data)
            raise RuntimeError("consumer bug")

        transport.on_message = on_message
        transport.open()
        await until(lambda: events.opened)
        connector.connection.feed(b"a")
        connector.connection.feed(b"b")
        await until(lambda: len(received) == 2)
        transport.close()
        await transport.wait_closed()
        return received

    assert asyncio.run(scenario()) == [b"a", b"b"]


def test_client_reconnects_after_disconnect():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("ws://broker/ws", connector=connector)
        stomp = over(transport, scheduler=AsyncioScheduler())
        connected = []
        errors = []

        for _ in range(2):
            stomp.connect({}, connected.append, errors.append)
            await until(lambda: connector.connection is not None and connector.connection.sent)
            connector.connection.feed(FrameParser.marshal("CONNECTED", {"version": "1.1", "heart-beat": "0,0"}))
            await until(lambda: stomp.connected)

            stomp.disconnect()
            await transport.wait_closed()
            connector.connection = None

        return connector, stomp, connected, errors

    connector, stomp, connected, errors = asyncio.run(scenario())

    assert len(connector.calls) == 2
    assert len(connected) == 2
    assert errors == []
    assert stomp.state == ConnectionState.DISCONNECTED


def test_client_session_over_websocket():
    async def scenario():
        connector = FakeConnector()
        transport = WebSocketTransport("ws://broker/ws", connector=connector)
        stomp = over(transport, scheduler=AsyncioScheduler())
        connected = []
        errors = []
        received = []

        stomp.connect({"login": "guest"}, connected.append, errors.append)
        await until(lambda: connector.connection is not None and connector.connection.sent)

        connector.connection.feed(FrameParser.marshal("CONNECTED", {"version": "1.1", "heart-beat": "0,0"}))
        await until(lambda: connected)

        stomp.subscribe("/queue/a", received.append)
        connector.connection.feed(FrameParser.marshal("MESSAGE", {
            "subscription": "sub-0",
            "message-id": "1",
            "destination": "/queue/a",
        }, "hi"))
        await until(lambda: received and len(connector.connection.sent) == 2)

        connector.connection.feed(None)
        await transport.wait_closed()
        return connector, errors, received

    connector, errors, received = asyncio.run(scenario())

    commands = [FrameParser.unmarshal(data)[0][0].command for data in connector.connection.sent]
    assert commands == ["CONNECT", "SUBSCRIBE"]
    assert [frame.text for frame in received] == ["hi"]
    assert [type(error) for error in errors] == [ConnectionLost]
