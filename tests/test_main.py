import argparse
import asyncio
import io

import pytest

from stompws import over
from stompws.config import Config
from stompws.main import StompTool, apply_overrides, build_parser, describe, parse_header
from stompws.protocol import Command, ConnectionLost, Frame, FrameParser, StompError

from conftest import FakeTransport


def make_tool(transport, out=None):
    config = Config()
    config.connection.login = "guest"
    config.connection.connect_timeout = 1.0
    return StompTool(config, stomp=over(transport, scheduler=None), out=out)


def test_parse_header():
    assert parse_header("content-type: text/plain") == ("content-type", "text/plain")
    assert parse_header("a:b:c") == ("a", "b:c")

    with pytest.raises(argparse.ArgumentTypeError):
        parse_header("no-colon")


def test_send_arguments():
    args = build_parser().parse_args([
        "--url", "ws://other/ws", "--login", "me", "--vhost", "/v",
        "send", "/queue/a", "hello", "-H", "x:1", "-H", "y:2", "--receipt",
    ])

    assert args.command == "send"
    assert args.destination == "/queue/a"
    assert args.body == "hello"
    assert dict(args.header) == {"x": "1", "y": "2"}
    assert args.receipt


def test_subscribe_arguments():
    args = build_parser().parse_args(["-v", "subscribe", "/topic/t", "--ack", "client", "--count", "3"])

    assert args.command == "subscribe"
    assert args.ack == "client"
    assert args.count == 3


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_apply_overrides():
    args = build_parser().parse_args([
        "-v", "--trace", "--url", "wss://other/ws", "--login", "me", "--passcode", "pw", "--vhost", "/v",
        "subscribe", "/queue/a",
    ])

    config = apply_overrides(Config(), args)

    assert config.connection.url == "wss://other/ws"
    assert config.connect_headers() == {"login": "me", "passcode": "pw", "host": "/v"}
    assert config.logging.level == "DEBUG"
    assert config.logging.trace


def test_describe():
    frame = Frame(Command.ERROR, {"message": "denied"}, "no access")

    assert describe(frame) == "ERROR frame: denied no access"
    assert describe(ConnectionLost("ws://b/ws", "gone")) == "Lost connection to ws://b/ws: gone"


def test_send_command():
    transport = FakeTransport(auto_open=True, auto_reply=True)
    tool = make_tool(transport)

    asyncio.run(tool.send("/queue/a", "hello", {"priority": "5"}, receipt=True))

    connect, send, disconnect = transport.frames()
    assert connect.command == Command.CONNECT
    assert connect.headers["login"] == "guest"
    assert send.command == Command.SEND
    assert send.headers["priority"] == "5"
    assert send.headers["receipt"] == "send-/queue/a"
    assert send.text == "hello"
    assert disconnect.command == Command.DISCONNECT
    assert transport.closed
    assert tool.error is None


def test_subscribe_command():
    transport = FakeTransport(auto_open=True, auto_reply=True)
    out = io.StringIO()
    tool = make_tool(transport, out)

    async def scenario():
        task = asyncio.ensure_future(tool.subscribe("/queue/a", ack="client", count=2))
        for _ in range(100):
            if Command.SUBSCRIBE in transport.commands():
                break
            await asyncio.sleep(0)

        for i in range(2):
            transport.receive(FrameParser.marshal("MESSAGE", {
                "subscription": "sub-0",
                "message-id": f"m-{i}",
                "destination": "/queue/a",
            }, f"body {i}"))
        await task

    asyncio.run(scenario())

    assert out.getvalue() == "body 0\nbody 1\n"
    assert transport.commands() == [
        Command.CONNECT, Command.SUBSCRIBE, Command.ACK, Command.ACK, Command.DISCONNECT,
    ]


def test_connect_failure():
    transport = FakeTransport(auto_open=False)
    tool = make_tool(transport)

    async def scenario():
        task = asyncio.ensure_future(tool.connect())
        while not transport.opened:
            await asyncio.sleep(0)
        transport.fire_close("refused")
        await task

    with pytest.raises(StompError):
        asyncio.run(scenario())

    assert isinstance(tool.error, ConnectionLost)


def test_subscribe_ends_when_connection_drops():
    transport = FakeTransport(auto_open=True, auto_reply=True)
    tool = make_tool(transport, io.StringIO())

    async def scenario():
        task = asyncio.ensure_future(tool.subscribe("/queue/a"))
        for _ in range(100):
            if Command.SUBSCRIBE in transport.commands():
                break
            await asyncio.sleep(0)
        transport.fire_close("broker restart")
        await task

    asyncio.run(scenario())

    assert isinstance(tool.error, ConnectionLost)
    assert Command.DISCONNECT not in transport.commands()
