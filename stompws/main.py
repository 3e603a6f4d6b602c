#!/usr/bin/env python3
"""Command line tool for sending and receiving STOMP messages."""

import argparse
import asyncio
import signal
import sys
from typing import Dict, List, Optional, Union

from .client import Client, ClientListener, client
from .config import Config
from .protocol import Frame, StompError
from .protocol.frames import RECEIPT, RECEIPT_ID
from .utils import setup_logging, get_logger


class StompTool(ClientListener):
    """Runs one STOMP session for the command line and listens to its events."""

    def __init__(self, config: Config, stomp: Optional[Client] = None, out=None):
        """
        Initialize the tool.

        Args:
            config: Loaded configuration
            stomp: Client to use (a WebSocket client for the configured URL if None)
            out: Stream message bodies are written to (stdout if None)
        """
        self.config = config
        self.logger = get_logger(__name__)
        self.out = out or sys.stdout
        self.stomp = stomp or client(
            config.connection.url,
            config.connection.protocols,
            config=config.client_config()
        )
        self.stomp.listener = self

        self.received = 0
        self.lost: Optional[asyncio.Event] = None
        self.receipts: Dict[str, asyncio.Future] = {}
        self.error: Optional[Union[Frame, StompError]] = None

    async def connect(self) -> Frame:
        """
        Connect and wait for the CONNECTED frame.

        Raises:
            StompError: If the broker refuses or the connection drops
            asyncio.TimeoutError: If no CONNECTED frame arrives in time
        """
        loop = asyncio.get_running_loop()
        connected = loop.create_future()
        self.lost = asyncio.Event()

        def on_connected(frame: Frame):
            if not connected.done():
                connected.set_result(frame)

        def on_error(error: Union[Frame, StompError]):
            self.error = error
            self.logger.error("STOMP error", error=describe(error))
            if not connected.done():
                connected.set_exception(StompError(describe(error)))
            self.lost.set()

        self.stomp.connect(self.config.connect_headers(), on_connected, on_error)

        try:
            frame = await asyncio.wait_for(connected, timeout=self.config.connection.connect_timeout)
        except asyncio.TimeoutError:
            self.stomp.transport.close()
            raise
        self.logger.info("Connected", server=frame.headers.get("server"), version=self.stomp.version)
        return frame

    async def disconnect(self):
        self.stomp.disconnect()
        await self.stomp.transport.wait_closed()

    async def send(self, destination: str, body: str, headers: Dict[str, str], receipt: bool = False):
        """Send one message, optionally waiting for the broker's receipt."""
        await self.connect()
        try:
            headers = dict(headers)
            waiter = None
            if receipt:
                receipt_id = f"send-{destination}"
                headers[RECEIPT] = receipt_id
                waiter = self.receipts[receipt_id] = asyncio.get_running_loop().create_future()

            self.stomp.send(destination, headers, body)

            if waiter is not None:
                await asyncio.wait_for(waiter, timeout=self.config.connection.connect_timeout)
                self.logger.info("Receipt received", destination=destination)
        finally:
            await self.disconnect()

    async def subscribe(self, destination: str, ack: str = "auto", count: Optional[int] = None):
        """Print messages from a destination until count is reached or the connection drops."""
        await self.connect()
        done = asyncio.Event()

        def on_message(frame: Frame):
            self.received += 1
            print(frame.text, file=self.out, flush=True)
            if ack != "auto":
                frame.ack()
            if count is not None and self.received >= count:
                done.set()

        self.stomp.subscribe(destination, on_message, {"ack": ack})

        waiters = [asyncio.ensure_future(done.wait()), asyncio.ensure_future(self.lost.wait())]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            if self.stomp.connected:
                await self.disconnect()

    def on_receipt(self, frame: Frame):
        waiter = self.receipts.pop(frame.headers.get(RECEIPT_ID, ""), None)
        if waiter is not None and not waiter.done():
            waiter.set_result(frame)


def describe(error: Union[Frame, StompError]) -> str:
    """One-line description of an error callback argument."""
    if isinstance(error, Frame):
        message = error.headers.get("message", "")
        return f"ERROR frame: {message} {error.text}".strip()
    return str(error)


def parse_header(value: str) -> tuple:
    """Parse a name:value command line header."""
    if ":" not in value:
        raise argparse.ArgumentTypeError(f"Header must be name:value, got {value!r}")
    name, header_value = value.split(":", 1)
    return name.strip(), header_value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stompws", description="STOMP over WebSocket client")
    parser.add_argument(
        '-c', '--config',
        help='Configuration file path',
        default=None
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--trace',
        action='store_true',
        help='Log every frame sent and received'
    )
    parser.add_argument('--url', help='Broker WebSocket URL')
    parser.add_argument('--login', help='Login header')
    parser.add_argument('--passcode', help='Passcode header')
    parser.add_argument('--vhost', help='Host header (virtual host)')

    commands = parser.add_subparsers(dest='command', required=True)

    send = commands.add_parser('send', help='Send a message')
    send.add_argument('destination')
    send.add_argument('body')
    send.add_argument(
        '-H', '--header',
        action='append',
        type=parse_header,
        default=[],
        help='Extra header as name:value (repeatable)'
    )
    send.add_argument('--receipt', action='store_true', help='Wait for a broker receipt')

    subscribe = commands.add_parser('subscribe', help='Print messages from a destination')
    subscribe.add_argument('destination')
    subscribe.add_argument(
        '--ack',
        choices=['auto', 'client', 'client-individual'],
        default='auto',
        help='Acknowledgement mode'
    )
    subscribe.add_argument('--count', type=int, default=None, help='Exit after this many messages')

    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line options on top of the loaded configuration."""
    if args.url:
        config.connection.url = args.url
    if args.login is not None:
        config.connection.login = args.login
    if args.passcode is not None:
        config.connection.passcode = args.passcode
    if args.vhost is not None:
        config.connection.host = args.vhost
    if args.verbose:
        config.logging.level = "DEBUG"
    if args.trace:
        config.logging.trace = True
    return config


async def run(config: Config, args: argparse.Namespace) -> int:
    """Run the requested command."""
    tool = StompTool(config)
    logger = get_logger(__name__)

    task = asyncio.ensure_future(
        tool.send(args.destination, args.body, dict(args.header), args.receipt)
        if args.command == 'send'
        else tool.subscribe(args.destination, args.ack, args.count)
    )

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, task.cancel)
        except NotImplementedError:
            pass

    try:
        await task
    except asyncio.CancelledError:
        logger.info("Interrupted")
        if tool.stomp.connected:
            await tool.disconnect()
        return 130
    except (StompError, asyncio.TimeoutError) as e:
        logger.error("Command failed", command=args.command, error=str(e) or type(e).__name__)
        return 1

    return 1 if tool.error is not None else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = apply_overrides(Config.load_from_file(args.config), args)

    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        max_size=config.logging.max_size,
        backup_count=config.logging.backup_count,
        trace=config.logging.trace,
        transport_level=config.logging.transport_level
    )

    return asyncio.run(run(config, args))


if __name__ == "__main__":
    sys.exit(main())
