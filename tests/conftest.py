import pytest

from stompws.client import Client, ClientConfig, ClientListener
from stompws.heartbeat import HeartbeatConfig, Scheduler, TimerHandle
from stompws.network import Transport
from stompws.protocol import FrameParser


class ManualTimer(TimerHandle):
    def __init__(self, interval, callback, due):
        self.interval = interval
        self.callback = callback
        self.due = due
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self):
        return self._cancelled


class ManualScheduler(Scheduler):
    """Scheduler with a clock that only moves when told to."""

    def __init__(self):
        self.time = 0.0
        self.timers = []

    def schedule_repeating(self, interval, callback):
        timer = ManualTimer(interval, callback, self.time + interval)
        self.timers.append(timer)
        return timer

    def now(self):
        return self.time

    def active(self):
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds):
        target = self.time + seconds
        while True:
            due = [timer for timer in self.active() if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.time = timer.due
            timer.due += timer.interval
            timer.callback()
        self.time = target


class FakeTransport(Transport):
    """Records sends; tests drive open/message/close events by hand."""

    def __init__(self, auto_open=False, auto_reply=False):
        super().__init__()
        self.auto_open = auto_open
        self.auto_reply = auto_reply
        self.sent = []
        self.opened = False
        self.closed = False
        self.close_calls = 0

    @property
    def url(self):
        return "ws://broker.test/ws"

    def open(self):
        self.opened = True
        if self.auto_open:
            self.fire_open()

    def send(self, data):
        self.sent.append(data)
        if self.auto_reply:
            self._reply(data)

    def close(self):
        self.close_calls += 1
        self.fire_close("closed by client")

    def fire_open(self):
        self.on_open()

    def receive(self, data):
        self.on_message(data)

    def fire_close(self, reason="network down"):
        if self.closed:
            return
        self.closed = True
        if self.on_close:
            self.on_close(reason)

    def frames(self):
        """Frames written so far, in order."""
        frames, partial = FrameParser.unmarshal(b"".join(self.sent))
        assert partial == b""
        return frames

    def commands(self):
        return [frame.command for frame in self.frames()]

    def last_frame(self):
        return self.frames()[-1]

    def _reply(self, data):
        if data == b"\n":
            return
        frames, _ = FrameParser.unmarshal(data)
        for frame in frames:
            if frame.command == "CONNECT":
                self.receive(FrameParser.marshal("CONNECTED", {
                    "version": "1.1",
                    "heart-beat": "0,0",
                    "server": "fake/1.0",
                }))
            elif "receipt" in frame.headers:
                self.receive(FrameParser.marshal("RECEIPT", {"receipt-id": frame.headers["receipt"]}))


class RecordingListener(ClientListener):
    def __init__(self):
        self.connected = []
        self.errors = []
        self.receipts = []
        self.messages = []

    def on_connected(self, frame):
        self.connected.append(frame)

    def on_error(self, error):
        self.errors.append(error)

    def on_receipt(self, frame):
        self.receipts.append(frame)

    def on_message(self, frame):
        self.messages.append(frame)


def connected_frame(version="1.1", heart_beat="0,0"):
    headers = {"version": version, "server": "fake/1.0"}
    if heart_beat is not None:
        headers["heart-beat"] = heart_beat
    return FrameParser.marshal("CONNECTED", headers)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def stomp(transport, scheduler, listener):
    return Client(transport, scheduler=scheduler, listener=listener)


@pytest.fixture
def connected(stomp, transport):
    """A client that completed the handshake without heartbeats."""
    stomp.connect({"login": "guest", "passcode": "guest"})
    transport.fire_open()
    transport.receive(connected_frame())
    transport.sent.clear()
    return stomp


def make_client(transport, scheduler, listener, outgoing=10000, incoming=10000, max_frame_size=16 * 1024):
    config = ClientConfig(heartbeat=HeartbeatConfig(outgoing, incoming), max_frame_size=max_frame_size)
    return Client(transport, scheduler=scheduler, config=config, listener=listener)
