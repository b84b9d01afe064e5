import asyncio
import json
import logging

import pytest

from callbridge.bot.realtime_api import AgentConnectionError
from callbridge.config.settings import BridgeSettings
from callbridge.models.telephony_schemas import parse_telephony_event


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class MockWebSocket:
    """A simple websocket mock that records sent messages."""
    def __init__(self):
        self.sent_messages = []
        self.close_calls = 0

    async def send_text(self, text):
        self.sent_messages.append(text)

    async def close(self, code: int = 1000):
        self.close_calls += 1

    def messages(self, event=None):
        parsed = [json.loads(m) for m in self.sent_messages]
        if event is None:
            return parsed
        return [m for m in parsed if m["event"] == event]


class FakeAgentClient:
    """Stand-in for RealtimeAgentClient that records sent events."""
    def __init__(self, settings=None, fail_connect=False):
        self.settings = settings
        self.fail_connect = fail_connect
        self.sent = []
        self.events = asyncio.Queue()
        self.connected = False
        self.connect_calls = 0
        self.close_calls = 0
        self.pings = 0

    @property
    def is_connected(self):
        return self.connected

    async def connect(self):
        self.connect_calls += 1
        if self.fail_connect:
            raise AgentConnectionError("handshake rejected")
        self.connected = True

    async def send_event(self, event):
        if not self.connected:
            return False
        self.sent.append(event)
        return True

    async def receive_event(self):
        return await self.events.get()

    async def ping(self):
        self.pings += 1

    async def close(self):
        self.close_calls += 1
        self.connected = False
        self.events.put_nowait(None)

    def push(self, event):
        self.events.put_nowait(event)

    def sent_types(self):
        return [e.type for e in self.sent]


@pytest.fixture
def settings():
    return BridgeSettings(
        openai_api_key="test-api-key",
        fallback_interval_ms=40,
        heartbeat_interval_s=60,
    )


@pytest.fixture
def mock_websocket():
    return MockWebSocket()


@pytest.fixture
def fake_client():
    return FakeAgentClient()


def make_start_event(stream_sid="MZ0001", tracks=("inbound", "outbound")):
    return parse_telephony_event(json.dumps({
        "event": "start",
        "sequenceNumber": "1",
        "streamSid": stream_sid,
        "start": {
            "accountSid": "AC0001",
            "streamSid": stream_sid,
            "callSid": "CA0001",
            "tracks": list(tracks),
            "customParameters": {},
            "mediaFormat": {"encoding": "audio/x-mulaw", "sampleRate": 8000, "channels": 1},
        },
    }))


async def settle(delay: float = 0.01):
    """Let background tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)
    await asyncio.sleep(delay)
