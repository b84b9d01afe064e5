"""
Bot module connecting carrier media streams with the realtime voice agent.

Key components:
- RealtimeAgentClient: WebSocket client for one agent session; connects once and
  queues parsed server events.
- TurnManager: The per-call state machine deciding when caller audio is committed
  and a generation requested.
- FallbackAudioPump / Heartbeat: Keep-alive tasks for the telephony leg.
- CallBridge: Per-call orchestrator wiring the two legs together.

Usage examples:
```python
from callbridge.bot import CallBridge
from callbridge.config.settings import BridgeSettings

async def handle_call(websocket, start_event):
    bridge = CallBridge(websocket, BridgeSettings.from_env())
    await bridge.on_call_start(start_event)
    ...
    await bridge.close("call stopped")
```
"""

from callbridge.bot.realtime_api import AgentConnectionError, RealtimeAgentClient
from callbridge.bot.turn_manager import TurnManager
from callbridge.bot.keepalive import FallbackAudioPump, Heartbeat
from callbridge.bot.call_bridge import CallBridge

__all__ = [
    "AgentConnectionError",
    "RealtimeAgentClient",
    "TurnManager",
    "FallbackAudioPump",
    "Heartbeat",
    "CallBridge",
]
