"""
WebSocket connection manager for the carrier media stream.

This module implements the server side of the carrier's media-stream protocol,
providing the infrastructure to:
- Accept one WebSocket connection per call
- Parse incoming events and route them to the matching handler
- Pair every connection with its own CallBridge
- Tear the call down exactly once however the connection ends

Calls share nothing but the read-only settings; a failure in one call is logged
and contained in that call's connection handler.
"""

import logging
import socket
from typing import Any, Awaitable, Callable, Dict, Set

from fastapi import WebSocket, WebSocketDisconnect

from callbridge.bot.call_bridge import CallBridge
from callbridge.bot.realtime_api import RealtimeAgentClient
from callbridge.config.constants import (
    LOGGER_NAME,
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_DTMF,
    TELEPHONY_EVENT_MARK,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)
from callbridge.config.settings import BridgeSettings
from callbridge.handlers.telephony_handlers import (
    handle_connected,
    handle_dtmf,
    handle_mark,
    handle_media,
    handle_start,
    handle_stop,
)
from callbridge.models.telephony_schemas import parse_telephony_event

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[[Any, CallBridge], Awaitable[None]]


class WebSocketManager:
    """Manages carrier WebSocket connections and routes events to handlers.

    Each event is routed to a handler based on the event's "event" field.
    """

    def __init__(self, settings: BridgeSettings,
                 client_factory: Callable[[BridgeSettings], Any] = RealtimeAgentClient):
        self.settings = settings
        self.client_factory = client_factory
        self.active_calls: Set[CallBridge] = set()

        self.handlers: Dict[str, HandlerFunc] = {
            TELEPHONY_EVENT_CONNECTED: handle_connected,
            TELEPHONY_EVENT_START: handle_start,
            TELEPHONY_EVENT_MEDIA: handle_media,
            TELEPHONY_EVENT_STOP: handle_stop,
            TELEPHONY_EVENT_MARK: handle_mark,
            TELEPHONY_EVENT_DTMF: handle_dtmf,
        }

    async def _optimize_socket(self, websocket: WebSocket) -> None:
        """
        Optimize the WebSocket's underlying TCP socket for low-latency transmission.

        Args:
            websocket: The FastAPI WebSocket connection
        """
        try:
            client = websocket.client
            if hasattr(client, "sock") and client.sock is not None:
                # Disable Nagle's algorithm to send packets immediately
                client.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                logger.info("Optimized socket: TCP_NODELAY enabled for low latency")
        except Exception as e:
            logger.warning(f"Could not optimize socket: {e}")

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a carrier WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection and creates the call's bridge
        2. Processes incoming events in arrival order
        3. Routes each event to the appropriate handler
        4. Closes the bridge when the call stops, either leg fails, or the
           connection drops
        """
        await websocket.accept()
        await self._optimize_socket(websocket)
        logger.info("Media stream WebSocket connection established")

        bridge = CallBridge(websocket, self.settings, self.client_factory)
        self.active_calls.add(bridge)

        try:
            while not bridge.is_closed:
                data = await websocket.receive_text()
                event = parse_telephony_event(data)
                if event is None:
                    continue

                handler = self.handlers.get(event.event)
                if handler is None:
                    logger.warning(f"Unhandled telephony event received: {event.event}")
                    continue
                await handler(event, bridge)

        except WebSocketDisconnect as e:
            logger.info(f"Media stream disconnected for call {bridge.stream_sid} (code {e.code})")
        except Exception as e:
            logger.error(f"Error in media stream connection: {e}", exc_info=True)
        finally:
            await bridge.close("telephony connection closed")
            self.active_calls.discard(bridge)
            logger.info("Media stream WebSocket connection closed")
