import asyncio
import logging
import socket
import time
import traceback
from typing import Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from callbridge.config.constants import LOGGER_NAME
from callbridge.config.settings import BridgeSettings
from callbridge.models.agent_schemas import AgentClientEvent, parse_agent_event

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # 5 seconds between pings
EVENT_QUEUE_SIZE = 256


class AgentConnectionError(ConnectionError):
    """The agent connection could not be established."""


class RealtimeAgentClient:
    """
    Client for one voice agent session over WebSocket.

    The client connects once and never reconnects: a new connection would be a new
    agent session without the conversation so far. Server events are parsed into
    typed models and queued for receive_event(); None is queued when the
    connection ends.
    """
    def __init__(self, settings: BridgeSettings):
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.url = f"{settings.realtime_url}?model={self.model}"
        self.connect_timeout = settings.agent_connect_timeout_s
        self.ws = None
        self.events: asyncio.Queue = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._last_activity = 0.0
        self._is_closing = False
        logger.info(f"RealtimeAgentClient initialized with model: {self.model}")

    @property
    def is_connected(self) -> bool:
        return self._connection_active

    async def connect(self) -> None:
        """
        Connect to the agent WebSocket endpoint.

        Raises:
            AgentConnectionError: If credentials are missing, the connection times
                out, or the handshake is rejected
        """
        if self._is_closing:
            raise AgentConnectionError("Cannot connect - client is closing")
        if not self.api_key:
            logger.error("OPENAI_API_KEY environment variable not set")
            raise AgentConnectionError("OPENAI_API_KEY environment variable not set")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        try:
            logger.info(f"Connecting to agent with model: {self.model}")
            logger.debug(f"WebSocket URL: {self.url}")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers
                ),
                timeout=self.connect_timeout
            )
            connection_time = time.time() - connection_start
            logger.debug(f"WebSocket connection established in {connection_time:.2f} seconds")
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout while connecting to agent (after {self.connect_timeout}s)")
            raise AgentConnectionError("Timed out connecting to agent") from e
        except Exception as e:
            logger.error(f"Failed to connect to agent: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            raise AgentConnectionError(str(e)) from e

        self._optimize_socket()
        self._connection_active = True
        self._last_activity = time.time()
        self._recv_task = asyncio.create_task(self._recv_loop())
        logger.info("Successfully connected to agent")

    def _optimize_socket(self) -> None:
        sock = getattr(self.ws, "sock", None)
        if sock is None:
            transport = getattr(self.ws, "transport", None)
            sock = transport.get_extra_info("socket") if transport else None
        if sock is None:
            return
        try:
            # Disable Nagle's algorithm to send packets immediately
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            logger.debug("Optimized agent socket: TCP_NODELAY enabled")
        except Exception as e:
            logger.warning(f"Could not optimize agent socket: {e}")

    async def send_event(self, event: AgentClientEvent) -> bool:
        """
        Send one client event.

        Args:
            event: The event to serialize and send

        Returns:
            bool: True if the event was sent, False if the connection is gone
        """
        if not self._connection_active or self.ws is None:
            logger.warning(f"Cannot send {event.type} - connection not active")
            return False

        try:
            await self.ws.send(event.to_json())
            self._last_activity = time.time()
            return True
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending {event.type}: {e}")
            self._connection_active = False
            return False

    async def ping(self) -> None:
        """Send a WebSocket ping without waiting for the pong."""
        if self.ws is not None and self._connection_active:
            await self.ws.ping()

    async def receive_event(self):
        """
        Await the next parsed server event.

        Returns:
            The next event, or None once the connection has ended
        """
        if not self._connection_active and self.events.empty():
            return None
        return await self.events.get()

    async def _recv_loop(self) -> None:
        """
        Internal loop to receive messages from the agent and queue parsed events.
        """
        try:
            logger.debug("Receive loop started")
            while self._connection_active and not self._is_closing:
                message = await self.ws.recv()
                self._last_activity = time.time()
                event = parse_agent_event(message)
                if event is not None:
                    await self.events.put(event)
        except ConnectionClosedOK:
            logger.info("Agent connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"Agent connection closed unexpectedly: {e}")
        except asyncio.CancelledError:
            logger.debug("Receive loop cancelled")
        except Exception as e:
            logger.error(f"Error in receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")
        finally:
            self._connection_active = False
            # Wake up any reader waiting on the queue
            try:
                self.events.put_nowait(None)
            except asyncio.QueueFull:
                logger.warning("Event queue full while signalling end of agent connection")
            logger.info("Receive loop exited, connection marked as inactive")

    async def close(self) -> None:
        """
        Close the WebSocket connection and cancel the receive task.
        """
        if self._is_closing:
            return
        logger.info("Closing agent client")
        self._is_closing = True
        self._connection_active = False

        if self._recv_task and not self._recv_task.done():
            self._recv_task.cancel()
            try:
                await self._recv_task
            except asyncio.CancelledError:
                pass

        if self.ws:
            try:
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Error closing agent WebSocket: {e}")

        logger.info("Agent client closed")
