"""
Bridge module connecting one carrier media stream with one voice agent session.

This module provides the per-call orchestrator that routes caller audio from the
telephony leg to the agent and agent audio back to the telephony leg, transcoding
in both directions, and owns the lifecycle of both connections.
"""

import asyncio
import base64
import binascii
import logging
import time
from typing import Any, Callable, List, Optional

from callbridge.audio.packetizer import frame_byte_size, packetize
from callbridge.audio.transcode import (
    agent_audio_to_telephony,
    caller_audio_to_agent,
    filler_audio,
)
from callbridge.bot.keepalive import FallbackAudioPump, Heartbeat
from callbridge.bot.realtime_api import AgentConnectionError, RealtimeAgentClient
from callbridge.bot.turn_manager import TurnManager
from callbridge.config.constants import (
    FATAL_AGENT_ERROR_CODES,
    HEARTBEAT_MARK_NAME,
    LOGGER_NAME,
    TELEPHONY_BYTES_PER_SAMPLE,
    TELEPHONY_SAMPLE_RATE,
    TRACK_OUTBOUND,
)
from callbridge.config.settings import BridgeSettings
from callbridge.models.agent_schemas import (
    AgentClientEvent,
    AgentErrorEvent,
    InputTranscriptEvent,
    OutputAudioDeltaEvent,
    OutputTextDeltaEvent,
    ResponseDoneEvent,
    ResponseFailedEvent,
    ResponseStartedEvent,
    SessionCreatedEvent,
    SessionUpdatedEvent,
)
from callbridge.models.call_session import CallState
from callbridge.models.telephony_schemas import (
    MarkPayload,
    OutboundMarkMessage,
    OutboundMedia,
    OutboundMediaMessage,
    StartEvent,
    to_wire,
)

logger = logging.getLogger(LOGGER_NAME)


class CallBridge:
    """
    Bridge between the carrier media stream and the agent for a single call.

    This class handles:
    - Opening exactly one agent connection per call and configuring it
    - Converting caller audio (8 kHz mu-law) to the agent's input format and back
    - Turn-taking through TurnManager
    - Filler audio until the agent speaks, and the application heartbeat
    - Idempotent teardown of both legs

    State changes and the messages they produce are serialized per leg with
    asyncio locks, so audio in each direction is forwarded in arrival order and
    filler audio never follows real agent audio.
    """

    def __init__(self, websocket: Any, settings: BridgeSettings,
                 client_factory: Callable[[BridgeSettings], Any] = RealtimeAgentClient):
        self.websocket = websocket
        self.settings = settings
        self.client_factory = client_factory
        self.turns = TurnManager(settings)
        self.client = None
        self.frame_size = frame_byte_size(
            TELEPHONY_SAMPLE_RATE, settings.frame_ms, TELEPHONY_BYTES_PER_SAMPLE
        )

        self._agent_lock = asyncio.Lock()
        self._telephony_lock = asyncio.Lock()
        self._reader_task: Optional[asyncio.Task] = None
        self._outbound_remainder = b""
        self._closed = False
        self.frames_sent = 0
        self.close_reason: Optional[str] = None

        self.pump = FallbackAudioPump(
            self._send_filler,
            filler_audio(settings.fallback_audio, settings.fallback_interval_ms),
            settings.fallback_interval_ms / 1000,
        )
        self.heartbeat = Heartbeat(self._beat, settings.heartbeat_interval_s)

    @property
    def session(self):
        return self.turns.session

    @property
    def stream_sid(self) -> Optional[str]:
        return self.turns.session.stream_sid

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def on_call_start(self, event: StartEvent) -> None:
        """
        Handle the carrier's start event: open and configure the agent connection.

        Args:
            event: The validated start event
        """
        if self.session.state != CallState.CONNECTING:
            logger.warning(f"Ignoring repeated start event for call {self.stream_sid}")
            return

        start = event.start
        configure = self.turns.start_call(
            start.streamSid, start.callSid, start.tracks, start.customParameters
        )
        logger.info(f"Call started: {start.streamSid} (tracks: {start.tracks})")

        self.pump.start()
        self.heartbeat.start()

        self.client = self.client_factory(self.settings)
        try:
            await self.client.connect()
        except AgentConnectionError as e:
            logger.error(f"Agent connection failed for call {self.stream_sid}: {e}")
            await self.close("agent connection failed")
            return

        if self._closed:
            return

        self._reader_task = asyncio.create_task(self._read_agent_events())
        await self._send_agent(configure)

    async def on_caller_audio(self, payload: str, track: Optional[str] = None) -> None:
        """
        Handle one media event from the carrier.

        Args:
            payload: Base64 mu-law audio
            track: Track label reported by the carrier, if any
        """
        if track == TRACK_OUTBOUND:
            # Our own audio echoed back by the carrier
            return
        if self._closed or self.session.state == CallState.CONNECTING:
            return

        try:
            ulaw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Dropping undecodable media payload on call {self.stream_sid}: {e}")
            return

        chunk = caller_audio_to_agent(ulaw, self.settings.agent_audio_format)
        async with self._agent_lock:
            events = self.turns.caller_audio(chunk)
            await self._send_agent_locked(events)

    async def on_caller_signal(self, kind: str, detail: Optional[str] = None) -> None:
        """
        Handle an out-of-band signal from the caller's leg (mark, dtmf).

        Args:
            kind: Event kind
            detail: Mark name or pressed digit
        """
        if kind == "dtmf":
            logger.info(f"Caller pressed {detail} on call {self.stream_sid}")
        else:
            logger.debug(f"Carrier acknowledged {kind} {detail} on call {self.stream_sid}")

        if self._closed:
            return
        async with self._agent_lock:
            events = self.turns.caller_signal(kind)
            await self._send_agent_locked(events)

    async def on_call_stop(self) -> None:
        logger.info(f"Call stop received for {self.stream_sid}")
        await self.close("call stopped")

    async def _read_agent_events(self) -> None:
        try:
            while True:
                event = await self.client.receive_event()
                if event is None:
                    break
                await self._handle_agent_event(event)
                if self._closed:
                    return
        except asyncio.CancelledError:
            return
        except Exception as e:
            logger.error(f"Error handling agent events for call {self.stream_sid}: {e}",
                         exc_info=True)
        await self.close("agent connection closed")

    async def _handle_agent_event(self, event) -> None:
        if isinstance(event, OutputAudioDeltaEvent):
            await self._forward_agent_audio(event.delta)
        elif isinstance(event, SessionUpdatedEvent):
            async with self._agent_lock:
                await self._send_agent_locked(self.turns.agent_configured())
        elif isinstance(event, ResponseStartedEvent):
            self.turns.generation_started()
        elif isinstance(event, ResponseDoneEvent):
            if event.status == "failed":
                logger.warning(f"Generation failed on call {self.stream_sid}: {event.response}")
            self.turns.generation_finished()
            self._outbound_remainder = b""
        elif isinstance(event, ResponseFailedEvent):
            logger.warning(f"Generation failed on call {self.stream_sid}: {event.response}")
            self.turns.generation_finished()
            self._outbound_remainder = b""
        elif isinstance(event, OutputTextDeltaEvent):
            logger.info(f"Agent [{self.stream_sid}]: {event.delta}")
        elif isinstance(event, InputTranscriptEvent):
            logger.info(f"Caller [{self.stream_sid}]: {event.transcript}")
        elif isinstance(event, AgentErrorEvent):
            logger.error(f"Agent error on call {self.stream_sid}: {event.error.model_dump()}")
            if event.error.code in FATAL_AGENT_ERROR_CODES:
                await self.close(f"agent error: {event.error.code}")
        elif isinstance(event, SessionCreatedEvent):
            logger.debug(f"Agent session created for call {self.stream_sid}")
        else:
            logger.warning(f"Unhandled agent event: {type(event).__name__}")

    async def _forward_agent_audio(self, delta: str) -> None:
        try:
            chunk = base64.b64decode(delta, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Dropping undecodable agent audio on call {self.stream_sid}: {e}")
            return

        if self.turns.agent_audio_received():
            # Stop before the first real frame goes out
            self.pump.stop()
            logger.info(f"First agent audio on call {self.stream_sid}, filler stopped")

        start_time = time.time()
        encoded = self._outbound_remainder + agent_audio_to_telephony(
            chunk, self.settings.agent_audio_format
        )
        frames = packetize(encoded, self.frame_size)
        self._outbound_remainder = frames.remainder

        async with self._telephony_lock:
            for frame in frames:
                if self._closed:
                    return
                await self._send_media_locked(frame)

        processing_time = time.time() - start_time
        if processing_time > 0.01:  # 10ms
            logger.debug(f"Agent audio forwarding took {processing_time*1000:.2f}ms")

    async def _send_filler(self, filler: bytes) -> bool:
        async with self._telephony_lock:
            if self.session.received_first_agent_audio or self._closed:
                return False
            for frame in packetize(filler, self.frame_size):
                await self._send_media_locked(frame)
            return True

    async def _beat(self) -> None:
        if self._closed:
            return
        if self.client is not None:
            await self.client.ping()
        async with self._telephony_lock:
            message = OutboundMarkMessage(
                streamSid=self.stream_sid, mark=MarkPayload(name=HEARTBEAT_MARK_NAME)
            )
            await self.websocket.send_text(to_wire(message))

    async def _send_media_locked(self, frame: bytes) -> None:
        message = OutboundMediaMessage(
            streamSid=self.stream_sid,
            media=OutboundMedia(payload=base64.b64encode(frame).decode("utf-8")),
        )
        await self.websocket.send_text(to_wire(message))
        self.frames_sent += 1

    async def _send_agent(self, events: List[AgentClientEvent]) -> None:
        async with self._agent_lock:
            await self._send_agent_locked(events)

    async def _send_agent_locked(self, events: List[AgentClientEvent]) -> None:
        if not events or self.client is None:
            return
        for event in events:
            if not await self.client.send_event(event):
                logger.warning(f"Agent rejected {event.type} on call {self.stream_sid}")
                return

    async def close(self, reason: str = "closed") -> None:
        """
        Tear down the call. Safe to call any number of times from either leg.

        Args:
            reason: Why the call is ending, for the log
        """
        if self._closed:
            return
        self._closed = True
        self.close_reason = reason

        final_events = self.turns.begin_close() or []
        self.pump.stop()
        self.heartbeat.stop()

        if self.client is not None:
            if final_events and self.client.is_connected:
                try:
                    async with self._agent_lock:
                        await self._send_agent_locked(final_events)
                except Exception as e:
                    logger.warning(f"Could not flush caller audio on call {self.stream_sid}: {e}")

        if self._reader_task and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass

        await self.pump.wait_closed()
        await self.heartbeat.wait_closed()

        if self.client is not None:
            await self.client.close()

        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"Telephony WebSocket already closed for call {self.stream_sid}: {e}")

        self.turns.finish_close()
        logger.info(f"Call {self.stream_sid} closed: {reason}")
