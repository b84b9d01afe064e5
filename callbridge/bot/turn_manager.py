"""
Turn-taking state machine for one call.

TurnManager owns the CallSession and decides, for every event on either leg,
which messages the agent should receive. It performs no I/O: each method
mutates the session synchronously and returns the agent client events to send,
in order. Because nothing here awaits, a caller running on a single event loop
cannot observe a half-applied transition.

Turn policy: caller audio is appended as it arrives; once at least
commit_threshold_ms of audio has been appended since the last commit and no
generation is in flight, the buffer is committed and a generation requested.
"""

import base64
import logging
from collections import deque
from typing import Deque, List, Optional

from callbridge.config.constants import LOGGER_NAME
from callbridge.config.settings import BridgeSettings
from callbridge.models.agent_schemas import (
    AgentClientEvent,
    InputAudioAppendEvent,
    InputAudioCommitEvent,
    ResponseConfig,
    ResponseCreateEvent,
    SessionConfig,
    SessionUpdateEvent,
)
from callbridge.models.call_session import CallSession, CallState
from callbridge.audio.transcode import agent_bytes_per_sample, agent_sample_rate

logger = logging.getLogger(LOGGER_NAME)


class TurnManager:
    """
    Session state machine: Connecting -> AwaitingAgent -> Active -> Closing -> Closed.

    Caller audio received before the agent acknowledges its configuration is
    buffered (up to pending_audio_limit_ms, oldest dropped first) and appended
    as soon as the session becomes active.
    """

    def __init__(self, settings: BridgeSettings, session: Optional[CallSession] = None):
        self.settings = settings
        self.session = session or CallSession()
        self.sample_rate = agent_sample_rate(settings.agent_audio_format)
        self.bytes_per_sample = agent_bytes_per_sample(settings.agent_audio_format)
        self.commit_threshold = self.sample_rate * settings.commit_threshold_ms // 1000
        self._pending: Deque[bytes] = deque()
        self._pending_samples = 0
        self._pending_limit = self.sample_rate * settings.pending_audio_limit_ms // 1000
        self.generations_requested = 0

    @property
    def state(self) -> CallState:
        return self.session.state

    def start_call(self, stream_sid: str, call_sid: Optional[str] = None,
                   tracks: Optional[List[str]] = None,
                   custom_parameters: Optional[dict] = None) -> List[AgentClientEvent]:
        """
        Handle the carrier's call-start event.

        Returns:
            The session configuration message for the agent
        """
        self.session.stream_sid = stream_sid
        self.session.call_sid = call_sid
        self.session.tracks = list(tracks or [])
        self.session.custom_parameters = dict(custom_parameters or {})
        self.session.transition(CallState.AWAITING_AGENT)

        audio_format = self.settings.agent_audio_format
        return [
            SessionUpdateEvent(
                session=SessionConfig(
                    voice=self.settings.voice,
                    instructions=self.settings.instructions,
                    input_audio_format=audio_format,
                    output_audio_format=audio_format,
                )
            )
        ]

    def agent_configured(self) -> List[AgentClientEvent]:
        """
        Handle the agent's configuration acknowledgement.

        Returns:
            Buffered caller audio followed by the greeting generation request,
            or nothing if the acknowledgement does not apply to the current state
        """
        if self.session.state != CallState.AWAITING_AGENT:
            logger.debug(
                f"Ignoring configuration acknowledgement in state {self.session.state.value}"
            )
            return []

        self.session.agent_ready = True
        self.session.transition(CallState.ACTIVE)

        events: List[AgentClientEvent] = []
        while self._pending:
            chunk = self._pending.popleft()
            events.append(self._append(chunk))
        self._pending_samples = 0

        events.append(
            self._request_generation(
                ResponseConfig(instructions=self.settings.greeting_instructions)
            )
        )
        logger.info(f"Agent ready for call {self.session.stream_sid}, requesting greeting")
        return events

    def caller_audio(self, chunk: bytes) -> List[AgentClientEvent]:
        """
        Handle one chunk of caller audio, already in the agent's input format.

        Returns:
            The append message, followed by commit and generation request when
            the threshold is crossed and no turn is in flight
        """
        if not chunk or self.session.is_terminating:
            return []

        if self.session.state != CallState.ACTIVE:
            self._buffer(chunk)
            return []

        events: List[AgentClientEvent] = [self._append(chunk)]
        if (self.session.appended_sample_count >= self.commit_threshold
                and not self.session.turn_in_flight):
            events.extend(self._commit_and_request())
        return events

    def caller_signal(self, kind: str) -> List[AgentClientEvent]:
        """
        Handle an out-of-band caller signal.

        A keypress ends the caller's utterance: pending audio is committed and a
        generation requested, unless a turn is already in flight.
        """
        if kind != "dtmf" or self.session.state != CallState.ACTIVE:
            return []
        if self.session.appended_sample_count > 0 and not self.session.turn_in_flight:
            return self._commit_and_request()
        return []

    def generation_started(self) -> None:
        self.session.turn_in_flight = True

    def generation_finished(self) -> None:
        self.session.turn_in_flight = False

    def agent_audio_received(self) -> bool:
        """
        Latch receipt of real agent audio.

        Returns:
            True only for the first agent audio of the call
        """
        if self.session.received_first_agent_audio:
            return False
        self.session.received_first_agent_audio = True
        return True

    def begin_close(self) -> Optional[List[AgentClientEvent]]:
        """
        Move the call to Closing.

        Returns:
            A final commit if caller audio was appended but not yet committed;
            None if the call was already closing or closed
        """
        if self.session.is_terminating:
            return None

        flush_commit = self.session.agent_ready and self.session.appended_sample_count > 0
        self.session.transition(CallState.CLOSING)
        self._pending.clear()
        self._pending_samples = 0

        if flush_commit:
            self.session.appended_sample_count = 0
            return [InputAudioCommitEvent()]
        return []

    def finish_close(self) -> None:
        if self.session.state == CallState.CLOSING:
            self.session.transition(CallState.CLOSED)

    def _append(self, chunk: bytes) -> InputAudioAppendEvent:
        self.session.appended_sample_count += len(chunk) // self.bytes_per_sample
        return InputAudioAppendEvent(audio=base64.b64encode(chunk).decode("utf-8"))

    def _commit_and_request(self) -> List[AgentClientEvent]:
        self.session.appended_sample_count = 0
        return [InputAudioCommitEvent(), self._request_generation(ResponseConfig())]

    def _request_generation(self, response: ResponseConfig) -> ResponseCreateEvent:
        # In flight from the moment of the request, before the agent confirms
        self.session.turn_in_flight = True
        self.generations_requested += 1
        return ResponseCreateEvent(response=response)

    def _buffer(self, chunk: bytes) -> None:
        self._pending.append(chunk)
        self._pending_samples += len(chunk) // self.bytes_per_sample
        while self._pending and self._pending_samples > self._pending_limit:
            dropped = self._pending.popleft()
            self._pending_samples -= len(dropped) // self.bytes_per_sample
            logger.warning(
                f"Dropped {len(dropped)} bytes of buffered caller audio for call "
                f"{self.session.stream_sid}: agent not ready"
            )
