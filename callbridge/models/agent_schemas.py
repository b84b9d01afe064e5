"""
Pydantic models for the voice agent (Realtime API) message structures.

This module provides type-safe models for the messages exchanged with the agent
service: client events the bridge sends, and a tagged union of the server events
it reacts to. Several protocol revisions use different names for the same event,
so some server events accept more than one "type" value.
"""

import json
import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from callbridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


# Client events
class AgentClientEvent(BaseModel):
    """Base model for messages sent to the agent."""
    type: str

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class SessionConfig(BaseModel):
    """Remote session configuration."""
    voice: str
    instructions: str
    input_audio_format: str
    output_audio_format: str
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    turn_detection: Optional[Dict[str, Any]] = None


class SessionUpdateEvent(AgentClientEvent):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig

    def to_json(self) -> str:
        payload = self.model_dump(exclude_none=True)
        # Turns are committed by the bridge; null disables server-side detection
        payload["session"]["turn_detection"] = self.session.turn_detection
        return json.dumps(payload)


class InputAudioAppendEvent(AgentClientEvent):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64 audio in the declared input format")


class InputAudioCommitEvent(AgentClientEvent):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class ResponseConfig(BaseModel):
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    instructions: Optional[str] = None


class ResponseCreateEvent(AgentClientEvent):
    type: Literal["response.create"] = "response.create"
    response: ResponseConfig = Field(default_factory=ResponseConfig)


# Server events
class SessionCreatedEvent(BaseModel):
    type: Literal["session.created"]


class SessionUpdatedEvent(BaseModel):
    """The agent acknowledged our session configuration."""
    type: Literal["session.updated"]


class ResponseStartedEvent(BaseModel):
    type: Literal["response.created", "response.started"]


class ResponseDoneEvent(BaseModel):
    type: Literal["response.done", "response.completed"]
    response: Optional[Dict[str, Any]] = None

    @property
    def status(self) -> Optional[str]:
        return (self.response or {}).get("status")


class ResponseFailedEvent(BaseModel):
    type: Literal["response.failed"]
    response: Optional[Dict[str, Any]] = None


class OutputAudioDeltaEvent(BaseModel):
    type: Literal["response.audio.delta", "response.output_audio.delta", "output_audio.delta"]
    delta: str = Field(..., description="Base64 audio in the declared output format")
    response_id: Optional[str] = None


class OutputTextDeltaEvent(BaseModel):
    type: Literal[
        "response.text.delta",
        "response.output_text.delta",
        "response.audio_transcript.delta",
    ]
    delta: str = ""


class InputTranscriptEvent(BaseModel):
    type: Literal["conversation.item.input_audio_transcription.completed"]
    transcript: str = ""


class AgentErrorDetail(BaseModel):
    type: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    param: Optional[str] = None


class AgentErrorEvent(BaseModel):
    type: Literal["error"]
    error: AgentErrorDetail = Field(default_factory=AgentErrorDetail)


AgentServerEvent = Annotated[
    Union[
        SessionCreatedEvent,
        SessionUpdatedEvent,
        ResponseStartedEvent,
        ResponseDoneEvent,
        ResponseFailedEvent,
        OutputAudioDeltaEvent,
        OutputTextDeltaEvent,
        InputTranscriptEvent,
        AgentErrorEvent,
    ],
    Field(discriminator="type"),
]

_agent_event_adapter = TypeAdapter(AgentServerEvent)

KNOWN_AGENT_EVENTS = {
    "session.created",
    "session.updated",
    "response.created",
    "response.started",
    "response.done",
    "response.completed",
    "response.failed",
    "response.audio.delta",
    "response.output_audio.delta",
    "output_audio.delta",
    "response.text.delta",
    "response.output_text.delta",
    "response.audio_transcript.delta",
    "conversation.item.input_audio_transcription.completed",
    "error",
}


def parse_agent_event(raw: Union[str, bytes]):
    """
    Parse one websocket message from the agent.

    Args:
        raw: JSON text of a single server event

    Returns:
        The typed event, or None for malformed messages and event kinds the
        bridge does not act on
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Received invalid JSON from agent: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning("Received agent message that is not a JSON object")
        return None

    event_type = data.get("type")
    if not isinstance(event_type, str) or event_type not in KNOWN_AGENT_EVENTS:
        logger.debug(f"Ignoring agent event of type: {event_type}")
        return None

    try:
        return _agent_event_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(f"Invalid agent {event_type} event: {e}")
        return None
