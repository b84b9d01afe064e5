"""
Pydantic models for the carrier media-stream websocket protocol.

This module defines structured data models for all incoming and outgoing events
on the telephony leg, providing type validation and documentation. Inbound events
form a tagged union discriminated by the "event" field.
"""

import json
import logging
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from callbridge.config.constants import (
    LOGGER_NAME,
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_DTMF,
    TELEPHONY_EVENT_MARK,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)

logger = logging.getLogger(LOGGER_NAME)


class MediaFormat(BaseModel):
    """Audio format announced by the carrier on stream start."""

    encoding: str = Field("audio/x-mulaw", description="Payload encoding")
    sampleRate: int = Field(8000, description="Sample rate in Hz")
    channels: int = Field(1, description="Channel count")


class StartPayload(BaseModel):
    """Body of the start event."""

    streamSid: str = Field(..., description="Identifier of this media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the phone call")
    accountSid: Optional[str] = None
    tracks: List[str] = Field(default_factory=list, description="Tracks being streamed")
    customParameters: Dict[str, str] = Field(default_factory=dict)
    mediaFormat: Optional[MediaFormat] = None


class MediaPayload(BaseModel):
    """Body of an inbound media event."""

    payload: str = Field(..., description="Base64 mu-law audio")
    track: Optional[str] = Field(None, description="inbound or outbound")
    chunk: Optional[str] = None
    timestamp: Optional[str] = None


class StopPayload(BaseModel):
    accountSid: Optional[str] = None
    callSid: Optional[str] = None


class MarkPayload(BaseModel):
    name: str = Field(..., description="Marker name")


class DtmfPayload(BaseModel):
    digit: str = Field(..., description="Pressed key")
    track: Optional[str] = None


# Inbound events
class ConnectedEvent(BaseModel):
    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class StartEvent(BaseModel):
    event: Literal["start"]
    sequenceNumber: Optional[str] = None
    streamSid: Optional[str] = None
    start: StartPayload


class MediaEvent(BaseModel):
    event: Literal["media"]
    sequenceNumber: Optional[str] = None
    streamSid: Optional[str] = None
    media: MediaPayload


class StopEvent(BaseModel):
    event: Literal["stop"]
    sequenceNumber: Optional[str] = None
    streamSid: Optional[str] = None
    stop: Optional[StopPayload] = None


class MarkEvent(BaseModel):
    event: Literal["mark"]
    sequenceNumber: Optional[str] = None
    streamSid: Optional[str] = None
    mark: MarkPayload


class DtmfEvent(BaseModel):
    event: Literal["dtmf"]
    sequenceNumber: Optional[str] = None
    streamSid: Optional[str] = None
    dtmf: DtmfPayload


TelephonyEvent = Annotated[
    Union[ConnectedEvent, StartEvent, MediaEvent, StopEvent, MarkEvent, DtmfEvent],
    Field(discriminator="event"),
]

_telephony_event_adapter = TypeAdapter(TelephonyEvent)

KNOWN_TELEPHONY_EVENTS = {
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_STOP,
    TELEPHONY_EVENT_MARK,
    TELEPHONY_EVENT_DTMF,
}


# Outbound messages
class OutboundMedia(BaseModel):
    payload: str = Field(..., description="Base64 mu-law audio, one frame")
    track: Optional[str] = Field(None, description="Optional send-direction label")


class OutboundMediaMessage(BaseModel):
    """Audio frame sent to the carrier."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMedia


class OutboundMarkMessage(BaseModel):
    """Named marker sent to the carrier."""

    event: Literal["mark"] = "mark"
    streamSid: str
    mark: MarkPayload


def parse_telephony_event(raw: str):
    """
    Parse one websocket text message from the carrier.

    Args:
        raw: JSON text of a single event

    Returns:
        The typed event, or None if the message is malformed or of an unknown kind
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Dropping unparseable telephony message: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning("Dropping telephony message that is not a JSON object")
        return None

    event_type = data.get("event")
    if not isinstance(event_type, str) or event_type not in KNOWN_TELEPHONY_EVENTS:
        logger.warning(f"Unknown telephony event received: {event_type}")
        return None

    try:
        return _telephony_event_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(f"Invalid {event_type} event: {e}")
        return None


def to_wire(message: BaseModel) -> str:
    """Serialize an outbound message, leaving out unset optional fields."""
    return message.model_dump_json(exclude_none=True)
