"""
Models module for call state and protocol messages.

Key components:
- call_session: Per-call state and its allowed lifecycle transitions.
- telephony_schemas: Pydantic models for the carrier media-stream protocol.
- agent_schemas: Pydantic models for the realtime voice agent protocol.
"""

from callbridge.models.call_session import CallSession, CallState, InvalidTransitionError
from callbridge.models.telephony_schemas import (
    MediaEvent,
    OutboundMarkMessage,
    OutboundMediaMessage,
    StartEvent,
    StopEvent,
    parse_telephony_event,
)
from callbridge.models.agent_schemas import (
    InputAudioAppendEvent,
    InputAudioCommitEvent,
    ResponseCreateEvent,
    SessionUpdateEvent,
    parse_agent_event,
)
