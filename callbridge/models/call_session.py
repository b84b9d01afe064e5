"""
Per-call state for the telephony <-> agent bridge.

This module provides the CallSession record owned by one bridge instance for the
lifetime of a phone call, and the table of state transitions it allows.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class CallState(str, Enum):
    """Lifecycle of a call."""
    CONNECTING = "connecting"
    AWAITING_AGENT = "awaiting_agent"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


ALLOWED_TRANSITIONS = {
    CallState.CONNECTING: {CallState.AWAITING_AGENT, CallState.CLOSING},
    CallState.AWAITING_AGENT: {CallState.ACTIVE, CallState.CLOSING},
    CallState.ACTIVE: {CallState.CLOSING},
    CallState.CLOSING: {CallState.CLOSED},
    CallState.CLOSED: set(),
}


class InvalidTransitionError(ValueError):
    """Raised when a call is moved along an edge not in ALLOWED_TRANSITIONS."""


@dataclass
class CallSession:
    """
    Mutable state of one active call.

    stream_sid is supplied by the carrier on call start and addresses every
    outbound message on the telephony leg. appended_sample_count counts agent-rate
    samples appended since the last commit. received_first_agent_audio is a
    one-way latch.
    """
    stream_sid: Optional[str] = None
    call_sid: Optional[str] = None
    state: CallState = CallState.CONNECTING
    agent_ready: bool = False
    turn_in_flight: bool = False
    appended_sample_count: int = 0
    received_first_agent_audio: bool = False
    tracks: List[str] = field(default_factory=list)
    custom_parameters: Dict[str, str] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def transition(self, target: CallState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move call {self.stream_sid} from {self.state.value} to {target.value}"
            )
        self.state = target

    @property
    def is_terminating(self) -> bool:
        return self.state in (CallState.CLOSING, CallState.CLOSED)
