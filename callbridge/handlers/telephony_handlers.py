"""
Handles events from the carrier's media-stream WebSocket.

Each handler receives one validated inbound event and the CallBridge for the
connection, and turns the event into the matching bridge operation.
"""

import logging

from callbridge.bot.call_bridge import CallBridge
from callbridge.config.constants import LOGGER_NAME
from callbridge.models.telephony_schemas import (
    ConnectedEvent,
    DtmfEvent,
    MarkEvent,
    MediaEvent,
    StartEvent,
    StopEvent,
)

logger = logging.getLogger(LOGGER_NAME)


async def handle_connected(event: ConnectedEvent, bridge: CallBridge) -> None:
    """
    Handle the connected event, sent once before start.

    Args:
        event: The connected event
        bridge: The bridge for this connection
    """
    logger.info(f"Media stream connected (protocol: {event.protocol}, version: {event.version})")


async def handle_start(event: StartEvent, bridge: CallBridge) -> None:
    """
    Handle the start event, which carries the stream id and opens the agent leg.

    Args:
        event: The start event
        bridge: The bridge for this connection
    """
    await bridge.on_call_start(event)


async def handle_media(event: MediaEvent, bridge: CallBridge) -> None:
    """
    Handle a media event carrying one chunk of caller audio.

    Args:
        event: The media event with base64 mu-law payload
        bridge: The bridge for this connection
    """
    await bridge.on_caller_audio(event.media.payload, event.media.track)


async def handle_stop(event: StopEvent, bridge: CallBridge) -> None:
    """Handle the stop event: flush caller audio and close both legs."""
    await bridge.on_call_stop()


async def handle_mark(event: MarkEvent, bridge: CallBridge) -> None:
    await bridge.on_caller_signal("mark", event.mark.name)


async def handle_dtmf(event: DtmfEvent, bridge: CallBridge) -> None:
    await bridge.on_caller_signal("dtmf", event.dtmf.digit)
