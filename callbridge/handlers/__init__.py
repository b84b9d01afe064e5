"""
Handlers module for carrier media-stream events.

Key components:
- telephony_handlers: One handler per inbound event kind (connected, start, media,
  stop, mark, dtmf), each mapping the event onto the call's CallBridge.
"""
