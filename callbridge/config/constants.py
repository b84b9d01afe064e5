"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for audio format parameters, protocol event names
and default settings for both legs of a call.
"""

# Logger name used throughout the application
LOGGER_NAME = "callbridge"

# Default agent model and voice
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_VOICE = "verse"

# Telephony leg: 8-bit mu-law, 8 kHz, mono
TELEPHONY_SAMPLE_RATE = 8000
TELEPHONY_BYTES_PER_SAMPLE = 1

# Agent leg: signed 16-bit little-endian PCM, 16 kHz, mono
AGENT_SAMPLE_RATE = 16000
PCM16_BYTES_PER_SAMPLE = 2

# Agent audio format names (as declared in the configure message)
AGENT_FORMAT_PCM16 = "pcm16"
AGENT_FORMAT_G711_ULAW = "g711_ulaw"
AGENT_AUDIO_FORMATS = (AGENT_FORMAT_PCM16, AGENT_FORMAT_G711_ULAW)

# Fallback audio kinds
FALLBACK_SILENCE = "silence"
FALLBACK_TONE = "tone"
FALLBACK_TONE_HZ = 400

# Name of the heartbeat marker sent to the telephony leg
HEARTBEAT_MARK_NAME = "tick"

# Inbound telephony event types
TELEPHONY_EVENT_CONNECTED = "connected"
TELEPHONY_EVENT_START = "start"
TELEPHONY_EVENT_MEDIA = "media"
TELEPHONY_EVENT_STOP = "stop"
TELEPHONY_EVENT_MARK = "mark"
TELEPHONY_EVENT_DTMF = "dtmf"

# Track label of the bridge's own audio echoed back by the carrier
TRACK_OUTBOUND = "outbound"

# Agent error codes after which the remote session is unusable
FATAL_AGENT_ERROR_CODES = frozenset(
    {
        "session_expired",
        "session_not_found",
        "invalid_api_key",
        "insufficient_quota",
    }
)

DEFAULT_INSTRUCTIONS = """
You are a friendly assistant answering calls on behalf of a small business owner
who is busy today; you are gathering quick details and answering immediate questions.
Be warm, brief, and genuinely conversational. Collect budget, location or postcode,
and what the caller needs the product for.
Handle quick questions politely; if unsure, promise to get back. No transfers.
End with a clear next step (you will pass the details on or arrange a callback).
""".strip()

DEFAULT_GREETING_INSTRUCTIONS = (
    "Greet the caller, say you are taking messages for the owner today, "
    "and ask whether now is a good time for a few quick questions."
)
