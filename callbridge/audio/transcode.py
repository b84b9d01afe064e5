"""
Conversions between the telephony leg and the agent leg.

Caller audio arrives as 8 kHz mu-law and is handed to the agent either as
16 kHz PCM16 or, when the agent speaks mu-law itself, unchanged. Agent audio
takes the reverse path.
"""

import numpy as np

from callbridge.audio.codec import (
    mulaw_to_pcm16,
    pcm16_bytes_to_samples,
    pcm16_to_mulaw,
    resample,
    samples_to_pcm16_bytes,
)
from callbridge.config.constants import (
    AGENT_FORMAT_G711_ULAW,
    AGENT_SAMPLE_RATE,
    FALLBACK_TONE,
    FALLBACK_TONE_HZ,
    PCM16_BYTES_PER_SAMPLE,
    TELEPHONY_SAMPLE_RATE,
)


def agent_sample_rate(agent_format: str) -> int:
    return TELEPHONY_SAMPLE_RATE if agent_format == AGENT_FORMAT_G711_ULAW else AGENT_SAMPLE_RATE


def agent_bytes_per_sample(agent_format: str) -> int:
    return 1 if agent_format == AGENT_FORMAT_G711_ULAW else PCM16_BYTES_PER_SAMPLE


def caller_audio_to_agent(ulaw: bytes, agent_format: str) -> bytes:
    """
    Convert one caller media payload to the agent's input format.

    Args:
        ulaw: 8 kHz mu-law bytes from the carrier
        agent_format: Declared agent input format

    Returns:
        bytes: Audio ready for an append-input-audio message
    """
    if agent_format == AGENT_FORMAT_G711_ULAW:
        return ulaw
    pcm_8k = mulaw_to_pcm16(ulaw)
    pcm_16k = resample(pcm_8k, TELEPHONY_SAMPLE_RATE, AGENT_SAMPLE_RATE)
    return samples_to_pcm16_bytes(pcm_16k)


def agent_audio_to_telephony(chunk: bytes, agent_format: str) -> bytes:
    """
    Convert one agent audio delta to 8 kHz mu-law.

    Args:
        chunk: Decoded audio delta in the agent's output format
        agent_format: Declared agent output format

    Returns:
        bytes: mu-law bytes, not yet packetized
    """
    if agent_format == AGENT_FORMAT_G711_ULAW:
        return chunk
    pcm_16k = pcm16_bytes_to_samples(chunk)
    pcm_8k = resample(pcm_16k, AGENT_SAMPLE_RATE, TELEPHONY_SAMPLE_RATE)
    return pcm16_to_mulaw(pcm_8k)


def filler_audio(kind: str, duration_ms: int) -> bytes:
    """
    Synthesize keep-alive audio for the telephony leg.

    Args:
        kind: "silence" or "tone"
        duration_ms: Length of the filler in milliseconds

    Returns:
        bytes: 8 kHz mu-law filler
    """
    n = TELEPHONY_SAMPLE_RATE * duration_ms // 1000
    if kind == FALLBACK_TONE:
        t = np.arange(n) / TELEPHONY_SAMPLE_RATE
        # -12 dBFS
        tone = 0.25 * 32767 * np.sin(2 * np.pi * FALLBACK_TONE_HZ * t)
        return pcm16_to_mulaw(tone.astype(np.int16))
    return pcm16_to_mulaw(np.zeros(n, dtype=np.int16))
