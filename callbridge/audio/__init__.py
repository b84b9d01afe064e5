"""
Audio module for transcoding between the telephony and agent legs.

Key components:
- codec: G.711 mu-law encode/decode and the 8 kHz <-> 16 kHz linear resampler.
- packetizer: Slices encoded audio into fixed-size frames for transport messages.
- transcode: Per-direction conversions and keep-alive filler synthesis.
"""

from callbridge.audio.codec import (
    decode_sample,
    encode_sample,
    mulaw_to_pcm16,
    pcm16_to_mulaw,
    resample,
)
from callbridge.audio.packetizer import FrameSequence, frame_byte_size, packetize

__all__ = [
    "decode_sample",
    "encode_sample",
    "mulaw_to_pcm16",
    "pcm16_to_mulaw",
    "resample",
    "FrameSequence",
    "frame_byte_size",
    "packetize",
]
