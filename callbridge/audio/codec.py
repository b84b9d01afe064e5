"""
G.711 mu-law codec and linear resampler.

Pure functions converting between 8-bit mu-law telephony samples and signed
16-bit linear samples, plus a linear-interpolation resampler for the 8 kHz <->
16 kHz hop between the telephony and agent legs. Nothing here keeps state.

Buffers of linear samples are numpy int16 arrays; on the wire they are
little-endian 16-bit PCM.
"""

import logging

import numpy as np

from callbridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

# Standard G.711 mu-law constants
BIAS = 0x84
CLIP = 32635
SIGN_BIT = 0x80
QUANT_MASK = 0x0F
SEG_SHIFT = 4
SEG_MASK = 0x70

PCM16_DTYPE = np.dtype("<i2")

# Segment (exponent) of a biased magnitude, indexed by magnitude >> 7
_EXPONENT_LUT = np.array([max(i.bit_length() - 1, 0) for i in range(256)], dtype=np.int32)


def decode_sample(ulaw_byte: int) -> int:
    """Decode one mu-law byte to a signed 16-bit linear sample."""
    u = ~ulaw_byte & 0xFF
    t = ((u & QUANT_MASK) << 3) + BIAS
    t <<= (u & SEG_MASK) >> SEG_SHIFT
    return BIAS - t if u & SIGN_BIT else t - BIAS


def encode_sample(sample: int) -> int:
    """
    Encode one signed 16-bit linear sample to a mu-law byte.

    Magnitudes beyond the largest representable value saturate.
    """
    sign = SIGN_BIT if sample < 0 else 0
    magnitude = min(abs(sample), CLIP) + BIAS
    exponent = int(_EXPONENT_LUT[(magnitude >> 7) & 0xFF])
    mantissa = (magnitude >> (exponent + 3)) & QUANT_MASK
    return ~(sign | (exponent << SEG_SHIFT) | mantissa) & 0xFF


# Every mu-law byte decodes through this table
_DECODE_TABLE = np.array([decode_sample(i) for i in range(256)], dtype=np.int16)


def mulaw_to_pcm16(data: bytes) -> np.ndarray:
    """
    Decode a mu-law buffer to linear samples.

    Args:
        data: mu-law encoded bytes, one sample per byte

    Returns:
        np.ndarray: int16 samples, same length as the input
    """
    if not data:
        return np.zeros(0, dtype=np.int16)
    return _DECODE_TABLE[np.frombuffer(data, dtype=np.uint8)]


def pcm16_to_mulaw(samples: np.ndarray) -> bytes:
    """
    Encode linear samples to a mu-law buffer.

    Args:
        samples: int16 samples

    Returns:
        bytes: mu-law encoded bytes, one per sample
    """
    if samples.size == 0:
        return b""
    s = samples.astype(np.int32)
    sign = np.where(s < 0, SIGN_BIT, 0)
    magnitude = np.minimum(np.abs(s), CLIP) + BIAS
    exponent = _EXPONENT_LUT[(magnitude >> 7) & 0xFF]
    mantissa = (magnitude >> (exponent + 3)) & QUANT_MASK
    encoded = ~(sign | (exponent << SEG_SHIFT) | mantissa) & 0xFF
    return encoded.astype(np.uint8).tobytes()


def resample(samples: np.ndarray, rate_in: int, rate_out: int) -> np.ndarray:
    """
    Resample by linear interpolation between neighbouring samples.

    This is not band-limited; some aliasing is accepted in exchange for a
    cheap, allocation-light conversion that is safe on the real-time path.

    Args:
        samples: int16 samples at rate_in
        rate_in: Input sample rate in Hz
        rate_out: Output sample rate in Hz

    Returns:
        np.ndarray: int16 samples at rate_out; the input itself when the rates match
    """
    if rate_in <= 0 or rate_out <= 0:
        raise ValueError(f"Sample rates must be positive, got {rate_in} -> {rate_out}")
    if rate_in == rate_out:
        return samples

    n = len(samples)
    out_len = n * rate_out // rate_in
    if out_len == 0:
        return np.zeros(0, dtype=np.int16)

    ratio = rate_out / rate_in
    position = np.arange(out_len, dtype=np.float64) / ratio
    i0 = np.floor(position).astype(np.int64)
    i1 = np.minimum(i0 + 1, n - 1)
    frac = position - i0

    src = samples.astype(np.float64)
    out = src[i0] * (1.0 - frac) + src[i1] * frac
    # Truncate toward zero
    return out.astype(np.int16)


def pcm16_bytes_to_samples(data: bytes) -> np.ndarray:
    """Interpret little-endian PCM16 bytes as samples; a trailing odd byte is ignored."""
    usable = len(data) - (len(data) % 2)
    if usable != len(data):
        logger.debug(f"Dropping trailing odd byte of a {len(data)}-byte PCM16 buffer")
    if usable == 0:
        return np.zeros(0, dtype=np.int16)
    return np.frombuffer(data, dtype=PCM16_DTYPE, count=usable // 2).astype(np.int16)


def samples_to_pcm16_bytes(samples: np.ndarray) -> bytes:
    return samples.astype(PCM16_DTYPE).tobytes()
