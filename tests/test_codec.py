"""
Unit tests for the mu-law codec and the linear resampler.
"""

from unittest.mock import patch

import numpy as np
import pytest

from callbridge.audio.codec import (
    decode_sample,
    encode_sample,
    mulaw_to_pcm16,
    pcm16_bytes_to_samples,
    pcm16_to_mulaw,
    resample,
    samples_to_pcm16_bytes,
)


def test_decode_is_total_over_all_bytes():
    for byte in range(256):
        sample = decode_sample(byte)
        assert -32768 <= sample <= 32767


def test_decode_known_values():
    assert decode_sample(0xFF) == 0
    assert decode_sample(0x7F) == 0
    assert decode_sample(0x00) == -32124
    assert decode_sample(0x80) == 32124


def test_encode_known_values():
    assert encode_sample(0) == 0xFF
    assert encode_sample(32767) == 0x80
    assert encode_sample(-32768) == 0x00


def test_encode_saturates_instead_of_wrapping():
    assert encode_sample(32767) == encode_sample(32635)
    assert encode_sample(-32768) == encode_sample(-32635)


def test_encode_decode_error_is_bounded():
    for sample in range(-32768, 32768, 97):
        restored = decode_sample(encode_sample(sample))
        assert abs(restored - sample) <= abs(sample) / 16 + 8


def test_buffer_decode_matches_scalar():
    data = bytes(range(256))
    decoded = mulaw_to_pcm16(data)
    assert decoded.dtype == np.int16
    assert decoded.tolist() == [decode_sample(b) for b in data]


def test_buffer_encode_matches_scalar():
    samples = np.arange(-32768, 32768, 31, dtype=np.int32).astype(np.int16)
    encoded = pcm16_to_mulaw(samples)
    assert len(encoded) == len(samples)
    assert list(encoded) == [encode_sample(int(s)) for s in samples]


def test_empty_buffers():
    assert mulaw_to_pcm16(b"").size == 0
    assert pcm16_to_mulaw(np.zeros(0, dtype=np.int16)) == b""
    assert resample(np.zeros(0, dtype=np.int16), 8000, 16000).size == 0


@pytest.mark.parametrize("rate", [8000, 16000, 44100])
def test_resample_same_rate_is_identity(rate):
    samples = np.array([1, -2, 3, 32767, -32768], dtype=np.int16)
    assert resample(samples, rate, rate) is samples
    empty = np.zeros(0, dtype=np.int16)
    assert resample(empty, rate, rate) is empty


@pytest.mark.parametrize(
    "length, rate_in, rate_out, expected",
    [
        (160, 8000, 16000, 320),
        (161, 8000, 16000, 322),
        (320, 16000, 8000, 160),
        (161, 16000, 8000, 80),
        (1, 16000, 8000, 0),
    ],
)
def test_resample_output_length(length, rate_in, rate_out, expected):
    samples = np.ones(length, dtype=np.int16)
    assert len(resample(samples, rate_in, rate_out)) == expected


def test_upsample_interpolates_and_clamps_at_end():
    samples = np.array([0, 100], dtype=np.int16)
    assert resample(samples, 8000, 16000).tolist() == [0, 50, 100, 100]


def test_downsample_takes_every_other_sample():
    samples = np.array([0, 10, 20, 30], dtype=np.int16)
    assert resample(samples, 16000, 8000).tolist() == [0, 20]


def test_resample_truncates_toward_zero():
    samples = np.array([-3, 0], dtype=np.int16)
    assert resample(samples, 8000, 16000).tolist() == [-3, -1, 0, 0]


def test_resample_rejects_non_positive_rates():
    with pytest.raises(ValueError):
        resample(np.ones(4, dtype=np.int16), 0, 8000)


def test_pcm16_bytes_round_trip_little_endian():
    samples = np.array([1, -1, 256], dtype=np.int16)
    data = samples_to_pcm16_bytes(samples)
    assert data == b"\x01\x00\xff\xff\x00\x01"
    assert pcm16_bytes_to_samples(data).tolist() == [1, -1, 256]


def test_pcm16_bytes_ignores_trailing_odd_byte():
    with patch("callbridge.audio.codec.logger") as mock_logger:
        assert pcm16_bytes_to_samples(b"\x01\x00\x02").tolist() == [1]
        assert pcm16_bytes_to_samples(b"\x01").size == 0
        assert mock_logger.debug.call_count == 2

        pcm16_bytes_to_samples(b"\x01\x00")
        assert mock_logger.debug.call_count == 2
