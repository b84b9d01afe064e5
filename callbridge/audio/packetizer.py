"""
Frame packetizer for outbound telephony audio.

Splits an encoded buffer into fixed-size frames, one per transport message.
A trailing partial frame is never emitted.
"""

from typing import Iterator


def frame_byte_size(sample_rate: int, frame_ms: int, bytes_per_sample: int = 1) -> int:
    """Bytes in one frame, e.g. 160 for 20 ms of 8 kHz mu-law."""
    size = sample_rate * frame_ms // 1000 * bytes_per_sample
    if size <= 0:
        raise ValueError(f"Frame of {frame_ms} ms at {sample_rate} Hz is empty")
    return size


class FrameSequence:
    """
    Lazy, restartable view of a buffer as consecutive fixed-size frames.

    Each iteration starts again from the beginning of the buffer.
    """

    def __init__(self, buffer: bytes, frame_size: int):
        if frame_size <= 0:
            raise ValueError(f"Frame size must be positive, got {frame_size}")
        self.buffer = buffer
        self.frame_size = frame_size

    def __len__(self) -> int:
        return len(self.buffer) // self.frame_size

    def __iter__(self) -> Iterator[bytes]:
        for start in range(0, len(self) * self.frame_size, self.frame_size):
            yield bytes(self.buffer[start:start + self.frame_size])

    @property
    def remainder(self) -> bytes:
        """Bytes after the last whole frame."""
        return bytes(self.buffer[len(self) * self.frame_size:])


def packetize(buffer: bytes, frame_size: int) -> FrameSequence:
    """
    Slice a buffer into frames of exactly frame_size bytes.

    Args:
        buffer: Encoded audio bytes
        frame_size: Bytes per frame

    Returns:
        FrameSequence: The whole frames, in order; any remainder is dropped
    """
    return FrameSequence(buffer, frame_size)
