"""Audio-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioFormat:
    """PCM format of the buffers produced by the capture graph."""
    sample_rate: int
    channels: int = 1
    sample_width: int = 2  # bytes, 16-bit signed


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_running: bool
    duration_seconds: float
    sample_rate: int
    buffer_size: int
    total_chunks: int
    peak_level: float = 0.0  # 0.0 - 1.0, peak of the most recent buffer
