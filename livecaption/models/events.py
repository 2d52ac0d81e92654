"""Event models for captured audio buffers."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AudioEvent:
    """One PCM buffer delivered by the capture graph's tap."""
    audio_data: bytes
    frame_count: int
    sequence_number: int
    timestamp: float  # Unix timestamp when the buffer was delivered
    sample_rate: int
    channels: int = 1
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate buffer duration if not provided."""
        if self.chunk_duration_ms is None and self.sample_rate:
            self.chunk_duration_ms = int(self.frame_count * 1000 / self.sample_rate)
