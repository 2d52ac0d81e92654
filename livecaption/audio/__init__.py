"""Audio capture and audio session module."""

from .capture import AudioCapture, CaptureStartError, peak_level
from .session import AudioSession, AudioSessionError

__all__ = [
    'AudioCapture',
    'AudioSession',
    'AudioSessionError',
    'CaptureStartError',
    'peak_level',
]
