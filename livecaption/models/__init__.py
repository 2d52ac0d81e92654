"""Data models for the LiveCaption application."""

from .audio import AudioFormat, AudioStats
from .events import AudioEvent
from .session import (
    ActiveSession,
    LocaleOption,
    SessionConfiguration,
    SessionState,
    SUPPORTED_LOCALES,
    normalize_locale_id,
)
from .transcript import RecognitionResult, TranscriptState

__all__ = [
    "AudioFormat",
    "AudioStats",
    "AudioEvent",
    "ActiveSession",
    "LocaleOption",
    "SessionConfiguration",
    "SessionState",
    "SUPPORTED_LOCALES",
    "normalize_locale_id",
    "RecognitionResult",
    "TranscriptState",
]
