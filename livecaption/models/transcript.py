"""Transcript-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RecognitionResult:
    """Best transcription carried by one recognition callback."""
    text: str
    is_final: bool = False
    confidence: float = 0.0
    stability: float = 0.0


@dataclass(frozen=True)
class TranscriptState:
    """What the screen shows: the latest text and whether audio is being captured."""
    text: Optional[str] = None
    is_processing: bool = False
