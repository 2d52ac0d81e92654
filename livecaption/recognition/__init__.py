"""Speech recognition module for LiveCaption."""

from .base import (
    AbstractRecognitionTask,
    AbstractSpeechRecognizer,
    RecognitionError,
    UnsupportedLocaleError,
)
from .authorization import AuthorizationStatus, SpeechAuthorizer, load_credentials
from .google_backend import GoogleRecognitionTask, GoogleSpeechRecognizer, recognizer_for_locale
from .publisher import TranscriptPublisher
from .request import AudioBufferRecognitionRequest

__all__ = [
    "AbstractRecognitionTask",
    "AbstractSpeechRecognizer",
    "RecognitionError",
    "UnsupportedLocaleError",
    "AuthorizationStatus",
    "SpeechAuthorizer",
    "load_credentials",
    "GoogleRecognitionTask",
    "GoogleSpeechRecognizer",
    "recognizer_for_locale",
    "TranscriptPublisher",
    "AudioBufferRecognitionRequest",
]
