"""Abstract base classes for speech recognition backends."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..models.session import normalize_locale_id
from ..models.transcript import RecognitionResult

logger = logging.getLogger(__name__)


ResultHandler = Callable[[Optional[RecognitionResult], Optional[Exception]], None]
AvailabilityHandler = Callable[[bool], None]


class UnsupportedLocaleError(ValueError):
    """Raised when no recognizer can be constructed for a locale."""


class RecognitionError(RuntimeError):
    """Raised or delivered when the recognition service fails."""


class AbstractRecognitionTask(ABC):
    """One running recognition over a streaming request."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop recognition. No results are delivered after cancel returns."""
        pass

    @property
    @abstractmethod
    def is_cancelled(self) -> bool:
        pass


class AbstractSpeechRecognizer(ABC):
    """Abstract base class for streaming speech recognizers."""

    def __init__(self, locale_id: str):
        """Initialize recognizer for a locale."""
        self.locale_id = normalize_locale_id(locale_id)
        self.availability_handler: Optional[AvailabilityHandler] = None
        self._available = True

    @property
    def is_available(self) -> bool:
        """Whether the recognition service can currently be used."""
        return self._available

    def set_available(self, available: bool) -> None:
        """Record an availability change and notify the availability handler."""
        if available == self._available:
            return
        self._available = available
        logger.info(f"Recognizer for {self.locale_id} availability changed: {available}")
        if self.availability_handler is not None:
            self.availability_handler(available)

    @abstractmethod
    def recognition_task(self, request, result_handler: ResultHandler) -> AbstractRecognitionTask:
        """Start recognizing audio appended to `request`.

        Args:
            request: AudioBufferRecognitionRequest fed by the capture tap
            result_handler: Called with (result, None) for every transcription
                update and with (None, error) when recognition fails. May be
                called from a background thread, any number of times.

        Returns:
            The running task
        """
        pass
