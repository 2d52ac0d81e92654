"""Process-wide audio session activation."""

import logging
import threading
from typing import Callable, Optional

import pyaudio

logger = logging.getLogger(__name__)


RECORD_CATEGORIES = ("record", "play_and_record")
KNOWN_CATEGORIES = RECORD_CATEGORIES + ("playback", "ambient")


class AudioSessionError(RuntimeError):
    """Raised when the audio session cannot be configured or activated."""


class AudioSession:
    """Owns the PortAudio runtime for the duration of a recording session.

    Only one AudioSession may be active in the process at a time. Activation
    initializes PortAudio and verifies that an input device exists;
    deactivation terminates PortAudio and releases ownership.
    """

    _ownership_lock = threading.Lock()
    _active_session: Optional["AudioSession"] = None

    def __init__(self, pyaudio_factory: Callable[[], pyaudio.PyAudio] = pyaudio.PyAudio):
        self.pyaudio_factory = pyaudio_factory
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.category = "ambient"
        self.mode = "default"
        self.duck_others = False

    @property
    def is_active(self) -> bool:
        return self.pyaudio_instance is not None

    def set_category(self, category: str, mode: str = "default", duck_others: bool = False) -> None:
        """Declare how the session will use audio."""
        if category not in KNOWN_CATEGORIES:
            raise AudioSessionError(f"Unknown audio session category: {category}")
        if self.is_active and category != self.category:
            raise AudioSessionError("Cannot change category of an active audio session")

        self.category = category
        self.mode = mode
        self.duck_others = duck_others
        logger.debug(f"Audio session category={category}, mode={mode}, duck_others={duck_others}")

    def set_active(self, active: bool) -> None:
        """Activate or deactivate the session.

        Deactivating an inactive session does nothing.
        """
        if active:
            self._activate()
        else:
            self._deactivate()

    def _activate(self) -> None:
        with AudioSession._ownership_lock:
            owner = AudioSession._active_session
            if owner is self:
                return
            if owner is not None:
                raise AudioSessionError("Audio session is already active for another owner")
            if self.category not in RECORD_CATEGORIES:
                raise AudioSessionError(f"Category '{self.category}' does not allow recording")

            try:
                instance = self.pyaudio_factory()
            except OSError as e:
                raise AudioSessionError(f"Failed to initialize PortAudio: {e}") from e

            try:
                device = instance.get_default_input_device_info()
            except (IOError, OSError) as e:
                instance.terminate()
                raise AudioSessionError(f"No audio input device available: {e}") from e

            self.pyaudio_instance = instance
            AudioSession._active_session = self
            logger.info(f"Audio session activated (input device: {device.get('name', 'unknown')})")

    def _deactivate(self) -> None:
        with AudioSession._ownership_lock:
            if self.pyaudio_instance is None:
                return

            instance, self.pyaudio_instance = self.pyaudio_instance, None
            if AudioSession._active_session is self:
                AudioSession._active_session = None
            instance.terminate()
            logger.info("Audio session deactivated")

    def require_instance(self) -> pyaudio.PyAudio:
        """Return the active PortAudio instance or raise."""
        if self.pyaudio_instance is None:
            raise AudioSessionError("Audio session is not active")
        return self.pyaudio_instance
