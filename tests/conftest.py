"""Pytest configuration and fixtures for LiveCaption tests."""

import pytest
import tempfile
import logging
from unittest.mock import Mock, patch
import numpy as np
from pubsub import pub

from livecaption.audio.capture import CaptureStartError
from livecaption.audio.session import AudioSession, AudioSessionError
from livecaption.models.audio import AudioFormat, AudioStats
from livecaption.models.events import AudioEvent
from livecaption.models.transcript import RecognitionResult
from livecaption.recognition.authorization import AuthorizationStatus
from livecaption.recognition.base import (
    AbstractRecognitionTask,
    AbstractSpeechRecognizer,
    UnsupportedLocaleError,
)
from livecaption.recognition.publisher import TranscriptPublisher
from livecaption.services.session_controller import SessionController
from livecaption.ui.dispatcher import UiDispatcher


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: several real components wired together")
    config.addinivalue_line("markers", "hardware: requires a real microphone")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop pub/sub listeners registered by a test."""
    yield
    pub.unsubAll()


@pytest.fixture(autouse=True)
def release_audio_session():
    """Make sure no test leaves the process-wide audio session claimed."""
    yield
    AudioSession._active_session = None


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 frames of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t) * 0.5

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None
        mock_stream.is_active.return_value = True

        # Configure mock PyAudio instance
        device_info = {"index": 0, "name": "Mock Microphone", "defaultSampleRate": 44100.0, "maxInputChannels": 1}
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = device_info
        mock_pyaudio_instance.get_device_info_by_index.return_value = device_info

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


class FakeRecognitionTask(AbstractRecognitionTask):
    """Recognition task whose results are delivered by the test."""

    def __init__(self, request, result_handler):
        self.request = request
        self.result_handler = result_handler
        self.cancel_calls = 0

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_calls > 0

    def cancel(self) -> None:
        self.cancel_calls += 1
        self.request.end_audio()

    def deliver(self, text: str, is_final: bool = False) -> None:
        self.result_handler(RecognitionResult(text=text, is_final=is_final), None)

    def fail(self, error: Exception) -> None:
        self.result_handler(None, error)


class FakeRecognizer(AbstractSpeechRecognizer):
    def __init__(self, locale_id: str, available: bool = True):
        super().__init__(locale_id)
        self._available = available
        self.tasks = []

    def recognition_task(self, request, result_handler):
        task = FakeRecognitionTask(request, result_handler)
        self.tasks.append(task)
        return task


class FakeAuthorizer:
    """Authorizer that replies only when the test says so."""

    def __init__(self):
        self.handlers = []

    @property
    def request_count(self) -> int:
        return len(self.handlers)

    def request_authorization(self, handler) -> None:
        self.handlers.append(handler)

    def reply(self, status: AuthorizationStatus) -> None:
        self.handlers[-1](status)


class FakeAudioSession:
    def __init__(self, fail_activation: bool = False):
        self.fail_activation = fail_activation
        self.is_active = False
        self.category = None
        self.activations = 0
        self.deactivations = 0

    def set_category(self, category, mode="default", duck_others=False):
        self.category = (category, mode, duck_others)

    def set_active(self, active: bool) -> None:
        if active:
            if self.fail_activation:
                raise AudioSessionError("activation refused")
            self.activations += 1
            self.is_active = True
        elif self.is_active:
            self.deactivations += 1
            self.is_active = False


class FakeCapture:
    """Capture graph stand-in; the test feeds buffers through `feed()`."""

    def __init__(self, sample_rate: int = 48000, fail_on_start: bool = False):
        self.audio_format = AudioFormat(sample_rate=sample_rate)
        self.fail_on_start = fail_on_start
        self.tap_callback = None
        self.tap_buffer_size = None
        self.tap_installs = 0
        self.is_prepared = False
        self.is_running = False
        self.start_calls = 0
        self.sequence = 0

    def input_format(self) -> AudioFormat:
        return self.audio_format

    def install_tap(self, callback, buffer_size=1024, audio_format=None):
        if self.tap_callback is not None:
            raise RuntimeError("tap already installed")
        self.tap_callback = callback
        self.tap_buffer_size = buffer_size
        self.tap_installs += 1

    def remove_tap(self):
        self.tap_callback = None

    def prepare(self):
        self.is_prepared = True

    def start(self):
        self.start_calls += 1
        if self.fail_on_start:
            raise CaptureStartError("engine failed to start")
        self.is_running = True

    def stop(self):
        self.is_running = False
        self.is_prepared = False

    def feed(self, audio_data: bytes) -> None:
        self.sequence += 1
        if self.tap_callback is not None:
            self.tap_callback(AudioEvent(
                audio_data=audio_data,
                frame_count=len(audio_data) // 2,
                sequence_number=self.sequence,
                timestamp=0.0,
                sample_rate=self.audio_format.sample_rate,
            ))

    def get_recording_stats(self) -> AudioStats:
        return AudioStats(
            is_running=self.is_running,
            duration_seconds=0.0,
            sample_rate=self.audio_format.sample_rate,
            buffer_size=self.tap_buffer_size or 0,
            total_chunks=self.sequence,
            peak_level=0.25,
        )


class ControllerHarness:
    """A SessionController wired to fakes."""

    def __init__(self, unavailable_locales=(), unsupported_locales=(), fail_on_start=False,
                 fail_activation=False, audio_session=None, capture=None):
        self.unavailable_locales = set(unavailable_locales)
        self.unsupported_locales = set(unsupported_locales)
        self.recognizers = []
        self.dispatcher = UiDispatcher()
        self.authorizer = FakeAuthorizer()
        self.audio_session = audio_session or FakeAudioSession(fail_activation=fail_activation)
        self.capture = capture or FakeCapture(fail_on_start=fail_on_start)
        self.controller = SessionController(
            recognizer_factory=self.make_recognizer,
            authorizer=self.authorizer,
            audio_session=self.audio_session,
            capture=self.capture,
            dispatcher=self.dispatcher,
            publisher=TranscriptPublisher(),
        )

    def make_recognizer(self, locale_id: str) -> FakeRecognizer:
        if locale_id in self.unsupported_locales:
            raise UnsupportedLocaleError(locale_id)
        recognizer = FakeRecognizer(locale_id, available=locale_id not in self.unavailable_locales)
        self.recognizers.append(recognizer)
        return recognizer

    @property
    def task(self) -> FakeRecognitionTask:
        return self.recognizers[-1].tasks[-1]

    def authorize(self, status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED) -> None:
        self.authorizer.reply(status)
        self.dispatcher.drain()

    def start_running(self, locale_id: str = "en-US") -> None:
        assert self.controller.select_locale(locale_id)
        self.authorize()


@pytest.fixture
def harness():
    return ControllerHarness()


class EventRecorder:
    """Collects pub/sub messages; keeps a strong reference to its listeners."""

    def __init__(self, publisher: TranscriptPublisher):
        self.states = []
        self.transcripts = []
        pub.subscribe(self.on_state, publisher.state_topic)
        pub.subscribe(self.on_transcript, publisher.transcript_topic)

    def on_state(self, state):
        self.states.append(state)

    def on_transcript(self, transcript):
        self.transcripts.append(transcript)


@pytest.fixture
def make_harness():
    """Factory for harnesses with failure knobs."""
    return ControllerHarness


@pytest.fixture
def recorder(harness):
    return EventRecorder(harness.controller.publisher)


@pytest.fixture
def make_recorder():
    return EventRecorder
