"""Audio capture graph: a microphone input stream with a single buffer tap."""

import time
import logging
from datetime import datetime
from typing import Callable, Optional

import numpy as np
import pyaudio

from .session import AudioSession, AudioSessionError
from ..models.audio import AudioFormat, AudioStats
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


DEFAULT_BUFFER_SIZE = 1024


class CaptureStartError(RuntimeError):
    """Raised when the capture graph cannot be started."""


def peak_level(audio_data: bytes) -> float:
    """Peak amplitude of a 16-bit PCM buffer, scaled to 0.0 - 1.0."""
    if not audio_data:
        return 0.0
    samples = np.frombuffer(audio_data, dtype=np.int16)
    if samples.size == 0:
        return 0.0
    return float(np.abs(samples.astype(np.int32)).max()) / 32768.0


class AudioCapture:
    """Microphone capture driven by PortAudio callbacks.

    Buffers are delivered to the installed tap on the PortAudio callback
    thread, in capture order and unmodified.
    """

    def __init__(
        self,
        audio_session: AudioSession,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        input_device_index: Optional[int] = None,
    ):
        """Initialize the capture graph.

        Args:
            audio_session: Session providing the PortAudio runtime
            channels: Number of audio channels (1 for mono)
            format: Sample format (16-bit signed int)
            input_device_index: Input device, or None for the system default
        """
        self.audio_session = audio_session
        self.channels = channels
        self.format = format
        self.input_device_index = input_device_index

        self.stream = None
        self.is_running = False

        # Tap
        self.tap_callback: Optional[Callable[[AudioEvent], None]] = None
        self.tap_buffer_size = DEFAULT_BUFFER_SIZE
        self.tap_format: Optional[AudioFormat] = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.peak_level = 0.0

    def input_format(self) -> AudioFormat:
        """Native format of the input device. Requires an active audio session.

        Raises:
            CaptureStartError: if the input device cannot be queried
        """
        instance = self.audio_session.require_instance()
        try:
            if self.input_device_index is None:
                info = instance.get_default_input_device_info()
            else:
                info = instance.get_device_info_by_index(self.input_device_index)
        except OSError as e:
            raise CaptureStartError(f"Input device {self.input_device_index} unavailable: {e}") from e

        return AudioFormat(
            sample_rate=int(info["defaultSampleRate"]),
            channels=self.channels,
            sample_width=pyaudio.get_sample_size(self.format),
        )

    def install_tap(
        self,
        callback: Callable[[AudioEvent], None],
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        audio_format: Optional[AudioFormat] = None,
    ) -> None:
        """Attach the listener that receives every captured buffer."""
        if self.tap_callback is not None:
            raise RuntimeError("A tap is already installed on the capture input")

        self.tap_callback = callback
        self.tap_buffer_size = buffer_size
        self.tap_format = audio_format
        logger.debug(f"Tap installed: {buffer_size} frames/buffer")

    def remove_tap(self) -> None:
        """Detach the buffer listener. No-op when none is installed."""
        if self.tap_callback is None:
            return
        self.tap_callback = None
        self.tap_format = None
        logger.debug("Tap removed")

    def prepare(self) -> None:
        """Open the input stream without starting it."""
        if self.stream is not None:
            return

        try:
            audio_format = self.tap_format or self.input_format()
            instance = self.audio_session.require_instance()
            self.stream = instance.open(
                format=self.format,
                channels=audio_format.channels,
                rate=audio_format.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.tap_buffer_size,
                stream_callback=self._on_audio,
                start=False,
            )
        except (AudioSessionError, OSError, ValueError) as e:
            raise CaptureStartError(f"Couldn't open audio input stream: {e}") from e

        self.tap_format = audio_format
        logger.info(f"Audio stream opened: {audio_format.sample_rate}Hz, "
                    f"{self.tap_buffer_size} frames/buffer")

    def start(self) -> None:
        """Start delivering buffers to the tap.

        Raises:
            CaptureStartError: if the input stream cannot be opened or started
        """
        if self.is_running:
            logger.warning("Capture already running")
            return

        self.prepare()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.peak_level = 0.0
        try:
            self.stream.start_stream()
        except OSError as e:
            self._close_stream()
            raise CaptureStartError(f"Couldn't start audio input stream: {e}") from e

        self.is_running = True
        logger.info("Audio capture started")

    def stop(self) -> None:
        """Stop the input stream. Safe to call when not running."""
        was_running = self.is_running
        self.is_running = False
        self._close_stream()
        if was_running:
            logger.info(f"Audio capture stopped. Total chunks: {self.total_chunks}")

    def _close_stream(self) -> None:
        stream, self.stream = self.stream, None
        if stream is None:
            return
        try:
            if stream.is_active():
                stream.stop_stream()
        finally:
            stream.close()

    def _on_audio(self, in_data, frame_count, time_info, status_flags):
        """PortAudio callback: forward one buffer to the tap."""
        if status_flags:
            logger.debug(f"Input status flags: {status_flags}")

        self.total_chunks += 1
        self.peak_level = peak_level(in_data)

        callback = self.tap_callback
        if callback is not None and in_data:
            audio_format = self.tap_format
            event = AudioEvent(
                audio_data=in_data,
                frame_count=frame_count,
                sequence_number=self.total_chunks,
                timestamp=time.time(),
                sample_rate=audio_format.sample_rate if audio_format else 0,
                channels=audio_format.channels if audio_format else self.channels,
            )
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in audio tap callback: {e}", exc_info=True)

        return (None, pyaudio.paContinue)

    def get_recording_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time and self.is_running:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_running=self.is_running,
            duration_seconds=duration,
            sample_rate=self.tap_format.sample_rate if self.tap_format else 0,
            buffer_size=self.tap_buffer_size,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )
