"""Streaming recognition request: the sink captured buffers are appended to."""

import logging
import queue
import threading
from typing import Iterator, Union

from ..models.audio import AudioFormat
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class AudioBufferRecognitionRequest:
    """Append-only, thread-safe audio sink paired with one recognition task.

    Buffers are yielded by `audio_chunks()` in the order they were appended.
    """

    def __init__(self, audio_format: AudioFormat):
        self.audio_format = audio_format
        self._queue: "queue.Queue" = queue.Queue()
        self._ended = threading.Event()
        self.appended_count = 0
        self.appended_bytes = 0

    @property
    def is_ended(self) -> bool:
        return self._ended.is_set()

    def append(self, buffer: Union[AudioEvent, bytes]) -> None:
        """Append one captured buffer, unchanged."""
        audio_data = buffer.audio_data if isinstance(buffer, AudioEvent) else buffer
        if self._ended.is_set():
            logger.debug(f"Dropping {len(audio_data)} bytes appended after end of audio")
            return
        if not audio_data:
            return

        self._queue.put(audio_data)
        self.appended_count += 1
        self.appended_bytes += len(audio_data)

    def end_audio(self) -> None:
        """Mark the end of the audio stream. Idempotent."""
        if self._ended.is_set():
            return
        self._ended.set()
        # Sentinel unblocks the consumer
        self._queue.put(None)
        logger.debug(f"End of audio after {self.appended_count} buffers ({self.appended_bytes} bytes)")

    def audio_chunks(self) -> Iterator[bytes]:
        """Yield appended buffers until end_audio() is called."""
        while True:
            chunk = self._queue.get()
            if chunk is None:
                return
            yield chunk
