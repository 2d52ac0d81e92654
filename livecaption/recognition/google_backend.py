"""Google Speech-to-Text streaming recognition backend."""

import logging
import threading
from typing import Iterable, Optional, Sequence

from .authorization import load_credentials
from .base import (
    AbstractRecognitionTask,
    AbstractSpeechRecognizer,
    RecognitionError,
    ResultHandler,
    UnsupportedLocaleError,
)
from .request import AudioBufferRecognitionRequest
from ..models.session import SUPPORTED_LOCALES, normalize_locale_id
from ..models.transcript import RecognitionResult

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions

logger = logging.getLogger(__name__)


def extract_recognition_result(response: speech.StreamingRecognizeResponse) -> Optional[RecognitionResult]:
    """Reduce one streaming response to its best transcription.

    Interim results split the utterance into a stable prefix and unstable
    tails; their top alternatives are joined into one string.
    """
    if not response.results:
        return None

    transcripts = []
    for result in response.results:
        if result.alternatives:
            transcripts.append(result.alternatives[0].transcript)
    if not transcripts:
        return None

    first = response.results[0]
    confidence = first.alternatives[0].confidence if first.alternatives else 0.0
    return RecognitionResult(
        text="".join(transcripts).strip(),
        is_final=bool(first.is_final),
        confidence=confidence,
        stability=first.stability,
    )


class GoogleRecognitionTask(AbstractRecognitionTask):
    """Drives one `streaming_recognize` call on a background thread."""

    def __init__(self,
                 client: speech.SpeechClient,
                 streaming_config: speech.StreamingRecognitionConfig,
                 request: AudioBufferRecognitionRequest,
                 result_handler: ResultHandler,
                 on_service_unavailable=None):
        self.client = client
        self.streaming_config = streaming_config
        self.request = request
        self.result_handler = result_handler
        self.on_service_unavailable = on_service_unavailable

        self._cancelled = threading.Event()
        self._responses = None
        self.responses_received = 0
        self.thread: Optional[threading.Thread] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = f"GoogleRecognitionTask-{id(self):x}"
        self.thread.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the task thread exits. Returns True if it did."""
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()

    def cancel(self) -> None:
        """Cancel recognition.

        Safe to call from the result handler itself: the task thread never
        waits on itself.
        """
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self.request.end_audio()

        responses = self._responses
        if responses is not None and hasattr(responses, "cancel"):
            responses.cancel()

        if self.thread is not None and self.thread is not threading.current_thread():
            if not self.wait(timeout=1.0):
                logger.warning("Recognition task did not stop cleanly")
        logger.info("Recognition task cancelled")

    def _requests(self) -> Iterable[speech.StreamingRecognizeRequest]:
        for chunk in self.request.audio_chunks():
            if self._cancelled.is_set():
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _run(self) -> None:
        try:
            self._responses = self.client.streaming_recognize(self.streaming_config, self._requests())
            for response in self._responses:
                if self._cancelled.is_set():
                    break
                self.responses_received += 1
                if response.speech_event_type == speech.StreamingRecognizeResponse.SpeechEventType.END_OF_SINGLE_UTTERANCE:
                    logger.debug("End of single utterance detected")

                result = extract_recognition_result(response)
                if result is None:
                    continue
                logger.debug(f"Transcript='{result.text}' (final={result.is_final}, stability={result.stability:.2f})")
                self._deliver(result, None)
        except gax_exceptions.Cancelled:
            if not self._cancelled.is_set():
                self._deliver(None, RecognitionError("Google Speech stream was cancelled"))
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable: %s", e)
            if self.on_service_unavailable is not None and not self._cancelled.is_set():
                self.on_service_unavailable()
            self._deliver(None, RecognitionError(f"Google Speech service unavailable: {e}"))
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error: %s", e)
            self._deliver(None, RecognitionError(f"Google Speech API error: {e}"))
        except Exception as e:
            logger.error(f"Unhandled exception in recognition task: {e}", exc_info=True)
            self._deliver(None, RecognitionError(f"Recognition failed: {e}"))
        finally:
            self.request.end_audio()
            logger.debug(f"Recognition task finished after {self.responses_received} responses")

    def _deliver(self, result: Optional[RecognitionResult], error: Optional[Exception]) -> None:
        if self._cancelled.is_set():
            return
        try:
            self.result_handler(result, error)
        except Exception as e:
            logger.error(f"Unhandled exception in recognition result handler: {e}", exc_info=True)


class GoogleSpeechRecognizer(AbstractSpeechRecognizer):
    """Google Speech-to-Text streaming recognizer for one locale."""

    def __init__(self,
                 locale_id: str,
                 credentials_path: Optional[str] = None,
                 use_enhanced: bool = False,
                 enable_automatic_punctuation: bool = True,
                 model: Optional[str] = None,
                 interim_results: bool = True,
                 single_utterance: bool = False,
                 client: Optional[speech.SpeechClient] = None):
        """Initialize Google Speech recognizer.

        Args:
            locale_id: Language code (e.g., 'en-US', 'vi-VN')
            credentials_path: Path to Google Cloud service account JSON file;
                application default credentials are used when None
            use_enhanced: Whether to use the enhanced model
            enable_automatic_punctuation: Enable automatic punctuation
            model: Recognition model name, or None for the service default
            interim_results: Deliver partial transcripts while speaking
            single_utterance: End recognition after the first utterance
            client: Pre-built client, created lazily from credentials when None
        """
        super().__init__(locale_id)
        self.credentials_path = credentials_path
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.model = model
        self.interim_results = interim_results
        self.single_utterance = single_utterance
        self.client = client
        self.service_name = "Google Speech-to-Text"

    def _get_client(self) -> speech.SpeechClient:
        if self.client is None:
            try:
                credentials = load_credentials(self.credentials_path)
            except (FileNotFoundError, auth_exceptions.DefaultCredentialsError, ValueError) as e:
                raise RecognitionError(f"Google credentials unusable: {e}") from e
            self.client = speech.SpeechClient(credentials=credentials)
            logger.info("Google Speech-to-Text client initialized")
        return self.client

    def build_streaming_config(self, sample_rate: int, channels: int = 1) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=self.locale_id,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
        )
        if self.model:
            config.model = self.model
        return speech.StreamingRecognitionConfig(
            config=config,
            interim_results=self.interim_results,
            single_utterance=self.single_utterance,
        )

    def recognition_task(self, request: AudioBufferRecognitionRequest,
                         result_handler: ResultHandler) -> GoogleRecognitionTask:
        audio_format = request.audio_format
        logger.debug(f"Language: {self.locale_id}; Sample rate: {audio_format.sample_rate}; "
                     f"Enhanced model: {self.use_enhanced}; Auto punctuation: {self.enable_automatic_punctuation}")
        task = GoogleRecognitionTask(
            client=self._get_client(),
            streaming_config=self.build_streaming_config(audio_format.sample_rate, audio_format.channels),
            request=request,
            result_handler=result_handler,
            on_service_unavailable=lambda: self.set_available(False),
        )
        task.start()
        logger.info(f"{self.service_name} recognition started for {self.locale_id}")
        return task


def recognizer_for_locale(locale_id: str,
                          supported_locales: Optional[Sequence[str]] = None,
                          **kwargs) -> GoogleSpeechRecognizer:
    """Construct a recognizer for `locale_id`.

    Raises:
        UnsupportedLocaleError: if the locale is not in `supported_locales`
    """
    if supported_locales is None:
        supported_locales = [option.locale_id for option in SUPPORTED_LOCALES]
    try:
        normalized = normalize_locale_id(locale_id)
    except ValueError as e:
        raise UnsupportedLocaleError(str(e)) from e

    if normalized not in {normalize_locale_id(locale) for locale in supported_locales}:
        raise UnsupportedLocaleError(f"No speech recognizer for locale: {locale_id}")
    return GoogleSpeechRecognizer(normalized, **kwargs)
