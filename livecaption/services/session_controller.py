"""Session controller: one recognition session from locale choice to teardown."""

import logging
from dataclasses import replace
from typing import Callable, Optional

from ..audio.capture import AudioCapture, CaptureStartError, DEFAULT_BUFFER_SIZE
from ..audio.session import AudioSession, AudioSessionError
from ..models.session import ActiveSession, SessionConfiguration, SessionState
from ..models.transcript import RecognitionResult, TranscriptState
from ..recognition.authorization import AuthorizationStatus, SpeechAuthorizer
from ..recognition.base import AbstractSpeechRecognizer, RecognitionError, UnsupportedLocaleError
from ..recognition.publisher import TranscriptPublisher
from ..recognition.request import AudioBufferRecognitionRequest
from ..ui.dispatcher import UiDispatcher

logger = logging.getLogger(__name__)


NOT_AVAILABLE_MESSAGE = "Speech recognition is not available for the selected language."
PERMISSION_DECLINED_MESSAGE = "Speech recognition permission was declined."
SERVICE_UNAVAILABLE_MESSAGE = "Speech recognition is unavailable right now, sorry."

RecognizerFactory = Callable[[str], AbstractSpeechRecognizer]


class SessionController:
    """Owns the lifecycle of one recognition session.

    All state changes happen on the UI thread: callbacks from the
    authorization, capture and recognition threads are posted through the
    dispatcher before they touch the controller.

    Idle -> AwaitingAuthorization -> Starting -> Running -> Idle
    """

    def __init__(self,
                 recognizer_factory: RecognizerFactory,
                 authorizer: SpeechAuthorizer,
                 audio_session: AudioSession,
                 capture: AudioCapture,
                 dispatcher: UiDispatcher,
                 publisher: Optional[TranscriptPublisher] = None,
                 buffer_size: int = DEFAULT_BUFFER_SIZE):
        self.recognizer_factory = recognizer_factory
        self.authorizer = authorizer
        self.audio_session = audio_session
        self.capture = capture
        self.dispatcher = dispatcher
        self.publisher = publisher or TranscriptPublisher()
        self.buffer_size = buffer_size

        self.configuration: Optional[SessionConfiguration] = None
        self.recognizer: Optional[AbstractSpeechRecognizer] = None
        self._session: Optional[ActiveSession] = None
        self._state = SessionState.IDLE
        self._transcript = TranscriptState()

        # Bumped on every new attempt and every stop; callbacks carrying an
        # older value belong to an abandoned attempt.
        self._attempt = 0
        self._authorization_requested = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transcript(self) -> TranscriptState:
        return self._transcript

    @property
    def session(self) -> Optional[ActiveSession]:
        return self._session

    @property
    def is_processing(self) -> bool:
        return self._transcript.is_processing

    def select_locale(self, locale_id: str) -> bool:
        """Choose the recognition language and, if available, ask for authorization.

        Returns:
            True if the locale is available and authorization was requested
        """
        if self._state is not SessionState.IDLE:
            logger.info(f"Locale selected while {self._state.value}; stopping current session first")
            self.stop()

        try:
            configuration = SessionConfiguration(locale_id)
            recognizer = self.recognizer_factory(configuration.locale_id)
        except (UnsupportedLocaleError, ValueError) as e:
            logger.warning(f"No recognizer for locale {locale_id}: {e}")
            recognizer = None

        if recognizer is None or not recognizer.is_available:
            logger.warning(f"Speech recognition not available for {locale_id}")
            self._update_transcript(text=NOT_AVAILABLE_MESSAGE)
            return False

        self._attempt += 1
        self._authorization_requested = False
        self.configuration = configuration
        self.recognizer = recognizer
        recognizer.availability_handler = self._availability_handler()
        logger.info(f"Locale selected: {configuration.locale_id}")

        self._set_state(SessionState.AWAITING_AUTHORIZATION)
        self.request_authorization()
        return True

    def request_authorization(self) -> None:
        """Ask for permission to use speech recognition.

        The reply arrives asynchronously; capture only starts once it is a grant.
        """
        if self._state is not SessionState.AWAITING_AUTHORIZATION:
            logger.warning(f"Authorization requested while {self._state.value}; ignoring")
            return
        if self._authorization_requested:
            logger.warning("Authorization already requested for this attempt; ignoring")
            return

        self._authorization_requested = True
        attempt = self._attempt

        def on_status(status: AuthorizationStatus) -> None:
            self.dispatcher.post(lambda: self._handle_authorization(attempt, status))

        self.authorizer.request_authorization(on_status)

    def _handle_authorization(self, attempt: int, status: AuthorizationStatus) -> None:
        if attempt != self._attempt or self._state is not SessionState.AWAITING_AUTHORIZATION:
            logger.debug(f"Ignoring authorization reply for abandoned attempt {attempt}")
            return

        if status is AuthorizationStatus.AUTHORIZED:
            logger.info("Permission granted")
            self.start()
        else:
            logger.info(f"Permission denied ({status.value})")
            self._update_transcript(text=PERMISSION_DECLINED_MESSAGE)
            self.stop()

    def start(self) -> bool:
        """Activate audio, open the recognition task and start capturing.

        Returns:
            True if the session is running
        """
        if self._session is not None:
            logger.warning("Session already running")
            return True
        if self.recognizer is None:
            logger.warning("Cannot start without a selected locale")
            return False

        self._set_state(SessionState.STARTING)
        attempt = self._attempt
        request: Optional[AudioBufferRecognitionRequest] = None
        task = None
        try:
            self.audio_session.set_category("record", mode="measurement", duck_others=True)
            self.audio_session.set_active(True)

            audio_format = self.capture.input_format()
            request = AudioBufferRecognitionRequest(audio_format)
            if not self.recognizer.is_available:
                raise RecognitionError(f"Recognizer for {self.recognizer.locale_id} became unavailable")

            self.capture.install_tap(request.append, buffer_size=self.buffer_size, audio_format=audio_format)
            task = self.recognizer.recognition_task(request, self._result_handler(attempt))

            self.capture.prepare()
            self.capture.start()
        except (AudioSessionError, CaptureStartError, RecognitionError) as e:
            logger.warning(f"Couldn't start speech recognition: {e}")
            self._release(task, request)
            self.stop()
            return False

        self._session = ActiveSession(
            audio_session=self.audio_session,
            capture=self.capture,
            request=request,
            task=task,
        )
        self._set_state(SessionState.RUNNING)
        self._update_transcript(is_processing=True)
        logger.info(f"Speech recognition running ({audio_format.sample_rate}Hz, "
                    f"{self.buffer_size} frames/buffer)")
        return True

    def stop(self) -> None:
        """Tear down whatever part of the session exists. Idempotent.

        Safe to call from a recognition result handler.
        """
        session, self._session = self._session, None
        self._attempt += 1
        self._authorization_requested = False

        if session is not None:
            self._release(session.task, session.request)
        else:
            self._release(None, None)

        if self.recognizer is not None:
            self.recognizer.availability_handler = None
        self.recognizer = None
        self.configuration = None

        self._set_state(SessionState.IDLE)
        self._update_transcript(is_processing=False)

    def _release(self, task, request: Optional[AudioBufferRecognitionRequest]) -> None:
        """Run every teardown step, even when an earlier one fails."""
        if task is not None:
            try:
                task.cancel()
            except Exception as e:
                logger.warning(f"Error cancelling recognition task: {e}")
        try:
            self.capture.stop()
        except Exception as e:
            logger.warning(f"Error stopping audio capture: {e}")
        try:
            self.capture.remove_tap()
        except Exception as e:
            logger.warning(f"Error removing audio tap: {e}")
        if request is not None:
            request.end_audio()
        try:
            self.audio_session.set_active(False)
        except Exception as e:
            logger.warning(f"Error deactivating audio session: {e}")

    def on_availability_changed(self, available: bool) -> None:
        """React to the recognition service becoming (un)available."""
        if available:
            logger.info("Speech recognition became available")
            return
        if self._state is SessionState.IDLE:
            logger.info("Speech recognition became unavailable while idle")
            return

        logger.warning("Speech recognition became unavailable mid-session")
        self._update_transcript(text=SERVICE_UNAVAILABLE_MESSAGE)
        self.stop()

    def _availability_handler(self) -> Callable[[bool], None]:
        def on_availability(available: bool) -> None:
            self.dispatcher.post(lambda: self.on_availability_changed(available))
        return on_availability

    def _result_handler(self, attempt: int):
        def on_result(result: Optional[RecognitionResult], error: Optional[Exception]) -> None:
            self.dispatcher.post(lambda: self._handle_recognition(attempt, result, error))
        return on_result

    def _handle_recognition(self, attempt: int,
                            result: Optional[RecognitionResult],
                            error: Optional[Exception]) -> None:
        if attempt != self._attempt:
            logger.debug(f"Ignoring recognition callback for abandoned attempt {attempt}")
            return

        if result is not None:
            self._update_transcript(text=result.text)

        if error is not None:
            logger.warning(f"Recognition ended with error: {error}")
            self.stop()
        elif result is not None and result.is_final:
            logger.info("Final recognition result received")
            self.stop()

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Session state: {self._state.value} -> {state.value}")
        self._state = state
        self.publisher.publish_state(state)

    def _update_transcript(self, **changes) -> None:
        transcript = replace(self._transcript, **changes)
        if transcript == self._transcript:
            return
        self._transcript = transcript
        self.publisher.publish_transcript(transcript)
