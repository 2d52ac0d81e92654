"""Unit tests for the Google Speech-to-Text backend (no network)."""

import pytest
import threading
from unittest.mock import MagicMock, Mock

from google.api_core import exceptions as gax_exceptions
from google.cloud import speech

from livecaption.models.audio import AudioFormat
from livecaption.recognition.base import RecognitionError, UnsupportedLocaleError
from livecaption.recognition.google_backend import (
    GoogleSpeechRecognizer,
    extract_recognition_result,
    recognizer_for_locale,
)
from livecaption.recognition.request import AudioBufferRecognitionRequest


def make_response(*parts, is_final=False, stability=0.0, confidence=0.0):
    results = [
        speech.StreamingRecognitionResult(
            alternatives=[speech.SpeechRecognitionAlternative(transcript=part, confidence=confidence)],
            is_final=is_final,
            stability=stability,
        )
        for part in parts
    ]
    return speech.StreamingRecognizeResponse(results=results)


class ResultCollector:
    def __init__(self):
        self.calls = []

    def __call__(self, result, error):
        self.calls.append((result, error))


@pytest.fixture
def mock_client():
    return Mock(spec=["streaming_recognize"])


@pytest.fixture
def recognizer(mock_client):
    return GoogleSpeechRecognizer("en-US", client=mock_client)


@pytest.fixture
def request_48k():
    return AudioBufferRecognitionRequest(AudioFormat(sample_rate=48000))


@pytest.mark.unit
class TestExtractRecognitionResult:

    def test_empty_response(self):
        assert extract_recognition_result(speech.StreamingRecognizeResponse()) is None

    def test_final_result(self):
        result = extract_recognition_result(make_response("hello world", is_final=True, confidence=0.9))

        assert result.text == "hello world"
        assert result.is_final is True
        assert result.confidence == pytest.approx(0.9)

    def test_interim_parts_are_joined(self):
        result = extract_recognition_result(make_response("to be", " or not to be", stability=0.8))

        assert result.text == "to be or not to be"
        assert result.is_final is False
        assert result.stability == pytest.approx(0.8)


@pytest.mark.unit
class TestGoogleRecognitionTask:

    def test_results_delivered_in_order(self, recognizer, mock_client, request_48k):
        mock_client.streaming_recognize.return_value = iter([
            make_response("hel"),
            make_response("hello"),
            make_response("hello there", is_final=True),
        ])
        collector = ResultCollector()

        task = recognizer.recognition_task(request_48k, collector)
        assert task.wait(timeout=2.0)

        assert [(result.text, result.is_final) for result, _ in collector.calls] == [
            ("hel", False), ("hello", False), ("hello there", True)
        ]
        assert all(error is None for _, error in collector.calls)
        assert request_48k.is_ended

    def test_requests_carry_appended_audio(self, recognizer, mock_client, request_48k):
        sent = []

        def streaming_recognize(config, requests):
            sent.extend(request.audio_content for request in requests)
            return iter([])

        mock_client.streaming_recognize.side_effect = streaming_recognize
        request_48k.append(b'\x01' * 10)
        request_48k.append(b'\x02' * 10)
        request_48k.end_audio()

        task = recognizer.recognition_task(request_48k, ResultCollector())
        assert task.wait(timeout=2.0)

        assert sent == [b'\x01' * 10, b'\x02' * 10]
        config = mock_client.streaming_recognize.call_args.args[0]
        assert config.config.sample_rate_hertz == 48000
        assert config.config.language_code == "en-US"

    def test_service_unavailable_marks_recognizer_unavailable(self, recognizer, mock_client, request_48k):
        mock_client.streaming_recognize.side_effect = gax_exceptions.ServiceUnavailable("backend down")
        availability = MagicMock()
        recognizer.availability_handler = availability
        collector = ResultCollector()

        task = recognizer.recognition_task(request_48k, collector)
        assert task.wait(timeout=2.0)

        availability.assert_called_once_with(False)
        assert recognizer.is_available is False
        assert len(collector.calls) == 1
        result, error = collector.calls[0]
        assert result is None
        assert isinstance(error, RecognitionError)

    def test_api_error_delivered(self, recognizer, mock_client, request_48k):
        mock_client.streaming_recognize.side_effect = gax_exceptions.InvalidArgument("bad config")
        collector = ResultCollector()

        task = recognizer.recognition_task(request_48k, collector)
        assert task.wait(timeout=2.0)

        assert isinstance(collector.calls[0][1], RecognitionError)
        assert recognizer.is_available is True

    def test_cancel_from_result_handler_stops_delivery(self, recognizer, mock_client, request_48k):
        task_ready = threading.Event()

        def responses():
            task_ready.wait(timeout=2.0)
            yield make_response("first", is_final=True)
            yield make_response("second")

        mock_client.streaming_recognize.return_value = responses()
        calls = []
        tasks = []

        def handler(result, error):
            calls.append(result)
            tasks[0].cancel()

        tasks.append(recognizer.recognition_task(request_48k, handler))
        task_ready.set()
        assert tasks[0].wait(timeout=2.0)

        assert [result.text for result in calls] == ["first"]
        assert tasks[0].is_cancelled

    def test_cancel_from_other_thread(self, recognizer, mock_client, request_48k):
        release = threading.Event()

        def responses():
            release.wait(timeout=2.0)
            yield make_response("late")

        mock_client.streaming_recognize.return_value = responses()
        collector = ResultCollector()

        task = recognizer.recognition_task(request_48k, collector)
        threading.Timer(0.1, release.set).start()
        task.cancel()
        task.cancel()

        assert task.wait(timeout=2.0)
        assert task.is_cancelled
        assert request_48k.is_ended
        assert collector.calls == []

    def test_handler_errors_are_contained(self, recognizer, mock_client, request_48k):
        mock_client.streaming_recognize.return_value = iter([make_response("a"), make_response("b")])
        handler = Mock(side_effect=ValueError("listener bug"))

        task = recognizer.recognition_task(request_48k, handler)
        assert task.wait(timeout=2.0)

        assert handler.call_count == 2


@pytest.mark.unit
class TestGoogleSpeechRecognizer:

    def test_build_streaming_config(self):
        recognizer = GoogleSpeechRecognizer(
            "vi_vn", client=Mock(), use_enhanced=True, model="latest_long", single_utterance=True
        )

        streaming_config = recognizer.build_streaming_config(44100, channels=1)

        assert streaming_config.interim_results is True
        assert streaming_config.single_utterance is True
        assert streaming_config.config.language_code == "vi-VN"
        assert streaming_config.config.sample_rate_hertz == 44100
        assert streaming_config.config.encoding == speech.RecognitionConfig.AudioEncoding.LINEAR16
        assert streaming_config.config.model == "latest_long"
        assert streaming_config.config.use_enhanced is True

    def test_missing_credentials_raise_recognition_error(self, tmp_path, request_48k):
        recognizer = GoogleSpeechRecognizer("en-US", credentials_path=str(tmp_path / "missing.json"))

        with pytest.raises(RecognitionError):
            recognizer.recognition_task(request_48k, ResultCollector())

    def test_availability_notifies_only_on_change(self, recognizer):
        handler = MagicMock()
        recognizer.availability_handler = handler

        recognizer.set_available(True)
        recognizer.set_available(False)
        recognizer.set_available(False)

        handler.assert_called_once_with(False)


@pytest.mark.unit
class TestRecognizerForLocale:

    @pytest.mark.parametrize("locale_id,expected", [
        ("vi-VN", "vi-VN"),
        ("en_us", "en-US"),
        ("en-GB", "en-GB"),
        ("de-de", "de-DE"),
    ])
    def test_supported_locales(self, locale_id, expected):
        recognizer = recognizer_for_locale(locale_id, client=Mock())

        assert isinstance(recognizer, GoogleSpeechRecognizer)
        assert recognizer.locale_id == expected

    def test_unsupported_locale(self):
        with pytest.raises(UnsupportedLocaleError):
            recognizer_for_locale("fr-FR")

    def test_blank_locale(self):
        with pytest.raises(UnsupportedLocaleError):
            recognizer_for_locale("  ")

    def test_custom_supported_list(self):
        recognizer = recognizer_for_locale("fr-FR", supported_locales=["fr-FR"], client=Mock())

        assert recognizer.locale_id == "fr-FR"
