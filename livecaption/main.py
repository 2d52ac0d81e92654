"""Main application entry point for LiveCaption."""

import sys
import argparse
import logging
from functools import partial
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm

from . import __version__
from .audio.capture import AudioCapture
from .audio.session import AudioSession
from .config import LiveCaptionConfig
from .recognition.authorization import SpeechAuthorizer
from .recognition.google_backend import recognizer_for_locale
from .recognition.publisher import TranscriptPublisher
from .services.session_controller import SessionController
from .ui.dispatcher import UiDispatcher
from .ui.voice_screen import VoiceCaptionScreen

logger = logging.getLogger(__name__)


class Application:
    """Root screen: presents the voice screen full-screen once it appears."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        # Load configuration
        self.config = LiveCaptionConfig(config_path)
        # Command line overrides config
        if log_level:
            self.config.set("logging.level", log_level)
        self.settings = self.config.settings
        setup_logging(self.config, self.settings.logging.level)
        self.console = Console()
        self.screen: Optional[VoiceCaptionScreen] = None

    def init(self) -> None:
        logger.info("Initializing services...")
        settings = self.settings

        self.dispatcher = UiDispatcher()
        self.audio_session = AudioSession()
        self.capture = AudioCapture(
            self.audio_session,
            channels=settings.audio.channels,
            input_device_index=settings.audio.input_device_index,
        )

        consent_prompt = None
        if settings.recognition.require_consent:
            consent_prompt = partial(
                Confirm.ask,
                "LiveCaption sends your voice to Google Speech-to-Text. Allow speech recognition?",
                console=self.console,
            )
        self.authorizer = SpeechAuthorizer(
            credentials_path=settings.google_cloud.credentials_path,
            consent_prompt=consent_prompt,
        )

        recognizer_factory = partial(
            recognizer_for_locale,
            supported_locales=settings.recognition.supported_locales,
            credentials_path=settings.google_cloud.credentials_path,
            use_enhanced=settings.google_cloud.use_enhanced_model,
            enable_automatic_punctuation=settings.google_cloud.enable_automatic_punctuation,
            model=settings.google_cloud.model,
            interim_results=settings.recognition.interim_results,
            single_utterance=settings.recognition.single_utterance,
        )

        self.controller = SessionController(
            recognizer_factory=recognizer_factory,
            authorizer=self.authorizer,
            audio_session=self.audio_session,
            capture=self.capture,
            dispatcher=self.dispatcher,
            publisher=TranscriptPublisher(),
            buffer_size=settings.audio.buffer_size,
        )
        logger.info(f"Audio settings: {settings.audio.buffer_size} frames/buffer, "
                    f"{settings.audio.channels} channels")

    def run(self, locale_id: Optional[str] = None) -> None:
        """Present the voice screen and block until it is dismissed."""
        self.screen = VoiceCaptionScreen(self.controller, self.dispatcher, console=self.console)
        try:
            self.screen.run(locale_id or self.settings.recognition.default_locale)
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        if self.screen is not None:
            self.screen.dismiss()
        else:
            self.controller.stop()


def setup_logging(config: LiveCaptionConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.settings.logging.file_path
    console_output = config.settings.logging.console_output

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("LiveCaption application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for LiveCaption application."""
    parser = argparse.ArgumentParser(
        description="LiveCaption - live microphone transcription",
        epilog="Choose a language, speak, press any key to dismiss"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: livecaption.yaml if present)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--locale",
        type=str,
        help="Recognition language (e.g. en-US); skips the language prompt"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LiveCaption v{__version__}"
    )

    args = parser.parse_args()

    try:
        app = Application(args.config, args.log_level)
        app.init()
        app.run(args.locale)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
