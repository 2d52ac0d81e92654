"""Terminal voice transcription screen."""

import logging
from typing import Optional, Sequence

from pubsub import pub
from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from .dispatcher import UiDispatcher
from .keyboard_input import TapListener
from ..models.session import LocaleOption, SessionState, SUPPORTED_LOCALES, normalize_locale_id
from ..models.transcript import TranscriptState
from ..services.session_controller import SessionController

logger = logging.getLogger(__name__)


PLACEHOLDER_TEXT = "Recognized text will appear here"
CANCEL_CHOICE = "c"


class VoiceCaptionScreen:
    """Full-screen view hosting one SessionController.

    On appearance the user picks a language; the transcript label then
    follows the controller's TranscriptState until a keypress dismisses the
    screen.
    """

    def __init__(self,
                 controller: SessionController,
                 dispatcher: UiDispatcher,
                 console: Optional[Console] = None,
                 locales: Sequence[LocaleOption] = SUPPORTED_LOCALES,
                 refresh_per_second: int = 10):
        self.controller = controller
        self.dispatcher = dispatcher
        self.console = console or Console()
        self.locales = list(locales)
        self.refresh_per_second = refresh_per_second

        self.transcript = controller.transcript
        self.state = controller.state
        self.locale: Optional[LocaleOption] = None
        self.is_dismissed = False
        self.tap_listener = TapListener(self.handle_tap)

        pub.subscribe(self._on_transcript, controller.publisher.transcript_topic)
        pub.subscribe(self._on_state, controller.publisher.state_topic)

    def _on_transcript(self, transcript: TranscriptState) -> None:
        self.transcript = transcript

    def _on_state(self, state: SessionState) -> None:
        self.state = state

    def show_language_selection(self) -> Optional[LocaleOption]:
        """Ask the user for a recognition language. Returns None on cancel."""
        table = Table(title="Select Language", show_header=False, box=None)
        table.add_column("Key", style="bold cyan")
        table.add_column("Language")
        for index, option in enumerate(self.locales, start=1):
            table.add_row(str(index), option.title)
        table.add_row(CANCEL_CHOICE, "Cancel")

        self.console.print(table)
        choices = [str(index) for index in range(1, len(self.locales) + 1)] + [CANCEL_CHOICE]
        answer = Prompt.ask(
            "Please choose a language for speech recognition",
            choices=choices,
            default=CANCEL_CHOICE,
            console=self.console,
        )
        if answer == CANCEL_CHOICE:
            logger.info("Language selection cancelled")
            return None
        return self.locales[int(answer) - 1]

    def appear(self, locale_id: Optional[str] = None) -> None:
        """Prompt for a language (unless given) and hand it to the controller."""
        if locale_id is None:
            option = self.show_language_selection()
            if option is None:
                return
            locale_id = option.locale_id
        try:
            normalized = normalize_locale_id(locale_id)
        except ValueError:
            normalized = locale_id
        self.locale = next((o for o in self.locales if o.locale_id == normalized), None)
        self.controller.select_locale(locale_id)

    def handle_tap(self) -> None:
        """Called from the tap listener thread."""
        self.dispatcher.post(self.dismiss)

    def dismiss(self) -> None:
        """Stop the session, waiting for teardown, and close the screen."""
        if self.is_dismissed:
            return
        self.is_dismissed = True
        self.tap_listener.stop()
        self.controller.stop()
        pub.unsubscribe(self._on_transcript, self.controller.publisher.transcript_topic)
        pub.unsubscribe(self._on_state, self.controller.publisher.state_topic)
        logger.info("Voice screen dismissed")

    def render(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="transcript", ratio=1),
            Layout(name="footer", size=3),
        )

        language = self.locale.title if self.locale else "No language selected"
        status_text = "● LISTENING" if self.transcript.is_processing else "■ IDLE"
        status_style = "bold red" if self.transcript.is_processing else "bold yellow"
        header_text = Text.assemble(
            ("LiveCaption", "bold blue"), "  |  ",
            language, "  |  ",
            (status_text, status_style),
        )
        layout["header"].update(Panel(Align.center(header_text), style="bright_blue"))

        if self.transcript.text:
            label = Text(self.transcript.text, style="bold white", justify="center")
        else:
            label = Text(PLACEHOLDER_TEXT, style="dim italic", justify="center")
        layout["transcript"].update(Panel(Align.center(label, vertical="middle"), border_style="white"))

        stats = self.controller.capture.get_recording_stats()
        level_bar = "█" * int(stats.peak_level * 20)
        footer_text = Text.assemble(
            ("Level ", "bold"), (f"{level_bar:<20}", "green"), "  ",
            ("Press any key to dismiss", "dim"),
        )
        layout["footer"].update(Panel(Align.center(footer_text), style="bright_black"))
        return layout

    def run(self, locale_id: Optional[str] = None) -> None:
        """Show the screen until dismissed."""
        try:
            self.appear(locale_id)
            self.tap_listener.start()
            interval = 1.0 / self.refresh_per_second
            with Live(self.render(), console=self.console,
                      refresh_per_second=self.refresh_per_second, screen=True) as live:
                while not self.is_dismissed:
                    self.dispatcher.drain(timeout=interval)
                    live.update(self.render())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.dismiss()
