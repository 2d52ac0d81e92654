"""LiveCaption - live microphone transcription on a single screen."""

__version__ = "0.1.0"
