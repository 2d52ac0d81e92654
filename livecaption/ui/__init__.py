"""Terminal user interface for LiveCaption."""

from .dispatcher import UiDispatcher
from .keyboard_input import TapListener

__all__ = [
    "UiDispatcher",
    "TapListener",
]
