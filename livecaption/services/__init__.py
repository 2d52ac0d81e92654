"""Services layer for LiveCaption application logic."""

from .session_controller import (
    NOT_AVAILABLE_MESSAGE,
    PERMISSION_DECLINED_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    SessionController,
)

__all__ = [
    "SessionController",
    "NOT_AVAILABLE_MESSAGE",
    "PERMISSION_DECLINED_MESSAGE",
    "SERVICE_UNAVAILABLE_MESSAGE",
]
