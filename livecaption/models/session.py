"""Session-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple


class SessionState(Enum):
    """Lifecycle of one recognition attempt."""
    IDLE = "idle"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(frozen=True)
class LocaleOption:
    """A language offered in the language-selection prompt."""
    locale_id: str
    title: str


SUPPORTED_LOCALES: Tuple[LocaleOption, ...] = (
    LocaleOption("vi-VN", "Tiếng Việt"),
    LocaleOption("en-US", "English (US)"),
    LocaleOption("en-GB", "English (UK)"),
    LocaleOption("de-DE", "Deutsch (DE)"),
)


def normalize_locale_id(locale_id: str) -> str:
    """Normalize a locale identifier to BCP-47 form ('en_us' -> 'en-US')."""
    parts = [part for part in locale_id.strip().replace("_", "-").split("-") if part]
    if not parts:
        raise ValueError(f"Invalid locale identifier: {locale_id!r}")

    normalized = [parts[0].lower()]
    for part in parts[1:]:
        if len(part) == 2:
            normalized.append(part.upper())
        elif len(part) == 4:
            normalized.append(part.title())
        else:
            normalized.append(part)
    return "-".join(normalized)


@dataclass(frozen=True)
class SessionConfiguration:
    """Locale chosen for one session. Immutable once the session starts."""
    locale_id: str

    def __post_init__(self):
        object.__setattr__(self, "locale_id", normalize_locale_id(self.locale_id))


@dataclass(frozen=True)
class ActiveSession:
    """Handles held while a session is running.

    The controller stores either an ActiveSession or None, so the four
    handles are always present together or absent together.
    """
    audio_session: Any
    capture: Any
    request: Any
    task: Any
