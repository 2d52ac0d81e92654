"""Authorization to use the speech recognition service."""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import google.auth
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class AuthorizationStatus(Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    RESTRICTED = "restricted"
    AUTHORIZED = "authorized"


def load_credentials(credentials_path: Optional[str] = None):
    """Load Google credentials from a service account file or the environment.

    Raises:
        google.auth.exceptions.DefaultCredentialsError: if no credentials are found
        FileNotFoundError: if `credentials_path` does not exist
    """
    if credentials_path:
        if not Path(credentials_path).exists():
            raise FileNotFoundError(f"Google credentials file not found: {credentials_path}")
        logger.info(f"Loading Google credentials from: {credentials_path}")
        return service_account.Credentials.from_service_account_file(credentials_path)

    credentials, project_id = google.auth.default()
    logger.info(f"Using application default credentials (project: {project_id})")
    return credentials


class SpeechAuthorizer:
    """Grants or denies use of speech recognition.

    Authorization requires usable Google credentials and, when a consent
    prompt is configured, the user's agreement. The consent answer is
    remembered for the lifetime of the authorizer.
    """

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 consent_prompt: Optional[Callable[[], bool]] = None):
        """Initialize authorizer.

        Args:
            credentials_path: Service account JSON file; application default
                credentials are used when None
            consent_prompt: Asks the user for permission, returns True if granted.
                Called on the thread that requests authorization.
        """
        self.credentials_path = credentials_path
        self.consent_prompt = consent_prompt
        self.consent: Optional[bool] = None
        self.status = AuthorizationStatus.NOT_DETERMINED

    def request_authorization(self, handler: Callable[[AuthorizationStatus], None]) -> None:
        """Resolve authorization in the background and call `handler` once.

        `handler` runs on a background thread.
        """
        if self.consent_prompt is not None and self.consent is None:
            self.consent = bool(self.consent_prompt())
            logger.info(f"User consent for speech recognition: {self.consent}")

        thread = threading.Thread(target=self._authorize, args=(handler,), daemon=True)
        thread.name = "SpeechAuthorizationThread"
        thread.start()

    def _authorize(self, handler: Callable[[AuthorizationStatus], None]) -> None:
        self.status = self._resolve_status()
        logger.info(f"Speech recognition authorization: {self.status.value}")
        handler(self.status)

    def _resolve_status(self) -> AuthorizationStatus:
        if self.consent is False:
            return AuthorizationStatus.DENIED
        try:
            load_credentials(self.credentials_path)
        except FileNotFoundError as e:
            logger.warning(f"Authorization denied: {e}")
            return AuthorizationStatus.DENIED
        except (auth_exceptions.DefaultCredentialsError, ValueError) as e:
            logger.warning(f"Authorization denied, credentials unusable: {e}")
            return AuthorizationStatus.DENIED
        return AuthorizationStatus.AUTHORIZED
