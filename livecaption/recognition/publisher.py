"""Transcript publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.session import SessionState
from ..models.transcript import TranscriptState

logger = logging.getLogger(__name__)


TRANSCRIPT_TOPIC = "transcript.updated"
STATE_TOPIC = "session.state"


class TranscriptPublisher:
    """Publishes transcript and session state changes using pubsub.pub."""

    def __init__(self, transcript_topic: str = TRANSCRIPT_TOPIC, state_topic: str = STATE_TOPIC):
        """Initialize transcript publisher.

        Args:
            transcript_topic: Pub/sub topic for TranscriptState updates
            state_topic: Pub/sub topic for SessionState transitions
        """
        self.transcript_topic = transcript_topic
        self.state_topic = state_topic
        logger.info(f"TranscriptPublisher initialized with topics: {transcript_topic}, {state_topic}")

    def publish_transcript(self, transcript: TranscriptState) -> None:
        pub.sendMessage(self.transcript_topic, transcript=transcript)
        logger.debug(f"Published transcript: processing={transcript.is_processing}, "
                     f"text={(transcript.text or '')[:50]!r}")

    def publish_state(self, state: SessionState) -> None:
        pub.sendMessage(self.state_topic, state=state)
        logger.debug(f"Published session state: {state.value}")
