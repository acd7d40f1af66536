"""Session event publisher for pub/sub observers such as the terminal UI."""

import logging
from typing import Any

from pubsub import pub

from ..models.events import SessionEvent

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes session events using pubsub.pub under a common topic prefix."""

    def __init__(self, session_id: str, topic_prefix: str = "session"):
        """Initialize session publisher.

        Args:
            session_id: Identifier stamped on every event
            topic_prefix: Root pub/sub topic; events go to ``<prefix>.<event_type>``
        """
        self.session_id = session_id
        self.topic_prefix = topic_prefix
        logger.info(f"SessionPublisher initialized with topic prefix: {topic_prefix}")

    def topic(self, event_type: str) -> str:
        return f"{self.topic_prefix}.{event_type}"

    def publish(self, event_type: str, **metadata: Any) -> None:
        """Publish one event; listener failures never reach the session."""
        event = SessionEvent(event_type=event_type, session_id=self.session_id, metadata=metadata)
        try:
            pub.sendMessage(self.topic(event_type), event=event)
        except Exception as e:
            logger.error(f"Error publishing {event_type} event: {e}")
