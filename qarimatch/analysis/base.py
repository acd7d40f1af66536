"""Abstract base classes for recitation analysis backends."""

from abc import ABC, abstractmethod
from typing import List
import logging

from ..models.audio import RecordingArtifact
from ..models.matches import VoiceMatch

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when a backend cannot produce matches for a recording."""


class AbstractAnalysisBackend(ABC):
    """Abstract base class for analysis backends."""

    service_name = "analysis"

    @abstractmethod
    async def analyze(self, artifact: RecordingArtifact) -> List[VoiceMatch]:
        """Rank reference reciters against a recording.

        Args:
            artifact: Finalized recording (payload and mime type)

        Returns:
            Matches ordered best first

        Raises:
            AnalysisError: the backend failed
        """
        pass

    async def close(self) -> None:
        """Clean up backend resources."""
        pass
