"""HTTP analysis backend posting recordings to a scoring service."""

import logging
from typing import Any, List, Optional

import aiohttp
from pydantic import ValidationError

from .base import AbstractAnalysisBackend, AnalysisError
from ..models.audio import RecordingArtifact
from ..models.matches import VoiceMatch

logger = logging.getLogger(__name__)


class RemoteAnalysisBackend(AbstractAnalysisBackend):
    """Sends one recording per request and parses the ranked matches."""

    service_name = "remote"

    def __init__(self, endpoint: str, api_key: Optional[str] = None):
        """Initialize remote backend.

        Args:
            endpoint: URL accepting a multipart upload with an ``audio`` field
            api_key: Optional bearer token
        """
        if not endpoint:
            raise ValueError("Analysis endpoint is required for the remote backend")
        self.endpoint = endpoint
        self.api_key = api_key
        logger.info(f"RemoteAnalysisBackend initialized with endpoint: {endpoint}")

    async def analyze(self, artifact: RecordingArtifact) -> List[VoiceMatch]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        form = aiohttp.FormData()
        form.add_field(
            "audio",
            artifact.data,
            filename=f"recitation{artifact.extension}",
            content_type=artifact.mime_type,
        )

        logger.info(f"Submitting {artifact.size_bytes} bytes ({artifact.mime_type}) for analysis")
        # Long-running by nature; no client-side timeout
        timeout = aiohttp.ClientTimeout(total=None)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise AnalysisError(f"Analysis service error: {response.status} - {error_text}")
                    payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"Analysis request failed: {e}")
            raise AnalysisError(f"Analysis request failed: {e}") from e
        except ValueError as e:
            raise AnalysisError(f"Analysis service returned invalid JSON: {e}") from e

        matches = self._parse_matches(payload)
        logger.info(f"Received {len(matches)} matches")
        return matches

    @staticmethod
    def _parse_matches(payload: Any) -> List[VoiceMatch]:
        items = payload.get("matches") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise AnalysisError("Analysis response does not contain a list of matches")
        try:
            return [VoiceMatch(**item) for item in items]
        except (TypeError, ValidationError) as e:
            raise AnalysisError(f"Malformed match in analysis response: {e}") from e
