"""Offline backend returning the fixed reference reciters."""

import asyncio
import logging
from typing import List

from .base import AbstractAnalysisBackend
from ..models.audio import RecordingArtifact
from ..models.matches import VoiceMatch

logger = logging.getLogger(__name__)


SAMPLE_MATCHES = [
    VoiceMatch(
        name="Sheikh Mishary Rashid Alafasy",
        similarity=87,
        country="Kuwait",
        audio_url="https://www.learningcontainer.com/wp-content/uploads/2020/02/Kalimba.mp3",
        description="Known for his melodious and heart-touching recitation style",
    ),
    VoiceMatch(
        name="Sheikh Abdul Rahman As-Sudais",
        similarity=82,
        country="Saudi Arabia",
        audio_url="https://file-examples.com/storage/fe68c8a7c4bb3b2b8e8140f/2017/11/file_example_MP3_700KB.mp3",
        description="Imam of Masjid al-Haram with a distinctive powerful voice",
    ),
    VoiceMatch(
        name="Sheikh Saad Al-Ghamdi",
        similarity=78,
        country="Saudi Arabia",
        audio_url="https://www.soundjay.com/misc/sounds/bell-ringing-05.wav",
        description="Popular for his clear pronunciation and emotional delivery",
    ),
]


class SampleAnalysisBackend(AbstractAnalysisBackend):
    """Demo backend: ignores the audio and returns the sample ranking."""

    service_name = "sample"

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.calls = 0

    async def analyze(self, artifact: RecordingArtifact) -> List[VoiceMatch]:
        self.calls += 1
        logger.info(f"Sample analysis of {artifact.size_bytes} bytes")
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        return list(SAMPLE_MATCHES)
