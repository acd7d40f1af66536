"""Reference-voice match models returned by analysis backends."""

from typing import Optional

from pydantic import BaseModel, Field


class VoiceMatch(BaseModel):
    """One ranked reference reciter match."""
    name: str
    similarity: float = Field(..., ge=0, le=100)
    country: str = ""
    audio_url: Optional[str] = None
    description: str = ""

    @property
    def rounded_similarity(self) -> int:
        return int(round(self.similarity))
