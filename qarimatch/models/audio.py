"""Audio-related data models."""

from dataclasses import dataclass, field
from datetime import datetime


MIME_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/webm": ".webm",
    "audio/mp4": ".m4a",
}


@dataclass(frozen=True)
class CaptureProfile:
    """Requested input device settings for one recording."""
    sample_rate: int = 44100
    channels: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_width: int = 2  # 16-bit PCM


@dataclass(frozen=True)
class RecordingArtifact:
    """Finalized encoded audio produced by one completed recording."""
    data: bytes
    mime_type: str
    sample_rate: int
    channels: int
    duration_seconds: float
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """File extension matching the artifact's native format."""
        base_type = self.mime_type.split(";")[0].strip()
        return MIME_EXTENSIONS.get(base_type, ".bin")


@dataclass
class RecordingStats:
    """Recording statistics."""
    is_recording: bool
    elapsed_seconds: int
    max_duration_seconds: int
    total_chunks: int
    total_bytes: int
    loudness_samples: int
    current_level: float
