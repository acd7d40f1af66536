"""Session-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .faults import SessionFault
from .matches import VoiceMatch


class SessionPhase(Enum):
    """Lifecycle phase of a recitation session."""
    IDLE = "idle"
    RECORDING = "recording"
    REVIEWING = "reviewing"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    RESULTS = "results"


@dataclass
class SessionStatus:
    """Point-in-time view of a session for display."""
    phase: SessionPhase = SessionPhase.IDLE
    elapsed_seconds: int = 0
    max_duration_seconds: int = 120
    current_level: float = 0.0
    analysis_progress: float = 0.0
    artifact_size_bytes: Optional[int] = None
    device_fault: Optional[SessionFault] = None
    silence_fault: Optional[SessionFault] = None
    analysis_fault: Optional[SessionFault] = None
    matches: List[VoiceMatch] = field(default_factory=list)

    @property
    def has_recording(self) -> bool:
        return self.artifact_size_bytes is not None

    @property
    def faults(self) -> List[SessionFault]:
        return [f for f in (self.device_fault, self.silence_fault, self.analysis_fault) if f]
