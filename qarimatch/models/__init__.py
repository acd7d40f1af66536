"""Data models for the QariMatch application."""

from .audio import CaptureProfile, RecordingArtifact, RecordingStats
from .events import SessionEvent
from .faults import FaultKind, SessionFault, FAULT_MESSAGES
from .matches import VoiceMatch
from .session import SessionPhase, SessionStatus

__all__ = [
    "CaptureProfile",
    "RecordingArtifact",
    "RecordingStats",
    "SessionEvent",
    "FaultKind",
    "SessionFault",
    "FAULT_MESSAGES",
    "VoiceMatch",
    "SessionPhase",
    "SessionStatus",
]
