"""User-facing fault states attached to a session."""

from dataclasses import dataclass
from enum import Enum


class FaultKind(Enum):
    """Kinds of recoverable faults a session can carry."""
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    CAPTURE_UNSUPPORTED = "capture_unsupported"
    DEVICE_BUSY = "device_busy"
    CAPTURE_FAILED = "capture_failed"
    SILENT_RECORDING = "silent_recording"
    ANALYSIS_FAILED = "analysis_failed"

    @property
    def is_device_fault(self) -> bool:
        return self in DEVICE_FAULTS


DEVICE_FAULTS = frozenset({
    FaultKind.PERMISSION_DENIED,
    FaultKind.DEVICE_NOT_FOUND,
    FaultKind.CAPTURE_UNSUPPORTED,
    FaultKind.DEVICE_BUSY,
    FaultKind.CAPTURE_FAILED,
})


FAULT_MESSAGES = {
    FaultKind.PERMISSION_DENIED: (
        "Microphone access is required. Please check your system settings "
        "and allow microphone access."
    ),
    FaultKind.DEVICE_NOT_FOUND: "No microphone found. Please connect a microphone and try again.",
    FaultKind.CAPTURE_UNSUPPORTED: (
        "Your system does not support audio recording with the required settings."
    ),
    FaultKind.DEVICE_BUSY: (
        "Microphone is being used by another application. Please close other apps and try again."
    ),
    FaultKind.CAPTURE_FAILED: "Microphone access failed. Please check your audio settings.",
    FaultKind.SILENT_RECORDING: (
        "It looks like your recitation was silent or too quiet. Please try recording "
        "again and speak closer to the microphone."
    ),
    FaultKind.ANALYSIS_FAILED: "Analysis of your recitation failed. Please try again.",
}


@dataclass(frozen=True)
class SessionFault:
    """A fault attached to the current session phase."""
    kind: FaultKind
    message: str

    @classmethod
    def of(cls, kind: FaultKind, detail: str = "") -> "SessionFault":
        message = FAULT_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        return cls(kind=kind, message=message)
