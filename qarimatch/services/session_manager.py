"""Session state machine sequencing capture, validation, analysis and results."""

import asyncio
import logging
import random
import string
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..analysis.base import AbstractAnalysisBackend, AnalysisError
from ..analysis.progress import AnalysisProgressSimulator
from ..audio.capture import CaptureController
from ..audio.device import CaptureError
from ..audio.silence import SilenceClassifier, SilenceVerdict
from ..models.audio import RecordingArtifact
from ..models.faults import FaultKind, SessionFault
from ..models.matches import VoiceMatch
from ..models.session import SessionPhase, SessionStatus
from .session_pub import SessionPublisher

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """Raised internally when an operation is not allowed from the current phase."""

    def __init__(self, current: SessionPhase, target: SessionPhase):
        self.current = current
        self.target = target
        super().__init__(f"Cannot go from {current.value} to {target.value}")


ALLOWED_TRANSITIONS = {
    SessionPhase.IDLE: {SessionPhase.RECORDING},
    SessionPhase.RECORDING: {SessionPhase.REVIEWING, SessionPhase.IDLE},
    SessionPhase.REVIEWING: {SessionPhase.RECORDING, SessionPhase.VALIDATING, SessionPhase.IDLE},
    SessionPhase.VALIDATING: {SessionPhase.REVIEWING, SessionPhase.ANALYZING, SessionPhase.IDLE},
    SessionPhase.ANALYZING: {SessionPhase.RESULTS, SessionPhase.REVIEWING, SessionPhase.IDLE},
    SessionPhase.RESULTS: {SessionPhase.IDLE},
}


def generate_session_id() -> str:
    """Timestamp-based session id with a random suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


class RecitationSession:
    """Single in-memory recitation session.

    Holds the one authoritative phase; every phase change goes through
    ``_transition``. Faults are attached to the session and reported in the
    result dicts, never raised to callers.
    """

    def __init__(self,
                 capture: CaptureController,
                 backend: AbstractAnalysisBackend,
                 classifier: Optional[SilenceClassifier] = None,
                 progress: Optional[AnalysisProgressSimulator] = None,
                 session_id: Optional[str] = None):
        """Initialize session.

        Args:
            capture: Capture controller; its finalize/level/tick callbacks are taken over
            backend: Analysis collaborator receiving validated recordings
            classifier: Silence gate (default thresholds if omitted)
            progress: Progress pacing for the analyzing phase
            session_id: Identifier used on published events
        """
        self.session_id = session_id or generate_session_id()
        self.capture = capture
        self.backend = backend
        self.classifier = classifier or SilenceClassifier()
        self.progress = progress or AnalysisProgressSimulator()
        self.publisher = SessionPublisher(self.session_id)

        self.capture.on_finalized = self._on_recording_finalized
        self.capture.on_level = self._on_level
        self.capture.on_tick = self._on_tick

        self.phase = SessionPhase.IDLE
        self.artifact: Optional[RecordingArtifact] = None
        self.matches: List[VoiceMatch] = []
        self.analysis_progress = 0.0
        self.last_verdict: Optional[SilenceVerdict] = None

        self.device_fault: Optional[SessionFault] = None
        self.silence_fault: Optional[SessionFault] = None
        self.analysis_fault: Optional[SessionFault] = None

        self._analysis_task: Optional[asyncio.Future] = None
        self._resetting = False
        logger.info(f"RecitationSession created: {self.session_id}")

    # -- phase bookkeeping -------------------------------------------------

    def _transition(self, target: SessionPhase) -> None:
        """Move to target phase, validating against the transition table."""
        if target == self.phase:
            return
        if target not in ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidTransition(self.phase, target)
        logger.info(f"Session {self.session_id}: {self.phase.value} -> {target.value}")
        previous, self.phase = self.phase, target
        self.publisher.publish("phase", previous=previous.value, phase=target.value)

    def _attach_fault(self, fault: SessionFault) -> None:
        if fault.kind.is_device_fault:
            self.device_fault = fault
        elif fault.kind == FaultKind.SILENT_RECORDING:
            self.silence_fault = fault
        else:
            self.analysis_fault = fault
        logger.warning(f"Session {self.session_id} fault {fault.kind.value}: {fault.message}")
        self.publisher.publish("fault", kind=fault.kind.value, message=fault.message)

    def _error(self, message: str, fault: Optional[SessionFault] = None) -> Dict[str, Any]:
        result = {"success": False, "error": message, "phase": self.phase.value}
        if fault is not None:
            result["fault"] = fault.kind.value
        return result

    # -- capture callbacks ---------------------------------------------------

    def _on_recording_finalized(self, artifact: Optional[RecordingArtifact]) -> None:
        if self._resetting or self.phase != SessionPhase.RECORDING:
            # Forced stop from reset; reset clears state itself
            logger.debug(f"Finalized recording ignored in phase {self.phase.value}")
            return
        if artifact is None or self.capture.capture_error:
            # A partial take from a failed stream is not kept for review
            detail = self.capture.capture_error or "recording could not be finalized"
            self.capture.discard()
            self._transition(SessionPhase.IDLE)
            self._attach_fault(SessionFault.of(FaultKind.CAPTURE_FAILED, detail))
            return
        self.artifact = artifact
        self._transition(SessionPhase.REVIEWING)

    def _on_level(self, level: float) -> None:
        self.publisher.publish("level", level=level)

    def _on_tick(self, elapsed_seconds: int) -> None:
        self.publisher.publish("timer", elapsed_seconds=elapsed_seconds,
                               max_duration_seconds=self.capture.max_duration_seconds)

    def _on_progress(self, value: float) -> None:
        self.analysis_progress = value
        self.publisher.publish("progress", progress=value)

    # -- user operations -----------------------------------------------------

    async def start_recording(self) -> Dict[str, Any]:
        """Start a new recording attempt (from IDLE, or REVIEWING to re-record)."""
        if self.phase not in (SessionPhase.IDLE, SessionPhase.REVIEWING, SessionPhase.RECORDING):
            return self._error(str(InvalidTransition(self.phase, SessionPhase.RECORDING)))
        if self.capture.is_busy:
            return self._error("Already recording")

        self.device_fault = None
        self.silence_fault = None
        try:
            started = await self.capture.start()
        except CaptureError as e:
            fault = SessionFault.of(e.kind)
            self._attach_fault(fault)
            return self._error(fault.message, fault)

        if not started:
            # Only a reset during device acquisition gets here
            return self._error("Recording start cancelled")

        self.artifact = None
        self.analysis_fault = None
        self.last_verdict = None
        self._transition(SessionPhase.RECORDING)
        if self.capture.analysis_error:
            logger.warning(f"Recording without level analysis: {self.capture.analysis_error}")
        return {
            "success": True,
            "session_id": self.session_id,
            "started_at": datetime.now().isoformat(),
            "analysis_available": self.capture.analysis_error is None,
        }

    async def stop_recording(self) -> Dict[str, Any]:
        """Stop the active recording; the session moves to REVIEWING once finalized."""
        if self.phase != SessionPhase.RECORDING:
            return self._error("Not recording")

        artifact = await self.capture.stop()
        if artifact is None or self.artifact is None:
            return self._error("Recording could not be finalized", self.device_fault)
        return {
            "success": True,
            "duration_seconds": artifact.duration_seconds,
            "elapsed_seconds": self.capture.elapsed_seconds,
            "size_bytes": artifact.size_bytes,
            "mime_type": artifact.mime_type,
        }

    def discard_recording(self) -> Dict[str, Any]:
        """Throw away the reviewed recording and return to IDLE."""
        if self.phase != SessionPhase.REVIEWING:
            return self._error(str(InvalidTransition(self.phase, SessionPhase.IDLE)))
        self.capture.discard()
        self.artifact = None
        self.silence_fault = None
        self.analysis_fault = None
        self.last_verdict = None
        self._transition(SessionPhase.IDLE)
        return {"success": True}

    async def analyze(self) -> Dict[str, Any]:
        """Validate the recording and, if it is not silent, run the analysis."""
        if self.phase != SessionPhase.REVIEWING or self.artifact is None:
            return self._error("No recording available for analysis")

        self.analysis_fault = None
        self._transition(SessionPhase.VALIDATING)
        verdict = self.classifier.classify(self.capture.loudness_samples)
        self.last_verdict = verdict
        if verdict.is_silent:
            fault = SessionFault.of(FaultKind.SILENT_RECORDING)
            self._attach_fault(fault)
            self._transition(SessionPhase.REVIEWING)
            return self._error(fault.message, fault)

        self.silence_fault = None
        self._transition(SessionPhase.ANALYZING)
        self.analysis_progress = 0.0
        artifact = self.artifact

        analysis = asyncio.ensure_future(self.backend.analyze(artifact))
        pacing = asyncio.ensure_future(self.progress.run(self._on_progress))
        self._analysis_task = asyncio.gather(analysis, pacing)
        try:
            matches, _ = await self._analysis_task
        except asyncio.CancelledError:
            if self.phase == SessionPhase.ANALYZING and not self._resetting:
                raise
            logger.info("Analysis cancelled by reset")
            return self._error("Analysis cancelled")
        except AnalysisError as e:
            fault = SessionFault.of(FaultKind.ANALYSIS_FAILED, str(e))
            return self._analysis_failed(fault)
        except Exception as e:
            logger.error(f"Unexpected analysis failure: {e}", exc_info=True)
            fault = SessionFault.of(FaultKind.ANALYSIS_FAILED, str(e))
            return self._analysis_failed(fault)
        finally:
            self._analysis_task = None
            for pending in (analysis, pacing):
                if not pending.done():
                    pending.cancel()

        self.matches = list(matches)
        self._transition(SessionPhase.RESULTS)
        logger.info(f"Analysis complete: {len(self.matches)} matches")
        return {
            "success": True,
            "matches": [match.name for match in self.matches],
            "match_count": len(self.matches),
        }

    def _analysis_failed(self, fault: SessionFault) -> Dict[str, Any]:
        self.analysis_progress = 0.0
        self.progress.reset()
        self._attach_fault(fault)
        if self.phase == SessionPhase.ANALYZING:
            self._transition(SessionPhase.REVIEWING)
        return self._error(fault.message, fault)

    async def reset(self) -> Dict[str, Any]:
        """Return to IDLE from any phase, clearing everything. Idempotent."""
        logger.info(f"Resetting session {self.session_id} from {self.phase.value}")
        self._resetting = True
        try:
            if self.capture.is_busy:
                await self.capture.close()

            task = self._analysis_task
            self._analysis_task = None
            if task is not None and not task.done():
                task.cancel()

            self.capture.discard()
            self.artifact = None
            self.matches = []
            self.analysis_progress = 0.0
            self.progress.reset()
            self.last_verdict = None
            self.device_fault = None
            self.silence_fault = None
            self.analysis_fault = None
            self._transition(SessionPhase.IDLE)
        finally:
            self._resetting = False
        return {"success": True, "phase": self.phase.value}

    async def shutdown(self) -> None:
        """Release every resource before the process exits."""
        await self.reset()
        await self.capture.close()
        await self.backend.close()
        logger.info(f"Session {self.session_id} shut down")

    # -- queries -----------------------------------------------------------

    def get_status(self) -> SessionStatus:
        """Snapshot of the session for display."""
        return SessionStatus(
            phase=self.phase,
            elapsed_seconds=self.capture.elapsed_seconds,
            max_duration_seconds=self.capture.max_duration_seconds,
            current_level=self.capture.current_level,
            analysis_progress=self.analysis_progress,
            artifact_size_bytes=self.artifact.size_bytes if self.artifact else None,
            device_fault=self.device_fault,
            silence_fault=self.silence_fault,
            analysis_fault=self.analysis_fault,
            matches=list(self.matches),
        )
