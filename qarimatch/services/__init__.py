"""Services layer for QariMatch application logic."""

from typing import Optional

from .session_manager import RecitationSession, InvalidTransition, ALLOWED_TRANSITIONS
from .session_pub import SessionPublisher
from ..analysis import AnalysisProgressSimulator, AbstractAnalysisBackend, create_backend
from ..audio.capture import CaptureController
from ..audio.device import AudioInputDevice, PyAudioInputDevice
from ..audio.silence import SilenceClassifier, SilenceThresholds

__all__ = [
    "RecitationSession",
    "InvalidTransition",
    "ALLOWED_TRANSITIONS",
    "SessionPublisher",
    "build_session",
]


def build_session(config,
                  device: Optional[AudioInputDevice] = None,
                  backend: Optional[AbstractAnalysisBackend] = None) -> RecitationSession:
    """Wire a session from configuration.

    Args:
        config: QariMatchConfig
        device: Input device (PyAudio default microphone if omitted)
        backend: Analysis backend (from ``analysis.backend`` if omitted)
    """
    profile = config.get_capture_profile()
    flush_interval = config.get('audio.flush_interval_ms', 100) / 1000.0

    if device is None:
        device = PyAudioInputDevice(frames_per_buffer=int(profile.sample_rate * flush_interval))

    capture = CaptureController(
        device=device,
        profile=profile,
        max_duration_seconds=int(config.get('recording.max_duration_seconds', 120)),
        timer_interval=float(config.get('recording.timer_interval_seconds', 1.0)),
        flush_interval=flush_interval,
        refresh_rate_hz=float(config.get('ui.refresh_rate_hz', 60)),
        fft_size=int(config.get('audio.fft_size', 256)),
        smoothing=float(config.get('audio.smoothing', 0.8)),
    )

    classifier = SilenceClassifier(SilenceThresholds(
        silent_threshold=float(config.get('silence.silent_threshold')),
        mean_floor=float(config.get('silence.mean_floor')),
        max_silent_fraction=float(config.get('silence.max_silent_fraction')),
    ))

    progress = AnalysisProgressSimulator(
        min_increment=float(config.get('progress.min_increment')),
        max_increment=float(config.get('progress.max_increment')),
        interval=config.get('progress.interval_ms') / 1000.0,
        completion_delay=config.get('progress.completion_delay_ms') / 1000.0,
    )

    return RecitationSession(
        capture=capture,
        backend=backend or create_backend(config),
        classifier=classifier,
        progress=progress,
    )
