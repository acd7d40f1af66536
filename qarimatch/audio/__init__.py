"""Audio capture and processing module."""

from .analyser import SpectrumAnalyser
from .capture import CaptureController
from .device import (
    AudioInputDevice,
    InputStream,
    PyAudioInputDevice,
    CaptureError,
    PermissionDeniedError,
    DeviceNotFoundError,
    CaptureUnsupportedError,
    DeviceBusyError,
    CaptureFailedError,
)
from .encoder import ChunkedEncoder
from .playback import ArtifactPlayer
from .sampler import SignalSampler
from .silence import SilenceClassifier, SilenceThresholds, SilenceVerdict

__all__ = [
    'SpectrumAnalyser',
    'CaptureController',
    'AudioInputDevice',
    'InputStream',
    'PyAudioInputDevice',
    'CaptureError',
    'PermissionDeniedError',
    'DeviceNotFoundError',
    'CaptureUnsupportedError',
    'DeviceBusyError',
    'CaptureFailedError',
    'ChunkedEncoder',
    'ArtifactPlayer',
    'SignalSampler',
    'SilenceClassifier',
    'SilenceThresholds',
    'SilenceVerdict',
]
