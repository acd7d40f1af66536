"""Pytest configuration and fixtures for QariMatch tests."""

import asyncio
import logging
import time
import wave
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from qarimatch.analysis.base import AbstractAnalysisBackend, AnalysisError
from qarimatch.analysis.progress import AnalysisProgressSimulator
from qarimatch.analysis.sample_backend import SAMPLE_MATCHES
from qarimatch.audio.capture import CaptureController
from qarimatch.audio.device import AudioInputDevice, InputStream
from qarimatch.config import QariMatchConfig
from qarimatch.models.audio import CaptureProfile
from qarimatch.services.session_manager import RecitationSession


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: multi-component workflow tests")


def generate_pcm(pattern: str = "noise", frames: int = 441, seed: int = 7) -> bytes:
    """Generate 16-bit mono PCM.

    Args:
        pattern: 'noise' (loud white noise), 'sine' (440 Hz) or 'silence'
        frames: Number of samples
    """
    if pattern == "noise":
        wave_data = np.random.default_rng(seed).uniform(-0.5, 0.5, frames)
    elif pattern == "sine":
        t = np.arange(frames) / 44100.0
        wave_data = 0.5 * np.sin(2 * np.pi * 440 * t)
    elif pattern == "silence":
        wave_data = np.zeros(frames)
    else:
        raise ValueError(f"Unknown pattern: {pattern}")
    return (wave_data * 32767).astype("<i2").tobytes()


class FakeInputStream(InputStream):
    """Input stream returning one generated chunk per read."""

    def __init__(self, pattern: str = "noise", frames_per_read: int = 441, fail_after: Optional[int] = None):
        self.pattern = pattern
        self.frames_per_read = frames_per_read
        self.fail_after = fail_after
        self.reads = 0
        self.close_calls = 0
        self.closed = False

    def read_available(self) -> bytes:
        if self.closed:
            return b""
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise OSError("device unplugged")
        self.reads += 1
        return generate_pcm(self.pattern, self.frames_per_read, seed=self.reads)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeInputDevice(AudioInputDevice):
    """Device handing out FakeInputStreams, or raising a configured error.

    open() blocks for open_delay seconds, like a slow permission prompt.
    """

    def __init__(self, pattern: str = "noise", error: Optional[Exception] = None,
                 fail_after: Optional[int] = None, open_delay: float = 0.0):
        self.pattern = pattern
        self.error = error
        self.fail_after = fail_after
        self.open_delay = open_delay
        self.streams: List[FakeInputStream] = []
        self.profiles: List[CaptureProfile] = []

    @property
    def last_stream(self) -> Optional[FakeInputStream]:
        return self.streams[-1] if self.streams else None

    def open(self, profile: CaptureProfile) -> InputStream:
        self.profiles.append(profile)
        if self.open_delay:
            time.sleep(self.open_delay)
        if self.error is not None:
            raise self.error
        stream = FakeInputStream(self.pattern, fail_after=self.fail_after)
        self.streams.append(stream)
        return stream


class RecordingBackend(AbstractAnalysisBackend):
    """Analysis backend that records calls and can be told to fail."""

    service_name = "test"

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False

    async def analyze(self, artifact):
        self.calls.append(artifact)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(SAMPLE_MATCHES)

    async def close(self) -> None:
        self.closed = True


def make_capture(device: AudioInputDevice, **overrides) -> CaptureController:
    """Capture controller with fast cadences; the timer never fires by itself."""
    settings = dict(
        timer_interval=3600.0,
        flush_interval=0.002,
        refresh_rate_hz=500.0,
    )
    settings.update(overrides)
    return CaptureController(device=device, **settings)


def make_session(device: AudioInputDevice, backend: Optional[AbstractAnalysisBackend] = None,
                 **capture_overrides) -> RecitationSession:
    return RecitationSession(
        capture=make_capture(device, **capture_overrides),
        backend=backend or RecordingBackend(),
        progress=AnalysisProgressSimulator(interval=0.0, completion_delay=0.0),
    )


async def record_for(capture: CaptureController, seconds: int, settle: float = 0.05) -> None:
    """Let real audio flow for a moment, then advance the timer by whole seconds."""
    await asyncio.sleep(settle)
    for _ in range(seconds):
        await capture._tick()


@pytest.fixture
def loud_device():
    return FakeInputDevice("noise")


@pytest.fixture
def silent_device():
    return FakeInputDevice("silence")


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def temp_data_dir(tmp_path):
    """Temporary directory for test data."""
    return str(tmp_path)


@pytest.fixture
def test_config(tmp_path):
    """Configuration with fast cadences and paths under tmp_path."""
    return QariMatchConfig(overrides={
        "recording": {"timer_interval_seconds": 0.01},
        "audio": {"flush_interval_ms": 2},
        "ui": {"refresh_rate_hz": 500},
        "progress": {"interval_ms": 0, "completion_delay_ms": 0},
        "storage": {"export_directory": str(tmp_path / "recordings")},
        "logging": {"file_path": str(tmp_path / "logs" / "qarimatch.log"), "console_output": False},
    })


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.get_read_available.return_value = 4410
        mock_stream.read.return_value = b'\x00' * 8820  # Silent audio
        mock_stream.is_active.return_value = True

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            "index": 0, "name": "Test Microphone", "maxInputChannels": 1,
        }
        mock_pyaudio_instance.get_format_from_width.return_value = 8  # paInt16

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def sample_audio_file(tmp_path):
    """Create a sample WAV file for testing."""
    file_path = Path(tmp_path) / "test_audio.wav"

    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)  # Mono
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(44100)
        for _ in range(10):
            wf.writeframes(generate_pcm("sine", 4410))

    return str(file_path)
