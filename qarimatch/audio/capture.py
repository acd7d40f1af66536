"""Capture controller owning one recording attempt from device to artifact."""

import asyncio
import logging
from typing import Callable, List, Optional

from .analyser import SpectrumAnalyser
from .device import AudioInputDevice, InputStream
from .encoder import ChunkedEncoder
from .sampler import SignalSampler
from ..models.audio import CaptureProfile, RecordingArtifact, RecordingStats

logger = logging.getLogger(__name__)


class CaptureController:
    """Microphone capture with loudness sampling and a hard duration ceiling."""

    def __init__(
        self,
        device: AudioInputDevice,
        profile: CaptureProfile = CaptureProfile(),
        max_duration_seconds: int = 120,
        timer_interval: float = 1.0,
        flush_interval: float = 0.1,
        refresh_rate_hz: float = 60.0,
        fft_size: int = 256,
        smoothing: float = 0.8,
        on_finalized: Optional[Callable[[Optional[RecordingArtifact]], None]] = None,
        on_level: Optional[Callable[[float], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        """Initialize capture controller.

        Args:
            device: Input device to acquire on start
            profile: Capture settings requested from the device
            max_duration_seconds: Recording is stopped automatically at this many seconds
            timer_interval: Wall-clock seconds per recording-timer tick
            flush_interval: Seconds between encoder reads of the input stream
            refresh_rate_hz: Loudness sampling cadence
            fft_size: Analysis window size in samples
            smoothing: Spectrum smoothing constant
            on_finalized: Called once per stop with the artifact (None if finalization failed)
            on_level: Called with every loudness sample
            on_tick: Called with the elapsed seconds on every timer tick
        """
        self.device = device
        self.profile = profile
        self.max_duration_seconds = max_duration_seconds
        self.timer_interval = timer_interval
        self.flush_interval = flush_interval
        self.refresh_rate_hz = refresh_rate_hz
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.on_finalized = on_finalized
        self.on_level = on_level
        self.on_tick = on_tick

        # Recording state
        self.is_recording = False
        self.elapsed_seconds = 0
        self.total_chunks = 0
        self.loudness_samples: List[float] = []
        self.artifact: Optional[RecordingArtifact] = None
        self.analysis_error: Optional[str] = None
        self.capture_error: Optional[str] = None

        # Resources for the active recording
        self._stream: Optional[InputStream] = None
        self._analyser: Optional[SpectrumAnalyser] = None
        self._encoder: Optional[ChunkedEncoder] = None
        self._sampler: Optional[SignalSampler] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._failure_task: Optional[asyncio.Task] = None

        self._starting = False
        self._abort_start = False
        self._stopping: Optional[asyncio.Future] = None

    @property
    def is_busy(self) -> bool:
        return self.is_recording or self._starting or self._stopping is not None

    @property
    def current_level(self) -> float:
        return self._sampler.current_level if self._sampler else 0.0

    async def start(self) -> bool:
        """Acquire the microphone and start recording.

        Returns:
            True if a new recording started, False if one is already active

        Raises:
            CaptureError: the device could not be acquired
        """
        if self.is_busy:
            logger.warning("Recording already in progress")
            return False

        logger.info("Starting audio recording")
        self._starting = True
        self._abort_start = False
        try:
            loop = asyncio.get_running_loop()
            stream = await loop.run_in_executor(None, self.device.open, self.profile)
        finally:
            self._starting = False

        if self._abort_start:
            logger.info("Recording start aborted during device acquisition")
            self._safely("close input stream", stream.close)
            return False

        # New recording replaces the previous one
        self.discard()
        self.analysis_error = None
        self.capture_error = None
        self._stream = stream
        self.is_recording = True

        try:
            self._analyser = SpectrumAnalyser(fft_size=self.fft_size, smoothing=self.smoothing)
        except ValueError as e:
            self._analyser = None
            self.analysis_error = str(e)
            logger.warning(f"Audio analysis unavailable, recording without level sampling: {e}")

        self._encoder = ChunkedEncoder(
            sample_rate=self.profile.sample_rate,
            channels=self.profile.channels,
            sample_width=self.profile.sample_width,
            flush_interval=self.flush_interval,
            on_chunk=self._on_chunk,
            on_error=self._on_stream_error,
        )
        self._encoder.start(stream)

        if self._analyser is not None:
            self._sampler = SignalSampler(
                self.loudness_samples,
                refresh_rate_hz=self.refresh_rate_hz,
                on_level=self.on_level,
            )
            self._sampler.start(self._analyser)

        self._timer_task = loop.create_task(self._run_timer())
        self._timer_task.set_name("RecordingTimerTask")
        return True

    def _on_chunk(self, data: bytes) -> None:
        self.total_chunks += 1
        if self._analyser is not None:
            self._analyser.feed(data, self.profile.channels)

    def _on_stream_error(self, error: Exception) -> None:
        """Input stream failed mid-recording: record the failure and stop normally."""
        self.capture_error = str(error) or type(error).__name__
        if self.is_recording and self._stopping is None:
            logger.error(f"Input stream failed, stopping recording: {error}")
            self._failure_task = asyncio.get_running_loop().create_task(self.stop())
            self._failure_task.set_name("CaptureFailureStopTask")

    async def _run_timer(self) -> None:
        while self.is_recording:
            await asyncio.sleep(self.timer_interval)
            await self._tick()

    async def _tick(self) -> None:
        """Advance the recording timer by one second and enforce the ceiling."""
        if not self.is_recording:
            return
        self.elapsed_seconds = min(self.elapsed_seconds + 1, self.max_duration_seconds)
        if self.on_tick:
            self.on_tick(self.elapsed_seconds)
        if self.elapsed_seconds >= self.max_duration_seconds:
            logger.info(f"Maximum duration of {self.max_duration_seconds}s reached, stopping")
            await self.stop()

    async def stop(self) -> Optional[RecordingArtifact]:
        """Stop recording, release the device and finalize the artifact.

        A no-op when not recording. A call made while a stop is already in
        flight waits for that stop instead of running it again.
        """
        if self._stopping is not None:
            logger.debug("Stop already in progress")
            return await asyncio.shield(self._stopping)

        if not self.is_recording:
            logger.debug("No recording in progress")
            return None

        logger.info("Stopping audio recording")
        self._stopping = asyncio.get_running_loop().create_future()
        self.is_recording = False
        artifact: Optional[RecordingArtifact] = None
        try:
            finalizing = self._encoder.stop() if self._encoder else None
            self._release_resources()
            if finalizing is not None:
                try:
                    artifact = await finalizing
                except Exception as e:
                    logger.error(f"Error finalizing recording: {e}")

            self.artifact = artifact
            logger.info(f"Recording stopped after {self.elapsed_seconds}s. "
                        f"Total chunks: {self.total_chunks}, samples: {len(self.loudness_samples)}")
            if self.on_finalized:
                self._safely("notify finalization", self.on_finalized, artifact)
        finally:
            stopping, self._stopping = self._stopping, None
            if not stopping.done():
                stopping.set_result(artifact)
        return artifact

    def _release_resources(self) -> None:
        """Tear down sampler, device, analysis graph and timer. Never raises."""
        if self._sampler is not None:
            self._safely("stop sampler", self._sampler.stop)
        if self._stream is not None:
            self._safely("close input stream", self._stream.close)
            self._stream = None
        if self._analyser is not None:
            self._safely("close analyser", self._analyser.close)
            self._analyser = None
        timer = self._timer_task
        self._timer_task = None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    @staticmethod
    def _safely(action: str, func: Callable, *args) -> None:
        try:
            func(*args)
        except Exception as e:
            logger.error(f"Failed to {action}: {e}")

    def discard(self) -> None:
        """Drop the artifact, loudness buffer and timer of the last recording."""
        if self.is_recording:
            logger.warning("Cannot discard while recording")
            return
        self.artifact = None
        self.capture_error = None
        self.loudness_samples.clear()
        self.elapsed_seconds = 0
        self.total_chunks = 0
        self._encoder = None
        self._sampler = None

    async def close(self) -> None:
        """Release everything, including a recording still in progress."""
        if self._starting:
            self._abort_start = True
        await self.stop()
        self._release_resources()

    def get_recording_stats(self) -> RecordingStats:
        """Get current recording statistics."""
        return RecordingStats(
            is_recording=self.is_recording,
            elapsed_seconds=self.elapsed_seconds,
            max_duration_seconds=self.max_duration_seconds,
            total_chunks=self.total_chunks,
            total_bytes=self._encoder.total_bytes if self._encoder else 0,
            loudness_samples=len(self.loudness_samples),
            current_level=self.current_level,
        )
