"""Chunked WAV encoder fed from the microphone stream."""

import asyncio
import io
import logging
import wave
from typing import Callable, List, Optional

from .device import InputStream
from ..models.audio import RecordingArtifact

logger = logging.getLogger(__name__)


class ChunkedEncoder:
    """Collects PCM chunks at a fixed flush interval and finalizes them into a WAV artifact."""

    mime_type = "audio/wav"

    def __init__(self,
                 sample_rate: int = 44100,
                 channels: int = 1,
                 sample_width: int = 2,
                 flush_interval: float = 0.1,
                 on_chunk: Optional[Callable[[bytes], None]] = None,
                 on_error: Optional[Callable[[Exception], None]] = None):
        """Initialize encoder.

        Args:
            sample_rate: Audio sample rate in Hz
            channels: Number of audio channels
            sample_width: Bytes per sample (2 for 16-bit)
            flush_interval: Seconds between reads of the input stream
            on_chunk: Optional listener receiving every non-empty chunk
            on_error: Called once if reading the stream fails; the flush loop ends
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width
        self.flush_interval = flush_interval
        self.on_chunk = on_chunk
        self.on_error = on_error

        self.chunks: List[bytes] = []
        self.total_bytes = 0
        self.error: Optional[Exception] = None
        self._stream: Optional[InputStream] = None
        self._task: Optional[asyncio.Task] = None
        self._finalizing: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def duration_seconds(self) -> float:
        frame_bytes = self.sample_width * self.channels
        return (self.total_bytes // frame_bytes) / float(self.sample_rate)

    def start(self, stream: InputStream) -> None:
        """Start pulling chunks from the stream every flush interval."""
        if self.is_running:
            logger.warning("Encoder already running")
            return
        self.chunks = []
        self.total_bytes = 0
        self.error = None
        self._stream = stream
        self._finalizing = None
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.set_name("ChunkedEncoderTask")

    def flush(self) -> int:
        """Move buffered stream data into the chunk list. Returns bytes appended."""
        if self._stream is None:
            return 0
        data = self._stream.read_available()
        if not data:
            return 0
        self.chunks.append(data)
        self.total_bytes += len(data)
        if self.on_chunk:
            self.on_chunk(data)
        return len(data)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval)
            try:
                self.flush()
            except Exception as e:
                logger.error(f"Error reading input stream: {e}")
                self.error = e
                if self.on_error:
                    self.on_error(e)
                return

    def stop(self) -> "asyncio.Task[RecordingArtifact]":
        """Halt chunk collection and begin finalization.

        Returns the finalization task; awaiting it yields the artifact. Calling
        stop again returns the same task.
        """
        if self._finalizing is not None:
            return self._finalizing

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

        # Drain whatever arrived since the last flush
        if self.error is None:
            try:
                self.flush()
            except Exception as e:
                logger.error(f"Error draining input stream: {e}")
        self._stream = None

        self._finalizing = asyncio.get_running_loop().create_task(self._finalize())
        return self._finalizing

    async def _finalize(self) -> RecordingArtifact:
        # Yield once so callers see finalization as a separate completion
        await asyncio.sleep(0)
        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            for chunk in self.chunks:
                wf.writeframes(chunk)

        artifact = RecordingArtifact(
            data=buffer.getvalue(),
            mime_type=self.mime_type,
            sample_rate=self.sample_rate,
            channels=self.channels,
            duration_seconds=self.duration_seconds,
        )
        logger.info(f"Recording finalized: {len(self.chunks)} chunks, "
                    f"{artifact.duration_seconds:.1f}s, {artifact.size_bytes} bytes")
        return artifact
