"""Per-frame loudness sampling of the live input."""

import asyncio
import logging
from typing import Callable, List, Optional

from .analyser import SpectrumAnalyser

logger = logging.getLogger(__name__)


class SignalSampler:
    """Takes one loudness sample per display refresh tick while active."""

    def __init__(self,
                 buffer: List[float],
                 refresh_rate_hz: float = 60.0,
                 on_level: Optional[Callable[[float], None]] = None):
        """Initialize sampler.

        Args:
            buffer: Loudness buffer owned by the capture controller; samples are appended to it
            refresh_rate_hz: Display refresh cadence driving the sampling ticks
            on_level: Optional listener receiving each new sample
        """
        if refresh_rate_hz <= 0:
            raise ValueError("refresh_rate_hz must be positive")
        self.buffer = buffer
        self.tick_interval = 1.0 / refresh_rate_hz
        self.on_level = on_level
        self.current_level = 0.0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, analyser: SpectrumAnalyser) -> None:
        """Begin sampling the analyser on the running event loop."""
        if self.is_active:
            logger.warning("Sampler already running")
            return
        self._task = asyncio.get_running_loop().create_task(self._run(analyser))
        self._task.set_name("SignalSamplerTask")

    def stop(self) -> None:
        """Stop sampling. Safe to call repeatedly."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.current_level = 0.0

    def sample(self, analyser: SpectrumAnalyser) -> float:
        """Take a single sample and record it."""
        level = min(max(analyser.loudness(), 0.0), 1.0)
        self.buffer.append(level)
        self.current_level = level
        if self.on_level:
            self.on_level(level)
        return level

    async def _run(self, analyser: SpectrumAnalyser) -> None:
        while not analyser.closed:
            self.sample(analyser)
            await asyncio.sleep(self.tick_interval)
        logger.debug(f"Sampler finished with {len(self.buffer)} samples")
