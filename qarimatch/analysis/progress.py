"""Cosmetic progress pacing for the analyzing phase."""

import asyncio
import logging
import random
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)


class AnalysisProgressSimulator:
    """Produces a non-decreasing progress value that ends exactly at 100.

    Carries no information about the real analysis; callers advance the
    session only once both this and the analysis call have finished.
    """

    def __init__(self,
                 min_increment: float = 2.0,
                 max_increment: float = 10.0,
                 interval: float = 0.2,
                 completion_delay: float = 0.5,
                 rng: Optional[random.Random] = None):
        if min_increment <= 0:
            raise ValueError("min_increment must be positive")
        if max_increment < min_increment:
            raise ValueError("max_increment must not be below min_increment")
        self.min_increment = min_increment
        self.max_increment = max_increment
        self.interval = interval
        self.completion_delay = completion_delay
        self.rng = rng or random.Random()
        self.progress = 0.0

    def steps(self) -> Iterator[float]:
        """Yield successive progress values, the last one being exactly 100."""
        progress = 0.0
        while True:
            progress += self.rng.uniform(self.min_increment, self.max_increment)
            if progress >= 100:
                yield 100.0
                return
            yield progress

    async def run(self, on_progress: Optional[Callable[[float], None]] = None) -> float:
        """Advance progress on the configured cadence until it reaches 100."""
        self.progress = 0.0
        for value in self.steps():
            await asyncio.sleep(self.interval)
            self.progress = value
            if on_progress:
                on_progress(value)
        logger.debug("Simulated analysis progress complete")
        if self.completion_delay:
            await asyncio.sleep(self.completion_delay)
        return self.progress

    def reset(self) -> None:
        self.progress = 0.0
