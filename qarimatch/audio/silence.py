"""Silence gate applied to a finished recording before analysis."""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SilenceThresholds:
    """Tunable constants for the silence gate.

    Kept conservative: quiet speech passing is acceptable, normal speech
    being rejected is not.
    """
    silent_threshold: float = 0.01
    mean_floor: float = 0.005
    max_silent_fraction: float = 0.8


@dataclass(frozen=True)
class SilenceVerdict:
    """Outcome of classifying one recording."""
    is_silent: bool
    mean_level: float
    silent_fraction: float
    sample_count: int


class SilenceClassifier:
    """Decides whether a recording's loudness samples are effectively silent."""

    def __init__(self, thresholds: SilenceThresholds = SilenceThresholds()):
        self.thresholds = thresholds

    def classify(self, samples: Sequence[float]) -> SilenceVerdict:
        if len(samples) == 0:
            logger.info("No loudness samples collected, treating recording as silent")
            return SilenceVerdict(is_silent=True, mean_level=0.0, silent_fraction=1.0, sample_count=0)

        levels = np.asarray(samples, dtype=np.float64)
        mean_level = float(levels.mean())
        silent_fraction = float(np.count_nonzero(levels < self.thresholds.silent_threshold) / len(levels))

        is_silent = (mean_level < self.thresholds.mean_floor
                     or silent_fraction > self.thresholds.max_silent_fraction)

        logger.info(f"Silence check over {len(levels)} samples: mean={mean_level:.4f}, "
                    f"silent_fraction={silent_fraction:.1%} -> {'silent' if is_silent else 'ok'}")
        return SilenceVerdict(
            is_silent=is_silent,
            mean_level=mean_level,
            silent_fraction=silent_fraction,
            sample_count=len(levels),
        )

    def is_silent(self, samples: Sequence[float]) -> bool:
        return self.classify(samples).is_silent
