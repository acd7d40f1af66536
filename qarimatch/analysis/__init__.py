"""Recitation analysis backends and progress pacing."""

import logging

from .base import AbstractAnalysisBackend, AnalysisError
from .progress import AnalysisProgressSimulator
from .remote_backend import RemoteAnalysisBackend
from .sample_backend import SampleAnalysisBackend, SAMPLE_MATCHES

logger = logging.getLogger(__name__)

__all__ = [
    "AbstractAnalysisBackend",
    "AnalysisError",
    "AnalysisProgressSimulator",
    "RemoteAnalysisBackend",
    "SampleAnalysisBackend",
    "SAMPLE_MATCHES",
    "create_backend",
]


def create_backend(config) -> AbstractAnalysisBackend:
    """Build the analysis backend named in config ('sample' or 'remote')."""
    backend = config.get('analysis.backend', 'sample')
    if backend == 'remote':
        return RemoteAnalysisBackend(
            endpoint=config.get('analysis.endpoint'),
            api_key=config.get('analysis.api_key'),
        )
    if backend == 'sample':
        return SampleAnalysisBackend(delay_seconds=float(config.get('analysis.sample_delay_seconds', 0.0)))
    raise ValueError(f"Unknown analysis backend: {backend}")
