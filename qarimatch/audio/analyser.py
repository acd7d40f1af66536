"""Frequency-domain loudness analysis of the live microphone signal."""

import logging

import numpy as np
from scipy.signal import get_window

logger = logging.getLogger(__name__)


class SpectrumAnalyser:
    """Rolling FFT snapshot of the most recent PCM samples.

    Behaves like a browser AnalyserNode: Blackman-windowed magnitude spectrum,
    smoothed over time, converted to decibels and mapped onto byte values
    between ``min_decibels`` and ``max_decibels``. ``loudness()`` is the mean
    of those byte values scaled to [0, 1].
    """

    def __init__(self,
                 fft_size: int = 256,
                 smoothing: float = 0.8,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {smoothing}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self._window = get_window("blackman", fft_size, fftbins=False)
        self._samples = np.zeros(fft_size, dtype=np.float64)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)
        self.closed = False

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def feed(self, pcm: bytes, channels: int = 1) -> None:
        """Push 16-bit little-endian PCM into the rolling window."""
        if self.closed or not pcm:
            return
        usable = len(pcm) - (len(pcm) % (2 * channels))
        if usable <= 0:
            return
        samples = np.frombuffer(pcm[:usable], dtype="<i2").astype(np.float64) / 32768.0
        if channels > 1:
            samples = samples.reshape(-1, channels).mean(axis=1)

        if len(samples) >= self.fft_size:
            self._samples = samples[-self.fft_size:].copy()
        else:
            self._samples = np.concatenate((self._samples[len(samples):], samples))

    def byte_frequency_data(self) -> np.ndarray:
        """Current spectrum as uint8 values, one per frequency bin."""
        spectrum = np.fft.rfft(self._samples * self._window)[:self.frequency_bin_count]
        magnitudes = np.abs(spectrum) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitudes

        decibels = 20.0 * np.log10(np.maximum(self._smoothed, 1e-12))
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = (decibels - self.min_decibels) * scale
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)

    def loudness(self) -> float:
        """Normalized loudness of the current snapshot in [0, 1]."""
        if self.closed:
            return 0.0
        data = self.byte_frequency_data()
        return float(data.mean() / 255.0)

    def close(self) -> None:
        """Tear down the analysis graph."""
        if self.closed:
            return
        self.closed = True
        self._samples = np.zeros(self.fft_size, dtype=np.float64)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        logger.debug("Spectrum analyser closed")

