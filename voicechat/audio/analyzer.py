"""Amplitude and spectral centroid analysis of PCM buffers."""

import logging
from typing import Optional

import numpy as np

from . import fft
from ..models.audio import AudioFrame, SAMPLE_RATE

logger = logging.getLogger(__name__)

PCM_FULL_SCALE = 32767.0
DEFAULT_CENTROID_REFERENCE_HZ = 8000.0


def pcm_to_samples(data: bytes) -> np.ndarray:
    """Decode 16-bit signed little-endian PCM bytes; a trailing odd byte is dropped."""
    usable = len(data) - (len(data) % 2)
    return np.frombuffer(data[:usable], dtype="<i2")


def calculate_rms(samples: np.ndarray, size: Optional[int] = None) -> float:
    """Root-mean-square of the first ``size`` samples, normalized to [0, 1]."""
    if size is None:
        size = len(samples)
    size = min(size, len(samples))
    if size <= 0:
        return 0.0
    normalized = samples[:size].astype(np.float64) / PCM_FULL_SCALE
    rms = float(np.sqrt(np.mean(normalized * normalized)))
    return min(max(rms, 0.0), 1.0)


def calculate_spectral_centroid(real: np.ndarray, imag: np.ndarray, sample_rate: float) -> float:
    """Magnitude-weighted mean frequency over the bins below Nyquist.

    Returns 0.0 when the spectrum carries no energy.
    """
    n = len(real)
    half = n // 2
    magnitudes = np.hypot(real[:half], imag[:half])
    energy_sum = float(np.sum(magnitudes))
    if energy_sum == 0.0:
        return 0.0
    frequencies = np.arange(half) * sample_rate / n
    return float(np.sum(frequencies * magnitudes) / energy_sum)


class AudioFrameAnalyzer:
    """Turns raw sample windows into AudioFrames.

    The FFT buffers are allocated once for the rounded-up window size and
    reused for every call, so one analyzer must not be shared between
    threads.
    """

    def __init__(self,
                 sample_rate: int = SAMPLE_RATE,
                 window_size: int = 1024,
                 centroid_reference_hz: Optional[float] = DEFAULT_CENTROID_REFERENCE_HZ):
        """Initialize analyzer.

        Args:
            sample_rate: Sample rate of the analysed PCM
            window_size: Requested analysis window; rounded up to a power of two
            centroid_reference_hz: Divisor that normalizes the centroid into
                [0, 1]; None keeps the centroid in Hz
        """
        self.sample_rate = sample_rate
        self.window_size = window_size
        self.fft_size = fft.next_power_of_two(window_size)
        self.centroid_reference_hz = centroid_reference_hz
        self._real = np.zeros(self.fft_size, dtype=np.float64)
        self._imag = np.zeros(self.fft_size, dtype=np.float64)

        if self.fft_size != window_size:
            logger.debug(f"Analysis window {window_size} padded to {self.fft_size} samples")

    def analyze(self, samples: np.ndarray, size: Optional[int] = None) -> AudioFrame:
        """Analyse the first ``size`` samples of an int16 window."""
        if size is None:
            size = len(samples)
        size = max(0, min(size, len(samples)))

        amplitude = calculate_rms(samples, size)
        centroid = self._centroid(samples, size)
        return AudioFrame(amplitude=amplitude, centroid=centroid)

    def analyze_bytes(self, data: bytes) -> AudioFrame:
        return self.analyze(pcm_to_samples(data))

    def _centroid(self, samples: np.ndarray, size: int) -> float:
        self._real.fill(0.0)
        self._imag.fill(0.0)
        copy_size = min(size, self.fft_size)
        self._real[:copy_size] = samples[:copy_size] / PCM_FULL_SCALE

        fft.forward(self._real, self._imag)
        centroid = calculate_spectral_centroid(self._real, self._imag, float(self.sample_rate))

        if self.centroid_reference_hz is None:
            return centroid
        return min(max(centroid / self.centroid_reference_hz, 0.0), 1.0)
