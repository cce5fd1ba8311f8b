"""Audio capture and analysis module."""

from .analyzer import AudioFrameAnalyzer, calculate_rms, calculate_spectral_centroid
from .capture import AudioCaptureSession
from .source import AudioSource
from .vad import VoiceActivityDetector

__all__ = [
    'AudioFrameAnalyzer',
    'AudioCaptureSession',
    'AudioSource',
    'VoiceActivityDetector',
    'calculate_rms',
    'calculate_spectral_centroid',
]
