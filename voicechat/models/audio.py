"""Audio-related data models."""

from dataclasses import dataclass


# PCM format shared by capture, analysis and transcription
SAMPLE_RATE = 16000
CHANNELS = 1


@dataclass(frozen=True)
class AudioFrame:
    """Loudness and brightness of one captured buffer."""
    amplitude: float  # RMS, normalized to [0, 1]
    centroid: float   # spectral centroid, normalized to [0, 1] or raw Hz


@dataclass(frozen=True)
class AudioChunk:
    """Raw PCM bytes of one capture cycle plus their analysis."""
    data: bytes
    frame: AudioFrame
    timestamp_ms: float  # monotonic capture time
    sequence_number: int


@dataclass
class CaptureStats:
    """Audio capture statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    transient_reads: int
    peak_amplitude: float
