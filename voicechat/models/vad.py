"""Voice activity detection models."""

from dataclasses import dataclass
from enum import Enum


class VadPhase(Enum):
    SILENCE = "silence"
    SPEECH = "speech"


@dataclass(frozen=True)
class VadConfig:
    """Thresholds for the voice activity detector.

    ``start_threshold`` must be reached to enter speech, ``stop_threshold``
    keeps speech alive. The gap between the two is the hysteresis band.
    """
    start_threshold: float = 0.02
    stop_threshold: float = 0.01
    silence_timeout_ms: float = 700.0

    def __post_init__(self):
        if self.stop_threshold > self.start_threshold:
            raise ValueError("stop_threshold must not exceed start_threshold")
        if self.silence_timeout_ms < 0:
            raise ValueError("silence_timeout_ms must be non-negative")


@dataclass(frozen=True)
class VadDetection:
    """Result of one detector evaluation."""
    is_speech: bool
    started: bool = False
    ended: bool = False
