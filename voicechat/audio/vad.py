"""Amplitude-based voice activity detector with hysteresis."""

import logging
from typing import Optional

from ..models.vad import VadConfig, VadDetection, VadPhase

logger = logging.getLogger(__name__)


class VoiceActivityDetector:
    """Two-state speech/silence classifier.

    Entering speech needs ``start_threshold``; staying in speech only needs
    ``stop_threshold``. Speech ends once the amplitude has stayed below
    ``stop_threshold`` for ``silence_timeout_ms``. Each crossing fires its
    edge exactly once.
    """

    def __init__(self, config: Optional[VadConfig] = None):
        self.config = config or VadConfig()
        self.phase = VadPhase.SILENCE
        self.last_speech_timestamp = 0.0

    def reset(self) -> None:
        self.phase = VadPhase.SILENCE
        self.last_speech_timestamp = 0.0

    @property
    def is_speech(self) -> bool:
        return self.phase is VadPhase.SPEECH

    def evaluate(self, amplitude: float, timestamp_ms: float) -> VadDetection:
        """Feed one amplitude sample taken at ``timestamp_ms``."""
        clamped = max(0.0, amplitude)
        started = False
        ended = False

        if self.phase is VadPhase.SILENCE:
            if clamped >= self.config.start_threshold:
                self.phase = VadPhase.SPEECH
                self.last_speech_timestamp = timestamp_ms
                started = True
                logger.debug(f"Speech started at {timestamp_ms:.0f}ms (amplitude {clamped:.3f})")
        elif clamped >= self.config.stop_threshold:
            self.last_speech_timestamp = timestamp_ms
        else:
            # Out-of-order timestamps count as no elapsed time
            silence_ms = max(0.0, timestamp_ms - self.last_speech_timestamp)
            if silence_ms >= self.config.silence_timeout_ms:
                self.phase = VadPhase.SILENCE
                ended = True
                logger.debug(f"Speech ended at {timestamp_ms:.0f}ms after {silence_ms:.0f}ms of silence")

        return VadDetection(is_speech=self.is_speech, started=started, ended=ended)
