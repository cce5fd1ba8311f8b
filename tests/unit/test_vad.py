"""Unit tests for the voice activity detector."""

import pytest
import numpy as np

from voicechat.audio.vad import VoiceActivityDetector
from voicechat.models.vad import VadConfig, VadPhase


@pytest.fixture
def vad():
    return VoiceActivityDetector(VadConfig(start_threshold=0.02, stop_threshold=0.01, silence_timeout_ms=700))


@pytest.mark.unit
class TestVoiceActivityDetector:

    def test_initial_state(self, vad):
        assert vad.phase is VadPhase.SILENCE
        assert vad.last_speech_timestamp == 0.0
        assert not vad.is_speech

    def test_loud_sample_starts_speech(self, vad):
        detection = vad.evaluate(0.03, 0)

        assert detection.started
        assert not detection.ended
        assert detection.is_speech

    def test_below_start_threshold_stays_silent(self, vad):
        detection = vad.evaluate(0.015, 0)

        assert not detection.started
        assert not detection.is_speech

    def test_silence_after_timeout_ends_speech(self, vad):
        vad.evaluate(0.03, 0)
        detection = vad.evaluate(0.005, 800)

        assert detection.ended
        assert not detection.started
        assert not detection.is_speech

    def test_short_dip_does_not_end_speech(self, vad):
        vad.evaluate(0.03, 0)
        detection = vad.evaluate(0.005, 300)

        assert not detection.ended
        assert detection.is_speech

    def test_between_thresholds_refreshes_timer(self, vad):
        vad.evaluate(0.03, 0)
        detection = vad.evaluate(0.015, 500)
        assert not detection.ended
        assert vad.last_speech_timestamp == 500

        # 800 ms after the start but only 300 ms after the refresh
        assert not vad.evaluate(0.005, 800).ended
        assert vad.evaluate(0.005, 1200).ended

    def test_edges_fire_once(self, vad):
        assert vad.evaluate(0.05, 0).started
        assert not vad.evaluate(0.05, 10).started
        assert vad.evaluate(0.0, 800).ended
        assert not vad.evaluate(0.0, 2000).ended

    def test_negative_amplitude_is_clamped(self, vad):
        detection = vad.evaluate(-1.0, 0)
        assert not detection.started

    def test_non_monotonic_timestamps_do_not_end_speech(self, vad):
        vad.evaluate(0.03, 1000)
        detection = vad.evaluate(0.0, 10)

        assert not detection.ended
        assert detection.is_speech

    def test_reset(self, vad):
        vad.evaluate(0.03, 100)
        vad.reset()

        assert vad.phase is VadPhase.SILENCE
        assert vad.last_speech_timestamp == 0.0

    def test_started_and_ended_never_both_fire(self, vad):
        rng = np.random.default_rng(3)
        timestamp = 0.0
        for amplitude in rng.uniform(0.0, 0.05, 2000):
            timestamp += rng.uniform(0, 400)
            detection = vad.evaluate(float(amplitude), timestamp)
            assert not (detection.started and detection.ended)


@pytest.mark.unit
class TestVadConfig:

    def test_defaults(self):
        config = VadConfig()
        assert config.start_threshold == 0.02
        assert config.stop_threshold == 0.01
        assert config.silence_timeout_ms == 700.0

    def test_stop_above_start_is_rejected(self):
        with pytest.raises(ValueError):
            VadConfig(start_threshold=0.01, stop_threshold=0.02)

    def test_negative_timeout_is_rejected(self):
        with pytest.raises(ValueError):
            VadConfig(silence_timeout_ms=-1)
