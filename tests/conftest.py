"""Pytest configuration and fixtures for VoiceChat tests."""

import json
import logging

import numpy as np
import pytest
from unittest.mock import Mock, patch
from pubsub import pub

from voicechat.errors import AudioDeviceError
from voicechat.transcription.worker import AsyncWorker
from tests.fakes import (
    CallbackRecorder,
    FakeHttpService,
    VoiceEventRecorder,
    sine_pcm,
    silence_pcm,
)


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without devices or network")
    config.addinivalue_line("markers", "integration: several components wired together")
    config.addinivalue_line("markers", "hardware: needs a real microphone")
    config.addinivalue_line("markers", "slow: takes more than a second")


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000, amplitude=0.5):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            amplitude: Peak level relative to full scale

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            return sine_pcm(440.0, amplitude, samples, sample_rate)
        elif pattern == "noise":
            rng = np.random.default_rng(1234)
            wave_data = amplitude * rng.uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return (wave_data * 32767).astype("<i2").tobytes()

    return generate_audio


@pytest.fixture
def worker():
    """Running event loop thread, shut down after the test."""
    async_worker = AsyncWorker(name="TestLoop").start()
    yield async_worker
    async_worker.shutdown()


@pytest.fixture
def callbacks():
    return CallbackRecorder()


@pytest.fixture
def voice_events():
    recorder = VoiceEventRecorder()
    yield recorder
    pub.unsubAll()


@pytest.fixture
def asr_server(worker):
    service = FakeHttpService(worker, "/transcribe").start()
    yield service
    service.close()


@pytest.fixture
def webhook_server(worker):
    service = FakeHttpService(worker, "/webhook/chat").start()
    service.body = json.dumps({"ok": True, "status": "done", "result": {"text": "Sure thing"}})
    yield service
    service.close()


@pytest.fixture
def device_error():
    return AudioDeviceError("No default input device")


@pytest.fixture
def sine():
    """PCM sine generator: ``sine(freq, amplitude, samples)``."""
    return sine_pcm


@pytest.fixture
def silence():
    return silence_pcm


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.is_active.return_value = True

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"index": 0, "name": "Mock Mic"}
        mock_pyaudio_instance.is_format_supported.return_value = True

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
