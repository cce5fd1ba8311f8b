"""Real hardware tests for microphone capture.

These tests require actual audio hardware (microphone) and verify that
the capture session works with real audio devices.

Run with: pytest tests/hardware/ -v -s -m hardware
"""

import time
import threading

import pytest

from voicechat.audio.capture import AudioCaptureSession
from voicechat.audio.pyaudio_source import PyAudioSource


@pytest.mark.hardware
class TestRealAudioHardware:
    """Tests that require real audio hardware to run."""

    @pytest.mark.slow
    def test_real_microphone_capture_3s(self):
        """Capture three seconds from the default microphone.

        Verifies that chunks arrive at roughly the expected rate, that
        every frame is in range and that the device is released.
        """
        print("\n" + "=" * 60)
        print("HARDWARE TEST: 3-second microphone capture")
        print("=" * 60)

        chunks = []
        errors = []
        lock = threading.Lock()

        def on_chunk(chunk):
            with lock:
                chunks.append(chunk)

        source = PyAudioSource()
        session = AudioCaptureSession(source, on_chunk=on_chunk, on_error=errors.append)

        assert session.start(), f"Microphone could not be opened: {errors}"
        time.sleep(3.0)
        assert session.stop(timeout=5.0)

        stats = session.get_stats()
        print(f"Chunks: {stats.total_chunks}, transient reads: {stats.transient_reads}, "
              f"peak amplitude: {stats.peak_amplitude:.3f}")

        # 16000 / 1024 ~ 15.6 chunks per second
        assert stats.total_chunks >= 30
        assert errors == []
        assert all(0.0 <= c.frame.amplitude <= 1.0 for c in chunks)
        assert all(0.0 <= c.frame.centroid <= 1.0 for c in chunks)
        assert source.stream is None

    def test_microphone_can_be_reopened(self):
        for _ in range(2):
            source = PyAudioSource()
            session = AudioCaptureSession(source, on_chunk=lambda chunk: None, on_error=print)
            assert session.start()
            time.sleep(0.3)
            assert session.stop(timeout=5.0)
            assert source.pyaudio_instance is None
