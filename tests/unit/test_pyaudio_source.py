"""Unit tests for the PyAudio microphone source."""

import pytest
import pyaudio

from voicechat.audio.pyaudio_source import PyAudioSource
from voicechat.errors import AudioDeviceError, AudioDeviceLostError


@pytest.mark.unit
class TestPyAudioSource:

    def test_open_uses_default_device(self, mock_pyaudio):
        source = PyAudioSource()

        source.open(16000, 1, 1024)

        mock_pyaudio['instance'].open.assert_called_once()
        kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert kwargs['format'] == pyaudio.paInt16
        assert kwargs['rate'] == 16000
        assert kwargs['channels'] == 1
        assert kwargs['input'] is True
        assert kwargs['input_device_index'] == 0
        assert kwargs['frames_per_buffer'] == 1024

    def test_read_returns_stream_data(self, mock_pyaudio):
        source = PyAudioSource()
        source.open()

        assert source.read(1024) == b'\x00' * 2048
        mock_pyaudio['stream'].read.assert_called_with(1024, exception_on_overflow=False)

    def test_unsupported_format_raises_device_error(self, mock_pyaudio):
        mock_pyaudio['instance'].is_format_supported.side_effect = ValueError("Invalid sample rate")
        source = PyAudioSource()

        with pytest.raises(AudioDeviceError):
            source.open()

        mock_pyaudio['instance'].terminate.assert_called_once()
        assert source.stream is None

    def test_missing_default_device_raises_device_error(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.side_effect = OSError(-9996, "No Default Input Device")

        with pytest.raises(AudioDeviceError):
            PyAudioSource().open()

    def test_transient_read_error_returns_empty(self, mock_pyaudio):
        mock_pyaudio['stream'].read.side_effect = OSError(pyaudio.paInputOverflowed, "Input overflowed")
        source = PyAudioSource()
        source.open()

        assert source.read(1024) == b""

    def test_fatal_read_error_raises_device_lost(self, mock_pyaudio):
        mock_pyaudio['stream'].read.side_effect = OSError(pyaudio.paDeviceUnavailable, "Device unavailable")
        source = PyAudioSource()
        source.open()

        with pytest.raises(AudioDeviceLostError):
            source.read(1024)

    def test_read_before_open_raises_device_lost(self):
        with pytest.raises(AudioDeviceLostError):
            PyAudioSource().read(1024)

    def test_close_is_idempotent(self, mock_pyaudio):
        source = PyAudioSource()
        source.open()

        source.close()
        source.close()

        mock_pyaudio['stream'].stop_stream.assert_called_once()
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()
