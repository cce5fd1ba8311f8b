"""PyAudio-backed microphone source."""

import logging
from typing import Optional

import pyaudio

from .source import AudioSource
from ..errors import AudioDeviceError, AudioDeviceLostError
from ..models.audio import SAMPLE_RATE, CHANNELS

logger = logging.getLogger(__name__)

# PortAudio errors after which the stream cannot be read again
FATAL_READ_ERRORS = {
    pyaudio.paDeviceUnavailable,
    pyaudio.paUnanticipatedHostError,
    pyaudio.paInternalError,
    pyaudio.paBadStreamPtr,
}


class PyAudioSource(AudioSource):
    """Default input device opened through PyAudio."""

    def __init__(self, input_device_index: Optional[int] = None):
        self.input_device_index = input_device_index
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def open(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS,
             frames_per_buffer: int = 1024) -> None:
        if self.stream is not None:
            raise AudioDeviceError("Audio source is already open")

        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            device_index = self.input_device_index
            if device_index is None:
                device_index = self.pyaudio_instance.get_default_input_device_info()["index"]
            self.pyaudio_instance.is_format_supported(
                sample_rate,
                input_device=device_index,
                input_channels=channels,
                input_format=pyaudio.paInt16,
            )
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=channels,
                rate=sample_rate,
                input=True,
                input_device_index=device_index,
                frames_per_buffer=frames_per_buffer,
                stream_callback=None,
            )
        except (OSError, ValueError) as e:
            self.close()
            raise AudioDeviceError(f"Cannot open microphone: {e}") from e

        logger.info(f"Audio stream opened: {sample_rate}Hz, {channels} channel(s), "
                    f"{frames_per_buffer} samples/buffer")

    def read(self, frames: int) -> bytes:
        if self.stream is None:
            raise AudioDeviceLostError("Audio stream is not open")
        try:
            return self.stream.read(frames, exception_on_overflow=False)
        except OSError as e:
            if e.errno in FATAL_READ_ERRORS:
                raise AudioDeviceLostError(f"Microphone lost: {e}") from e
            logger.debug(f"Transient audio read error: {e}")
            return b""

    def close(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                if stream.is_active():
                    stream.stop_stream()
            finally:
                stream.close()
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            logger.debug("PyAudio terminated")
