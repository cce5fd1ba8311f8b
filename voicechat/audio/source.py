"""Microphone abstraction consumed by the capture session."""

from abc import ABC, abstractmethod

from ..models.audio import SAMPLE_RATE, CHANNELS


class AudioSource(ABC):
    """A device that yields 16-bit little-endian PCM.

    Implementations are owned by exactly one capture session at a time.
    """

    @abstractmethod
    def open(self, sample_rate: int = SAMPLE_RATE, channels: int = CHANNELS,
             frames_per_buffer: int = 1024) -> None:
        """Acquire the device and start it.

        Raises:
            AudioDeviceError: if the device cannot provide the requested format
        """
        pass

    @abstractmethod
    def read(self, frames: int) -> bytes:
        """Block until up to ``frames`` samples are available and return them.

        An empty result is a transient condition and may be retried.

        Raises:
            AudioDeviceLostError: if the device went away; capture must end
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop and release the device. Safe to call more than once and
        on a source that never opened."""
        pass
