"""Audio capture session: owns the microphone for one voice turn."""

import time
import logging
from threading import Thread, Event
from typing import Optional, Callable

from .analyzer import AudioFrameAnalyzer, pcm_to_samples
from .source import AudioSource
from ..concurrency import AtomicFlag
from ..errors import AudioDeviceError
from ..models.audio import AudioChunk, CaptureStats, SAMPLE_RATE, CHANNELS


logger = logging.getLogger(__name__)


class AudioCaptureSession:
    """Continuous capture on a background thread with per-chunk analysis.

    Every buffer read from the source is analysed and handed to
    ``on_chunk`` as an AudioChunk. Failures are reported through
    ``on_error`` at most once. The device is released by the capture
    thread itself when the loop exits, whatever the reason.
    """

    def __init__(
        self,
        source: AudioSource,
        on_chunk: Callable[[AudioChunk], None],
        on_error: Callable[[BaseException], None],
        sample_rate: int = SAMPLE_RATE,
        chunk_size: int = 1024,
        channels: int = CHANNELS,
        analyzer: Optional[AudioFrameAnalyzer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize capture session.

        Args:
            source: Microphone to read from; owned exclusively by this session
            on_chunk: Called on the capture thread for every analysed buffer
            on_error: Called at most once if the device cannot be opened or is lost
            sample_rate: Audio sample rate (16kHz for the transcription services)
            chunk_size: Samples per read
            channels: Number of audio channels (1 for mono)
            analyzer: Frame analyzer; one is created for ``chunk_size`` if omitted
            clock: Monotonic clock in seconds used to timestamp chunks
        """
        self.source = source
        self.on_chunk = on_chunk
        self.on_error = on_error
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.analyzer = analyzer or AudioFrameAnalyzer(sample_rate=sample_rate, window_size=chunk_size)
        self.clock = clock

        # Capture thread management
        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.stopped_event = Event()
        self.started = False

        self._closed = AtomicFlag()
        self._cancelled = AtomicFlag()
        self._released = AtomicFlag()
        self._error_notified = AtomicFlag()

        # Statistics tracking
        self.start_time: Optional[float] = None
        self.total_chunks = 0
        self.transient_reads = 0
        self.peak_amplitude = 0.0

    @property
    def is_active(self) -> bool:
        return self.started and not self.stopped_event.is_set()

    def start(self) -> bool:
        """Open the device and start the capture thread.

        Returns:
            True if capture is running; False if the device could not be
            acquired, in which case ``on_error`` has been called once
        """
        if self.started or self._closed.get():
            logger.warning("Capture session cannot be started twice")
            return False

        try:
            self.source.open(self.sample_rate, self.channels, self.chunk_size)
        except Exception as e:
            logger.error(f"Failed to open audio source: {e}")
            self._release()
            self._closed.set(True)
            self.stopped_event.set()
            error = e if isinstance(e, AudioDeviceError) else AudioDeviceError(str(e))
            self._notify_error(error)
            return False

        logger.info("Starting audio capture")
        self.start_time = self.clock()
        self.started = True
        self.capture_thread = Thread(target=self._capture_continuously, daemon=True)
        self.capture_thread.name = "AudioCaptureThread"
        self.capture_thread.start()
        return True

    def stop(self, timeout: float = 2.0) -> bool:
        """Stop capture after the in-flight buffer and wait for the device release.

        Returns:
            True if the capture thread acknowledged within ``timeout``
        """
        if self._closed.compare_and_set(False, True):
            logger.info("Stopping audio capture")
            self.stop_event.set()
        return self._join(timeout)

    def cancel(self) -> None:
        """Abandon capture without waiting. Pending chunks are dropped."""
        if not self._cancelled.compare_and_set(False, True):
            return
        logger.info("Cancelling audio capture")
        self._closed.set(True)
        self.stop_event.set()
        if not self.started:
            self._release()

    def _join(self, timeout: float) -> bool:
        thread = self.capture_thread
        if thread is None:
            return True
        if thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")
                return False
        return True

    def _capture_continuously(self) -> None:
        """Internal method: capture loop on the background thread."""
        try:
            while not self.stop_event.is_set():
                audio_data = self.source.read(self.chunk_size)
                if not audio_data:
                    self.transient_reads += 1
                    time.sleep(0.005)
                    continue
                if self._cancelled.get():
                    break
                self._deliver(audio_data)
        except Exception as e:
            logger.error(f"Audio capture failed: {e}")
            self._notify_error(e)
        finally:
            self._release()
            self.stopped_event.set()
            logger.info(f"Audio capture stopped. Total chunks: {self.total_chunks}")

    def _deliver(self, audio_data: bytes) -> None:
        samples = pcm_to_samples(audio_data)
        frame = self.analyzer.analyze(samples)
        self.total_chunks += 1
        self.peak_amplitude = max(self.peak_amplitude, frame.amplitude)

        chunk = AudioChunk(
            data=audio_data,
            frame=frame,
            timestamp_ms=self.clock() * 1000.0,
            sequence_number=self.total_chunks,
        )
        try:
            self.on_chunk(chunk)
        except Exception as e:
            logger.error(f"Error in chunk callback: {e}", exc_info=True)

    def _notify_error(self, error: BaseException) -> None:
        if self._cancelled.get():
            logger.debug(f"Suppressing capture error after cancel: {error}")
            return
        if not self._error_notified.compare_and_set(False, True):
            logger.debug(f"Suppressing repeated capture error: {error}")
            return
        self.on_error(error)

    def _release(self) -> None:
        if not self._released.compare_and_set(False, True):
            return
        try:
            self.source.close()
            logger.debug("Audio source released")
        except Exception as e:
            logger.error(f"Error releasing audio source: {e}")

    def get_stats(self) -> CaptureStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time is not None:
            duration = max(0.0, self.clock() - self.start_time)

        return CaptureStats(
            is_recording=self.is_active,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            transient_reads=self.transient_reads,
            peak_amplitude=self.peak_amplitude,
        )
