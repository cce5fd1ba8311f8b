"""Abstract base classes for transcription sessions."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..concurrency import AtomicFlag

logger = logging.getLogger(__name__)

PartialCallback = Callable[[str], None]
FinalCallback = Callable[[str], None]
ErrorCallback = Callable[[BaseException], None]


class OutcomeLatch:
    """Delivers exactly one terminal outcome: a final transcript or an error.

    Several failure sources (socket close, read error, parse error) may race
    to report; the first one wins and the rest are logged and dropped.
    ``silence()`` consumes the latch without a callback, which is how
    cancellation keeps its own unwinding from being reported as a failure.
    """

    def __init__(self, on_final: FinalCallback, on_error: ErrorCallback, name: str = "transcription"):
        self.on_final = on_final
        self.on_error = on_error
        self.name = name
        self._delivered = AtomicFlag()

    @property
    def is_done(self) -> bool:
        return self._delivered.get()

    def deliver_final(self, text: str) -> bool:
        if not self._delivered.compare_and_set(False, True):
            logger.debug(f"[{self.name}] Dropping final transcript after terminal outcome")
            return False
        self.on_final(text)
        return True

    def deliver_error(self, error: BaseException) -> bool:
        if not self._delivered.compare_and_set(False, True):
            logger.debug(f"[{self.name}] Suppressing error after terminal outcome: {error}")
            return False
        logger.error(f"[{self.name}] Transcription failed: {error}")
        self.on_error(error)
        return True

    def silence(self) -> bool:
        return self._delivered.compare_and_set(False, True)


class TranscriptionSession(ABC):
    """One turn's worth of audio sent to a transcription service.

    ``offer`` may be called from the capture thread while ``finish`` or
    ``cancel`` run on another thread. Exactly one of ``on_final`` or
    ``on_error`` is eventually called, unless the session is cancelled.
    """

    @property
    def transcript(self) -> str:
        """Best transcript known so far; used when finishing times out."""
        return ""

    @abstractmethod
    def offer(self, chunk: bytes) -> None:
        """Queue an audio chunk. Ignored once the session is closed."""
        pass

    @abstractmethod
    def finish(self, timeout: Optional[float] = None) -> None:
        """Signal end of audio and wait (up to ``timeout``) for the upload to complete."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Drop everything and release network resources without waiting."""
        pass


class Transcriber(ABC):
    """Factory for transcription sessions of one backend."""

    @abstractmethod
    def start(self,
              on_partial: PartialCallback,
              on_final: FinalCallback,
              on_error: ErrorCallback) -> TranscriptionSession:
        """Open a new session for one voice turn."""
        pass
