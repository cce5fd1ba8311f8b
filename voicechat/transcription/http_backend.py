"""Batch transcription over a single HTTP request."""

import json
import asyncio
import logging
import threading
from concurrent.futures import CancelledError, TimeoutError as FutureTimeoutError
from typing import Optional

import aiohttp

from .base import (
    ErrorCallback,
    FinalCallback,
    OutcomeLatch,
    PartialCallback,
    Transcriber,
    TranscriptionSession,
)
from .worker import AsyncWorker
from ..concurrency import AtomicFlag
from ..errors import TranscriptionError

logger = logging.getLogger(__name__)

PCM_CONTENT_TYPE = "application/octet-stream"


class HttpTranscriber(Transcriber):
    """Sends a whole turn of PCM to an HTTP endpoint answering ``{"text": ...}``."""

    def __init__(self, url: str, worker: AsyncWorker, request_timeout: float = 30.0):
        """Initialize HTTP transcriber.

        Args:
            url: Transcription endpoint accepting raw PCM via POST
            worker: Event loop thread the requests run on
            request_timeout: Total timeout for one request in seconds
        """
        if not url:
            raise ValueError("Transcription URL is required")
        self.url = url
        self.worker = worker
        self.request_timeout = request_timeout
        logger.info(f"HttpTranscriber initialized with endpoint: {url}")

    def start(self,
              on_partial: PartialCallback,
              on_final: FinalCallback,
              on_error: ErrorCallback) -> "HttpTranscriptionSession":
        return HttpTranscriptionSession(
            url=self.url,
            worker=self.worker,
            on_partial=on_partial,
            on_final=on_final,
            on_error=on_error,
            request_timeout=self.request_timeout,
        )


class HttpTranscriptionSession(TranscriptionSession):
    """Buffers audio until ``finish`` and then transcribes it in one request."""

    def __init__(self,
                 url: str,
                 worker: AsyncWorker,
                 on_partial: PartialCallback,
                 on_final: FinalCallback,
                 on_error: ErrorCallback,
                 request_timeout: float = 30.0):
        self.url = url
        self.worker = worker
        self.on_partial = on_partial
        self.request_timeout = request_timeout
        self.latch = OutcomeLatch(on_final, on_error, name="http")

        # Appended from the capture thread, flushed from the controller thread
        self.buffer_lock = threading.Lock()
        self.audio_buffer = bytearray()

        self._closed = AtomicFlag()
        self._cancelled = AtomicFlag()
        self._request = None
        self._transcript = ""

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def buffered_bytes(self) -> int:
        with self.buffer_lock:
            return len(self.audio_buffer)

    def offer(self, chunk: bytes) -> None:
        if self._closed.get() or not chunk:
            return
        with self.buffer_lock:
            self.audio_buffer.extend(chunk)

    def finish(self, timeout: Optional[float] = None) -> None:
        if not self._closed.compare_and_set(False, True):
            return
        with self.buffer_lock:
            payload = bytes(self.audio_buffer)
            self.audio_buffer.clear()

        if self._cancelled.get():
            return
        if not payload:
            logger.info("No audio buffered, finishing with empty transcript")
            self.latch.deliver_final("")
            return

        logger.info(f"Sending {len(payload)} bytes for transcription")
        self._request = self.worker.submit(self._transcribe(payload))
        try:
            self._request.result(timeout)
        except FutureTimeoutError:
            logger.warning(f"Transcription request still running after {timeout}s")
        except CancelledError:
            logger.debug("Transcription request cancelled")

    def cancel(self) -> None:
        if not self._cancelled.compare_and_set(False, True):
            return
        self._closed.set(True)
        self.latch.silence()
        with self.buffer_lock:
            self.audio_buffer.clear()
        if self._request is not None:
            self._request.cancel()
        logger.info("HTTP transcription session cancelled")

    async def _transcribe(self, payload: bytes) -> None:
        try:
            text = await self._send(payload)
        except asyncio.CancelledError:
            raise
        except TranscriptionError as e:
            self.latch.deliver_error(e)
            return
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            error = TranscriptionError(f"Transcription request failed: {e!r}")
            error.__cause__ = e
            self.latch.deliver_error(error)
            return

        self._transcript = text
        if self._cancelled.get():
            return
        if text.strip():
            self.on_partial(text)
        self.latch.deliver_final(text)

    async def _send(self, payload: bytes) -> str:
        headers = {"Content-Type": PCM_CONTENT_TYPE}
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.url, data=payload, headers=headers) as response:
                try:
                    body = await response.text()
                except (UnicodeDecodeError, LookupError) as e:
                    raise TranscriptionError(f"Undecodable ASR response: {e}") from e
                if response.status < 200 or response.status >= 300:
                    raise TranscriptionError(f"ASR HTTP {response.status} - {body}")

        return parse_transcript(body)


def parse_transcript(body: str) -> str:
    """Extract the ``text`` field of a transcription response.

    Raises:
        TranscriptionError: if the body is empty, not JSON, or lacks ``text``
    """
    if not body or not body.strip():
        raise TranscriptionError("Empty ASR response")
    try:
        parsed = json.loads(body)
    except ValueError as e:
        raise TranscriptionError(f"Invalid ASR response: {body[:200]}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("text"), str):
        raise TranscriptionError(f"ASR response has no text field: {body[:200]}")
    return parsed["text"].strip()
