"""Streaming transcription over a duplex channel (Vosk-style WebSocket protocol)."""

import json
import asyncio
import logging
from concurrent.futures import CancelledError, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from .accumulator import TranscriptAccumulator
from .base import (
    ErrorCallback,
    FinalCallback,
    OutcomeLatch,
    PartialCallback,
    Transcriber,
    TranscriptionSession,
)
from .channel import AiohttpDuplexChannel, DuplexChannel
from .worker import AsyncWorker
from ..concurrency import AtomicFlag
from ..errors import TranscriptionError
from ..models.audio import SAMPLE_RATE

logger = logging.getLogger(__name__)

EOF_MESSAGE = '{"eof" : 1}'
_END_OF_STREAM = object()


def config_message(sample_rate: int = SAMPLE_RATE) -> str:
    return json.dumps({"config": {"sample_rate": sample_rate, "words": True}})


class StreamingTranscriber(Transcriber):
    """Opens one duplex channel per session and streams audio as it arrives."""

    def __init__(self,
                 worker: AsyncWorker,
                 url: Optional[str] = None,
                 channel_factory: Optional[Callable[[], DuplexChannel]] = None,
                 max_pending_chunks: Optional[int] = None,
                 sample_rate: int = SAMPLE_RATE):
        """Initialize streaming transcriber.

        Args:
            worker: Event loop thread the channel runs on
            url: WebSocket URL; used when no channel_factory is given
            channel_factory: Creates a fresh channel per session
            max_pending_chunks: Upper bound on queued chunks; None means unbounded
            sample_rate: Sample rate announced in the handshake
        """
        if channel_factory is None:
            if not url:
                raise ValueError("Either url or channel_factory is required")
            channel_factory = lambda: AiohttpDuplexChannel(url)
        self.worker = worker
        self.url = url
        self.channel_factory = channel_factory
        self.max_pending_chunks = max_pending_chunks
        self.sample_rate = sample_rate

    def start(self,
              on_partial: PartialCallback,
              on_final: FinalCallback,
              on_error: ErrorCallback) -> "StreamingTranscriptionSession":
        session = StreamingTranscriptionSession(
            channel=self.channel_factory(),
            worker=self.worker,
            on_partial=on_partial,
            on_final=on_final,
            on_error=on_error,
            max_pending_chunks=self.max_pending_chunks,
            sample_rate=self.sample_rate,
        )
        session.open()
        return session


class StreamingTranscriptionSession(TranscriptionSession):
    """Forwards audio chunks over a channel while receiving transcript events.

    Two tasks run on the worker loop: the run task (connect, handshake,
    receive) and the sender task (drain the chunk queue, then send the
    end-of-stream marker). The queue decouples the capture thread from
    network backpressure.
    """

    def __init__(self,
                 channel: DuplexChannel,
                 worker: AsyncWorker,
                 on_partial: PartialCallback,
                 on_final: FinalCallback,
                 on_error: ErrorCallback,
                 max_pending_chunks: Optional[int] = None,
                 sample_rate: int = SAMPLE_RATE):
        self.channel = channel
        self.worker = worker
        self.on_partial = on_partial
        self.max_pending_chunks = max_pending_chunks
        self.sample_rate = sample_rate
        self.latch = OutcomeLatch(on_final, on_error, name="streaming")
        self.accumulator = TranscriptAccumulator()

        self._queue: asyncio.Queue = asyncio.Queue()
        self._opened: Optional[asyncio.Event] = None
        self._closed = AtomicFlag()
        self._cancelled = AtomicFlag()
        self._eof_sent = False
        self._run_future = None
        self._run_task: Optional[asyncio.Task] = None
        self._sender_task: Optional[asyncio.Task] = None
        self.chunks_sent = 0

    @property
    def transcript(self) -> str:
        return self.accumulator.text

    def open(self) -> None:
        self._run_future = self.worker.submit(self._run())

    def offer(self, chunk: bytes) -> None:
        if self._closed.get() or not chunk:
            return
        try:
            self.worker.call_soon(self._enqueue, chunk)
        except RuntimeError as e:
            logger.warning(f"Dropping audio chunk: {e}")

    def finish(self, timeout: Optional[float] = None) -> None:
        if not self._closed.compare_and_set(False, True):
            return
        if self._cancelled.get():
            return
        logger.info("Closing audio stream")
        self.worker.call_soon(self._queue.put_nowait, _END_OF_STREAM)
        drained = self.worker.submit(self._wait_for_sender())
        try:
            drained.result(timeout)
        except FutureTimeoutError:
            logger.warning(f"Audio sender still draining after {timeout}s")
        except CancelledError:
            logger.debug("Audio sender cancelled while finishing")

    def cancel(self) -> None:
        if not self._cancelled.compare_and_set(False, True):
            return
        self._closed.set(True)
        self.latch.silence()
        logger.info("Streaming transcription session cancelled")
        try:
            self.worker.call_soon(self._teardown)
        except RuntimeError:
            logger.debug("Worker already stopped; nothing to tear down")

    # Everything below runs on the worker loop

    def _enqueue(self, chunk: bytes) -> None:
        if self._cancelled.get() or self.latch.is_done:
            return
        if self.max_pending_chunks is not None and self._queue.qsize() >= self.max_pending_chunks:
            self._fail(TranscriptionError("Audio buffer overflow"))
            return
        self._queue.put_nowait(chunk)

    async def _run(self) -> None:
        self._run_task = asyncio.current_task()
        self._opened = asyncio.Event()
        self._sender_task = asyncio.create_task(self._send_audio())
        try:
            await self.channel.connect()
            await self.channel.send_text(config_message(self.sample_rate))
            self._opened.set()
            await self._receive_transcripts()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._fail(e)
        finally:
            if not self._sender_task.done():
                self._sender_task.cancel()
            try:
                await self.channel.close()
            except Exception as e:
                logger.warning(f"Error closing transcription channel: {e}")

    async def _send_audio(self) -> None:
        await self._opened.wait()
        try:
            while True:
                chunk = await self._queue.get()
                if chunk is _END_OF_STREAM:
                    break
                await self.channel.send_bytes(chunk)
                self.chunks_sent += 1
            self._eof_sent = True
            await self.channel.send_text(EOF_MESSAGE)
            logger.debug(f"End of stream sent after {self.chunks_sent} chunks")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._fail(e)

    async def _wait_for_sender(self) -> None:
        # The run task is scheduled first but may not have created the sender yet
        while self._sender_task is None and not self._run_future.done():
            await asyncio.sleep(0)
        if self._sender_task is not None:
            await asyncio.wait({self._sender_task})

    async def _receive_transcripts(self) -> None:
        while True:
            payload = await self.channel.receive()
            if payload is None:
                break
            if self._handle_message(payload):
                return

        if self._eof_sent:
            self.latch.deliver_final(self.accumulator.text)
        elif not self._cancelled.get():
            raise TranscriptionError("Transcription channel closed before end of stream")

    def _handle_message(self, payload: str) -> bool:
        """Apply one server message. Returns True once the final transcript was delivered."""
        try:
            message = json.loads(payload)
        except ValueError as e:
            raise TranscriptionError(f"Invalid transcription payload: {payload[:200]}") from e
        if not isinstance(message, dict):
            raise TranscriptionError(f"Unexpected transcription payload: {payload[:200]}")

        partial = message.get("partial")
        if isinstance(partial, str) and partial.strip():
            self.on_partial(self.accumulator.merge(partial))

        text = message.get("text")
        if isinstance(text, str):
            merged = self.accumulator.merge(text)
            if self._eof_sent:
                self.latch.deliver_final(merged)
                return True
            if text.strip():
                self.on_partial(merged)
        return False

    def _fail(self, error: BaseException) -> None:
        if not isinstance(error, TranscriptionError):
            wrapped = TranscriptionError(f"Streaming transcription failed: {error!r}")
            wrapped.__cause__ = error
            error = wrapped
        if self.latch.deliver_error(error):
            self._teardown()

    def _teardown(self) -> None:
        current = asyncio.current_task()
        for task in (self._sender_task, self._run_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        if self._run_task is None and self._run_future is not None:
            self._run_future.cancel()
