"""Background event loop shared by transcription sessions."""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)


class AsyncWorker:
    """Runs an asyncio event loop on a dedicated daemon thread.

    Network I/O of transcription sessions runs here, so neither the capture
    thread nor the controller thread ever blocks on a socket.
    """

    def __init__(self, name: str = "TranscriptionLoop"):
        self.name = name
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> "AsyncWorker":
        with self._lock:
            if self.is_running:
                return self
            self._ready.clear()
            self.thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
            self.thread.start()
        self._ready.wait()
        logger.debug(f"{self.name} started")
        return self

    def _run_loop(self) -> None:
        """The loop thread. Initializes an asyncio loop and runs it until stopped."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self.loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
            logger.debug(f"{self.name} exiting and closing its event loop.")

    def in_loop_thread(self) -> bool:
        return threading.current_thread() is self.thread

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        """Schedule a coroutine on the loop from any thread."""
        if not self.is_running:
            coro.close()
            raise RuntimeError(f"{self.name} is not running")
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run a plain callback on the loop; FIFO per calling thread."""
        if not self.is_running:
            raise RuntimeError(f"{self.name} is not running")
        self.loop.call_soon_threadsafe(callback, *args)

    def shutdown(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self.thread
            if thread is None or not thread.is_alive():
                return
            self.loop.call_soon_threadsafe(self.loop.stop)
        if not self.in_loop_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"{self.name} did not terminate cleanly")

    def __enter__(self):
        return self.start()

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        self.shutdown()
