"""Duplex message channel used by streaming transcription."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..errors import TranscriptionError

logger = logging.getLogger(__name__)


class DuplexChannel(ABC):
    """Bidirectional text/binary message channel, e.g. a WebSocket."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the channel; returns once the handshake completed."""
        pass

    @abstractmethod
    async def send_text(self, text: str) -> None:
        pass

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        pass

    @abstractmethod
    async def receive(self) -> Optional[str]:
        """Next text message, or None once the peer closed the channel."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        pass


class AiohttpDuplexChannel(DuplexChannel):
    """WebSocket client channel built on aiohttp."""

    def __init__(self, url: str, connect_timeout: float = 10.0, heartbeat: Optional[float] = None):
        self.url = url
        self.connect_timeout = connect_timeout
        self.heartbeat = heartbeat
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None

    async def connect(self) -> None:
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.connect_timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        try:
            self.ws = await asyncio.wait_for(
                self.session.ws_connect(self.url, heartbeat=self.heartbeat),
                timeout=self.connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self.close()
            raise TranscriptionError(f"WebSocket handshake with {self.url} failed: {e!r}") from e
        logger.info(f"WebSocket connected: {self.url}")

    def _socket(self) -> aiohttp.ClientWebSocketResponse:
        if self.ws is None or self.ws.closed:
            raise TranscriptionError("WebSocket not available")
        return self.ws

    async def send_text(self, text: str) -> None:
        await self._socket().send_str(text)

    async def send_bytes(self, data: bytes) -> None:
        await self._socket().send_bytes(data)

    async def receive(self) -> Optional[str]:
        ws = self._socket()
        while True:
            msg = await ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.BINARY:
                logger.debug(f"Ignoring {len(msg.data)} byte binary frame from server")
                continue
            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                logger.debug(f"WebSocket closed by server (code={ws.close_code})")
                return None
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise TranscriptionError(f"WebSocket error: {ws.exception()!r}")

    async def close(self) -> None:
        ws, self.ws = self.ws, None
        session, self.session = self.session, None
        try:
            if ws is not None and not ws.closed:
                await ws.close()
        finally:
            if session is not None:
                await session.close()
