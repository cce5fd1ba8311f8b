"""Workflow webhook client for sending chat messages."""

import json
import locale
import logging
import platform
import asyncio
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from .base import MessageSender
from ..errors import WebhookHttpError
from ..models.chat import ChatMessage, SendResult
from ..models.webhook import (
    PayloadMessage,
    PayloadMeta,
    WebhookPayload,
    WebhookReply,
    WorkflowResult,
)

logger = logging.getLogger(__name__)

CLIENT_NAME = "voicechat"


class WebhookMessageSender(MessageSender):
    """Posts chat messages to a workflow webhook and parses its reply."""

    def __init__(self,
                 test_url: str,
                 prod_url: Optional[str] = None,
                 mode: str = "test",
                 lang: Optional[str] = None,
                 request_timeout: float = 60.0):
        """Initialize webhook sender.

        Args:
            test_url: Webhook URL used in test mode
            prod_url: Webhook URL used in prod mode
            mode: "test" or "prod"
            lang: Language tag sent in the payload; defaults to the system locale
            request_timeout: Total timeout for one request in seconds
        """
        self.test_url = test_url
        self.prod_url = prod_url
        self.mode = mode
        self.lang = lang or _system_language()
        self.request_timeout = request_timeout

        logger.info(f"WebhookMessageSender initialized in {mode} mode: {self.url}")

    @property
    def url(self) -> str:
        if self.mode == "prod" and self.prod_url:
            return self.prod_url
        return self.test_url

    def build_payload(self, message: ChatMessage, session_id: str) -> WebhookPayload:
        device = platform.node() or platform.system() or "desktop"
        user_agent = f"{platform.system() or 'Unknown'}/{platform.release() or '0'} ({device})"
        return WebhookPayload(
            message=PayloadMessage(
                id=message.id,
                text=message.text,
                role=message.role.value,
                ts=message.timestamp_ms,
            ),
            meta=PayloadMeta(
                client=CLIENT_NAME,
                session_id=session_id,
                device=device,
                user_agent=user_agent,
                lang=self.lang,
            ),
        )

    async def send(self, message: ChatMessage, session_id: str) -> SendResult:
        payload = self.build_payload(message, session_id).model_dump(by_alias=True)
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=payload) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, UnicodeDecodeError, LookupError) as e:
            logger.error(f"Webhook send failed: {e!r}")
            return SendResult.failure(e)

        if status < 200 or status >= 300:
            logger.warning(f"Webhook error {status} {body}")
            return SendResult.failure(WebhookHttpError(status, body))

        return SendResult.success(parse_reply(body, status))


def parse_reply(body: str, status: int) -> WebhookReply:
    """Parse a webhook reply, falling back to a bare workflow result."""
    fallback = WebhookReply(ok=True, status=f"HTTP {status}", http_code=status)
    if not body or not body.strip():
        return fallback
    try:
        element: Any = json.loads(body)
    except ValueError:
        logger.warning("Webhook reply is not JSON, using status only")
        return fallback
    if isinstance(element, list) and element:
        element = element[0]
    if not isinstance(element, dict):
        return fallback

    try:
        reply = WebhookReply.model_validate(element)
        if reply.result is not None or reply.message or reply.status or reply.ok is not None:
            return reply.model_copy(update={"http_code": status})
    except ValidationError as e:
        logger.warning(f"Invalid webhook JSON, trying fallback: {e}")

    try:
        result = WorkflowResult.model_validate(element)
        return WebhookReply(ok=True, result=result, http_code=status)
    except ValidationError as e:
        logger.warning(f"Unable to parse webhook payload: {e}")
        return fallback


def _system_language() -> str:
    code = locale.getlocale()[0] or ""
    return code.split("_")[0] or "en"
