"""Outbound chat messaging."""

from .base import MessageSender
from .webhook import WebhookMessageSender, parse_reply

__all__ = [
    "MessageSender",
    "WebhookMessageSender",
    "parse_reply",
]
