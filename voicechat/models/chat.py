"""Chat domain models."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .webhook import WebhookReply


class Role(Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class MessageStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    RECEIVED = "received"
    FAILED = "failed"


@dataclass
class ChatMessage:
    """A message in the conversation."""
    text: str
    role: Role
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    status: MessageStatus = MessageStatus.PENDING


@dataclass
class SendResult:
    """Outcome of handing a message to the messaging collaborator."""
    reply: Optional["WebhookReply"] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, reply: "WebhookReply") -> "SendResult":
        return cls(reply=reply)

    @classmethod
    def failure(cls, error: BaseException) -> "SendResult":
        return cls(error=error)
