"""Abstract outbound message collaborator."""

from abc import ABC, abstractmethod

from ..models.chat import ChatMessage, SendResult


class MessageSender(ABC):
    """Delivers a chat message to the remote workflow."""

    @abstractmethod
    async def send(self, message: ChatMessage, session_id: str) -> SendResult:
        """Send ``message`` for conversation ``session_id``.

        Never raises for transport problems; failures come back as
        ``SendResult.failure``.
        """
        pass
