"""Voice event publisher for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.audio import AudioFrame
from ..models.voice import VoiceState

logger = logging.getLogger(__name__)


class VoiceEventPublisher:
    """Publishes controller events using pubsub.pub.

    Topics are ``<prefix>.state``, ``<prefix>.frame``, ``<prefix>.partial``,
    ``<prefix>.draft``, ``<prefix>.toast`` and ``<prefix>.permission``.
    """

    def __init__(self, prefix: str = "voice"):
        """Initialize voice event publisher.

        Args:
            prefix: Root pub/sub topic name
        """
        self.prefix = prefix
        logger.info(f"VoiceEventPublisher initialized with topic prefix: {prefix}")

    def topic(self, name: str) -> str:
        return f"{self.prefix}.{name}"

    def publish_state(self, state: VoiceState) -> None:
        pub.sendMessage(self.topic("state"), state=state)
        logger.debug(f"Published voice state: {state.value}")

    def publish_frame(self, frame: AudioFrame) -> None:
        pub.sendMessage(self.topic("frame"), frame=frame)

    def publish_partial(self, text: str) -> None:
        pub.sendMessage(self.topic("partial"), text=text)

    def publish_draft(self, text: str) -> None:
        pub.sendMessage(self.topic("draft"), text=text)
        logger.debug(f"Published draft ({len(text)} chars)")

    def publish_toast(self, message: str) -> None:
        pub.sendMessage(self.topic("toast"), message=message)
        logger.debug(f"Published toast: {message}")

    def publish_permission(self, granted: bool) -> None:
        pub.sendMessage(self.topic("permission"), granted=granted)
