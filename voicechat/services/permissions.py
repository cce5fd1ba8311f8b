"""Microphone permission collaborator."""

from abc import ABC, abstractmethod


class MicrophonePermission(ABC):
    """Answers whether the microphone may be used and asks for it otherwise.

    ``request`` is asynchronous: the answer comes back later through
    ``VoiceInteractionController.on_permission_result``.
    """

    @abstractmethod
    def is_granted(self) -> bool:
        pass

    @abstractmethod
    def request(self) -> None:
        pass


class AlwaysGrantedPermission(MicrophonePermission):
    """Desktop default: the operating system handles microphone access."""

    def is_granted(self) -> bool:
        return True

    def request(self) -> None:
        pass
