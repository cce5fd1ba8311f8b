"""Services layer for VoiceChat application logic."""

from .permissions import MicrophonePermission, AlwaysGrantedPermission
from .publisher import VoiceEventPublisher
from .voice_controller import VoiceInteractionController

__all__ = [
    "MicrophonePermission",
    "AlwaysGrantedPermission",
    "VoiceEventPublisher",
    "VoiceInteractionController",
]
