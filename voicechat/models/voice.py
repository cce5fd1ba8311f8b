"""Voice interaction state models."""

from enum import Enum


class VoiceState(Enum):
    """Phases of one voice turn as seen by the UI."""
    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
