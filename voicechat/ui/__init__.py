"""Terminal presentation of voice events."""

from .console import VoiceConsole

__all__ = ["VoiceConsole"]
