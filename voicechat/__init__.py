"""VoiceChat: voice input core for a chat client."""

__version__ = "0.1.0"
