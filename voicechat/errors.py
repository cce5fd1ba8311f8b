"""Exception hierarchy for VoiceChat."""


class VoiceChatError(Exception):
    """Base class for all VoiceChat errors."""


class AudioDeviceError(VoiceChatError):
    """The microphone could not be acquired or initialized."""


class AudioDeviceLostError(AudioDeviceError):
    """The microphone disappeared while capture was running."""


class TranscriptionError(VoiceChatError):
    """Transport or payload failure talking to a transcription service."""


class WebhookHttpError(VoiceChatError):
    """Webhook answered with a non-success HTTP status."""

    def __init__(self, code: int, body: str):
        super().__init__(f"HTTP {code}: {body}")
        self.code = code
        self.body = body
