"""Transcription sessions for VoiceChat."""

from .accumulator import TranscriptAccumulator
from .base import OutcomeLatch, Transcriber, TranscriptionSession
from .channel import AiohttpDuplexChannel, DuplexChannel
from .http_backend import HttpTranscriber, HttpTranscriptionSession
from .streaming import StreamingTranscriber, StreamingTranscriptionSession
from .worker import AsyncWorker

__all__ = [
    "AsyncWorker",
    "AiohttpDuplexChannel",
    "DuplexChannel",
    "HttpTranscriber",
    "HttpTranscriptionSession",
    "OutcomeLatch",
    "StreamingTranscriber",
    "StreamingTranscriptionSession",
    "Transcriber",
    "TranscriptionSession",
    "TranscriptAccumulator",
]
