"""Data models for the VoiceChat application."""

from .audio import AudioFrame, AudioChunk, CaptureStats, SAMPLE_RATE, CHANNELS
from .vad import VadConfig, VadDetection, VadPhase
from .voice import VoiceState
from .chat import ChatMessage, Role, MessageStatus, SendResult
from .webhook import (
    PlanItem,
    SourceLink,
    WorkflowResult,
    WebhookReply,
    WebhookPayload,
    PayloadMessage,
    PayloadMeta,
)

__all__ = [
    "AudioFrame",
    "AudioChunk",
    "CaptureStats",
    "SAMPLE_RATE",
    "CHANNELS",
    "VadConfig",
    "VadDetection",
    "VadPhase",
    "VoiceState",
    # Chat and webhook models
    "ChatMessage",
    "Role",
    "MessageStatus",
    "SendResult",
    "PlanItem",
    "SourceLink",
    "WorkflowResult",
    "WebhookReply",
    "WebhookPayload",
    "PayloadMessage",
    "PayloadMeta",
]
