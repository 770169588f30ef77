"""AI CFO assistant and its voice front end."""

from iamcfo.assistant.cfo import (
    AssistantContext,
    AssistantState,
    CFOAssistant,
    fallback_message,
)
from iamcfo.assistant.speech import (
    TranscriptEvent,
    TranscriptKind,
    TranscriptStream,
    VoiceSession,
)

__all__ = [
    "AssistantContext",
    "AssistantState",
    "CFOAssistant",
    "fallback_message",
    "TranscriptEvent",
    "TranscriptKind",
    "TranscriptStream",
    "VoiceSession",
]
