"""Voice front end for the assistant.

A recognizer pushes ``TranscriptEvent`` values into a ``TranscriptStream``;
``VoiceSession`` consumes the stream, submits the final transcript to the
assistant and optionally reads the answer aloud.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)

UNAVAILABLE_MESSAGE = (
    "Voice recognition is not available in this browser, but you can still ask "
    "the AI CFO by typing below."
)
PERMISSION_DENIED_MESSAGE = (
    "Microphone access was denied. Please enable permissions in your browser settings."
)
MICROPHONE_BLOCKED_MESSAGE = (
    "Microphone access was denied. Please enable it to use voice commands."
)
RECOGNITION_ERROR_MESSAGE = "We ran into a speech recognition error. Please try again."
TROUBLE_RESPONSE = "I'm having trouble processing that request. Please try again."
CONNECTION_ERROR_MESSAGE = (
    "There was an issue connecting to the AI assistant. Please try again in a moment."
)


class TranscriptKind(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    ERROR = "error"


@dataclass(frozen=True)
class TranscriptEvent:
    kind: TranscriptKind
    text: str = ""
    error: str | None = None

    @classmethod
    def interim(cls, text: str) -> "TranscriptEvent":
        return cls(TranscriptKind.INTERIM, text)

    @classmethod
    def final(cls, text: str) -> "TranscriptEvent":
        return cls(TranscriptKind.FINAL, text)

    @classmethod
    def failure(cls, error: str) -> "TranscriptEvent":
        return cls(TranscriptKind.ERROR, error=error)


class TranscriptStream:
    """Async iterator over recognizer events, ended by ``close()``."""

    _END = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: TranscriptEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._END)

    def __aiter__(self) -> AsyncIterator[TranscriptEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[TranscriptEvent]:
        while True:
            item = await self._queue.get()
            if item is self._END:
                return
            yield item


class Recognizer(Protocol):
    """Speech recognizer feeding a stream until stopped or finished."""

    def start(self, stream: TranscriptStream) -> None: ...

    def stop(self) -> None: ...


class Synthesizer(Protocol):
    async def speak(self, text: str, rate: float = 0.9, pitch: float = 1.0) -> None: ...


class Assistant(Protocol):
    async def ask(self, message: str, context: Any = None) -> str: ...


class VoiceSession:
    """One voice conversation surface: listen, submit, show or speak the answer."""

    def __init__(
        self,
        assistant: Assistant,
        recognizer: Recognizer | None = None,
        synthesizer: Synthesizer | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.assistant = assistant
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.context = {"platform": "web-floating-siri", "requestType": "voice_query", **(context or {})}

        self.transcript = ""
        self.response = ""
        self.error_message = ""
        self.is_listening = False
        self.is_processing = False
        self._stream: TranscriptStream | None = None

    @property
    def voice_available(self) -> bool:
        return self.recognizer is not None

    def dismiss_error(self) -> None:
        self.error_message = ""

    async def listen(self) -> str | None:
        """Listen until the recognizer ends, then answer the final transcript.

        Returns the answer, or None when nothing was submitted.
        """
        if self.recognizer is None:
            self.error_message = UNAVAILABLE_MESSAGE
            return None
        if self.is_listening:
            return None

        self.transcript = ""
        self.response = ""
        self.error_message = ""
        stream = TranscriptStream()
        self._stream = stream
        try:
            self.recognizer.start(stream)
        except PermissionError as e:
            logger.warning("microphone_denied", error=str(e))
            self.error_message = MICROPHONE_BLOCKED_MESSAGE
            return None

        self.is_listening = True
        should_process = False
        try:
            async for event in stream:
                if event.kind == TranscriptKind.ERROR:
                    logger.error("speech_recognition_error", error=event.error)
                    self.error_message = (
                        PERMISSION_DENIED_MESSAGE
                        if event.error == "not-allowed"
                        else RECOGNITION_ERROR_MESSAGE
                    )
                    should_process = False
                    self.stop()
                    break
                text = event.text.strip()
                if not text:
                    continue
                if event.kind == TranscriptKind.FINAL:
                    self.transcript = text
                    should_process = True
                elif not should_process:
                    # Interim text never replaces a final transcript
                    self.transcript = text
        finally:
            self.is_listening = False
            self._stream = None

        if should_process and self.transcript and not self.is_processing:
            return await self.submit(self.transcript)
        return None

    def stop(self) -> None:
        """Stop listening; a final transcript already heard is still submitted."""
        if self.recognizer is not None and self.is_listening:
            self.recognizer.stop()
        if self._stream is not None:
            self._stream.close()

    async def submit(self, query: str) -> str | None:
        """Ask the assistant directly; also the typed-question path."""
        query = query.strip()
        if not query:
            return None

        self.transcript = query
        self.is_processing = True
        self.error_message = ""
        try:
            self.response = await self.assistant.ask(query, self.context)
        except Exception as e:
            logger.error("voice_query_failed", error=str(e))
            self.response = TROUBLE_RESPONSE
            self.error_message = CONNECTION_ERROR_MESSAGE
            return self.response
        finally:
            self.is_processing = False

        if self.synthesizer is not None:
            try:
                await self.synthesizer.speak(self.response, rate=0.9, pitch=1.0)
            except Exception as e:
                logger.warning("speech_synthesis_failed", error=str(e))
        return self.response
