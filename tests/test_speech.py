"""Tests for the voice session."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from iamcfo.assistant.speech import (
    CONNECTION_ERROR_MESSAGE,
    MICROPHONE_BLOCKED_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    RECOGNITION_ERROR_MESSAGE,
    TROUBLE_RESPONSE,
    UNAVAILABLE_MESSAGE,
    TranscriptEvent,
    TranscriptStream,
    VoiceSession,
)


class FakeRecognizer:
    """Replays scripted events, then ends the stream."""

    def __init__(self, events, finish=True):
        self.events = events
        self.finish = finish
        self.stopped = False

    def start(self, stream: TranscriptStream) -> None:
        for event in self.events:
            stream.push(event)
        if self.finish:
            stream.close()

    def stop(self) -> None:
        self.stopped = True


class BlockedRecognizer:
    def start(self, stream):
        raise PermissionError("Permission denied")

    def stop(self):
        pass


@pytest.fixture
def assistant():
    mock = MagicMock()
    mock.ask = AsyncMock(return_value="Cash is up 12%.")
    return mock


@pytest.fixture
def synthesizer():
    mock = MagicMock()
    mock.speak = AsyncMock()
    return mock


class TestListen:
    @pytest.mark.asyncio
    async def test_final_transcript_is_submitted_and_spoken(self, assistant, synthesizer):
        recognizer = FakeRecognizer(
            [
                TranscriptEvent.interim("how is"),
                TranscriptEvent.interim("how is cash"),
                TranscriptEvent.final(" how is cash doing "),
            ]
        )
        session = VoiceSession(assistant, recognizer, synthesizer)

        answer = await session.listen()

        assert answer == "Cash is up 12%."
        assert session.transcript == "how is cash doing"
        assistant.ask.assert_awaited_once_with(
            "how is cash doing", {"platform": "web-floating-siri", "requestType": "voice_query"}
        )
        synthesizer.speak.assert_awaited_once_with("Cash is up 12%.", rate=0.9, pitch=1.0)
        assert session.is_listening is False
        assert session.is_processing is False

    @pytest.mark.asyncio
    async def test_late_interim_does_not_replace_final(self, assistant):
        recognizer = FakeRecognizer(
            [
                TranscriptEvent.final("show payroll for march"),
                TranscriptEvent.interim("show"),
            ]
        )
        session = VoiceSession(assistant, recognizer)

        await session.listen()

        assert session.transcript == "show payroll for march"
        assistant.ask.assert_awaited_once_with(
            "show payroll for march", {"platform": "web-floating-siri", "requestType": "voice_query"}
        )

    @pytest.mark.asyncio
    async def test_interim_only_is_not_submitted(self, assistant):
        session = VoiceSession(assistant, FakeRecognizer([TranscriptEvent.interim("how is")]))

        assert await session.listen() is None

        assert session.transcript == "how is"
        assistant.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_recognizer(self, assistant):
        session = VoiceSession(assistant)

        assert await session.listen() is None

        assert session.voice_available is False
        assert session.error_message == UNAVAILABLE_MESSAGE

    @pytest.mark.asyncio
    async def test_blocked_microphone(self, assistant):
        session = VoiceSession(assistant, BlockedRecognizer())

        assert await session.listen() is None

        assert session.error_message == MICROPHONE_BLOCKED_MESSAGE
        assert session.is_listening is False

    @pytest.mark.asyncio
    async def test_not_allowed_error(self, assistant):
        recognizer = FakeRecognizer(
            [TranscriptEvent.final("hello"), TranscriptEvent.failure("not-allowed")], finish=False
        )
        session = VoiceSession(assistant, recognizer)

        assert await session.listen() is None

        assert session.error_message == PERMISSION_DENIED_MESSAGE
        assistant.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_recognition_error(self, assistant):
        session = VoiceSession(assistant, FakeRecognizer([TranscriptEvent.failure("network")]))

        await session.listen()

        assert session.error_message == RECOGNITION_ERROR_MESSAGE

        session.dismiss_error()
        assert session.error_message == ""


class TestSubmit:
    @pytest.mark.asyncio
    async def test_typed_question(self, assistant):
        session = VoiceSession(assistant, context={"requestType": "typed_query"})

        assert await session.submit("  payroll this month?  ") == "Cash is up 12%."

        assistant.ask.assert_awaited_once_with(
            "payroll this month?", {"platform": "web-floating-siri", "requestType": "typed_query"}
        )

    @pytest.mark.asyncio
    async def test_blank_question_is_ignored(self, assistant):
        assert await VoiceSession(assistant).submit("   ") is None
        assistant.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_assistant_failure(self, assistant, synthesizer):
        assistant.ask.side_effect = ConnectionError("offline")
        session = VoiceSession(assistant, synthesizer=synthesizer)

        answer = await session.submit("anything")

        assert answer == TROUBLE_RESPONSE
        assert session.error_message == CONNECTION_ERROR_MESSAGE
        assert session.is_processing is False
        synthesizer.speak.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_synthesis_failure_keeps_answer(self, assistant, synthesizer):
        synthesizer.speak.side_effect = RuntimeError("no audio device")
        session = VoiceSession(assistant, synthesizer=synthesizer)

        assert await session.submit("anything") == "Cash is up 12%."
