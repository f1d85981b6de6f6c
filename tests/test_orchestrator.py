"""Tests for the conversation orchestrator."""

import asyncio

import pytest

from mindful import Orchestrator, OrchestratorError
from mindful.fallback import FALLBACK_RESPONSES
from mindful.llm import CompletionResult, ErrorCode
from mindful.models import ConnectionHealth, NoticeLevel, Sender, ServiceResult
from mindful.nlp import Emotion
from mindful.voice import SpeechPlayer, VoiceRecorder
from mindful.voice.recorder import MICROPHONE_ERROR

from .conftest import (
    FakeGateway,
    FakeInputDevice,
    FakeOutputDevice,
    FakeSynthesizer,
    FakeTranscriber,
)

API_FAILURE = CompletionResult.failure(ErrorCode.API_ERROR)


def speaking_orchestrator(gateway, **kwargs):
    output = FakeOutputDevice()
    synthesizer = FakeSynthesizer()
    orchestrator = Orchestrator(
        gateway=gateway, speech_player=SpeechPlayer(synthesizer, output), **kwargs
    )
    return orchestrator, synthesizer, output


@pytest.mark.asyncio
async def test_blank_input_is_ignored():
    gateway = FakeGateway()
    orchestrator = Orchestrator(gateway=gateway, speech_enabled=False)

    assert await orchestrator.send("   ") is None
    assert orchestrator.messages == ()
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_send_without_gateway_raises():
    with pytest.raises(OrchestratorError):
        await Orchestrator().send("Hello")


@pytest.mark.asyncio
async def test_successful_turn():
    gateway = FakeGateway(CompletionResult.success("I'm glad you reached out."))
    orchestrator = Orchestrator(gateway=gateway, speech_enabled=False)

    turn = await orchestrator.send("  I feel anxious about tomorrow  ")

    assert turn.ok
    user, reply = orchestrator.messages
    assert user.sender == Sender.USER
    assert user.content == "I feel anxious about tomorrow"
    assert user.sentiment.dominant == Emotion.ANXIETY
    assert user.sentiment.score < 0
    assert reply.sender == Sender.ASSISTANT
    assert reply.content == "I'm glad you reached out."
    assert int(user.id) < int(reply.id)
    assert orchestrator.health == ConnectionHealth(0, False)


@pytest.mark.asyncio
async def test_history_excludes_new_message_and_is_capped():
    gateway = FakeGateway()
    orchestrator = Orchestrator(gateway=gateway, speech_enabled=False)

    for i in range(4):
        await orchestrator.send(f"message {i}")

    message, history = gateway.calls[-1]
    assert message == "message 3"
    assert len(history) == 5
    assert history[-1].sender == Sender.ASSISTANT
    assert all(m.content != "message 3" for m in history)
    assert gateway.calls[0][1] == []


@pytest.mark.asyncio
async def test_first_failure_shows_notice_only():
    orchestrator = Orchestrator(gateway=FakeGateway(API_FAILURE), speech_enabled=False)

    turn = await orchestrator.send("Hello")

    assert not turn.ok
    assert turn.reply is None
    assert turn.error.error_code == ErrorCode.API_ERROR
    assert len(orchestrator.messages) == 1
    assert orchestrator.health == ConnectionHealth(1, False)
    notice = orchestrator.notices[-1]
    assert notice.title == "Connection Error"
    assert notice.level == NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_second_failure_appends_fallback():
    changes = []
    orchestrator = Orchestrator(
        gateway=FakeGateway(API_FAILURE),
        speech_enabled=False,
        on_health_change=changes.append,
    )

    await orchestrator.send("Hello")
    turn = await orchestrator.send("Are you there?")

    assert turn.fallback
    assert turn.reply.content in FALLBACK_RESPONSES
    assert [m.sender for m in orchestrator.messages] == [Sender.USER, Sender.USER, Sender.ASSISTANT]
    assert orchestrator.health == ConnectionHealth(0, True)
    assert orchestrator.notices[-1].title == "Connection Issue"
    assert changes == [ConnectionHealth(1, False), ConnectionHealth(0, True)]

    await orchestrator.send("Still there?")
    assert orchestrator.health == ConnectionHealth(1, True)


@pytest.mark.asyncio
async def test_success_after_degraded_restores_health():
    gateway = FakeGateway(API_FAILURE, API_FAILURE, CompletionResult.success("Back now."))
    orchestrator = Orchestrator(gateway=gateway, speech_enabled=False)

    await orchestrator.send("one")
    await orchestrator.send("two")
    await orchestrator.send("three")

    assert orchestrator.health == ConnectionHealth(0, False)
    assert orchestrator.messages[-1].content == "Back now."


@pytest.mark.asyncio
async def test_reconnect_is_idempotent():
    orchestrator = Orchestrator(gateway=FakeGateway(API_FAILURE), speech_enabled=False)
    await orchestrator.send("one")
    await orchestrator.send("two")

    orchestrator.reconnect()
    orchestrator.reconnect()

    assert orchestrator.health == ConnectionHealth(0, False)
    assert len(orchestrator.messages) == 3
    assert orchestrator.notices[-1].title == "Reconnecting"


@pytest.mark.asyncio
async def test_reply_is_spoken():
    orchestrator, synthesizer, output = speaking_orchestrator(
        FakeGateway(CompletionResult.success("Breathe slowly."))
    )

    await orchestrator.send("Help")
    await orchestrator.wait_for_speech()

    assert synthesizer.calls[0][0] == "Breathe slowly."
    assert len(output.played) == 1


@pytest.mark.asyncio
async def test_fallback_reply_is_spoken():
    orchestrator, synthesizer, output = speaking_orchestrator(FakeGateway(API_FAILURE))

    await orchestrator.send("one")
    await orchestrator.send("two")
    await orchestrator.wait_for_speech()

    assert [text for text, _ in synthesizer.calls] == [orchestrator.messages[-1].content]


@pytest.mark.asyncio
async def test_toggle_voice_output():
    orchestrator, synthesizer, output = speaking_orchestrator(FakeGateway())

    assert orchestrator.toggle_voice_output() is False
    assert output.stopped == 1
    await orchestrator.send("Hi")
    await orchestrator.wait_for_speech()
    assert synthesizer.calls == []
    assert orchestrator.notices[-1].title == "Voice disabled"

    assert orchestrator.toggle_voice_output() is True
    await orchestrator.send("Hi again")
    await orchestrator.wait_for_speech()
    assert len(synthesizer.calls) == 1


@pytest.mark.asyncio
async def test_speech_failure_keeps_conversation_intact():
    output = FakeOutputDevice()
    player = SpeechPlayer(FakeSynthesizer(ServiceResult.failure("down")), output)
    orchestrator = Orchestrator(gateway=FakeGateway(), speech_player=player)

    turn = await orchestrator.send("Hi")
    await orchestrator.wait_for_speech()

    assert turn.ok
    assert len(orchestrator.messages) == 2
    assert orchestrator.notices[-1].title == "Speech Error"
    assert orchestrator.health == ConnectionHealth(0, False)


@pytest.mark.asyncio
async def test_is_loading_during_request():
    observed = []

    class ObservingGateway:
        async def complete(self, message, history=()):
            observed.append(orchestrator.is_loading)
            return CompletionResult.success("ok")

    orchestrator = Orchestrator(gateway=ObservingGateway(), speech_enabled=False)
    assert not orchestrator.is_loading
    await orchestrator.send("Hi")

    assert observed == [True]
    assert not orchestrator.is_loading


@pytest.mark.asyncio
async def test_concurrent_sends_are_serialized():
    in_flight = []
    release = asyncio.Event()

    class SlowGateway:
        def __init__(self):
            self.active = 0
            self.max_active = 0

        async def complete(self, message, history=()):
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            in_flight.append(message)
            if message == "first":
                await release.wait()
            self.active -= 1
            return CompletionResult.success(f"re: {message}")

    gateway = SlowGateway()
    orchestrator = Orchestrator(gateway=gateway, speech_enabled=False)

    first = asyncio.create_task(orchestrator.send("first"))
    await asyncio.sleep(0)
    second = asyncio.create_task(orchestrator.send("second"))
    await asyncio.sleep(0)

    assert in_flight == ["first"]
    release.set()
    await asyncio.gather(first, second)

    assert gateway.max_active == 1
    assert [m.content for m in orchestrator.messages] == [
        "first", "re: first", "second", "re: second"
    ]


@pytest.mark.asyncio
async def test_greeting_and_reset():
    orchestrator = Orchestrator(
        gateway=FakeGateway(API_FAILURE), speech_enabled=False, greeting="Welcome."
    )
    assert [m.content for m in orchestrator.messages] == ["Welcome."]

    await orchestrator.send("Hi")
    orchestrator.reset_conversation()

    assert [m.content for m in orchestrator.messages] == ["Welcome."]
    assert orchestrator.health == ConnectionHealth(0, False)


@pytest.mark.asyncio
async def test_on_message_callback():
    seen = []
    orchestrator = Orchestrator(gateway=FakeGateway(), speech_enabled=False, on_message=seen.append)
    await orchestrator.send("Hi")
    assert [m.sender for m in seen] == [Sender.USER, Sender.ASSISTANT]


@pytest.mark.asyncio
async def test_voice_transcript_is_auto_sent():
    gateway = FakeGateway()
    recorder = VoiceRecorder(FakeInputDevice(), FakeTranscriber(), poll_interval=0.01)
    orchestrator = Orchestrator(
        gateway=gateway, recorder=recorder, speech_enabled=False, auto_send_delay=0
    )

    assert await orchestrator.start_recording()
    assert orchestrator.is_recording
    turn = await orchestrator.stop_recording()

    assert turn.user_message.content == "hello there"
    assert gateway.calls[0][0] == "hello there"
    assert not orchestrator.is_recording
    assert orchestrator.pending_input == ""


@pytest.mark.asyncio
async def test_transcript_can_be_edited_before_auto_send():
    gateway = FakeGateway()
    recorder = VoiceRecorder(FakeInputDevice(), FakeTranscriber(), poll_interval=0.01)
    orchestrator = Orchestrator(
        gateway=gateway, recorder=recorder, speech_enabled=False, auto_send_delay=0.2
    )

    await orchestrator.start_recording()
    task = asyncio.create_task(orchestrator.stop_recording())
    while orchestrator.pending_input != "hello there":
        await asyncio.sleep(0.01)
    orchestrator.pending_input = "hello there, edited"

    turn = await task
    assert turn.user_message.content == "hello there, edited"


@pytest.mark.asyncio
async def test_toggle_recording():
    gateway = FakeGateway()
    recorder = VoiceRecorder(FakeInputDevice(), FakeTranscriber(), poll_interval=0.01)
    orchestrator = Orchestrator(
        gateway=gateway, recorder=recorder, speech_enabled=False, auto_send_delay=0
    )

    assert await orchestrator.toggle_recording() is None
    assert orchestrator.is_recording
    turn = await orchestrator.toggle_recording()
    assert turn.reply is not None


@pytest.mark.asyncio
async def test_microphone_failure_notice():
    recorder = VoiceRecorder(FakeInputDevice(fail=True), FakeTranscriber())
    orchestrator = Orchestrator(gateway=FakeGateway(), recorder=recorder, speech_enabled=False)

    assert not await orchestrator.start_recording()
    assert orchestrator.recording_error == MICROPHONE_ERROR
    assert orchestrator.notices[-1].title == "Recording failed"


@pytest.mark.asyncio
async def test_recording_without_recorder():
    orchestrator = Orchestrator(gateway=FakeGateway(), speech_enabled=False)
    assert not await orchestrator.start_recording()
    assert orchestrator.notices[-1].title == "Voice input unavailable"
    assert await orchestrator.stop_recording() is None


@pytest.mark.asyncio
async def test_empty_transcription_sends_nothing():
    gateway = FakeGateway()
    recorder = VoiceRecorder(
        FakeInputDevice(), FakeTranscriber(ServiceResult.success("")), poll_interval=0.01
    )
    orchestrator = Orchestrator(
        gateway=gateway, recorder=recorder, speech_enabled=False, auto_send_delay=0
    )

    await orchestrator.start_recording()
    assert await orchestrator.stop_recording() is None

    assert gateway.calls == []
    assert orchestrator.messages == ()
    assert orchestrator.notices[-1].title == "Transcription empty"


@pytest.mark.asyncio
async def test_initialize_without_speech_credentials(monkeypatch):
    monkeypatch.delenv("AZURE_SPEECH_KEY", raising=False)
    monkeypatch.delenv("AZURE_SPEECH_REGION", raising=False)
    orchestrator = Orchestrator(gateway=FakeGateway())

    await orchestrator.initialize()

    assert not orchestrator.is_speech_enabled
    assert orchestrator.notices[-1].title == "Voice unavailable"
