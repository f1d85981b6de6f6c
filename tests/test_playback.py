"""Tests for speech synthesis and playback."""

import asyncio

import pytest

from mindful.models import NoticeLevel, ServiceResult
from mindful.tts import DEFAULT_VOICE
from mindful.voice import SpeechPlayer

from .conftest import FakeOutputDevice, FakeSynthesizer


@pytest.mark.asyncio
async def test_speak_plays_audio():
    synthesizer = FakeSynthesizer()
    output = FakeOutputDevice()
    player = SpeechPlayer(synthesizer, output)

    assert await player.speak("Take a deep breath.")

    assert synthesizer.calls == [("Take a deep breath.", DEFAULT_VOICE)]
    samples, rate = output.played[0]
    assert rate == 16000
    assert len(samples) == 160


@pytest.mark.asyncio
async def test_blank_text_is_ignored():
    synthesizer = FakeSynthesizer()
    player = SpeechPlayer(synthesizer, FakeOutputDevice())
    assert not await player.speak("  ")
    assert synthesizer.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [
    ServiceResult.failure("TTS service unavailable"),
    ServiceResult.success(b"not a wav file"),
])
async def test_failures_become_notices(result):
    notices = []
    output = FakeOutputDevice()
    player = SpeechPlayer(FakeSynthesizer(result), output, on_notice=notices.append)

    assert not await player.speak("Hello")

    assert output.played == []
    assert notices[0].title == "Speech Error"
    assert notices[0].level == NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_output_device_error_becomes_notice():
    notices = []
    player = SpeechPlayer(
        FakeSynthesizer(), FakeOutputDevice(error=OSError("no device")), on_notice=notices.append
    )
    assert not await player.speak("Hello")
    assert len(notices) == 1


@pytest.mark.asyncio
async def test_newer_reply_supersedes_older():
    synthesizer = FakeSynthesizer()
    output = FakeOutputDevice()
    player = SpeechPlayer(synthesizer, output)
    gate = asyncio.Event()
    synthesizer.gates["first"] = gate

    first = asyncio.create_task(player.speak("first"))
    await asyncio.sleep(0)
    assert await player.speak("second")

    gate.set()
    assert not await first
    assert len(output.played) == 1


@pytest.mark.asyncio
async def test_stop_drops_pending_reply():
    synthesizer = FakeSynthesizer()
    output = FakeOutputDevice()
    player = SpeechPlayer(synthesizer, output)
    gate = asyncio.Event()
    synthesizer.gates["pending"] = gate

    task = asyncio.create_task(player.speak("pending"))
    await asyncio.sleep(0)
    player.stop()
    gate.set()

    assert not await task
    assert output.played == []
    assert output.stopped == 1
