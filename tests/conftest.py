"""Shared fakes for the Mindful test suite."""

import asyncio
from types import SimpleNamespace
from typing import List, Optional

import groq
import httpx
import numpy as np
import pytest

from mindful.llm import CompletionResult, GatewayConfig
from mindful.models import ServiceResult
from mindful.voice import AudioDeviceError, AudioInputDevice, AudioOutputDevice, encode_wav

VALID_KEY = "gsk_" + "a" * 52
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"


def completion_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def status_error(status: int) -> groq.APIStatusError:
    request = httpx.Request("POST", GROQ_URL)
    response = httpx.Response(status, request=request)
    cls = {
        400: groq.BadRequestError,
        401: groq.AuthenticationError,
        403: groq.PermissionDeniedError,
        429: groq.RateLimitError,
    }.get(status, groq.InternalServerError)
    return cls(f"Error code: {status}", response=response, body=None)


def connection_error() -> groq.APIConnectionError:
    return groq.APIConnectionError(request=httpx.Request("POST", GROQ_URL))


class FakeCompletions:
    """Scripted `chat.completions`; the last outcome repeats."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeGroqClient:
    def __init__(self, *outcomes):
        self.chat = SimpleNamespace(completions=FakeCompletions(outcomes))

    @property
    def calls(self):
        return self.chat.completions.calls


class FakeGateway:
    """Scripted completion gateway for orchestrator tests."""

    def __init__(self, *results: CompletionResult):
        self.results = list(results) or [CompletionResult.success("I'm here for you.")]
        self.calls = []

    async def complete(self, message, history=()):
        self.calls.append((message, list(history)))
        await asyncio.sleep(0)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeTranscriber:
    def __init__(self, result: Optional[ServiceResult] = None, error: Optional[Exception] = None):
        self.result = result or ServiceResult.success("hello there")
        self.error = error
        self.payloads: List[bytes] = []
        self.languages: List[str] = []
        self.on_call = None

    async def transcribe(self, audio, language="en", **kwargs):
        self.payloads.append(audio)
        self.languages.append(language)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.result


class FakeSynthesizer:
    """Returns a short WAV clip; `gates` can hold back replies for given texts."""

    def __init__(self, result: Optional[ServiceResult] = None):
        self.result = result or ServiceResult.success(make_wav())
        self.calls = []
        self.gates = {}

    async def synthesize(self, text, voice_id=None):
        self.calls.append((text, voice_id))
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        return self.result


class FakeInputDevice(AudioInputDevice):
    def __init__(self, chunks=None, fail: bool = False):
        self.pending = list(chunks if chunks is not None else [np.ones(1600, dtype=np.int16)])
        self.fail = fail
        self.acquired = False
        self.acquire_count = 0
        self.release_count = 0

    def acquire(self):
        self.acquire_count += 1
        if self.fail:
            raise AudioDeviceError("Permission denied")
        self.acquired = True

    def chunk(self):
        if not self.acquired or not self.pending:
            return None
        return self.pending.pop(0)

    def release(self):
        self.release_count += 1
        self.acquired = False


class FakeOutputDevice(AudioOutputDevice):
    def __init__(self, error: Optional[Exception] = None):
        self.played = []
        self.stopped = 0
        self.error = error

    def play(self, samples, sample_rate):
        if self.error:
            raise self.error
        self.played.append((samples, sample_rate))

    def stop(self):
        self.stopped += 1


def make_wav(samples: int = 160) -> bytes:
    return encode_wav([np.zeros(samples, dtype=np.int16)], 16000)


@pytest.fixture
def gateway_config():
    return GatewayConfig(api_key=VALID_KEY, base_delay=0.0, timeout=5.0)
