"""Service providers for the API routes, overridable in tests."""

import logging
from functools import lru_cache
from typing import Optional

from mindful.llm import CompletionGateway
from mindful.stt import GroqWhisperClient
from mindful.tts import AzureTTSClient

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_gateway() -> CompletionGateway:
    """Shared completion gateway (stateless, safe across requests)."""
    return CompletionGateway()


@lru_cache(maxsize=1)
def get_transcriber() -> GroqWhisperClient:
    return GroqWhisperClient()


@lru_cache(maxsize=1)
def _build_synthesizer() -> Optional[AzureTTSClient]:
    try:
        return AzureTTSClient()
    except ValueError as e:
        logger.warning(f"Speech synthesis disabled: {e}")
        return None


def get_synthesizer() -> Optional[AzureTTSClient]:
    """Synthesis client, or None if Azure Speech is not configured."""
    return _build_synthesizer()
