"""
Text-to-Speech module for Mindful.

Provides Azure Neural TTS synthesis of assistant replies.
"""

from .azure_client import AzureTTSClient, TTSError, DEFAULT_VOICE, MAX_TEXT_LENGTH

__all__ = [
    "AzureTTSClient",
    "TTSError",
    "DEFAULT_VOICE",
    "MAX_TEXT_LENGTH",
]
