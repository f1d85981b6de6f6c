"""Speech-to-Text module backed by Groq Whisper."""

from .groq_whisper_client import GroqWhisperClient, STTError

__all__ = ["GroqWhisperClient", "STTError"]
