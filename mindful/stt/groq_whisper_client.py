"""Groq Whisper API client for speech-to-text transcription."""

import asyncio
import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv

from ..models import ServiceResult

logger = logging.getLogger(__name__)

load_dotenv()


class STTError(Exception):
    """Exception raised for STT errors."""
    pass


class GroqWhisperClient:
    """
    Groq Whisper API client for speech-to-text.

    Takes an encoded audio payload (WAV from the recorder) and returns
    the transcript as a ServiceResult.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "whisper-large-v3",
        timeout: float = 30.0,
        client: Any = None
    ):
        """
        Initialize Groq Whisper client.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY env var)
            model: Whisper model name
            timeout: Seconds before a transcription call is abandoned
            client: Optional pre-built client exposing `audio.transcriptions.create`
        """
        self.api_key = api_key or os.getenv("GROQ_API_KEY")
        self.model = model
        self.timeout = timeout
        self._client = client

    def _get_client(self):
        """Lazy load Groq client."""
        if self._client is None:
            if not self.api_key:
                raise STTError(
                    "GROQ_API_KEY not found. Set it in .env or pass as parameter."
                )
            from groq import Groq
            self._client = Groq(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def transcribe_bytes(self, audio: bytes, language: str = "en", filename: str = "audio.wav") -> str:
        """
        Transcribe encoded audio with the Whisper API (blocking).

        Args:
            audio: Encoded audio file contents
            language: Language hint for the model
            filename: Name sent with the upload; its suffix tells the API the format

        Returns:
            Transcribed text, stripped

        Raises:
            STTError: If the request fails
        """
        if not audio:
            raise STTError("No audio data provided")

        try:
            client = self._get_client()
            transcription = client.audio.transcriptions.create(
                file=(filename, audio),
                model=self.model,
                response_format="json",
                language=language
            )
            return (transcription.text or "").strip()
        except STTError:
            raise
        except Exception as e:
            logger.error(f"Groq transcription failed: {e}")
            raise STTError(f"Transcription failed: {e}")

    async def transcribe(
        self,
        audio: bytes,
        language: str = "en",
        filename: str = "audio.wav"
    ) -> ServiceResult:
        """
        Transcribe encoded audio without blocking the event loop.

        Args:
            audio: Encoded audio file contents
            language: Language hint for the model
            filename: Name sent with the upload

        Returns:
            ServiceResult carrying the transcript, or the error message
        """
        loop = asyncio.get_running_loop()
        try:
            text = await asyncio.wait_for(
                loop.run_in_executor(None, lambda: self.transcribe_bytes(audio, language, filename)),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Transcription timed out after {self.timeout}s")
            return ServiceResult.failure("Transcription timed out")
        except STTError as e:
            return ServiceResult.failure(str(e))

        logger.info(f"Transcribed {len(audio)} bytes into {len(text)} characters")
        return ServiceResult.success(text)
