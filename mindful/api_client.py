"""HTTP client for the Mindful backend API."""

import asyncio
import base64
import logging
import os
from typing import Any, Dict, Optional, Sequence

import requests
from dotenv import load_dotenv

from .llm import HISTORY_LIMIT, CompletionResult, ErrorCode
from .models import ServiceResult

load_dotenv()

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Exception raised when the backend answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class APIClient:
    """
    Client for the Mindful backend.

    Offers the same `complete`, `transcribe` and `synthesize` contract as
    the in-process services, so the orchestrator can use either.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 60.0):
        """
        Initialize API client.

        Args:
            base_url: Base URL of the backend API (defaults to BACKEND_API_URL env var)
            timeout: Seconds before any request is abandoned
        """
        self.base_url = (base_url or os.getenv("BACKEND_API_URL", "http://localhost:8000")).rstrip("/")
        self.timeout = timeout
        logger.info(f"Initialized API client with base URL: {self.base_url}")

    def _handle_response(self, response: requests.Response) -> Dict[str, Any]:
        """
        Handle API response and raise exceptions for errors.

        Args:
            response: Response from API

        Returns:
            JSON response data

        Raises:
            APIError: If API returns an error
        """
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            try:
                detail = response.json().get("detail", str(e))
            except (ValueError, AttributeError):
                detail = str(e)
            logger.error(f"API error: {detail}")
            raise APIError(f"API error: {detail}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise APIError("API returned a non-JSON response", status_code=response.status_code)

        if not isinstance(data, dict):
            raise APIError("API returned an unexpected response body", status_code=response.status_code)
        return data

    async def _run(self, fn):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    def health_check(self) -> Dict[str, Any]:
        """
        Check API health status.

        Returns:
            Health status information
        """
        response = requests.get(f"{self.base_url}/api/health", timeout=5)
        return self._handle_response(response)

    async def complete(self, message: Optional[str], history: Sequence[Any] = ()) -> CompletionResult:
        """
        Send a chat message through the backend gateway.

        Args:
            message: User input text
            history: Prior messages (anything with `content` and `sender`)

        Returns:
            CompletionResult; transport failures map to network_error.
        """
        payload = {
            "message": message,
            "previous_messages": [
                {
                    "content": item.content,
                    "sender": getattr(item.sender, "value", item.sender)
                }
                for item in list(history)[-HISTORY_LIMIT:]
            ]
        }

        try:
            data = await self._run(lambda: self._handle_response(requests.post(
                f"{self.base_url}/api/chat",
                json=payload,
                timeout=self.timeout
            )))
        except requests.exceptions.RequestException as e:
            logger.error(f"Chat request failed: {e}")
            return CompletionResult.failure(ErrorCode.NETWORK_ERROR)
        except APIError as e:
            logger.error(f"Chat failed: {e}")
            return CompletionResult.failure(ErrorCode.API_ERROR)

        text = data.get("response")
        if not isinstance(text, str):
            text = ""
        if data.get("status") == "success" and text.strip():
            return CompletionResult.success(text)

        try:
            code = ErrorCode(data.get("code"))
        except (ValueError, TypeError):
            code = ErrorCode.API_ERROR
        return CompletionResult.failure(code, text or None)

    async def transcribe(
        self,
        audio: bytes,
        language: str = "en",
        filename: str = "audio.wav"
    ) -> ServiceResult:
        """
        Transcribe audio through the backend.

        Args:
            audio: Encoded audio file contents
            language: Language hint
            filename: Upload file name

        Returns:
            ServiceResult carrying the transcript
        """
        try:
            data = await self._run(lambda: self._handle_response(requests.post(
                f"{self.base_url}/api/transcribe",
                files={"audio": (filename, audio, "audio/wav")},
                data={"language": language},
                timeout=self.timeout
            )))
        except (requests.exceptions.RequestException, APIError) as e:
            logger.error(f"Transcription failed: {e}")
            return ServiceResult.failure(str(e))

        text = data.get("text")
        return ServiceResult.success(text if isinstance(text, str) else "")

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> ServiceResult:
        """
        Synthesize speech through the backend.

        Args:
            text: Text to synthesize
            voice_id: Voice name, backend default if None

        Returns:
            ServiceResult carrying WAV bytes
        """
        try:
            data = await self._run(lambda: self._handle_response(requests.post(
                f"{self.base_url}/api/synthesize",
                json={"text": text, "voice": voice_id},
                timeout=self.timeout
            )))
            content = data.get("audio_content")
            if not isinstance(content, str):
                raise APIError("No audio content received")
            audio = base64.b64decode(content, validate=True)
        except (requests.exceptions.RequestException, APIError, ValueError) as e:
            logger.error(f"Speech synthesis failed: {e}")
            return ServiceResult.failure(str(e))

        if not audio:
            return ServiceResult.failure("No audio content received")
        return ServiceResult.success(audio)
