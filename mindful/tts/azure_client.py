"""
Azure Neural TTS client for Mindful.

Synthesizes reply text into WAV audio for playback on the client.
"""

import asyncio
import logging
import os
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

from dotenv import load_dotenv

from ..models import ServiceResult

logger = logging.getLogger(__name__)

load_dotenv()

MAX_TEXT_LENGTH = 4000
DEFAULT_VOICE = "en-US-JennyNeural"


class TTSError(Exception):
    """Exception raised when TTS synthesis fails."""

    def __init__(self, message: str, reason: Optional[str] = None, details: Optional[str] = None):
        self.reason = reason
        self.details = details
        super().__init__(message)


def _check_result(result) -> None:
    """
    Check synthesis result and raise TTSError if failed.

    Args:
        result: Speech synthesis result to check

    Raises:
        TTSError: If synthesis was not successful
    """
    import azure.cognitiveservices.speech as speechsdk

    if result.reason == speechsdk.ResultReason.SynthesizingAudioCompleted:
        return

    if result.reason == speechsdk.ResultReason.Canceled:
        cancellation = result.cancellation_details
        error_msg = f"Speech synthesis canceled: {cancellation.reason}"

        if cancellation.reason == speechsdk.CancellationReason.Error:
            raise TTSError(
                message=error_msg,
                reason=str(cancellation.error_code),
                details=cancellation.error_details
            )
        raise TTSError(message=error_msg, reason=str(cancellation.reason))

    raise TTSError(
        message=f"Speech synthesis failed with reason: {result.reason}",
        reason=str(result.reason)
    )


def truncate_text(text: str, limit: int = MAX_TEXT_LENGTH) -> str:
    """Cut text to the synthesis length limit, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_ssml(text: str, voice_id: str) -> str:
    """Wrap plain text in a minimal SSML document for the given voice."""
    return (
        '<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis" xml:lang="en-US">'
        f"<voice name={quoteattr(voice_id)}>{escape(text)}</voice>"
        "</speak>"
    )


class AzureTTSClient:
    """
    Azure Neural TTS client.

    Produces RIFF 16 kHz 16-bit mono PCM, which the playback side
    decodes directly.
    """

    def __init__(
        self,
        speech_key: Optional[str] = None,
        speech_region: Optional[str] = None,
        voice: str = DEFAULT_VOICE,
        timeout: float = 30.0
    ):
        """
        Initialize Azure TTS client.

        Args:
            speech_key: Azure Speech API key (defaults to AZURE_SPEECH_KEY env var)
            speech_region: Azure region (defaults to AZURE_SPEECH_REGION env var)
            voice: Default Azure Neural voice name
            timeout: Seconds before a synthesis call is abandoned
        """
        self.speech_key = speech_key or os.getenv("AZURE_SPEECH_KEY")
        self.speech_region = speech_region or os.getenv("AZURE_SPEECH_REGION")

        if not self.speech_key:
            raise ValueError(
                "Azure Speech key not provided. "
                "Set AZURE_SPEECH_KEY environment variable or pass speech_key parameter."
            )

        if not self.speech_region:
            raise ValueError(
                "Azure Speech region not provided. "
                "Set AZURE_SPEECH_REGION environment variable or pass speech_region parameter."
            )

        self.voice = voice
        self.timeout = timeout
        self._speech_config = None

    def _get_speech_config(self):
        """Create Azure Speech configuration on first use."""
        if self._speech_config is None:
            import azure.cognitiveservices.speech as speechsdk

            config = speechsdk.SpeechConfig(
                subscription=self.speech_key,
                region=self.speech_region
            )
            # PCM so the client can decode without an MP3 codec
            config.set_speech_synthesis_output_format(
                speechsdk.SpeechSynthesisOutputFormat.Riff16Khz16BitMonoPcm
            )
            self._speech_config = config
        return self._speech_config

    def synthesize_to_bytes(self, text: str, voice_id: Optional[str] = None) -> bytes:
        """
        Synthesize text and return audio bytes (blocking).

        Args:
            text: Text to synthesize
            voice_id: Azure voice name, defaults to the client's voice

        Returns:
            WAV audio data

        Raises:
            TTSError: If synthesis fails
        """
        import azure.cognitiveservices.speech as speechsdk

        if not text or not text.strip():
            raise TTSError("No text provided")

        ssml = build_ssml(truncate_text(text.strip()), voice_id or self.voice)

        # None audio config keeps the audio in the result
        synthesizer = speechsdk.SpeechSynthesizer(
            speech_config=self._get_speech_config(),
            audio_config=None
        )

        result = synthesizer.speak_ssml_async(ssml).get()
        _check_result(result)
        return result.audio_data

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> ServiceResult:
        """
        Synthesize text without blocking the event loop.

        Args:
            text: Text to synthesize
            voice_id: Azure voice name

        Returns:
            ServiceResult carrying WAV bytes, or the error message
        """
        loop = asyncio.get_running_loop()
        try:
            audio = await asyncio.wait_for(
                loop.run_in_executor(None, lambda: self.synthesize_to_bytes(text, voice_id)),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Speech synthesis timed out after {self.timeout}s")
            return ServiceResult.failure("Speech synthesis timed out")
        except TTSError as e:
            logger.error(f"Speech synthesis failed: {e} ({e.reason}: {e.details})")
            return ServiceResult.failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected speech synthesis failure: {e}")
            return ServiceResult.failure(f"Speech synthesis failed: {e}")

        if not audio:
            return ServiceResult.failure("No audio content received")
        return ServiceResult.success(audio)
