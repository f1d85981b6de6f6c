"""
Speech output for Mindful.

Synthesizes reply text, decodes the WAV audio and plays it. Every
failure is reported as a notice; nothing here touches conversation state.
"""

import logging
from typing import Any, Callable, Optional

import numpy as np

from ..models import Notice, NoticeLevel
from ..tts import DEFAULT_VOICE
from .audio import decode_wav

logger = logging.getLogger(__name__)


class AudioOutputDevice:
    """Capability interface for audio playback."""

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError


class SoundDevicePlayer(AudioOutputDevice):
    """Speaker output through sounddevice."""

    def __init__(self, device: Optional[Any] = None):
        self.device = device

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        import sounddevice as sd

        # sd.play interrupts whatever is currently playing
        sd.play(samples, sample_rate, device=self.device)

    def stop(self) -> None:
        import sounddevice as sd

        sd.stop()


class SpeechPlayer:
    """
    Synthesize -> decode -> play, best effort.

    Several speak() calls may be in flight; a newer call supersedes older
    ones, so only the most recently requested reply is heard.
    """

    def __init__(
        self,
        synthesizer: Any,
        output: AudioOutputDevice,
        voice_id: str = DEFAULT_VOICE,
        on_notice: Optional[Callable[[Notice], None]] = None
    ):
        """
        Initialize the player.

        Args:
            synthesizer: Object with `async synthesize(text, voice_id)` returning a ServiceResult
            output: Audio output capability
            voice_id: Voice requested from the synthesis service
            on_notice: Callback for playback failures
        """
        self.synthesizer = synthesizer
        self.output = output
        self.voice_id = voice_id
        self.on_notice = on_notice
        self._generation = 0

    async def speak(self, text: str) -> bool:
        """
        Speak text.

        Returns:
            True if audio was handed to the output device.
        """
        if not text or not text.strip():
            return False

        self._generation += 1
        generation = self._generation

        try:
            result = await self.synthesizer.synthesize(text, self.voice_id)
            if not result.ok:
                raise RuntimeError(result.error or "No audio content received")

            sample_rate, samples = decode_wav(result.value)

            if generation != self._generation:
                logger.info("Skipping playback superseded by a newer reply")
                return False

            self.output.play(samples, sample_rate)
            return True

        except Exception as e:
            logger.warning(f"Error playing text-to-speech: {e}")
            self._report(Notice(
                "Speech Error",
                "Could not play the audio response.",
                NoticeLevel.ERROR
            ))
            return False

    def stop(self) -> None:
        """Silence playback and drop any pending replies."""
        self._generation += 1
        try:
            self.output.stop()
        except Exception as e:
            logger.warning(f"Error stopping playback: {e}")

    def _report(self, notice: Notice) -> None:
        if self.on_notice:
            self.on_notice(notice)
