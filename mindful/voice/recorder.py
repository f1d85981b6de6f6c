"""
Voice capture for Mindful.

State machine: IDLE -> RECORDING -> STOPPING -> TRANSCRIBING -> IDLE.
Audio is pulled from an AudioInputDevice into a RecordingSession,
finalized into a WAV payload and sent to the transcription service.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import numpy as np

from ..models import Notice, NoticeLevel
from .audio import SAMPLE_RATE, encode_wav

logger = logging.getLogger(__name__)

MICROPHONE_ERROR = "Microphone access denied. Please check your device permissions."


class AudioDeviceError(Exception):
    """Exception raised when the audio input device cannot be used."""
    pass


class RecorderState(Enum):
    """States of the capture pipeline."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"
    TRANSCRIBING = "transcribing"


class AudioInputDevice:
    """
    Capability interface for an exclusively owned audio input.

    acquire() opens the device, chunk() returns the audio captured since
    the previous call (or None), release() closes it.
    """

    sample_rate: int = SAMPLE_RATE

    def acquire(self) -> None:
        raise NotImplementedError

    def chunk(self) -> Optional[np.ndarray]:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError


class SoundDeviceInput(AudioInputDevice):
    """Microphone input through sounddevice (16 kHz, mono, int16)."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, device: Optional[Any] = None):
        """
        Args:
            sample_rate: Capture sample rate
            device: sounddevice device index or name (None for the default input)
        """
        self.sample_rate = sample_rate
        self.device = device
        self._stream = None

    def acquire(self) -> None:
        if self._stream is not None:
            raise AudioDeviceError("Input device is already in use")

        try:
            import sounddevice as sd

            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="int16",
                device=self.device
            )
            stream.start()
        except Exception as e:
            raise AudioDeviceError(f"Failed to access microphone: {e}") from e

        self._stream = stream
        logger.info(f"Microphone opened at {self.sample_rate} Hz")

    def chunk(self) -> Optional[np.ndarray]:
        if self._stream is None or not self._stream.active:
            return None

        available = self._stream.read_available
        if available <= 0:
            return None

        frames, overflowed = self._stream.read(available)
        if overflowed:
            logger.warning("Audio input overflow, some samples were dropped")
        return frames.copy()

    def release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            if stream.active:
                stream.stop()
        finally:
            stream.close()
        logger.info("Microphone released")


@dataclass
class RecordingSession:
    """Audio chunks accumulated between start and stop."""
    sample_rate: int = SAMPLE_RATE
    chunks: List[np.ndarray] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    def add(self, chunk: np.ndarray) -> None:
        if chunk is not None and len(chunk) > 0:
            self.chunks.append(chunk)

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    @property
    def duration(self) -> float:
        """Seconds of captured audio."""
        return sum(len(c) for c in self.chunks) / float(self.sample_rate)

    def finalize(self) -> Optional[bytes]:
        """Encode the captured audio as WAV, or None if nothing was captured."""
        if self.is_empty:
            return None
        return encode_wav(self.chunks, self.sample_rate)

    def release(self) -> None:
        """Drop the captured chunks."""
        self.chunks.clear()


@dataclass(frozen=True)
class VoiceInputResult:
    """Outcome of a stopped recording."""
    text: Optional[str] = None
    notice: Optional[Notice] = None


class VoiceRecorder:
    """
    Record -> transcribe state machine over one input device.

    Only one RecordingSession exists at a time; start() while busy and
    stop() while not recording are no-ops.
    """

    def __init__(
        self,
        device: AudioInputDevice,
        transcriber: Any,
        language: str = "en",
        poll_interval: float = 0.1
    ):
        """
        Initialize the recorder.

        Args:
            device: Audio input capability
            transcriber: Object with `async transcribe(audio, language)` returning a ServiceResult
            language: Language hint passed to the transcriber
            poll_interval: Seconds between device reads while recording
        """
        self.device = device
        self.transcriber = transcriber
        self.language = language
        self.poll_interval = poll_interval

        self._state = RecorderState.IDLE
        self._session: Optional[RecordingSession] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._capture_error: Optional[Exception] = None
        self.recording_error = ""

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecorderState.RECORDING

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    async def start(self) -> bool:
        """
        Acquire the input device and begin recording.

        Returns:
            True if recording started, False if already busy or the device failed.
        """
        if self._state != RecorderState.IDLE:
            return False

        self.recording_error = ""
        self._capture_error = None
        try:
            self.device.acquire()
        except Exception as e:
            logger.error(f"Error starting recording: {e}")
            self.recording_error = MICROPHONE_ERROR
            self._state = RecorderState.IDLE
            return False

        self._session = RecordingSession(sample_rate=self.device.sample_rate)
        self._state = RecorderState.RECORDING
        self._poll_task = asyncio.create_task(self._poll())
        logger.info("Recording started")
        return True

    async def _poll(self) -> None:
        """Pull audio from the device until recording stops or a read fails."""
        while self._state == RecorderState.RECORDING:
            try:
                self._drain()
            except Exception as e:
                logger.error(f"Error reading from input device: {e}")
                self._capture_error = e
                return
            await asyncio.sleep(self.poll_interval)

    def _drain(self) -> None:
        if self._session is None:
            return
        while True:
            chunk = self.device.chunk()
            if chunk is None:
                break
            self._session.add(chunk)

    async def stop(self) -> Optional[VoiceInputResult]:
        """
        Stop recording and transcribe the captured audio.

        Returns:
            None if no recording was in progress, else a VoiceInputResult
            with the transcript or an informational notice.
        """
        if self._state != RecorderState.RECORDING:
            return None

        self._state = RecorderState.STOPPING
        try:
            return await self._finish()
        finally:
            self._state = RecorderState.IDLE

    async def _finish(self) -> VoiceInputResult:
        session = self._session
        payload = None
        duration = 0.0
        try:
            await self._cancel_poll()
            if self._capture_error is None and session is not None:
                self._drain()
                payload = session.finalize()
                duration = session.duration
        except Exception as e:
            logger.error(f"Error capturing audio: {e}")
            self._capture_error = e
        finally:
            self._release(session)

        if self._capture_error is not None:
            self._capture_error = None
            return VoiceInputResult(notice=_transcription_failed())

        if payload is None:
            return VoiceInputResult(notice=Notice(
                "No audio recorded",
                "Nothing was captured from the microphone. Please try again."
            ))

        logger.info(f"Recording stopped, {duration:.1f}s captured")
        self._state = RecorderState.TRANSCRIBING
        try:
            result = await self.transcriber.transcribe(payload, self.language)
        except Exception as e:
            logger.error(f"Error processing audio: {e}")
            return VoiceInputResult(notice=_transcription_failed())

        if not result.ok:
            logger.warning(f"Voice-to-text error: {result.error}")
            return VoiceInputResult(notice=_transcription_failed())

        text = (result.value or "").strip()
        if not text:
            return VoiceInputResult(notice=Notice(
                "Transcription empty",
                "Could not detect any speech. Please try again."
            ))
        return VoiceInputResult(text=text)

    def _release(self, session: Optional[RecordingSession]) -> None:
        """Release the device and drop the session; never raises."""
        try:
            self.device.release()
        except Exception as e:
            logger.warning(f"Error releasing input device: {e}")
        if session is not None:
            session.release()
        self._session = None

    async def _cancel_poll(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Capture task failed: {task.exception()!r}")
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        """Abandon any recording in progress and release the device."""
        if self._state != RecorderState.RECORDING:
            return
        await self._cancel_poll()
        self._release(self._session)
        self._capture_error = None
        self._state = RecorderState.IDLE


def _transcription_failed() -> Notice:
    return Notice(
        "Processing failed",
        "Could not convert speech to text. Please try again.",
        NoticeLevel.INFO
    )
