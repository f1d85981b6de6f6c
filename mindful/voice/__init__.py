"""
Voice pipeline for Mindful.

Capture -> transcribe for voice input, synthesize -> play for voice output.
"""

from .audio import SAMPLE_RATE, decode_wav, encode_wav
from .playback import AudioOutputDevice, SoundDevicePlayer, SpeechPlayer
from .recorder import (
    AudioDeviceError,
    AudioInputDevice,
    RecorderState,
    RecordingSession,
    SoundDeviceInput,
    VoiceInputResult,
    VoiceRecorder,
)

__all__ = [
    "SAMPLE_RATE",
    "decode_wav",
    "encode_wav",
    "AudioOutputDevice",
    "SoundDevicePlayer",
    "SpeechPlayer",
    "AudioDeviceError",
    "AudioInputDevice",
    "RecorderState",
    "RecordingSession",
    "SoundDeviceInput",
    "VoiceInputResult",
    "VoiceRecorder",
]
