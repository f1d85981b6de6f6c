"""Audio buffer helpers shared by capture and playback."""

import io
from typing import Sequence, Tuple

import numpy as np
import scipy.io.wavfile as wav

SAMPLE_RATE = 16000


def encode_wav(chunks: Sequence[np.ndarray], sample_rate: int = SAMPLE_RATE) -> bytes:
    """
    Join captured chunks into a single WAV payload.

    Args:
        chunks: Sample arrays in capture order
        sample_rate: Sample rate of the capture

    Returns:
        WAV file contents
    """
    if not chunks:
        raise ValueError("No audio chunks to encode")

    audio_data = np.concatenate(chunks, axis=0)
    buffer = io.BytesIO()
    wav.write(buffer, sample_rate, audio_data)
    return buffer.getvalue()


def decode_wav(data: bytes) -> Tuple[int, np.ndarray]:
    """
    Decode WAV bytes into (sample_rate, samples).

    Raises:
        ValueError: If the payload is not a readable WAV file
    """
    if not data:
        raise ValueError("No audio data to decode")
    return wav.read(io.BytesIO(data))
