"""PCM helpers: WAV container for the remote ASR, float32 samples for the local model."""
from __future__ import annotations

import io
import wave

import numpy as np

# PCM contract: signed int16, little-endian, mono
SAMPLE_WIDTH = 2
NCHANNELS = 1


def pcm_to_wav(pcm_bytes: bytes, sample_rate: int = 16000) -> bytes:
    """Wrap raw PCM in a minimal RIFF/WAVE container (44-byte header)."""
    out = io.BytesIO()
    with wave.open(out, "wb") as wav:
        wav.setnchannels(NCHANNELS)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm_bytes)
    return out.getvalue()


def pcm_bytes_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """Convert PCM 16-bit mono bytes to float32 [-1.0, 1.0]."""
    samples = np.frombuffer(pcm_bytes, dtype="<i2")
    return samples.astype(np.float32) / 32768.0
