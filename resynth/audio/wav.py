"""WAV container I/O for reconstructed audio.

encode_wav produces the byte-exact 16-bit mono PCM container:
44-byte RIFF/WAVE header followed by little-endian int16 samples.
"""

import io
from datetime import datetime

import librosa
import numpy as np
from scipy.io import wavfile

from resynth.engine.errors import InvalidInput, NumericInstability
from resynth.engine.params import SR

HEADROOM = 0.9
HEADER_BYTES = 44


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clip to [-1, 1], apply headroom, quantize with rounding. Never wraps."""
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 1:
        raise InvalidInput(f"expected mono 1-D samples, got shape {samples.shape}")
    if not np.all(np.isfinite(samples)):
        raise NumericInstability("samples contain NaN or infinity")
    scaled = np.clip(samples, -1.0, 1.0) * HEADROOM
    return np.round(scaled * 32767).astype('<i2')


def encode_wav(samples: np.ndarray, sr: int = SR) -> bytes:
    """Serialize mono float samples to a 16-bit PCM WAV byte string."""
    if sr <= 0:
        raise InvalidInput(f"sample rate must be positive, got {sr}")
    buf = io.BytesIO()
    wavfile.write(buf, sr, to_pcm16(samples))
    return buf.getvalue()


def save_wav(path, samples: np.ndarray, sr: int = SR):
    """Write encode_wav output to disk."""
    with open(path, 'wb') as f:
        f.write(encode_wav(samples, sr))


def load_audio(path, sr: int = SR) -> np.ndarray:
    """Load any audio file as mono float32, resampled to sr."""
    audio, _ = librosa.load(path, sr=sr, mono=True)
    return audio


def default_filename(now: datetime | None = None) -> str:
    """spectrogram_audio_<ISO timestamp>.wav, with ':' and '.' made filename-safe."""
    now = now or datetime.now()
    stamp = now.isoformat().replace(':', '-').replace('.', '-')
    return f"spectrogram_audio_{stamp}.wav"
