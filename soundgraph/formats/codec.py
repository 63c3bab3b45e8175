"""
PCM codec - the byte boundary of the graph.

Sources enter the graph through decode(); export leaves it through
encode(). Only RIFF/WAVE containers are handled.

Integer PCM mapping (both directions):
    float = int / 2**(bits-1)
    int   = clip(round_half_even(float * 2**(bits-1)), -2**(bits-1), 2**(bits-1)-1)

so a buffer decoded from N-bit PCM re-encodes to the same N-bit samples.
"""

from __future__ import annotations

import io
import logging
from enum import Enum

import numpy as np
import soundfile as sf

from soundgraph.audio import SAMPLE_DTYPE, SUPPORTED_BIT_DEPTHS, SampleBuffer
from soundgraph.errors import DecodeError

logger = logging.getLogger(__name__)

INTEGER_SUBTYPES = {"PCM_U8", "PCM_S8", "PCM_16", "PCM_24", "PCM_32"}

# libsndfile left-justifies integer samples when reading as int32
_INT32_SCALE = float(2 ** 31)


class AudioFormat(Enum):
    """Container formats recognised by header sniffing."""
    WAV = "wav"
    MP3 = "mp3"
    OGG = "ogg"
    FLAC = "flac"
    UNKNOWN = "unknown"


def detect_format(data: bytes) -> AudioFormat:
    """
    Detect the container format from the file header.

    Args:
        data: First bytes of the file (at least 12 for WAV)

    Returns:
        Detected AudioFormat (UNKNOWN if nothing matches)
    """
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return AudioFormat.WAV
    if data[:3] == b"ID3" or (len(data) >= 2 and data[0] == 0xFF and (data[1] & 0xE0) == 0xE0):
        return AudioFormat.MP3
    if data[:4] == b"OggS":
        return AudioFormat.OGG
    if data[:4] == b"fLaC":
        return AudioFormat.FLAC
    return AudioFormat.UNKNOWN


def decode(raw: bytes, label: str | None = None) -> SampleBuffer:
    """
    Decode WAV bytes into a SampleBuffer.

    Args:
        raw: Complete file contents
        label: Optional name used in error messages

    Returns:
        Decoded buffer

    Raises:
        DecodeError: For empty, non-WAV or malformed input
    """
    if not raw:
        raise DecodeError("empty input", label)

    fmt = detect_format(raw)
    if fmt is not AudioFormat.WAV:
        raise DecodeError(f"unsupported container ({fmt.value}), expected WAV", label)

    try:
        with sf.SoundFile(io.BytesIO(raw)) as f:
            sample_rate = f.samplerate
            if f.subtype in INTEGER_SUBTYPES:
                frames = f.read(dtype="int32", always_2d=True)
                data = frames.T.astype(SAMPLE_DTYPE) / _INT32_SCALE
            else:
                frames = f.read(dtype="float64", always_2d=True)
                data = np.nan_to_num(frames.T, nan=0.0, posinf=0.0, neginf=0.0)
    except (sf.SoundFileError, RuntimeError, ValueError) as e:
        raise DecodeError(f"malformed WAV data: {e}", label) from e

    if data.shape[0] == 0:
        raise DecodeError("file has no channels", label)

    logger.debug(
        "Decoded %s: %d ch, %d frames @ %d Hz",
        label or "<bytes>", data.shape[0], data.shape[1], sample_rate,
    )
    return SampleBuffer._adopt(data, sample_rate)


def try_decode(raw: bytes, label: str | None = None) -> SampleBuffer | DecodeError:
    """Like decode(), but returns the DecodeError instead of raising it."""
    try:
        return decode(raw, label)
    except DecodeError as e:
        return e


def encode(buffer: SampleBuffer, bit_depth: int = 16) -> bytes:
    """
    Encode a buffer as integer PCM WAV bytes.

    Args:
        buffer: Audio to encode
        bit_depth: 16, 24 or 32

    Returns:
        WAV file bytes; identical buffers give identical bytes

    Raises:
        ValueError: If bit_depth is unsupported
    """
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise ValueError(f"bit_depth must be one of {SUPPORTED_BIT_DEPTHS}, got {bit_depth}")

    scale = 2 ** (bit_depth - 1)
    quantized = np.clip(np.round(buffer.data.T * scale), -scale, scale - 1).astype(np.int64)
    pcm = (quantized << (32 - bit_depth)).astype(np.int32)

    out = io.BytesIO()
    sf.write(out, pcm, buffer.sample_rate, subtype=f"PCM_{bit_depth}", format="WAV")
    return out.getvalue()
