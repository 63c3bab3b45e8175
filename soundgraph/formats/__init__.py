"""
Audio Formats Module - decode sources, encode exports.

Example:
    from soundgraph.formats import decode, encode

    buf = decode(Path("voice.wav").read_bytes(), label="voice.wav")
    wav_bytes = encode(buf, bit_depth=24)
"""

from soundgraph.formats.codec import (
    AudioFormat,
    detect_format,
    decode,
    try_decode,
    encode,
)

__all__ = [
    "AudioFormat",
    "detect_format",
    "decode",
    "try_decode",
    "encode",
]
