"""
PCM -> WAV assembly for inline speech payloads.

The speech model returns bare 16-bit little-endian mono samples. Browsers
cannot play those directly, so they get the canonical 44-byte RIFF header and
are handed back as a data URI. Samples are copied through untouched.
"""

from __future__ import annotations

import base64
import struct
from dataclasses import dataclass

HEADER_SIZE = 44
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
BLOCK_ALIGN = NUM_CHANNELS * BITS_PER_SAMPLE // 8
PCM_FORMAT = 1

# RIFF chunk (12) + fmt chunk (24) + data chunk header (8)
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    sample_rate: int
    num_channels: int
    bits_per_sample: int
    byte_rate: int
    block_align: int
    data_len: int


def build_wav_header(data_len: int, sample_rate: int) -> bytes:
    try:
        return _HEADER.pack(
            b"RIFF",
            36 + data_len,
            b"WAVE",
            b"fmt ",
            16,
            PCM_FORMAT,
            NUM_CHANNELS,
            sample_rate,
            sample_rate * BLOCK_ALIGN,
            BLOCK_ALIGN,
            BITS_PER_SAMPLE,
            b"data",
            data_len,
        )
    except struct.error as exc:
        raise ValueError(f"Cannot build WAV header: {exc}") from exc


def pcm_to_wav(pcm: bytes, sample_rate: int) -> bytes:
    return build_wav_header(len(pcm), sample_rate) + bytes(pcm)


def encode_wav(pcm: bytes, sample_rate: int) -> str:
    """Wrap raw PCM in a WAV container and return it as a base64 data URI."""
    wav = pcm_to_wav(pcm, sample_rate)
    return f"data:audio/wav;base64,{base64.b64encode(wav).decode('ascii')}"


def read_wav_header(wav: bytes) -> WavHeader:
    if len(wav) < HEADER_SIZE:
        raise ValueError(f"WAV buffer too short: {len(wav)} bytes")
    (
        riff,
        _chunk_size,
        wave,
        fmt,
        _fmt_size,
        _audio_format,
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_len,
    ) = _HEADER.unpack_from(wav)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise ValueError("Not a canonical RIFF/WAVE buffer.")
    return WavHeader(
        sample_rate=sample_rate,
        num_channels=num_channels,
        bits_per_sample=bits_per_sample,
        byte_rate=byte_rate,
        block_align=block_align,
        data_len=data_len,
    )
