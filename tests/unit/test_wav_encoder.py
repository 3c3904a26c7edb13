"""Unit tests for the PCM -> WAV encoder.

The header layout is checked byte by byte; audio decoders reject files whose
field widths or byte order are off.
"""

import base64
import struct

import pytest

from story_reel.backend.services.wav import (
    HEADER_SIZE,
    build_wav_header,
    encode_wav,
    pcm_to_wav,
    read_wav_header,
)

PREFIX = "data:audio/wav;base64,"


def _decode(uri: str) -> bytes:
    assert uri.startswith(PREFIX)
    return base64.b64decode(uri[len(PREFIX):])


class TestHeaderLayout:
    def test_canonical_fields(self) -> None:
        header = build_wav_header(1000, 24000)

        assert len(header) == HEADER_SIZE == 44
        assert header[0:4] == b"RIFF"
        assert struct.unpack("<I", header[4:8])[0] == 1036
        assert header[8:12] == b"WAVE"
        assert header[12:16] == b"fmt "
        assert struct.unpack("<I", header[16:20])[0] == 16
        assert struct.unpack("<H", header[20:22])[0] == 1
        assert struct.unpack("<H", header[22:24])[0] == 1
        assert struct.unpack("<I", header[24:28])[0] == 24000
        assert struct.unpack("<I", header[28:32])[0] == 48000
        assert struct.unpack("<H", header[32:34])[0] == 2
        assert struct.unpack("<H", header[34:36])[0] == 16
        assert header[36:40] == b"data"
        assert struct.unpack("<I", header[40:44])[0] == 1000

    def test_known_bytes_for_24khz(self) -> None:
        header = build_wav_header(4, 24000)
        assert header.hex() == (
            "52494646"  # RIFF
            "28000000"  # 40
            "57415645"  # WAVE
            "666d7420"  # "fmt "
            "10000000"  # 16
            "0100"      # PCM
            "0100"      # mono
            "c05d0000"  # 24000
            "80bb0000"  # 48000
            "0200"
            "1000"
            "64617461"  # data
            "04000000"
        )

    def test_rejects_rate_out_of_u32_range(self) -> None:
        with pytest.raises(ValueError):
            build_wav_header(0, -1)


class TestEncodeWav:
    def test_data_uri_wraps_header_and_samples(self, pcm_samples) -> None:
        wav = _decode(encode_wav(pcm_samples, 24000))

        assert wav[:HEADER_SIZE] == build_wav_header(len(pcm_samples), 24000)
        assert wav[HEADER_SIZE:] == pcm_samples

    def test_deterministic(self, pcm_samples) -> None:
        assert encode_wav(pcm_samples, 24000) == encode_wav(pcm_samples, 24000)

    def test_round_trip_recovers_rate_and_data(self, pcm_samples) -> None:
        wav = _decode(encode_wav(pcm_samples, 16000))
        header = read_wav_header(wav)

        assert header.sample_rate == 16000
        assert header.num_channels == 1
        assert header.bits_per_sample == 16
        assert header.byte_rate == 32000
        assert header.block_align == 2
        assert header.data_len == len(pcm_samples)
        assert wav[HEADER_SIZE:HEADER_SIZE + header.data_len] == pcm_samples

    def test_empty_pcm_is_a_valid_silent_file(self) -> None:
        wav = _decode(encode_wav(b"", 24000))

        assert len(wav) == 44
        assert read_wav_header(wav).data_len == 0
        assert struct.unpack("<I", wav[4:8])[0] == 36

    def test_samples_are_not_modified(self) -> None:
        odd = bytes(range(7))
        assert pcm_to_wav(odd, 24000)[HEADER_SIZE:] == odd


class TestReadWavHeader:
    def test_rejects_short_buffer(self) -> None:
        with pytest.raises(ValueError, match="too short"):
            read_wav_header(b"RIFF")

    def test_rejects_non_riff(self) -> None:
        with pytest.raises(ValueError, match="canonical"):
            read_wav_header(b"X" * 44)
