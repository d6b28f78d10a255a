import logging
import struct

import pytest

from conftest import make_cnv_audio, make_wav
from gameres.gameres import InvalidFormatException
from daybreak.audiocnv import CnvAudioFormat

audio = CnvAudioFormat()
PCM = bytes(range(64))


def test_decode_rewraps_pcm():
    wav = audio.decode(make_cnv_audio(PCM))
    assert wav[:4] == b"RIFF"
    assert struct.unpack_from("<I", wav, 4)[0] == len(PCM) + 36
    assert wav[8:16] == b"WAVEfmt "
    assert struct.unpack_from("<I", wav, 16)[0] == 16
    assert struct.unpack_from("<HHIIHH", wav, 20) == (1, 2, 44100, 176400, 4, 16)
    assert wav[36:40] == b"data"
    assert struct.unpack_from("<I", wav, 40)[0] == len(PCM)
    assert wav[44:] == PCM


def test_encode_restores_container():
    data = make_cnv_audio(PCM, channels=1, rate=22050)
    assert audio.encode(audio.decode(data)) == data
    assert audio.encode(make_wav(PCM, channels=1, rate=22050)) == data


def test_payload_length_mismatch_is_a_warning(caplog):
    with caplog.at_level(logging.WARNING):
        wav = audio.decode(make_cnv_audio(PCM, declared=10))
    assert "불일치" in caplog.text
    # data chunk carries the header field, PCM is copied verbatim
    assert struct.unpack_from("<I", wav, 40)[0] == 10
    assert wav[44:] == PCM


@pytest.mark.parametrize("data", [
    b"\x01\x00" * 5,
    make_cnv_audio(PCM, avg=1000),
    make_cnv_audio(PCM, align=3),
])
def test_invalid_containers(data):
    with pytest.raises(InvalidFormatException):
        audio.decode(data)


def test_encode_checks_expected_sample_rate():
    wav = make_wav(PCM, rate=48000)
    with pytest.raises(InvalidFormatException):
        audio.encode(wav, expected_sample_rate=44100)
    assert audio.encode(wav, expected_sample_rate=48000)[4:8] == struct.pack("<I", 48000)


@pytest.mark.parametrize("mutate", [
    lambda b: b"RIFX" + b[4:],
    lambda b: b[:8] + b"WAVX" + b[12:],
    lambda b: b[:12] + b"fmtx" + b[16:],
    lambda b: b[:36] + b"date" + b[40:],
    lambda b: b[:4] + struct.pack("<I", 1) + b[8:],
    lambda b: b[:-1],
    lambda b: b[:16] + struct.pack("<I", 12) + b[20:],
])
def test_encode_rejects_malformed_wave(mutate):
    with pytest.raises(InvalidFormatException):
        audio.encode(mutate(make_wav(PCM)))


def test_reserved_bytes_written_as_zero():
    data = audio.encode(make_wav(PCM))
    assert len(data) == 22 + len(PCM)
    assert data[20:22] == b"\x00\x00"
    assert struct.unpack_from("<I", data, 16)[0] == len(PCM)


def test_encode_skips_extra_chunks():
    wav = make_wav(PCM, channels=1, rate=22050)
    info = b"LIST" + struct.pack("<I", 5) + b"INFOx" + b"\x00"
    padded = wav[:4] + struct.pack("<I", len(wav) - 8 + len(info)) + wav[8:36] + info + wav[36:]
    assert audio.encode(padded) == make_cnv_audio(PCM, channels=1, rate=22050)


def test_encode_accepts_extended_fmt_chunk():
    wav = make_wav(PCM)
    extended = (b"RIFF" + struct.pack("<I", len(wav) - 8 + 2) + b"WAVE"
                + b"fmt " + struct.pack("<I", 18) + wav[20:36] + b"\x00\x00" + wav[36:])
    assert audio.encode(extended) == make_cnv_audio(PCM)


def test_encode_ignores_bytes_after_riff_end():
    assert audio.encode(make_wav(PCM) + b"junk") == make_cnv_audio(PCM)
