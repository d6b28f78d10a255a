import os
import struct

import numpy as np
import pytest

from formats.arcfile import Entry
from daybreak.bundletable import table_size, write_table
from daybreak.crypto import crypt_payload


def build_bundle(path, members, gap=0, tail=b""):
    """Write a bundle holding (name, plain bytes) members laid out in table order."""
    offset = table_size(len(members)) + gap
    entries = []
    for i, (name, data) in enumerate(members):
        entries.append(Entry(i, name, len(data), offset))
        offset += len(data)

    with open(path, "wb") as f:
        f.write(write_table(entries))
        f.write(b"\xEE" * gap)
        for entry, (_, data) in zip(entries, members):
            f.write(crypt_payload(data, entry.offset))
        f.write(tail)
    return entries


def make_cnv_image(pixels, bpp=32, width=None, width2=None, reserved=0):
    height, w = pixels.shape[:2]
    width = w if width is None else width
    width2 = w if width2 is None else width2
    header = struct.pack("<BIII3xB", bpp, width, height, width2, reserved)
    return header + np.ascontiguousarray(pixels, dtype=np.uint8).tobytes()


def make_cnv_audio(pcm, channels=2, rate=44100, bits=16, avg=None, align=None, declared=None):
    sample_bytes = bits // 8
    avg = rate * channels * sample_bytes if avg is None else avg
    align = channels * sample_bytes if align is None else align
    declared = len(pcm) if declared is None else declared
    return struct.pack("<HHIIHHI2x", 1, channels, rate, avg, align, bits, declared) + pcm


def make_wav(pcm, channels=2, rate=44100, bits=16):
    sample_bytes = bits // 8
    fmt = struct.pack("<HHIIHH", 1, channels, rate, rate * channels * sample_bytes,
                      channels * sample_bytes, bits)
    return (b"RIFF" + struct.pack("<I", len(pcm) + 36) + b"WAVE"
            + b"fmt " + struct.pack("<I", 16) + fmt
            + b"data" + struct.pack("<I", len(pcm)) + pcm)


def sample_pixels(height=3, width=4, seed=7):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)


def set_mtime(path, days_ago):
    stamp = os.path.getmtime(path) - days_ago * 86400
    os.utime(path, (stamp, stamp))


@pytest.fixture
def pixels():
    return sample_pixels()


@pytest.fixture
def bundle(tmp_path, pixels):
    members = [
        ("data\\script.txt", b"hello bundle"),
        ("bg\\title.cnv", make_cnv_image(pixels)),
        ("se\\click.cnv", make_cnv_audio(bytes(range(16)))),
        ("bgm\\title.ogg", b"OggS" + bytes(40)),
        ("bad\\broken.cnv", make_cnv_audio(bytes(8), avg=1)),
        ("misc\\odd.cnv", b"\x07odd payload"),
    ]
    path = tmp_path / "data.dat"
    entries = build_bundle(path, members)
    return str(path), entries, members
