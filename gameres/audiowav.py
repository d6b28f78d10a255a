# audiowav.py - RIFF/WAVE reader (chunk walk) and canonical 44-byte writer
#
# Licensed under the MIT License.

import logging
from typing import Optional

from gameres.gameres import AudioFormat, InvalidFormatException
from gameres.audio import WaveFormat
from gameres.utility import LittleEndian, ascii_equal

# 쓰기 쪽 RIFF 크기 필드 = data 크기 + 36 (fmt 청크 16바이트 기준)
RIFF_OVERHEAD = 36
CHUNK_START = 12


class PcmSound:
    def __init__(self, fmt: WaveFormat, pcm: bytes, declared_size: Optional[int] = None):
        self.format = fmt
        self.pcm = pcm
        self.declared_size = len(pcm) if declared_size is None else declared_size

    @property
    def pcm_size(self) -> int:
        return len(self.pcm)


class WavFormat(AudioFormat):
    extension = ".wav"

    def __init__(self):
        super().__init__()
        self.name = "WAV"
        self.signature = b"RIFF"

    # fmt / data 청크는 위치와 상관없이 찾음. 다른 청크(LIST 등)는 건너뜀, 청크는 짝수 바이트 정렬
    def read(self, data: bytes, expected_sample_rate: Optional[int] = None) -> PcmSound:
        if len(data) < CHUNK_START:
            raise InvalidFormatException(f"wav too short ({len(data)} bytes)", stage="header")
        if not ascii_equal(data, 0, "RIFF"):
            raise InvalidFormatException("missing RIFF tag", stage="header")
        if not ascii_equal(data, 8, "WAVE"):
            raise InvalidFormatException("missing WAVE tag", stage="header")

        riff_size = LittleEndian.ToUInt32(data, 4)
        end = riff_size + 8
        if end > len(data):
            raise InvalidFormatException(
                f"RIFF size {riff_size} runs past the end of the file ({len(data)} bytes)", stage="header")

        fmt = None
        pcm_start = data_size = None
        pos = CHUNK_START
        while pos + 8 <= end:
            tag = bytes(data[pos:pos + 4])
            size = LittleEndian.ToUInt32(data, pos + 4)
            body = pos + 8
            if body + size > end:
                raise InvalidFormatException(
                    f"chunk {tag!r} at 0x{pos:X} runs past the RIFF end ({body + size} > {end})",
                    stage="header")
            if tag == b"fmt ":
                if size < WaveFormat.SIZE:
                    raise InvalidFormatException(f"fmt chunk too small ({size} bytes)", stage="header")
                fmt = WaveFormat.unpack(data, body)
            elif tag == b"data":
                pcm_start, data_size = body, size
            else:
                logging.debug(f"[audiowav] 청크 건너뜀: {tag!r} ({size} bytes)")
            pos = body + size + (size & 1)

        if fmt is None:
            raise InvalidFormatException("missing fmt chunk", stage="header")
        if pcm_start is None:
            raise InvalidFormatException("missing data chunk", stage="header")

        fmt.validate(expected_sample_rate)
        logging.debug(f"[audiowav] WAV 읽기 완료: {fmt!r}, PCM {data_size} bytes")
        return PcmSound(fmt, bytes(data[pcm_start:pcm_start + data_size]), data_size)

    def write(self, sound: PcmSound) -> bytes:
        size = sound.declared_size
        header = bytearray()
        header += b"RIFF"
        header += LittleEndian.GetBytes32(size + RIFF_OVERHEAD)
        header += b"WAVE"
        header += b"fmt "
        header += LittleEndian.GetBytes32(WaveFormat.SIZE)
        header += sound.format.pack()
        header += b"data"
        header += LittleEndian.GetBytes32(size)
        return bytes(header) + sound.pcm
