# audio.py - PCM wave format descriptor shared by the wav and cnv audio handlers
#
# Licensed under the MIT License.

import struct
import logging
from typing import Optional

from gameres.gameres import InvalidFormatException

# fmt 청크 본문과 같은 배치 (16 bytes)
_WAVE_FORMAT = struct.Struct("<HHIIHH")


class WaveFormat:
    SIZE = _WAVE_FORMAT.size

    def __init__(self, format_tag, channels, sample_rate, avg_bytes, block_align, bits_per_sample):
        self.format_tag = format_tag
        self.channels = channels
        self.sample_rate = sample_rate
        self.avg_bytes = avg_bytes
        self.block_align = block_align
        self.bits_per_sample = bits_per_sample

    def __eq__(self, other):
        if not isinstance(other, WaveFormat):
            return NotImplemented
        return self.astuple() == other.astuple()

    def __repr__(self):
        return (f"<WaveFormat tag={self.format_tag} ch={self.channels} rate={self.sample_rate} "
                f"bytes/s={self.avg_bytes} align={self.block_align} bits={self.bits_per_sample}>")

    def astuple(self):
        return (self.format_tag, self.channels, self.sample_rate,
                self.avg_bytes, self.block_align, self.bits_per_sample)

    @classmethod
    def unpack(cls, buf: bytes, offset: int = 0) -> "WaveFormat":
        if len(buf) < offset + cls.SIZE:
            raise InvalidFormatException(
                f"wave format block truncated ({len(buf) - offset} < {cls.SIZE} bytes)", stage="header")
        return cls(*_WAVE_FORMAT.unpack_from(buf, offset))

    def pack(self) -> bytes:
        return _WAVE_FORMAT.pack(*self.astuple())

    # 파생 필드(byte rate, block align) 검증. 불일치는 치명적
    def validate(self, expected_sample_rate: Optional[int] = None, stage: str = "header"):
        sample_bytes = self.bits_per_sample // 8
        expected_avg = self.sample_rate * self.channels * sample_bytes
        expected_align = self.channels * sample_bytes

        if self.avg_bytes != expected_avg:
            raise InvalidFormatException(
                f"byte rate {self.avg_bytes} does not match "
                f"{self.sample_rate} Hz x {self.channels} ch x {self.bits_per_sample} bit = {expected_avg}",
                stage=stage)
        if self.block_align != expected_align:
            raise InvalidFormatException(
                f"block align {self.block_align} does not match "
                f"{self.channels} ch x {self.bits_per_sample} bit = {expected_align}",
                stage=stage)
        if expected_sample_rate is not None and self.sample_rate != expected_sample_rate:
            raise InvalidFormatException(
                f"sample rate {self.sample_rate} Hz, expected {expected_sample_rate} Hz",
                stage=stage)

        logging.debug(f"[audio] 포맷 검증 통과: {self!r}")
