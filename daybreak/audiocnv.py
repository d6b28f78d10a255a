# audiocnv.py - wrapped PCM container (.cnv, 22-byte header) <-> RIFF/WAVE
#
# Licensed under the MIT License.

import struct
import logging
from typing import Optional

from gameres.gameres import AudioFormat, InvalidFormatException
from gameres.audio import WaveFormat
from gameres.audiowav import PcmSound, WavFormat

# WaveFormat 16바이트 + data 길이(4) + 예약(2)
_TAIL = struct.Struct("<I2x")
HEADER_SIZE = WaveFormat.SIZE + _TAIL.size
# 첫 바이트 = format tag 하위 바이트 (PCM = 1)
DISCRIMINATOR = 1


class CnvAudioFormat(AudioFormat):
    extension = ".cnv"

    def __init__(self):
        super().__init__()
        self.name = "CNV-AUDIO"
        self.discriminators = [DISCRIMINATOR]
        self.wav = WavFormat()

    def read(self, data: bytes) -> PcmSound:
        if len(data) < HEADER_SIZE:
            raise InvalidFormatException(
                f"data is too short to read audio header ({len(data)} < {HEADER_SIZE})", stage="decode")

        fmt = WaveFormat.unpack(data, 0)
        (declared_size,) = _TAIL.unpack_from(data, WaveFormat.SIZE)
        actual_size = len(data) - HEADER_SIZE
        if declared_size != actual_size:
            logging.warning(f"[audiocnv] 데이터 길이 불일치: 헤더 {declared_size} vs 실제 {actual_size}")

        fmt.validate(stage="decode")
        return PcmSound(fmt, bytes(data[HEADER_SIZE:]), declared_size)

    def write(self, sound: PcmSound) -> bytes:
        return sound.format.pack() + _TAIL.pack(sound.pcm_size) + sound.pcm

    # .cnv → .wav (PCM은 그대로)
    def decode(self, data: bytes) -> bytes:
        sound = self.read(data)
        logging.debug(f"[audiocnv] CNV 오디오 디코드: {sound.format!r}, {sound.pcm_size} bytes")
        return self.wav.write(sound)

    # .wav → .cnv
    def encode(self, data: bytes, expected_sample_rate: Optional[int] = None) -> bytes:
        sound = self.wav.read(data, expected_sample_rate)
        logging.debug(f"[audiocnv] CNV 오디오 인코드: {sound.format!r}, {sound.pcm_size} bytes")
        return self.write(sound)
