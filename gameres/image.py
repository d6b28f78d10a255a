# image.py - in-memory raster shared by the bitmap, png and cnv handlers
#
# Licensed under the MIT License.

from typing import Optional
from dataclasses import dataclass
import logging

import numpy as np

from gameres.gameres import InvalidFormatException


@dataclass(frozen=True)
class PixelFormat:
    bits_per_pixel: int
    name: str

    def __str__(self):
        return f"<PixelFormat {self.name} ({self.bits_per_pixel}bpp)>"

class PixelFormats:
    Bgra32 = PixelFormat(32, "Bgra32")


class ImageMetaData:
    def __init__(self, width: int, height: int, bpp: int = 32,
                 ext: Optional[str] = None, width2: Optional[int] = None,
                 top_down: bool = True):
        self.width = width
        self.height = height
        self.bpp = bpp
        self.ext = ext
        # cnv 헤더의 두 번째 너비 값 (보통 width와 같음)
        self.width2 = width if width2 is None else width2
        self.top_down = top_down

    def __repr__(self):
        return (f"<ImageMetaData {self.width}x{self.height} bpp={self.bpp} "
                f"width2={self.width2} ext={self.ext}>")


# 픽셀은 항상 (height, width, 4) uint8, BGRA, 위쪽 행부터
class ImageData:
    def __init__(self, pixels: np.ndarray, source_bpp: int = 32):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidFormatException(
                f"expected an HxWx4 BGRA raster, got shape {pixels.shape}", stage="decode")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
        self.source_bpp = source_bpp

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def bpp(self) -> int:
        return 32

    @property
    def stride(self) -> int:
        return self.width * 4

    @property
    def pixel_format(self) -> PixelFormat:
        return PixelFormats.Bgra32

    @property
    def data(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other):
        if not isinstance(other, ImageData):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self):
        return f"<ImageData {self.width}x{self.height} {self.pixel_format}>"

    @staticmethod
    def calc_stride(width: int, bpp: int) -> int:
        return width * ((bpp + 7) // 8)

    @classmethod
    def create(cls, info: ImageMetaData, raw_data: bytes, stride: Optional[int] = None):
        stride = stride or cls.calc_stride(info.width, 32)
        expected_len = stride * info.height
        if len(raw_data) < expected_len:
            raise InvalidFormatException(
                f"pixel data too short: {len(raw_data)} < {expected_len}", stage="decode")
        if len(raw_data) > expected_len:
            logging.debug(f"[image] 픽셀 데이터 초과분 무시: {len(raw_data)} > {expected_len}")

        rows = np.frombuffer(raw_data, dtype=np.uint8, count=expected_len).reshape(info.height, stride)
        pixels = rows[:, :info.width * 4].reshape(info.height, info.width, 4)
        if not info.top_down:
            pixels = pixels[::-1]
        return cls(pixels.copy(), source_bpp=info.bpp)

    # 24비트 BGR → 알파 255 채워서 BGRA
    @classmethod
    def from_bgr(cls, bgr: np.ndarray, source_bpp: int = 24):
        height, width = bgr.shape[:2]
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[..., :3] = bgr
        pixels[..., 3] = 0xFF
        return cls(pixels, source_bpp=source_bpp)

    # 아래쪽 행부터의 BGRA 바이트열
    def bottom_up_bytes(self) -> bytes:
        return self.pixels[::-1].tobytes()
