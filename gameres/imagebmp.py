# imagebmp.py - Windows bitmap reader (24/32 bpp) and 32 bpp BI_RGB writer
#
# Licensed under the MIT License.

import struct
import logging

import numpy as np

from gameres.gameres import ImageFormat, InvalidFormatException
from gameres.image import ImageData, ImageMetaData
from gameres.utility import LittleEndian, ascii_equal

_FILE_HEADER = struct.Struct("<2sIHHI")        # 14 bytes
_INFO_HEADER = struct.Struct("<IiiHHIIiiII")   # 40 bytes
HEADER_SIZE = _FILE_HEADER.size + _INFO_HEADER.size

BI_RGB = 0
BI_BITFIELDS = 3
# BI_BITFIELDS 마스크는 40바이트 정보 헤더 바로 뒤 (R, G, B, 있으면 A)
_MASKS = struct.Struct("<III")
MASK_OFFSET = HEADER_SIZE
BGRA_ORDER = (0, 1, 2, 3)
# 72 DPI
PIXELS_PER_METER = 2835


class BmpFormat(ImageFormat):
    extension = ".bmp"

    def __init__(self):
        super().__init__()
        self.name = "BMP"
        self.signature = b"BM"

    def read_metadata(self, data: bytes) -> ImageMetaData:
        if len(data) < HEADER_SIZE or not ascii_equal(data, 0, "BM"):
            raise InvalidFormatException("not a bitmap (missing BM signature)", stage="decode")

        _, _, _, _, pixel_offset = _FILE_HEADER.unpack_from(data, 0)
        (info_size, width, height, _planes, bpp, compression,
         _image_size, _xppm, _yppm, _used, _important) = _INFO_HEADER.unpack_from(data, _FILE_HEADER.size)

        if info_size < _INFO_HEADER.size:
            raise InvalidFormatException(f"unsupported bitmap header size {info_size}", stage="decode")
        if bpp not in (24, 32):
            raise InvalidFormatException(f"unsupported bitmap depth {bpp} bpp", stage="decode")
        if compression not in (BI_RGB, BI_BITFIELDS):
            raise InvalidFormatException(f"unsupported bitmap compression {compression}", stage="decode")
        if width <= 0 or height == 0:
            raise InvalidFormatException(f"invalid bitmap size {width}x{height}", stage="decode")

        info = ImageMetaData(width, abs(height), bpp=bpp, ext=".bmp", top_down=height < 0)
        info.pixel_offset = pixel_offset
        info.compression = compression
        info.channel_order = BGRA_ORDER
        if compression == BI_BITFIELDS:
            if bpp != 32:
                raise InvalidFormatException(f"BI_BITFIELDS needs 32 bpp, got {bpp}", stage="decode")
            info.channel_order = self._channel_order(data, info_size, pixel_offset)
        return info

    # 채널 마스크 → 픽셀 안의 바이트 위치 (B, G, R, A 순)
    @staticmethod
    def _channel_order(data: bytes, info_size: int, pixel_offset: int):
        if len(data) < MASK_OFFSET + _MASKS.size:
            raise InvalidFormatException("bitmap channel masks truncated", stage="decode")
        red, green, blue = _MASKS.unpack_from(data, MASK_OFFSET)
        alpha = 0
        alpha_at = MASK_OFFSET + _MASKS.size
        if (info_size >= 56 or pixel_offset >= alpha_at + 4) and len(data) >= alpha_at + 4:
            alpha = LittleEndian.ToUInt32(data, alpha_at)

        order = []
        for label, mask in (("blue", blue), ("green", green), ("red", red), ("alpha", alpha)):
            if label == "alpha" and mask == 0:
                break
            if mask not in (0xFF, 0xFF00, 0xFF0000, 0xFF000000):
                raise InvalidFormatException(
                    f"unsupported {label} channel mask 0x{mask:08X}", stage="decode")
            order.append(mask.bit_length() // 8 - 1)
        if len(set(order)) != len(order):
            raise InvalidFormatException("bitmap channel masks overlap", stage="decode")
        if len(order) == 3:
            # 알파 마스크가 없으면 남은 바이트를 알파로
            order.append(({0, 1, 2, 3} - set(order)).pop())
        return tuple(order)

    def read(self, data: bytes) -> ImageData:
        info = self.read_metadata(data)
        pixel_size = info.bpp // 8
        # 각 행은 4바이트 경계로 패딩
        stride = (info.width * pixel_size + 3) & ~3
        end = info.pixel_offset + stride * info.height
        if len(data) < end:
            raise InvalidFormatException(
                f"bitmap pixel data truncated ({len(data)} < {end} bytes)", stage="decode")

        rows = np.frombuffer(data, dtype=np.uint8, count=stride * info.height,
                             offset=info.pixel_offset).reshape(info.height, stride)
        pixels = rows[:, :info.width * pixel_size].reshape(info.height, info.width, pixel_size)
        if not info.top_down:
            pixels = pixels[::-1]

        if pixel_size == 3:
            image = ImageData.from_bgr(pixels, source_bpp=24)
        elif info.channel_order == BGRA_ORDER:
            image = ImageData(pixels.copy(), source_bpp=32)
        else:
            logging.debug(f"[imagebmp] 채널 재배치: {info.channel_order}")
            image = ImageData(pixels[..., list(info.channel_order)], source_bpp=32)

        logging.debug(f"[imagebmp] BMP 읽기 완료: {info!r}")
        return image

    # 항상 32비트, BI_RGB, 양수 높이(아래쪽 행부터)로 저장
    def write(self, image: ImageData) -> bytes:
        pixel_bytes = image.bottom_up_bytes()
        file_header = _FILE_HEADER.pack(b"BM", HEADER_SIZE + len(pixel_bytes), 0, 0, HEADER_SIZE)
        info_header = _INFO_HEADER.pack(
            _INFO_HEADER.size, image.width, image.height, 1, 32, BI_RGB,
            len(pixel_bytes), PIXELS_PER_METER, PIXELS_PER_METER, 0, 0)
        return file_header + info_header + pixel_bytes
