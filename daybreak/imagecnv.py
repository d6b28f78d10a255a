# imagecnv.py - raw BGRA image container (.cnv, 17-byte header) <-> ImageData
#
# Licensed under the MIT License.

import struct
import logging

from gameres.gameres import ImageFormat, InvalidFormatException
from gameres.image import ImageData, ImageMetaData

# bpp(1) width(4) height(4) width2(4) 예약(4, 마지막 바이트는 반드시 0)
_HEADER = struct.Struct("<BIII3xB")
HEADER_SIZE = _HEADER.size
SUPPORTED_BPP = (24, 32)


class CnvImageFormat(ImageFormat):
    extension = ".cnv"

    def __init__(self):
        super().__init__()
        self.name = "CNV-IMAGE"
        # 첫 바이트(bpp)로 판별
        self.discriminators = list(SUPPORTED_BPP)

    def read_metadata(self, data: bytes) -> ImageMetaData:
        if len(data) < HEADER_SIZE:
            raise InvalidFormatException(
                f"data is too short to read image header ({len(data)} < {HEADER_SIZE})", stage="decode")

        bpp, width, height, width2, zero = _HEADER.unpack_from(data, 0)
        if bpp not in SUPPORTED_BPP:
            raise InvalidFormatException(f"unsupported bits per pixel {bpp}", stage="decode")
        if width != width2:
            logging.warning(f"[imagecnv] 너비 값 불일치: {width} vs {width2} (width2 사용)")

        expected = width2 * height * 4 + HEADER_SIZE
        if expected != len(data):
            raise InvalidFormatException(
                f"data lengths disagree: {expected} vs {len(data)}", stage="decode")
        if zero != 0:
            raise InvalidFormatException(f"nonzero value in final header byte: {zero}", stage="decode")

        # 파일의 0번 행을 ImageData의 맨 위 행으로 둠
        return ImageMetaData(width2, height, bpp=bpp, ext=".cnv", width2=width2, top_down=True)

    def read(self, data: bytes) -> ImageData:
        info = self.read_metadata(data)
        image = ImageData.create(info, bytes(data[HEADER_SIZE:]), stride=info.width2 * 4)
        logging.debug(f"[imagecnv] CNV 이미지 디코드: {info!r}")
        return image

    # 항상 32bpp, width2 = width, 예약 바이트 0
    def write(self, image: ImageData) -> bytes:
        header = _HEADER.pack(32, image.width, image.height, image.width, 0)
        logging.debug(f"[imagecnv] CNV 이미지 인코드: {image.width}x{image.height}")
        return header + image.data
