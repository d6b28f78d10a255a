# imagepng.py - PNG reader/writer on top of Pillow (BGRA <-> RGBA)
#
# Licensed under the MIT License.

import logging
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from gameres.gameres import ImageFormat, InvalidFormatException
from gameres.image import ImageData, ImageMetaData

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'


class PngFormat(ImageFormat):
    extension = ".png"

    def __init__(self):
        super().__init__()
        self.name = "PNG"
        self.signature = PNG_SIGNATURE

    def read_metadata(self, data: bytes) -> ImageMetaData:
        if data[:8] != PNG_SIGNATURE or data[12:16] != b'IHDR':
            raise InvalidFormatException("not a png (missing signature or IHDR)", stage="decode")
        width = int.from_bytes(data[16:20], 'big')
        height = int.from_bytes(data[20:24], 'big')
        bit_depth = data[24]
        color_type = data[25]
        channels = {0: 1, 2: 3, 3: 1, 4: 2, 6: 4}.get(color_type, 1)
        return ImageMetaData(width, height, bpp=bit_depth * channels, ext=".png")

    def read(self, data: bytes) -> ImageData:
        info = self.read_metadata(data)
        try:
            with Image.open(BytesIO(data)) as img:
                rgba = np.asarray(img.convert("RGBA"), dtype=np.uint8)
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidFormatException(f"png decode failed: {e}", stage="decode") from e

        # RGBA → BGRA
        pixels = rgba[..., [2, 1, 0, 3]]
        logging.debug(f"[imagepng] PNG 읽기 완료: {info!r}")
        return ImageData(pixels, source_bpp=info.bpp)

    def write(self, image: ImageData) -> bytes:
        rgba = np.ascontiguousarray(image.pixels[..., [2, 1, 0, 3]])
        out = BytesIO()
        try:
            Image.fromarray(rgba).save(out, format="PNG", optimize=True, compress_level=9)
        except (ValueError, OSError) as e:
            raise InvalidFormatException(
                f"png encode failed for {image.width}x{image.height} image: {e}", stage="encode") from e
        logging.debug("[imagepng] PIL 기반 PNG 저장 완료 (optimize=True, compress_level=9)")
        return out.getvalue()
