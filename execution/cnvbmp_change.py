# cnvbmp_change.py - standalone conversion of loose .cnv files to .bmp/.png/.wav and back
#
# Licensed under the MIT License.

import os
import logging
from typing import Optional

from gameres.gameres import BundleError, FormatCatalog
from gameres.imagebmp import BmpFormat
from gameres.imagepng import PngFormat
from gameres.utility import BinarySaver
from daybreak.imagecnv import CnvImageFormat
from daybreak.audiocnv import CnvAudioFormat
from daybreak.options import ImageOutput

_image_formats = {".bmp": BmpFormat(), ".png": PngFormat()}

# FormatCatalog등록
FormatCatalog.add_format(CnvImageFormat())
FormatCatalog.add_format(CnvAudioFormat())


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


# 복호화된 .cnv → .bmp/.png(이미지) 또는 .wav(오디오)
def convert_cnv(cnv_path: str, image_output: ImageOutput = ImageOutput.BITMAP) -> Optional[str]:
    base, _ = os.path.splitext(cnv_path)
    try:
        data = _read(cnv_path)
        fmt = FormatCatalog.from_data(data)
        if isinstance(fmt, CnvAudioFormat):
            output_path = base + ".wav"
            content = fmt.decode(data)
        elif isinstance(fmt, CnvImageFormat):
            writer = _image_formats[".png" if image_output is ImageOutput.PNG else ".bmp"]
            output_path = base + writer.extension
            content = writer.write(fmt.read(data))
        else:
            logging.error(f"[CNV 변환] 알 수 없는 컨테이너: {cnv_path} (첫 바이트 {data[:1].hex() or '없음'})")
            return None
    except (BundleError, OSError) as e:
        logging.error(f"[오류] CNV 변환 실패: {cnv_path}: {e}")
        return None

    BinarySaver.save(os.path.basename(cnv_path), content, output_path)
    logging.info(f"[완료] 저장됨: {output_path}")
    return output_path


# .bmp/.png/.wav → .cnv
def convert_to_cnv(input_path: str, expected_sample_rate: Optional[int] = None) -> Optional[str]:
    base, ext = os.path.splitext(input_path)
    ext = ext.lower()
    output_path = base + ".cnv"
    try:
        data = _read(input_path)
        if ext in _image_formats:
            content = CnvImageFormat().write(_image_formats[ext].read(data))
        elif ext == ".wav":
            content = CnvAudioFormat().encode(data, expected_sample_rate)
        else:
            logging.warning(f"[오류] 확장자 지원 안 함: {ext}")
            return None
    except (BundleError, OSError) as e:
        logging.error(f"[오류] CNV 변환 실패: {input_path}: {e}")
        return None

    BinarySaver.save(os.path.basename(input_path), content, output_path)
    logging.info(f"[완료] 저장됨: {output_path}")
    return output_path


def convert_file(path: str, image_output: ImageOutput = ImageOutput.BITMAP,
                 expected_sample_rate: Optional[int] = None) -> Optional[str]:
    if path.lower().endswith(".cnv"):
        return convert_cnv(path, image_output)
    return convert_to_cnv(path, expected_sample_rate)
