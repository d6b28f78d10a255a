# options.py - explicit settings passed into extraction and patch calls
#
# Licensed under the MIT License.

from enum import Enum
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


class ImageOutput(Enum):
    BITMAP = "bmp"
    PASSTHROUGH = "cnv"
    PNG = "png"


@dataclass(frozen=True)
class ExtractOptions:
    image_output: ImageOutput = ImageOutput.BITMAP
    convert_audio: bool = True


# (소문자 stem, 확장자) → 인덱스
OverrideTable = Mapping[Tuple[str, str], int]


@dataclass(frozen=True)
class PatchOptions:
    # None이면 샘플레이트 제한 없음
    expected_sample_rate: Optional[int] = None
    # None이면 bundlematch.DEFAULT_OVERRIDES
    overrides: Optional[OverrideTable] = None
    # None이면 번들 파일 자체의 경과 일수
    max_age_days: Optional[float] = None
