# bundleunpack.py - bundle opener, listing and the extraction pipeline
#
# Licensed under the MIT License.

import os
import re
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from formats.arcfile import ArcFile, Entry
from formats.fileview import FileView
from gameres.gameres import (ArchiveFormat, BundleError, EntryNotFoundError,
                             FormatCatalog, InvalidFormatException)
from gameres.imagebmp import BmpFormat
from gameres.imagepng import PngFormat
from gameres.utility import BinarySaver
from daybreak.bundletable import read_table, table_size
from daybreak.crypto import crypt_payload
from daybreak.imagecnv import CnvImageFormat
from daybreak.audiocnv import CnvAudioFormat
from daybreak.options import ExtractOptions, ImageOutput

CONTAINER_SUFFIX = ".cnv"
UNKNOWN_SUFFIX = ".unknown"

# FormatCatalog등록
FormatCatalog.add_format(CnvImageFormat())
FormatCatalog.add_format(CnvAudioFormat())

_bmp = BmpFormat()
_png = PngFormat()

_ENTRY_TYPES = {
    ".cnv": "Image or audio file (will be converted)",
    ".wav": "Audio File",
    ".mp3": "Audio File",
    ".bmp": "Image File (BMP format)",
    ".txt": "Text File",
    ".x": "Binary directx 9 3d model with animations.",
    ".sfl": "Temporary audio file made by vegas.",
}


def is_container(name: str) -> bool:
    return name.lower().endswith(CONTAINER_SUFFIX)


def describe_entry(name: str) -> str:
    return _ENTRY_TYPES.get(os.path.splitext(name)[1].lower(), "Unknown")


# 번들 아카이브: 항목 데이터는 자기 오프셋에서 유도한 키로 복호화
class BundleArchive(ArcFile):
    def open_entry(self, entry: Entry) -> bytes:
        return crypt_payload(self.read_raw(entry), entry.offset)

    @property
    def payload_start(self) -> int:
        return table_size(len(self.entries))


class BundleOpener(ArchiveFormat):
    def __init__(self):
        super().__init__()
        self.name = "DAT"
        self.extensions = ["dat"]

    def try_open(self, view: FileView) -> BundleArchive:
        entries, name_index = read_table(view.file)
        start = table_size(len(entries))
        for entry in entries:
            if entry.end > view.size or entry.offset < start:
                logging.warning(f"[bundleunpack] 범위 밖 항목: #{entry.index} {entry.name} "
                                f"(offset=0x{entry.offset:X}, length={entry.length}, file={view.size})")
        logging.info(f"[bundleunpack] '{view.name}' 열림: {len(entries)}개 항목")
        return BundleArchive(view, self, entries, name_index)


def open_bundle(path: str) -> BundleArchive:
    view = FileView(path)
    try:
        return BundleOpener().try_open(view)
    except BaseException:
        view.close()
        raise


# 테이블만 읽음. 항목 데이터는 건드리지 않음
def list_bundle(path: str, sort_by_name: bool = False) -> List[Entry]:
    with open_bundle(path) as archive:
        entries = list(archive.entries)
    if sort_by_name:
        return sorted(entries, key=lambda e: (e.name.lower(), e.index))
    return entries


@dataclass(frozen=True)
class ExtractResult:
    index: int
    name: str
    output_path: str
    status: str  # "converted" | "raw" | "fallback"
    error: Optional[BundleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# 컨테이너 변환. (변환된 데이터, 새 확장자 또는 None) 반환, 실패는 예외
def convert_entry(data: bytes, options: ExtractOptions = ExtractOptions()) -> Tuple[bytes, Optional[str]]:
    fmt = FormatCatalog.from_data(data)
    if fmt is None:
        first = data[0] if data else None
        raise InvalidFormatException(f"unknown container discriminator {first}", stage="decode")

    if isinstance(fmt, CnvAudioFormat):
        if not options.convert_audio:
            return data, None
        return fmt.decode(data), ".wav"

    if options.image_output is ImageOutput.PASSTHROUGH:
        # 헤더 검증만 하고 원본 그대로
        fmt.read_metadata(data)
        return data, None
    image = fmt.read(data)
    if options.image_output is ImageOutput.PNG:
        return _png.write(image), _png.extension
    return _bmp.write(image), _bmp.extension


def entry_output_path(output_dir: str, name: str) -> str:
    parts = [p for p in name.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise InvalidFormatException(f"unsafe entry name '{name}'", stage="write")
    return os.path.join(output_dir, *parts)


def extract_entry(archive: BundleArchive, entry: Entry, output_path: str,
                  options: ExtractOptions = ExtractOptions(), rename: bool = True) -> ExtractResult:
    data = archive.open_entry(entry)

    if not is_container(entry.name):
        BinarySaver.save(entry.name, data, output_path)
        return ExtractResult(entry.index, entry.name, output_path, "raw")

    def renamed(suffix: str) -> str:
        if not rename:
            return output_path
        return BinarySaver.replace_suffix(output_path, CONTAINER_SUFFIX, suffix) or output_path

    try:
        converted, suffix = convert_entry(data, options)
    except BundleError as e:
        # 변환 실패 → 복호화된 원본을 .unknown으로 저장하고 계속
        fallback = renamed(UNKNOWN_SUFFIX)
        logging.warning(f"[bundleunpack] {entry.name} 변환 실패, 원본 저장: {e}")
        BinarySaver.save(entry.name, data, fallback)
        return ExtractResult(entry.index, entry.name, fallback, "fallback", e)

    if suffix is None:
        BinarySaver.save(entry.name, converted, output_path)
        return ExtractResult(entry.index, entry.name, output_path, "raw")

    final_path = renamed(suffix)
    BinarySaver.save(entry.name, converted, final_path)
    return ExtractResult(entry.index, entry.name, final_path, "converted")


def select_entries(archive: BundleArchive, pattern: Optional[str] = None) -> List[Entry]:
    if not pattern:
        return list(archive.entries)
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise InvalidFormatException(f"invalid pattern {pattern!r}: {e}", stage="validate") from e
    return [entry for entry in archive.entries if regex.search(entry.name)]


# 항목별 결과를 하나씩 돌려줌 (진행 표시는 호출 측 몫)
def iter_extract(archive: BundleArchive, output_dir: str, entries: List[Entry],
                 options: ExtractOptions = ExtractOptions()) -> Iterator[ExtractResult]:
    for entry in entries:
        yield extract_entry(archive, entry, entry_output_path(output_dir, entry.name), options)


def extract_bundle(path: str, output_dir: str, pattern: Optional[str] = None,
                   options: ExtractOptions = ExtractOptions()) -> List[ExtractResult]:
    os.makedirs(output_dir, exist_ok=True)
    with open_bundle(path) as archive:
        entries = select_entries(archive, pattern)
        results = list(iter_extract(archive, output_dir, entries, options))

    fallbacks = sum(1 for r in results if not r.ok)
    logging.info(f"[bundleunpack] 추출 완료: {len(results)}개 (변환 실패 {fallbacks}개)")
    return results


def get_entry(archive: BundleArchive, index: int) -> Entry:
    if not 0 <= index < len(archive.entries):
        raise EntryNotFoundError(
            f"index {index} out of range (0-{len(archive.entries) - 1})", stage="validate")
    return archive.entries[index]


# 인덱스 하나를 지정 경로로. 경로가 .cnv로 끝날 때만 확장자를 바꿈
def extract_single(path: str, index: int, output_path: str,
                   options: ExtractOptions = ExtractOptions()) -> ExtractResult:
    with open_bundle(path) as archive:
        entry = get_entry(archive, index)
        return extract_entry(archive, entry, output_path, options,
                             rename=is_container(output_path))
