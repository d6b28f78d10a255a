# bundlerepack.py - bundle patching: whole-file rewrite for one index, in-place bulk patch
#
# Licensed under the MIT License.

# 단일 인덱스 패치는 테이블을 다시 쓰고 뒤쪽 항목 오프셋을 밀어서 파일 전체를 새로 씀.
# 디렉토리 패치는 원래 슬롯 안에 들어가는 파일만 그 자리에 덮어씀 (오프셋 불변).

import os
import time
import shutil
import logging
import tempfile
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, List, Optional, Sequence

from formats.arcfile import Entry
from gameres.gameres import (BundleError, BundleIOError, CapacityError,
                             InvalidFormatException)
from gameres.imagebmp import BmpFormat
from gameres.imagepng import PngFormat
from daybreak.bundletable import MAX_UINT32, write_record, write_table
from daybreak.bundleunpack import BundleArchive, get_entry, is_container, open_bundle
from daybreak.bundlematch import resolve_index
from daybreak.crypto import crypt_payload, payload_key, xor_bytes
from daybreak.imagecnv import CnvImageFormat
from daybreak.audiocnv import CnvAudioFormat
from daybreak.options import PatchOptions

CHUNK_SIZE = 1 << 20
SECONDS_PER_DAY = 86400

_image_inputs = {".bmp": BmpFormat(), ".png": PngFormat()}
_cnv_image = CnvImageFormat()
_cnv_audio = CnvAudioFormat()


@dataclass(frozen=True)
class PatchResult:
    path: str
    index: Optional[int]
    name: Optional[str]
    status: str  # "patched" | "skipped" | "failed"
    old_length: int = 0
    new_length: int = 0
    error: Optional[BundleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# 대상 항목 길이 변경 → 뒤쪽(j > i) 항목만 delta만큼 이동. 입력 목록은 그대로 둠
def shift_offsets(entries: Sequence[Entry], index: int, new_length: int) -> List[Entry]:
    target = entries[index]
    delta = new_length - target.length
    shifted = []
    for entry in entries:
        if entry.index == index:
            entry = entry.resized(new_length)
        elif entry.index > index:
            entry = entry.moved(delta)
            if not 0 <= entry.offset <= MAX_UINT32:
                raise InvalidFormatException(
                    f"entry {entry.index} '{entry.name}' would move to offset {entry.offset}, "
                    f"outside the u32 range", stage="validate")
        shifted.append(entry)
    return shifted


def read_input(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise BundleIOError(f"cannot read '{path}': {e}", stage="read") from e


# 교체 데이터 준비. .cnv 항목이면 bmp/png/wav 입력을 컨테이너로 변환
def load_replacement(input_path: str, entry: Entry, expected_sample_rate: Optional[int] = None) -> bytes:
    data = read_input(input_path)
    if not is_container(entry.name):
        return data

    ext = os.path.splitext(input_path)[1].lower()
    if ext in _image_inputs:
        image = _image_inputs[ext].read(data)
        logging.info(f"[bundlerepack] {os.path.basename(input_path)} → CNV 이미지 변환 ({image.width}x{image.height})")
        return _cnv_image.write(image)
    if ext == ".wav":
        logging.info(f"[bundlerepack] {os.path.basename(input_path)} → CNV 오디오 변환")
        return _cnv_audio.encode(data, expected_sample_rate)
    return data


# 파일 전체 재작성 전에 물리 배치 검증
def check_layout(archive: BundleArchive, index: int):
    target = archive.entries[index]
    start = archive.payload_start
    later = []
    for entry in archive.entries:
        if entry.offset < start or entry.end > archive.view.size:
            raise InvalidFormatException(
                f"entry {entry.index} '{entry.name}' lies outside the payload area "
                f"(0x{entry.offset:X}+{entry.length}, payloads 0x{start:X}-0x{archive.view.size:X})",
                stage="validate")
        if entry.index < index and entry.end > target.offset:
            raise InvalidFormatException(
                f"entry {entry.index} ends at 0x{entry.end:X}, past the target offset 0x{target.offset:X}",
                stage="validate")
        if entry.index > index:
            if entry.offset < target.end:
                raise InvalidFormatException(
                    f"entry {entry.index} starts at 0x{entry.offset:X}, before the target end 0x{target.end:X}",
                    stage="validate")
            later.append(entry)

    later.sort(key=lambda e: e.offset)
    for prev, entry in zip(later, later[1:]):
        if entry.offset < prev.end:
            raise InvalidFormatException(
                f"entries {prev.index} and {entry.index} overlap", stage="validate")
    return later


class BundleRewriter:
    def __init__(self, archive: BundleArchive):
        self.archive = archive
        self.src = archive.view.file

    def copy_range(self, dst: BinaryIO, start: int, end: int, key: int = 0):
        try:
            self.src.seek(start)
            remaining = end - start
            while remaining > 0:
                chunk = self.src.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    raise BundleIOError(f"unexpected end of file at 0x{end - remaining:X}", stage="read")
                if key:
                    chunk = xor_bytes(chunk, key)
                dst.write(chunk)
                remaining -= len(chunk)
        except OSError as e:
            raise BundleIOError(f"copy 0x{start:X}-0x{end:X} failed: {e}", stage="write") from e

    # 새 테이블 → 대상 앞 구간 → 새 데이터 → 뒤쪽 항목(재암호화) → 꼬리
    def write(self, dst: BinaryIO, index: int, payload: bytes) -> List[Entry]:
        archive = self.archive
        target = archive.entries[index]
        later = check_layout(archive, index)
        new_entries = shift_offsets(archive.entries, index, len(payload))
        delta = len(payload) - target.length

        try:
            dst.write(write_table(new_entries))
            self.copy_range(dst, archive.payload_start, target.offset)
            dst.write(crypt_payload(payload, target.offset))
        except OSError as e:
            raise BundleIOError(f"write failed: {e}", stage="write") from e

        position = target.end
        for entry in later:
            self.copy_range(dst, position, entry.offset)
            key = payload_key(entry.offset) ^ payload_key(entry.offset + delta)
            self.copy_range(dst, entry.offset, entry.end, key)
            position = entry.end
        self.copy_range(dst, position, archive.view.size)

        logging.debug(f"[bundlerepack] 재작성 완료: #{index} {target.length} → {len(payload)} bytes (delta {delta:+d})")
        return new_entries


def _temp_beside(path: str):
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory)
    except OSError as e:
        raise BundleIOError(f"cannot create temporary file in '{directory}': {e}", stage="write") from e
    return fd, tmp_path


def _discard(tmp_path: str):
    try:
        os.remove(tmp_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logging.error(f"[bundlerepack] 임시 파일 삭제 실패: {tmp_path} ({e})")


def _commit(tmp_path: str, path: str):
    try:
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        raise BundleIOError(f"cannot replace '{path}': {e}", stage="write") from e


# 인덱스 하나 교체. 임시 파일에 전체를 쓴 뒤 원자적으로 교체
def patch_entry(bundle_path: str, index: int, input_path: str,
                options: PatchOptions = PatchOptions()) -> PatchResult:
    fd, tmp_path = _temp_beside(bundle_path)
    try:
        with os.fdopen(fd, "wb") as dst:
            with open_bundle(bundle_path) as archive:
                entry = get_entry(archive, index)
                payload = load_replacement(input_path, entry, options.expected_sample_rate)
                BundleRewriter(archive).write(dst, index, payload)
            dst.flush()
            os.fsync(dst.fileno())
        _commit(tmp_path, bundle_path)
    except OSError as e:
        _discard(tmp_path)
        raise BundleIOError(f"patch of '{bundle_path}' failed: {e}", stage="write") from e
    except BaseException:
        _discard(tmp_path)
        raise

    logging.info(f"[bundlerepack] #{index} {entry.name} 패치 완료 ({entry.length} → {len(payload)} bytes)")
    return PatchResult(input_path, index, entry.name, "patched", entry.length, len(payload))


def iter_loose_files(directory: str) -> Iterator[str]:
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            yield os.path.join(root, name)


def file_age_days(path: str, now: Optional[float] = None) -> float:
    now = time.time() if now is None else now
    try:
        return (now - os.path.getmtime(path)) / SECONDS_PER_DAY
    except OSError as e:
        raise BundleIOError(f"cannot stat '{path}': {e}", stage="read") from e


# 파일 하나를 원래 슬롯에 덮어씀. 파일 단위 실패는 결과로, I/O 오류는 예외로
# 오프셋은 바뀌지 않음. 슬롯보다 짧으면 해당 레코드의 길이 필드는 새 길이로 고침
def patch_in_place(fp: BinaryIO, entries: Sequence[Entry], path: str,
                   options: PatchOptions = PatchOptions(),
                   max_age_days: Optional[float] = None, now: Optional[float] = None) -> PatchResult:
    if max_age_days is not None:
        age = file_age_days(path, now)
        if age > max_age_days:
            logging.debug(f"[bundlerepack] 오래된 파일 건너뜀: {path} ({age:.2f}일)")
            return PatchResult(path, None, None, "skipped")

    entry = None
    try:
        entry = entries[resolve_index(path, entries, options.overrides)]
        payload = load_replacement(path, entry, options.expected_sample_rate)
        if len(payload) > entry.length:
            raise CapacityError(
                f"{len(payload)} bytes do not fit the original {entry.length}-byte slot of "
                f"entry {entry.index} '{entry.name}'", stage="validate")
    except BundleIOError:
        raise
    except BundleError as e:
        logging.warning(f"[bundlerepack] {path} 패치 실패: {e}")
        return PatchResult(path, entry.index if entry else None, entry.name if entry else None,
                           "failed", entry.length if entry else 0, error=e)

    try:
        fp.seek(entry.offset)
        fp.write(crypt_payload(payload, entry.offset))
    except OSError as e:
        raise BundleIOError(f"write of entry {entry.index} failed: {e}", stage="write") from e
    # 짧아진 경우 이 레코드의 길이 필드만 다시 씀. 테이블의 다른 필드와 오프셋은 그대로
    if len(payload) < entry.length:
        write_record(fp, entry.resized(len(payload)))

    logging.info(f"[bundlerepack] {os.path.basename(path)} → #{entry.index} {entry.name} ({len(payload)} bytes)")
    return PatchResult(path, entry.index, entry.name, "patched", entry.length, len(payload))


# 디렉토리 전체 패치. on_result는 파일마다 결과를 받는 선택적 콜백 (진행 표시용)
def patch_directory(bundle_path: str, directory: str, options: PatchOptions = PatchOptions(),
                    files: Optional[Sequence[str]] = None,
                    on_result: Optional[Callable[[PatchResult], None]] = None) -> List[PatchResult]:
    now = time.time()
    max_age = options.max_age_days
    if max_age is None:
        max_age = file_age_days(bundle_path, now)
        logging.info(f"[bundlerepack] 기준 경과일: {max_age:.2f}일 (번들 수정 시각)")

    with open_bundle(bundle_path) as archive:
        entries = list(archive.entries)
    if files is None:
        files = list(iter_loose_files(directory))

    fd, tmp_path = _temp_beside(bundle_path)
    results = []
    try:
        os.close(fd)
        shutil.copyfile(bundle_path, tmp_path)
        with open(tmp_path, "r+b") as fp:
            for path in files:
                result = patch_in_place(fp, entries, path, options, max_age, now)
                results.append(result)
                if on_result is not None:
                    on_result(result)
            fp.flush()
            os.fsync(fp.fileno())

        if any(r.status == "patched" for r in results):
            _commit(tmp_path, bundle_path)
        else:
            _discard(tmp_path)
    except OSError as e:
        _discard(tmp_path)
        raise BundleIOError(f"directory patch of '{bundle_path}' failed: {e}", stage="write") from e
    except BaseException:
        _discard(tmp_path)
        raise

    patched = sum(1 for r in results if r.status == "patched")
    failed = sum(1 for r in results if r.status == "failed")
    logging.info(f"[bundlerepack] 디렉토리 패치 완료: 성공 {patched}, 실패 {failed}, 건너뜀 {len(results) - patched - failed}")
    return results
