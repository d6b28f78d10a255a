# bundletable.py - encrypted file table of the bundle (count + 268-byte records)
#
# Licensed under the MIT License.

import struct
import logging
from typing import BinaryIO, Dict, List, Sequence, Tuple

from formats.arcfile import Entry
from gameres.gameres import BundleIOError, InvalidFormatException
from gameres.utility import LittleEndian, SHIFT_JIS, get_fixed_string, put_fixed_string
from daybreak.crypto import crypt_table_block

COUNT_SIZE = 2
NAME_SIZE = 260
RECORD_SIZE = 268
MAX_ENTRIES = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF

# name 뒤의 length, offset
_RECORD_TAIL = struct.Struct("<II")


def table_size(count: int) -> int:
    return COUNT_SIZE + RECORD_SIZE * count


# 레코드 i의 파일 위치
def record_position(index: int) -> int:
    return COUNT_SIZE + RECORD_SIZE * index


# 레코드 i의 키스트림 블록 인덱스 (레코드 영역 기준)
def record_block(index: int) -> int:
    return RECORD_SIZE * index


def _read_exact(fp: BinaryIO, size: int, what: str) -> bytes:
    try:
        data = fp.read(size)
    except OSError as e:
        raise BundleIOError(f"error reading {what}: {e}", stage="read") from e
    if len(data) != size:
        raise InvalidFormatException(
            f"file too short for {what}: got {len(data)} of {size} bytes", stage="read")
    return data


def decode_records(plain: bytes, count: int) -> Tuple[List[Entry], Dict[str, int]]:
    entries = []
    name_index = {}
    for i in range(count):
        base = i * RECORD_SIZE
        name = get_fixed_string(plain, base, NAME_SIZE, SHIFT_JIS)
        length, offset = _RECORD_TAIL.unpack_from(plain, base + NAME_SIZE)
        entry = Entry(i, name, length, offset)
        entries.append(entry)
        # 이름 충돌 시 나중 항목
        name_index[name] = i
    return entries, name_index


# 파일 앞부분에서 테이블을 읽어 (순서대로의 항목, 이름→위치) 반환
def read_table(fp: BinaryIO) -> Tuple[List[Entry], Dict[str, int]]:
    try:
        fp.seek(0)
    except OSError as e:
        raise BundleIOError(f"error seeking to start of file: {e}", stage="seek") from e

    count = LittleEndian.ToUInt16(_read_exact(fp, COUNT_SIZE, "table length"), 0)
    encrypted = _read_exact(fp, RECORD_SIZE * count, f"table of {count} entries")
    # 레코드 영역 전체가 블록 0부터 하나의 키스트림
    plain = crypt_table_block(encrypted, 0)
    entries, name_index = decode_records(plain, count)

    logging.debug(f"[bundletable] 테이블 읽기 완료: {count}개 항목")
    return entries, name_index


def encode_record(entry: Entry) -> bytes:
    if not 0 <= entry.length <= MAX_UINT32 or not 0 <= entry.offset <= MAX_UINT32:
        raise InvalidFormatException(
            f"entry {entry.index} '{entry.name}': length/offset out of u32 range "
            f"(length={entry.length}, offset={entry.offset})", stage="encode")
    return put_fixed_string(entry.name, NAME_SIZE, SHIFT_JIS) + _RECORD_TAIL.pack(entry.length, entry.offset)


# 테이블 전체를 직렬화 (count + 암호화된 레코드)
def write_table(entries: Sequence[Entry]) -> bytes:
    if len(entries) > MAX_ENTRIES:
        raise InvalidFormatException(f"too many entries ({len(entries)} > {MAX_ENTRIES})", stage="encode")
    plain = b"".join(encode_record(entry) for entry in entries)
    return LittleEndian.GetBytes16(len(entries)) + crypt_table_block(plain, 0)


# 레코드 하나만 그 자리에서 다시 암호화해 덮어씀
def write_record(fp: BinaryIO, entry: Entry):
    position = record_position(entry.index)
    encrypted = crypt_table_block(encode_record(entry), record_block(entry.index))
    try:
        fp.seek(position)
        fp.write(encrypted)
    except OSError as e:
        raise BundleIOError(f"error rewriting record {entry.index}: {e}", stage="write") from e
    logging.debug(f"[bundletable] 레코드 {entry.index} 갱신 (length={entry.length}, offset=0x{entry.offset:X})")
