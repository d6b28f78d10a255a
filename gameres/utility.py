# utility.py - endian helpers, legacy codepage helpers and file savers
#
# Licensed under the MIT License.

import os
import logging
from typing import Optional

from gameres.gameres import BundleIOError, InvalidFormatException

# ============================
# Encodings
# ============================
# 원본 게임의 파일명은 Shift-JIS(윈도우 확장 포함) 한 가지뿐
SHIFT_JIS = 'cp932'

# ============================
# Endian Utilities
# ============================
class LittleEndian:
    @staticmethod
    def ToUInt16(buf, index):
        return int.from_bytes(buf[index:index+2], 'little')

    @staticmethod
    def ToUInt32(buf, index):
        return int.from_bytes(buf[index:index+4], 'little')

    @staticmethod
    def GetBytes16(val: int) -> bytes:
        return val.to_bytes(2, 'little')

    @staticmethod
    def GetBytes32(val: int) -> bytes:
        return val.to_bytes(4, 'little')

# ============================
# ASCII / Binary helpers
# ============================
def ascii_equal(buf: bytes, offset: int, s: str | bytes) -> bool:
    if isinstance(s, str):
        s = s.encode('ascii')
    return buf[offset:offset+len(s)] == s

# 고정 길이 이름 필드 → 문자열. 뒤쪽 채움 바이트(0x00)만 잘라냄
def get_fixed_string(buf: bytes, index: int, limit: int, encoding=SHIFT_JIS) -> str:
    raw = bytes(buf[index:index+limit]).rstrip(b'\x00')
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise InvalidFormatException(
            f"name bytes {raw[:32].hex()} are not valid {encoding}: {e.reason}",
            stage="decode",
        ) from e

# 문자열 → 고정 길이 이름 필드 (0x00 채움)
def put_fixed_string(name: str, limit: int, encoding=SHIFT_JIS) -> bytes:
    try:
        raw = name.encode(encoding)
    except UnicodeEncodeError as e:
        raise InvalidFormatException(
            f"name {name!r} cannot be encoded as {encoding}: {e.reason}",
            stage="encode",
        ) from e

    if len(raw) > limit:
        raise InvalidFormatException(
            f"name {name!r} is too long ({len(raw)} bytes, max {limit} bytes in {encoding})",
            stage="encode",
        )
    return raw + b'\x00' * (limit - len(raw))

# ============================
# 바이너리 세이브 관련 유틸
# ============================
class BinarySaver:
    @staticmethod
    def save(name: str, content: bytes, save_path: str):
        dir_path = os.path.dirname(save_path)
        try:
            if dir_path:
                os.makedirs(dir_path, exist_ok=True)
            with open(save_path, "wb") as f:
                f.write(content)
        except OSError as e:
            raise BundleIOError(f"cannot write '{save_path}': {e}", stage="write") from e
        logging.debug(f"[utility] {name} → 저장 완료 ({len(content)} bytes): {save_path}")

    @staticmethod
    def replace_suffix(path: str, old: str, new: str) -> Optional[str]:
        if path.lower().endswith(old.lower()):
            return path[:len(path) - len(old)] + new
        return None
