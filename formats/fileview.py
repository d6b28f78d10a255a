# fileview.py - positioned read access to a bundle file
#
# Licensed under the MIT License.

import os
import logging

from gameres.gameres import BundleIOError, InvalidFormatException


# FileView: .dat 파일을 열어 오프셋 기준으로 정확한 길이만큼 읽는 뷰
class FileView:
    def __init__(self, filepath: str):
        self.filepath = filepath
        self.name = os.path.basename(filepath)
        try:
            self.file = open(filepath, "rb")
            self.size = os.fstat(self.file.fileno()).st_size
        except OSError as e:
            raise BundleIOError(f"cannot open '{filepath}': {e}", stage="open") from e

        logging.debug(f"[fileview] '{self.name}' 열림 (크기: {self.size} bytes)")

    def __len__(self):
        return self.size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # 정확히 size 바이트를 읽음. 모자라면 구조 오류
    def read_at(self, offset: int, size: int, stage: str = "read") -> bytes:
        if offset < 0 or size < 0:
            raise InvalidFormatException(f"invalid read range offset={offset} size={size}", stage=stage)
        if offset + size > self.size:
            raise InvalidFormatException(
                f"read past end of '{self.name}': 0x{offset:X} + {size} > {self.size}", stage=stage)
        try:
            self.file.seek(offset)
            data = self.file.read(size)
        except OSError as e:
            raise BundleIOError(f"read failed at 0x{offset:X}: {e}", stage=stage) from e
        if len(data) != size:
            raise InvalidFormatException(
                f"short read at 0x{offset:X}: {len(data)} of {size} bytes", stage=stage)

        logging.debug(f"[fileview] read_at(offset=0x{offset:X}, size={size})")
        return data

    def close(self):
        if not self.file.closed:
            self.file.close()
            logging.debug(f"[fileview] '{self.name}' 닫힘")
