# arcfile.py - archive entry record and the ordered entry container
#
# Licensed under the MIT License.

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional


# 기본 Entry 구조 정의. index는 테이블 상 위치(0부터)
@dataclass(frozen=True)
class Entry:
    index: int
    name: str
    length: int
    offset: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def moved(self, delta: int) -> "Entry":
        return Entry(self.index, self.name, self.length, self.offset + delta)

    def resized(self, length: int) -> "Entry":
        return Entry(self.index, self.name, length, self.offset)


# ArcFile 컨테이너. 항목은 테이블 순서 그대로 유지
class ArcFile:
    def __init__(self, view, format, entries: List[Entry], name_index: Optional[Dict[str, int]] = None):
        self.view = view
        self.format = format
        self.name = view.name if hasattr(view, 'name') else "unnamed"
        self.entries = list(entries)
        if name_index is None:
            name_index = {}
            for entry in self.entries:
                name_index[entry.name] = entry.index
        self.name_index = name_index

        logging.debug(f"[ArcFile] '{self.name}' 초기화, 항목 수: {len(self.entries)}")

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> Entry:
        return self.entries[index]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # 같은 이름이 여러 개면 마지막 항목
    def find(self, name: str) -> Optional[Entry]:
        index = self.name_index.get(name)
        return None if index is None else self.entries[index]

    # 항목 데이터 원본(암호화 상태) 읽기
    def read_raw(self, entry: Entry) -> bytes:
        return self.view.read_at(entry.offset, entry.length, stage="read")

    #내부 View 리소스를 정리
    def close(self):
        self.view.close()
        logging.debug(f"[ArcFile] '{self.name}' 닫힘")
