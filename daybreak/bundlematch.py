# bundlematch.py - maps loose files to bundle entry indices (overrides, then name heuristic)
#
# Licensed under the MIT License.

import os
import logging
from typing import Optional, Sequence

from formats.arcfile import Entry
from gameres.gameres import EntryNotFoundError
from daybreak.options import OverrideTable

# 이름만으로는 구분이 안 되는 타이틀 음악 항목들
DEFAULT_OVERRIDES = {
    ("title", ".ogg"): 6,
    ("title", ".wav"): 6,
    ("titlesemi", ".ogg"): 4,
    ("titlesemi", ".wav"): 4,
    ("title", ".sfl"): 5,
    ("titlesemi", ".sfl"): 3,
}

# 변환 가능한 입력은 .cnv 항목도 대상
CONTAINER_INPUTS = (".bmp", ".png", ".wav")


def split_name(path: str):
    base = path.replace("\\", "/").rsplit("/", 1)[-1]
    stem, ext = os.path.splitext(base)
    return stem.lower(), ext.lower()


def target_suffixes(ext: str):
    if ext in CONTAINER_INPUTS:
        return (".cnv", ext)
    return (ext,)


def lookup_override(stem: str, ext: str, overrides: OverrideTable) -> Optional[int]:
    return overrides.get((stem, ext))


def match_by_name(stem: str, ext: str, entries: Sequence[Entry]) -> Optional[int]:
    if not stem:
        return None
    suffixes = target_suffixes(ext)
    candidates = [e for e in entries if e.name.lower().endswith(suffixes)]

    # 정확히 같은 이름 우선, 없으면 부분 일치
    for entry in candidates:
        if split_name(entry.name)[0] == stem:
            return entry.index
    for entry in candidates:
        if stem in split_name(entry.name)[0]:
            return entry.index
    return None


def resolve_index(path: str, entries: Sequence[Entry], overrides: Optional[OverrideTable] = None) -> int:
    if overrides is None:
        overrides = DEFAULT_OVERRIDES
    stem, ext = split_name(path)

    index = lookup_override(stem, ext, overrides)
    if index is not None:
        if not 0 <= index < len(entries):
            raise EntryNotFoundError(
                f"override for '{stem}{ext}' points at missing index {index}", stage="validate")
        logging.debug(f"[bundlematch] 고정 매핑: {path} → #{index}")
        return index

    index = match_by_name(stem, ext, entries)
    if index is None:
        raise EntryNotFoundError(f"could not find a matching entry for {path}", stage="validate")
    logging.debug(f"[bundlematch] 이름 매칭: {path} → #{index} {entries[index].name}")
    return index
