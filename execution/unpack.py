# unpack.py - bundle listing and extraction with progress output
#
# Licensed under the MIT License.

import os
import sys
import time
import logging
from typing import List, Optional

from tqdm import tqdm

from daybreak.bundleunpack import (ExtractResult, describe_entry, extract_single, iter_extract,
                                   list_bundle, open_bundle, select_entries)
from daybreak.options import ExtractOptions


def format_listing(entries, with_type: bool = False) -> List[str]:
    lines = []
    for entry in entries:
        line = f"{entry.index:5d}  0x{entry.offset:08X}  {entry.length:10d}  {entry.name}"
        if with_type:
            line += f"  ({describe_entry(entry.name)})"
        lines.append(line)
    return lines


def run_list(dat_path: str, sort_by_name: bool = False, with_type: bool = False, out=None) -> int:
    out = out or sys.stdout
    entries = list_bundle(dat_path, sort_by_name=sort_by_name)
    print(f"{'index':>5}  {'offset':>10}  {'length':>10}  name", file=out)
    for line in format_listing(entries, with_type):
        print(line, file=out)
    print(f"총 {len(entries)}개 항목", file=out)
    return len(entries)


def run_unpack(dat_path: str, output_dir: str, pattern: Optional[str] = None,
               options: ExtractOptions = ExtractOptions(), progress: bool = True) -> List[ExtractResult]:
    start = time.time()
    os.makedirs(output_dir, exist_ok=True)
    results = []

    with open_bundle(dat_path) as archive:
        entries = select_entries(archive, pattern)
        logging.info(f"[unpack] {len(entries)}/{len(archive.entries)}개 항목 추출 시작 → {output_dir}")
        for result in tqdm(iter_extract(archive, output_dir, entries, options),
                           total=len(entries), desc="추출 진행중", unit="파일", disable=not progress):
            if not result.ok:
                tqdm.write(f"[변환 실패] #{result.index} {result.name} → {result.output_path} ({result.error})")
            results.append(result)

    elapsed = time.time() - start
    failed = sum(1 for r in results if not r.ok)
    logging.info(f"[unpack] 완료: {len(results)}개, 변환 실패 {failed}개, {elapsed:.2f}초")
    return results


def run_single(dat_path: str, index: int, output_path: str,
               options: ExtractOptions = ExtractOptions()) -> ExtractResult:
    result = extract_single(dat_path, index, output_path, options)
    if result.ok:
        logging.info(f"[unpack] #{index} {result.name} → {result.output_path}")
    else:
        logging.warning(f"[unpack] #{index} {result.name} 변환 실패, 원본 저장: {result.output_path}")
    return result
