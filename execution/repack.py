# repack.py - backup + patch (single index or loose-file directory) with progress output
#
# Licensed under the MIT License.

import os
import shutil
import logging
from datetime import datetime
from typing import List, Optional

from tqdm import tqdm

from gameres.gameres import BundleIOError
from daybreak.bundlerepack import PatchResult, iter_loose_files, patch_directory, patch_entry
from daybreak.options import PatchOptions


# <dat>.<YYYYmmdd-HHMMSS>.bak
def backup_path(dat_path: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{dat_path}.{now.strftime('%Y%m%d-%H%M%S')}.bak"


def make_backup(dat_path: str, now: Optional[datetime] = None) -> str:
    target = backup_path(dat_path, now)
    suffix = 1
    while os.path.exists(target):
        target = f"{backup_path(dat_path, now)[:-4]}-{suffix}.bak"
        suffix += 1
    try:
        shutil.copy2(dat_path, target)
    except OSError as e:
        raise BundleIOError(f"cannot create backup '{target}': {e}", stage="write") from e
    logging.info(f"[repack] 백업 생성: {target}")
    return target


def run_patch(dat_path: str, index: int, input_path: str,
              options: PatchOptions = PatchOptions(), backup: bool = True) -> PatchResult:
    if backup:
        make_backup(dat_path)
    result = patch_entry(dat_path, index, input_path, options)
    print(f"[완료] #{result.index} {result.name}: {result.old_length} → {result.new_length} bytes")
    return result


def run_update(dat_path: str, directory: str, options: PatchOptions = PatchOptions(),
               backup: bool = True, progress: bool = True) -> List[PatchResult]:
    if not os.path.isdir(directory):
        raise BundleIOError(f"not a directory: '{directory}'", stage="read")
    if backup:
        make_backup(dat_path)

    files = list(iter_loose_files(directory))
    with tqdm(total=len(files), desc="패치 진행중", unit="파일", disable=not progress) as bar:
        def report(result: PatchResult):
            if result.status == "failed":
                tqdm.write(f"[실패] {result.path}: {result.error}")
            elif result.status == "patched":
                tqdm.write(f"[패치] {os.path.relpath(result.path, directory)} → #{result.index} {result.name}")
            bar.update(1)

        results = patch_directory(dat_path, directory, options, files=files, on_result=report)

    patched = sum(1 for r in results if r.status == "patched")
    print(f"[완료] {patched}/{len(results)}개 파일 패치")
    return results
