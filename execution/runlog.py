# runlog.py - root logger setup shared by the command line entry points
#
# Licensed under the MIT License.

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "[%(levelname)s] %(message)s"


class SafeRotatingFileHandler(RotatingFileHandler):
    def doRollover(self):
        try:
            super().doRollover()
        except PermissionError as e:
            logging.warning(f"[SafeRotatingFileHandler] 롤오버 실패 (무시됨): {e}")
        except OSError as e:
            logging.warning(f"[SafeRotatingFileHandler] 예상치 못한 오류 (무시됨): {e}")


# 기존 핸들러는 제거하고 파일(DEBUG) + 콘솔 핸들러를 새로 붙임
def setup_logger(log_path: Optional[str] = None, console_level: int = logging.WARNING) -> logging.Logger:
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        if isinstance(handler, SafeRotatingFileHandler):
            handler.close()
    logger.setLevel(logging.DEBUG)

    file_format = logging.Formatter(LOG_FORMAT)

    if log_path:
        log_dir = os.path.dirname(os.path.abspath(log_path))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = SafeRotatingFileHandler(log_path, maxBytes=100_000_000, backupCount=5, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(file_format)
    logger.addHandler(console)
    return logger
