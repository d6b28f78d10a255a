# gameres.py - resource base classes, error types and the container format registry
#
# Licensed under the MIT License.

import logging
from abc import ABC, abstractmethod
from typing import Optional


# 리소스 기능
class IResource(ABC):
    def __init__(self):
        self._name = getattr(self, "__class__").__name__  # 기본값 설정

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str):
        self._name = value

    @property
    @abstractmethod
    def type(self) -> str:
        pass


# 모든 오류는 실패한 단계(stage)를 같이 들고 다님. 호출 측은 메시지를 파싱할 필요 없음.
class BundleError(Exception):
    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self):
        message = super().__str__()
        if self.stage:
            return f"{self.stage}: {message}"
        return message


# 구조/포맷 오류 (시그니처, 길이 필드, 예약 바이트 등)
class InvalidFormatException(BundleError):
    pass


# bulk 패치에서 원래 슬롯보다 큰 데이터
class CapacityError(BundleError):
    pass


class BundleIOError(BundleError):
    pass


class EntryNotFoundError(BundleError):
    pass


# 아카이브 포맷
class ArchiveFormat(IResource):
    def __init__(self):
        super().__init__()
        self.name = "unknown"
        self.extensions = []

    @property
    def type(self) -> str:
        return "archive"

    def try_open(self, view):
        raise NotImplementedError("archive opener must be implemented")


# 이미지 포맷
class ImageFormat(IResource):
    extension = ""

    @property
    def type(self) -> str:
        return "image"

    @abstractmethod
    def read(self, data: bytes):
        pass

    @abstractmethod
    def write(self, image) -> bytes:
        pass


# 오디오 포맷
class AudioFormat(IResource):
    extension = ""

    @property
    def type(self) -> str:
        return "audio"

    @abstractmethod
    def read(self, data: bytes):
        pass

    @abstractmethod
    def write(self, *args, **kwargs) -> bytes:
        pass


# FormatCatalog - 컨테이너 변환기를 판별 바이트(첫 바이트) 기준으로 등록
class FormatCatalog:
    _formats_by_key = {}
    formats = []

    @classmethod
    def add_format(cls, fmt: IResource):
        if any(type(f) is type(fmt) for f in cls.formats):
            return
        cls.formats.append(fmt)
        for key in getattr(fmt, "discriminators", []):
            cls._formats_by_key[key] = fmt
            logging.debug(f"[gameres] 판별 바이트 등록: {key} → {fmt.name}")

    @classmethod
    def lookup_discriminator(cls, key: int) -> Optional[IResource]:
        return cls._formats_by_key.get(key)

    @classmethod
    def from_data(cls, data: bytes, expected_type: Optional[str] = None) -> Optional[IResource]:
        if not data:
            return None
        fmt = cls.lookup_discriminator(data[0])
        if fmt is None:
            return None
        if expected_type is not None and fmt.type != expected_type:
            return None
        return fmt
