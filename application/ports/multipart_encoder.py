from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class EncodedMultipart:
    body: bytes
    # multipart/form-data; boundary=...
    content_type: str


class MultipartEncoderPort(ABC):
    @abstractmethod
    def encode(self, files: Mapping[str, Any]) -> EncodedMultipart:
        """files: file name -> str | bytes | readable stream"""
        ...
