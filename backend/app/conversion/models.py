"""Upload, result and batch models shared by the conversion services."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ConversionDirection(str, Enum):
    TO_WEBP = "to-webp"
    TO_PNG = "to-png"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ConversionDirection"]:
        """Return the direction for a request value, or None when it is missing or unknown.

        Matching is exact: "TO-WEBP" or " to-webp" are unknown.
        """
        if isinstance(value, cls):
            return value
        for direction in cls:
            if direction.value == value:
                return direction
        return None

    @classmethod
    def infer(cls, mime_type: str) -> "ConversionDirection":
        """WebP sources go to PNG, everything else to WebP."""
        return cls.TO_PNG if mime_type == "image/webp" else cls.TO_WEBP


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded blob held in memory for the duration of one request."""

    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def byte_size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Success:
    data: bytes = field(repr=False)
    file_name: str
    mime_type: str
    message: str

    is_failure = False


@dataclass(frozen=True)
class Failure:
    message: str

    is_failure = True


PerFileResult = Union[Success, Failure]


@dataclass(frozen=True)
class BatchResult:
    """Ordered per-file results plus the batch-level summary.

    `code` is set only when the batch was rejected as a whole, in which case
    `results` is empty.
    """

    results: list = field(default_factory=list)
    error: bool = False
    message: str = ""
    code: Optional[str] = None

    @classmethod
    def from_results(cls, results: list, ok_message: str, failed_message: str) -> "BatchResult":
        failed = any(r.is_failure for r in results)
        return cls(results=list(results), error=failed, message=failed_message if failed else ok_message)

    @classmethod
    def rejected(cls, code: str, message: str) -> "BatchResult":
        return cls(results=[], error=True, message=message, code=code)

    @property
    def is_rejected(self) -> bool:
        return self.code is not None

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.is_failure)

    @property
    def output_bytes(self) -> int:
        return sum(len(r.data) for r in self.results if not r.is_failure)
