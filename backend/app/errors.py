"""Exception types shared by the validators, services and API layer."""
from dataclasses import dataclass

# Batch rejection codes
EMPTY_BATCH = "empty_batch"
TOO_MANY_FILES = "too_many_files"
UNSUPPORTED_TYPE = "unsupported_type"
TOTAL_SIZE_EXCEEDED = "total_size_exceeded"
MISMATCHED_LENGTHS = "mismatched_lengths"
ARCHIVE_FAILED = "archive_failed"


@dataclass
class AppError(Exception):
    """Base exception for all application errors."""

    code: str = "app_error"
    message: str = "An application error occurred"

    def __str__(self) -> str:
        return self.message


@dataclass
class BatchValidationError(AppError):
    """Raised when a batch is rejected before any per-file work starts."""

    code: str = "batch_validation_error"
    message: str = "Invalid batch"


@dataclass
class ArchiveError(AppError):
    """Raised when the archive step cannot produce a complete archive."""

    code: str = ARCHIVE_FAILED
    message: str = "Failed to compress documents."


@dataclass
class NoCandidateProduced(AppError):
    """Raised when a quality search finishes without a single encoded candidate."""

    code: str = "no_candidate_produced"
    message: str = "The encoder produced no output"
