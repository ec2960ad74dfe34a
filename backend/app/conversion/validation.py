"""Batch-level checks run before any per-file work."""
import logging
from typing import Iterable, Optional, Sequence

from app.config import MB, ProcessingLimits
from app.conversion.models import Failure, UploadedFile
from app.errors import (
    EMPTY_BATCH,
    TOO_MANY_FILES,
    TOTAL_SIZE_EXCEEDED,
    UNSUPPORTED_TYPE,
    BatchValidationError,
)

logger = logging.getLogger("converter.validation")

IMAGE_REQUIRED = "Image is required."
IMAGE_TYPE_NOT_ACCEPTED = ".jpg, .jpeg, .png and .webp files are accepted."


def validate_file_set(
    files: Sequence[Optional[UploadedFile]],
    accepted_types: Optional[Iterable[str]],
    max_count: int,
    max_total_bytes: int,
) -> None:
    """Raise BatchValidationError on the first violation found.

    accepted_types=None skips the type scan (conversion batches check types per file).
    Missing entries count toward the file count but carry no type or size.
    """
    if not files:
        raise BatchValidationError(EMPTY_BATCH, "No files provided.")
    if len(files) > max_count:
        raise BatchValidationError(TOO_MANY_FILES, f"You can upload up to {max_count} files at a time.")
    if accepted_types is not None:
        accepted = set(accepted_types)
        for f in files:
            if f is not None and f.mime_type not in accepted:
                logger.info("Rejecting batch: %s has unsupported type %s", f.name, f.mime_type)
                raise BatchValidationError(UNSUPPORTED_TYPE, f"Unsupported file type: {f.mime_type or 'unknown'}.")
    total = sum(f.byte_size for f in files if f is not None)
    if total > max_total_bytes:
        raise BatchValidationError(TOTAL_SIZE_EXCEEDED, f"Max total size is {max_total_bytes // MB}MB.")


def check_image_file(file: Optional[UploadedFile], limits: ProcessingLimits) -> Optional[Failure]:
    """Per-file checks: presence, size cap, accepted type. Returns the Failure or None."""
    if file is None or file.byte_size == 0:
        return Failure(IMAGE_REQUIRED)
    if limits.max_file_bytes is not None and file.byte_size > limits.max_file_bytes:
        return Failure(f"Max file size is {limits.max_file_mb}MB.")
    if file.mime_type not in limits.accepted_types:
        return Failure(IMAGE_TYPE_NOT_ACCEPTED)
    return None
