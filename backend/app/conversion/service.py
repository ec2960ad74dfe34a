"""Batch image format conversion with per-file isolation and parallel execution."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Union

from app.config import BATCH_IMAGE_LIMITS, MAX_WORKERS, SINGLE_IMAGE_LIMITS, WEBP_QUALITY, ProcessingLimits
from app.conversion.codec import PillowCodec
from app.conversion.models import (
    BatchResult,
    ConversionDirection,
    Failure,
    PerFileResult,
    Success,
    UploadedFile,
)
from app.conversion.naming import derive_output_name
from app.conversion.validation import check_image_file, validate_file_set
from app.errors import EMPTY_BATCH, MISMATCHED_LENGTHS, BatchValidationError

logger = logging.getLogger("converter.service")

CONVERSION_OK = "Conversion successful!"
CONVERSION_ERROR = "An unexpected error occurred during conversion."
ALREADY_WEBP = "Image is already in WebP format."
ONLY_WEBP_TO_PNG = "Only WebP files can be converted to PNG."
INVALID_INPUT = "Invalid input."
ALL_CONVERTED = "All conversions successful!"
SOME_FAILED = "Some conversions failed."

DirectionLike = Union[ConversionDirection, str, None]


class ConversionService:
    """Converts batches of images between WebP and PNG/JPEG, one result per input file."""

    def __init__(
        self,
        codec: Optional[PillowCodec] = None,
        limits: ProcessingLimits = BATCH_IMAGE_LIMITS,
        webp_quality: int = WEBP_QUALITY,
        max_workers: int = MAX_WORKERS,
    ):
        self.codec = codec or PillowCodec()
        self.limits = limits
        self.webp_quality = webp_quality
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        logger.info("ConversionService initialized with max_workers=%s", max_workers)

    async def convert_batch(
        self,
        files: Sequence[Optional[UploadedFile]],
        directions: Sequence[DirectionLike],
        limits: Optional[ProcessingLimits] = None,
    ) -> BatchResult:
        """Convert files[i] according to directions[i]; results keep input order."""
        limits = limits or self.limits
        if not files:
            return BatchResult.rejected(EMPTY_BATCH, "No files provided.")
        if len(files) != len(directions):
            logger.warning("Rejecting batch: %s files but %s directions", len(files), len(directions))
            return BatchResult.rejected(MISMATCHED_LENGTHS, "Each file needs exactly one conversion type.")
        try:
            validate_file_set(files, None, limits.max_files, limits.max_total_bytes)
        except BatchValidationError as e:
            logger.warning("Rejecting conversion batch: %s", e.message)
            return BatchResult.rejected(e.code, e.message)

        pairs = list(zip(files, directions))
        results = await asyncio.gather(*(self._convert_pair(f, d, limits) for f, d in pairs))
        batch = BatchResult.from_results(results, ALL_CONVERTED, SOME_FAILED)
        logger.info("Converted batch of %s files (%s failed)", len(results), batch.failed_count)
        return batch

    async def convert_one(
        self,
        file: Optional[UploadedFile],
        direction: DirectionLike = None,
        limits: ProcessingLimits = SINGLE_IMAGE_LIMITS,
    ) -> PerFileResult:
        """Single-image conversion. A missing direction is inferred from the source type."""
        if direction is None and file is not None:
            direction = ConversionDirection.infer(file.mime_type)
        return await self._convert_pair(file, direction, limits)

    async def _convert_pair(
        self,
        file: Optional[UploadedFile],
        direction: DirectionLike,
        limits: ProcessingLimits,
    ) -> PerFileResult:
        failure = check_image_file(file, limits)
        if failure is not None:
            return failure
        direction = ConversionDirection.parse(direction)
        if direction is None:
            return Failure(INVALID_INPUT)

        if direction is ConversionDirection.TO_WEBP:
            if file.mime_type == "image/webp":
                return Failure(ALREADY_WEBP)
            fmt, ext, mime_type, quality = "WEBP", "webp", "image/webp", self.webp_quality
        else:
            if file.mime_type != "image/webp":
                return Failure(ONLY_WEBP_TO_PNG)
            fmt, ext, mime_type, quality = "PNG", "png", "image/png", None

        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(self._executor, self.codec.convert, file.data, fmt, quality)
        except Exception as e:
            logger.exception("Image conversion failed for %s: %s", file.name, e)
            return Failure(CONVERSION_ERROR)

        out_name = derive_output_name(file.name, ext)
        logger.info("Converted %s -> %s", file.name, out_name)
        return Success(data=data, file_name=out_name, mime_type=mime_type, message=CONVERSION_OK)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service


def shutdown_conversion_service() -> None:
    global _conversion_service
    if _conversion_service is not None:
        _conversion_service.close()
        _conversion_service = None
