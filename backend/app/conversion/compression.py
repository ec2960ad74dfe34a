"""Size-targeted image compression for batches of JPEG, WebP and PNG files."""
import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from app.config import BATCH_IMAGE_LIMITS, DEFAULT_TARGET_SIZE_MB, MAX_WORKERS, MB, ProcessingLimits
from app.conversion.codec import MIME_TO_FORMAT, PillowCodec
from app.conversion.models import BatchResult, Failure, PerFileResult, Success, UploadedFile
from app.conversion.naming import derive_output_name
from app.conversion.quality import search_quality
from app.conversion.validation import check_image_file, validate_file_set
from app.errors import BatchValidationError

logger = logging.getLogger("converter.compression")

COMPRESSION_ERROR = "Compression failed."
UNSUPPORTED_IMAGE = "Unsupported image type."
ALL_COMPRESSED = "All compressions successful!"
SOME_FAILED = "Some compressions failed."

# Pillow format -> (output extension, output MIME type)
_OUTPUTS = {
    "JPEG": ("jpg", "image/jpeg"),
    "WEBP": ("webp", "image/webp"),
    "PNG": ("png", "image/png"),
}


def parse_target_size(value) -> float:
    """Target size in MB from a request value; falls back to the default when absent, non-numeric, non-finite or <= 0."""
    try:
        target = float(value)
    except (TypeError, ValueError):
        return float(DEFAULT_TARGET_SIZE_MB)
    if not math.isfinite(target) or target <= 0:
        return float(DEFAULT_TARGET_SIZE_MB)
    return target


class CompressionService:
    """Compresses each image toward a target size; lossy formats via quality search, PNG losslessly."""

    def __init__(
        self,
        codec: Optional[PillowCodec] = None,
        limits: ProcessingLimits = BATCH_IMAGE_LIMITS,
        max_workers: int = MAX_WORKERS,
    ):
        self.codec = codec or PillowCodec()
        self.limits = limits
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        logger.info("CompressionService initialized with max_workers=%s", max_workers)

    async def compress_batch(
        self,
        files: Sequence[UploadedFile],
        target_size_mb: Optional[float] = None,
    ) -> BatchResult:
        """Validate the batch, then compress every file concurrently. Results keep input order."""
        limits = self.limits
        try:
            validate_file_set(files, limits.accepted_types, limits.max_files, limits.max_total_bytes)
        except BatchValidationError as e:
            logger.warning("Rejecting compression batch: %s", e.message)
            return BatchResult.rejected(e.code, e.message)

        target_bytes = int(parse_target_size(target_size_mb) * MB)
        results = await asyncio.gather(*(self._compress_file(f, target_bytes) for f in files))
        batch = BatchResult.from_results(results, ALL_COMPRESSED, SOME_FAILED)
        logger.info(
            "Compressed batch of %s files toward %s bytes (%s failed)",
            len(results), target_bytes, batch.failed_count,
        )
        return batch

    async def _compress_file(self, file: UploadedFile, target_bytes: int) -> PerFileResult:
        failure = check_image_file(file, self.limits)
        if failure is not None:
            return failure
        fmt = MIME_TO_FORMAT.get(file.mime_type)
        if fmt is None:
            return Failure(UNSUPPORTED_IMAGE)
        ext, mime_type = _OUTPUTS[fmt]

        loop = asyncio.get_running_loop()
        try:
            data, quality = await loop.run_in_executor(
                self._executor, self._compress_bytes, file.data, fmt, target_bytes,
            )
        except Exception as e:
            logger.exception("Compression failed for %s: %s", file.name, e)
            return Failure(COMPRESSION_ERROR)

        size_mb = len(data) / MB
        if quality is None:
            message = f"Compressed to {size_mb:.2f} MB (lossless)."
        else:
            message = f"Compressed to {size_mb:.2f} MB (quality {quality})."
        out_name = derive_output_name(file.name, ext, suffix="-compressed")
        logger.info("Compressed %s -> %s (%s -> %s bytes)", file.name, out_name, file.byte_size, len(data))
        return Success(data=data, file_name=out_name, mime_type=mime_type, message=message)

    def _compress_bytes(self, data: bytes, fmt: str, target_bytes: int) -> tuple[bytes, Optional[int]]:
        """Blocking: runs in the executor. Returns (output, chosen quality or None for PNG)."""
        with self.codec.decode(data) as img:
            if fmt == "PNG":
                return self.codec.encode(img, "PNG", max_compression=True), None
            result = search_quality(target_bytes, lambda q: self.codec.encode(img, fmt, quality=q))
            return result.data, result.quality

    def close(self) -> None:
        self._executor.shutdown(wait=True)


# Singleton
_compression_service: Optional[CompressionService] = None


def get_compression_service() -> CompressionService:
    global _compression_service
    if _compression_service is None:
        _compression_service = CompressionService()
    return _compression_service


def shutdown_compression_service() -> None:
    global _compression_service
    if _compression_service is not None:
        _compression_service.close()
        _compression_service = None
