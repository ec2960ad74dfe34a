"""In-memory zip building and batch document compression."""
import asyncio
import io
import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, Optional, Sequence

from app.config import DOCUMENT_LIMITS, ProcessingLimits
from app.conversion.models import BatchResult, Success, UploadedFile
from app.conversion.naming import bare_name
from app.conversion.validation import validate_file_set
from app.errors import ArchiveError, BatchValidationError

logger = logging.getLogger("converter.archive")

ARCHIVE_NAME = "compressed-docs.zip"
ARCHIVE_MIME = "application/zip"
ARCHIVE_OK = "Documents compressed successfully!"
ALL_ARCHIVED = "All documents compressed successfully!"

CHUNK_SIZE = 64 * 1024


class ZipArchiveBuilder:
    """Accumulates entries into one deflated zip held in memory.

    Entries are written in append order. finalize() closes the archive and
    yields it in chunks; the builder cannot be appended to afterwards.
    """

    def __init__(self, compresslevel: int = 9):
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=compresslevel)
        self._finalized = False
        self.entry_count = 0

    def append(self, name: str, data: bytes) -> None:
        if self._finalized:
            raise ArchiveError(message="Archive already finalized")
        self._zip.writestr(name, data)
        self.entry_count += 1

    def finalize(self) -> Iterator[bytes]:
        if not self._finalized:
            self._zip.close()
            self._finalized = True
        return self._chunks()

    def _chunks(self) -> Iterator[bytes]:
        self._buffer.seek(0)
        while True:
            chunk = self._buffer.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


def build_archive(files: Sequence[UploadedFile], compresslevel: int = 9) -> bytes:
    """Blocking: append every file under its bare name, in order, and return the archive bytes."""
    builder = ZipArchiveBuilder(compresslevel=compresslevel)
    for f in files:
        builder.append(bare_name(f.name), f.data)
    data = b"".join(builder.finalize())
    logger.info("Created zip with %s entries (%s bytes)", builder.entry_count, len(data))
    return data


class DocumentArchiveService:
    """Collapses a batch of documents into a single zip result."""

    def __init__(self, limits: ProcessingLimits = DOCUMENT_LIMITS, max_workers: int = 2):
        self.limits = limits
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    async def archive_batch(self, files: Sequence[UploadedFile]) -> BatchResult:
        """Validate, zip and return exactly one result for the whole batch."""
        limits = self.limits
        try:
            validate_file_set(files, limits.accepted_types, limits.max_files, limits.max_total_bytes)
        except BatchValidationError as e:
            logger.warning("Rejecting document batch: %s", e.message)
            return BatchResult.rejected(e.code, e.message)

        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(self._executor, build_archive, list(files))
        except Exception as e:
            logger.exception("Document archive failed for %s files: %s", len(files), e)
            err = ArchiveError()
            return BatchResult.rejected(err.code, err.message)

        result = Success(data=data, file_name=ARCHIVE_NAME, mime_type=ARCHIVE_MIME, message=ARCHIVE_OK)
        return BatchResult(results=[result], error=False, message=ALL_ARCHIVED)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


# Singleton
_archive_service: Optional[DocumentArchiveService] = None


def get_archive_service() -> DocumentArchiveService:
    global _archive_service
    if _archive_service is None:
        _archive_service = DocumentArchiveService()
    return _archive_service


def shutdown_archive_service() -> None:
    global _archive_service
    if _archive_service is not None:
        _archive_service.close()
        _archive_service = None
