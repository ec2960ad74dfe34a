"""API routes for image conversion, image compression and document archiving."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from app.archive import DocumentArchiveService, get_archive_service
from app.config import (
    BATCH_IMAGE_LIMITS,
    DEFAULT_TARGET_SIZE_MB,
    DOCUMENT_LIMITS,
    DOCUMENT_MIME_TYPES,
    IMAGE_MIME_TYPES,
    SINGLE_IMAGE_LIMITS,
)
from app.conversion.compression import CompressionService, get_compression_service, parse_target_size
from app.conversion.models import BatchResult, ConversionDirection, UploadedFile
from app.conversion.naming import bare_name
from app.conversion.results import encode_batch, encode_result
from app.conversion.service import ConversionService, get_conversion_service
from app.db import get_activity_stats, record_batch_activity
from app.errors import ARCHIVE_FAILED

logger = logging.getLogger("converter.api")
router = APIRouter(prefix="/api", tags=["converter"])


async def _read_upload(file: UploadFile) -> UploadedFile:
    """Read an upload fully into memory. Nothing is written to disk."""
    data = await file.read()
    return UploadedFile(
        name=bare_name(file.filename or ""),
        mime_type=(file.content_type or "").lower(),
        data=data,
    )


async def _read_uploads(files: Optional[list[UploadFile]]) -> list[UploadedFile]:
    return [await _read_upload(f) for f in files or []]


def _batch_response(batch: BatchResult) -> JSONResponse:
    status_code = 200
    if batch.is_rejected:
        status_code = 500 if batch.code == ARCHIVE_FAILED else 400
    return JSONResponse(encode_batch(batch), status_code=status_code)


def _record_activity(kind: str, **counts) -> None:
    """Write one activity row. A failed write is logged and never fails the request."""
    try:
        record_batch_activity(kind, **counts)
    except Exception as e:
        logger.exception("Failed to record %s activity: %s", kind, e)


def _record(kind: str, files: list[UploadedFile], batch: BatchResult) -> None:
    _record_activity(
        kind,
        file_count=len(files),
        failed_count=batch.failed_count,
        rejected=batch.is_rejected,
        input_bytes=sum(f.byte_size for f in files),
        output_bytes=batch.output_bytes,
    )


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return upload limits for the client."""
    return {
        "max_files": BATCH_IMAGE_LIMITS.max_files,
        "max_total_size_mb": BATCH_IMAGE_LIMITS.max_total_mb,
        "max_total_size_bytes": BATCH_IMAGE_LIMITS.max_total_bytes,
        "max_image_size_mb": BATCH_IMAGE_LIMITS.max_file_mb,
        "max_image_size_bytes": BATCH_IMAGE_LIMITS.max_file_bytes,
        "single_image_max_size_mb": SINGLE_IMAGE_LIMITS.max_file_mb,
        "max_documents": DOCUMENT_LIMITS.max_files,
        "default_target_size_mb": DEFAULT_TARGET_SIZE_MB,
    }


@router.get("/formats")
def get_formats():
    return {
        "image": sorted(IMAGE_MIME_TYPES),
        "document": sorted(DOCUMENT_MIME_TYPES),
        "directions": [d.value for d in ConversionDirection],
    }


@router.get("/stats")
def stats():
    """Aggregated batch activity per operation kind."""
    return get_activity_stats()


@router.post("/convert")
async def convert_image(
    image: Optional[UploadFile] = File(None),
    conversionType: Optional[str] = Form(None),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert a single image. Without conversionType, WebP goes to PNG and anything else to WebP."""
    upload = await _read_upload(image) if image is not None else None
    result = await svc.convert_one(upload, conversionType or None)
    _record_activity(
        "convert",
        file_count=1,
        failed_count=1 if result.is_failure else 0,
        input_bytes=upload.byte_size if upload is not None else 0,
        output_bytes=0 if result.is_failure else len(result.data),
    )
    return encode_result(result)


@router.post("/convert-batch")
async def convert_batch(
    files: Optional[list[UploadFile]] = File(None),
    directions: Optional[list[str]] = Form(None),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert files[i] in direction directions[i] ("to-webp" | "to-png")."""
    uploads = await _read_uploads(files)
    batch = await svc.convert_batch(uploads, directions or [])
    _record("convert", uploads, batch)
    return _batch_response(batch)


@router.post("/compress/images")
async def compress_images(
    files: Optional[list[UploadFile]] = File(None),
    targetSize: Optional[str] = Form(None),
    svc: CompressionService = Depends(get_compression_service),
):
    """Compress images toward targetSize MB each (default 20)."""
    uploads = await _read_uploads(files)
    batch = await svc.compress_batch(uploads, parse_target_size(targetSize))
    _record("compress_images", uploads, batch)
    return _batch_response(batch)


@router.post("/compress/documents")
async def compress_documents(
    files: Optional[list[UploadFile]] = File(None),
    svc: DocumentArchiveService = Depends(get_archive_service),
):
    """Zip all documents into one archive returned inline."""
    uploads = await _read_uploads(files)
    batch = await svc.archive_batch(uploads)
    _record("compress_documents", uploads, batch)
    return _batch_response(batch)
