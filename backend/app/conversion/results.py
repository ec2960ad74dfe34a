"""Encode per-file and batch results into the JSON response shape."""
import base64

from app.conversion.models import BatchResult


def to_data_uri(mime_type: str, data: bytes) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


def encode_result(result) -> dict:
    if result.is_failure:
        return {"message": result.message, "error": True}
    return {
        "message": result.message,
        "convertedImage": to_data_uri(result.mime_type, result.data),
        "fileName": result.file_name,
        "error": False,
    }


def encode_batch(batch: BatchResult) -> dict:
    return {
        "results": [encode_result(r) for r in batch.results],
        "error": batch.error,
        "message": batch.message,
    }
