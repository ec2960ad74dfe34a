from .compression import CompressionService
from .models import BatchResult, ConversionDirection, Failure, Success, UploadedFile
from .service import ConversionService

__all__ = [
    "BatchResult",
    "CompressionService",
    "ConversionDirection",
    "ConversionService",
    "Failure",
    "Success",
    "UploadedFile",
]
