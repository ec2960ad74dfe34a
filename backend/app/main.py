"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.archive import shutdown_archive_service
from app.config import CORS_ORIGINS, logger as config_logger
from app.conversion.compression import shutdown_compression_service
from app.conversion.service import shutdown_conversion_service
from app.db import init_db
from app.errors import AppError

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    config_logger.info("Converter API started")
    yield
    config_logger.info("Converter API shutting down")
    shutdown_conversion_service()
    shutdown_compression_service()
    shutdown_archive_service()


app = FastAPI(
    title="Image Converter & File Compressor API",
    description="Convert images between PNG/JPEG and WebP, compress images toward a target size, and zip documents.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_payload(message: str) -> dict:
    """Same shape as a batch response so clients always get a terminal message."""
    return {"results": [], "error": True, "message": message}


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    config_logger.warning("AppError (%s): %s", exc.code, exc.message)
    return JSONResponse(status_code=400, content=_error_payload(exc.message))


@app.exception_handler(Exception)
async def unhandled_handler(_: Request, exc: Exception) -> JSONResponse:
    config_logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content=_error_payload("Internal server error"))


app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from app.config import HOST, PORT
    uvicorn.run("app.main:app", host=HOST, port=PORT, reload=True)
