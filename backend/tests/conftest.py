"""Pytest configuration and shared fixtures."""

import io
import os
import random
from collections.abc import Generator

# Must be set before app.config is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
import pytest  # noqa: E402

from app import db  # noqa: E402
from app.conversion.models import UploadedFile  # noqa: E402

FORMAT_TO_MIME = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (32, 24), mode: str = "RGB", noise: bool = False) -> bytes:
    """Encode a small in-memory image. noise=True gives incompressible content."""
    if noise:
        rng = random.Random(1234)
        raw = rng.randbytes(size[0] * size[1] * len(mode))
        img = Image.frombytes(mode, size, raw)
    else:
        color = (200, 40, 90, 128) if mode == "RGBA" else (200, 40, 90)
        img = Image.new(mode, size, color)
    out = io.BytesIO()
    save_kw = {"quality": 95} if fmt in ("JPEG", "WEBP") else {}
    img.save(out, format=fmt, **save_kw)
    return out.getvalue()


def make_upload(name: str, fmt: str = "PNG", **kwargs) -> UploadedFile:
    return UploadedFile(name=name, mime_type=FORMAT_TO_MIME[fmt], data=make_image_bytes(fmt, **kwargs))


@pytest.fixture
def png_file() -> UploadedFile:
    return make_upload("a.png", "PNG")


@pytest.fixture
def jpeg_file() -> UploadedFile:
    return make_upload("b.jpg", "JPEG")


@pytest.fixture
def webp_file() -> UploadedFile:
    return make_upload("c.webp", "WEBP")


@pytest.fixture
def fresh_db() -> Generator[None, None, None]:
    """A new, empty in-memory activity database."""
    db.reset_engine()
    db.init_db()
    yield
    db.reset_engine()


@pytest.fixture
def client(fresh_db) -> Generator[TestClient, None, None]:
    """Test client running the app lifespan against the in-memory database."""
    from app.main import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
