"""Unit tests for the Pillow codec adapter."""

import io

from PIL import Image
import pytest

from app.conversion.codec import PillowCodec
from conftest import make_image_bytes


def opened(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestPillowCodec:
    """Tests for PillowCodec."""

    def test_png_to_webp(self):
        out = PillowCodec().convert(make_image_bytes("PNG"), "WEBP", quality=80)
        img = opened(out)
        assert img.format == "WEBP"
        assert img.size == (32, 24)

    def test_webp_to_png(self):
        out = PillowCodec().convert(make_image_bytes("WEBP"), "PNG")
        assert opened(out).format == "PNG"

    def test_rgba_to_jpeg_drops_alpha(self):
        codec = PillowCodec()
        img = codec.decode(make_image_bytes("PNG", mode="RGBA"))
        out = codec.encode(img, "JPEG", quality=50)
        assert opened(out).mode == "RGB"

    def test_rgba_to_webp_keeps_alpha(self):
        out = PillowCodec().convert(make_image_bytes("PNG", mode="RGBA"), "WEBP", quality=80)
        assert opened(out).mode == "RGBA"

    def test_lower_quality_is_smaller(self):
        codec = PillowCodec()
        img = codec.decode(make_image_bytes("JPEG", size=(64, 64), noise=True))
        assert len(codec.encode(img, "JPEG", quality=10)) < len(codec.encode(img, "JPEG", quality=95))

    def test_corrupt_input_raises(self):
        with pytest.raises(Exception):
            PillowCodec().convert(b"not an image", "WEBP", quality=80)

    def test_unknown_output_format(self):
        codec = PillowCodec()
        img = codec.decode(make_image_bytes("PNG"))
        with pytest.raises(ValueError):
            codec.encode(img, "GIF")
