"""Pillow-backed encode/decode used by the conversion and compression services."""
import io
import logging
from typing import Optional

from PIL import Image

from app.config import WEBP_METHOD

logger = logging.getLogger("converter.codec")

# MIME type -> Pillow format name
MIME_TO_FORMAT = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


class PillowCodec:
    """Decodes uploaded bytes and re-encodes them as JPEG, PNG or WebP."""

    def __init__(self, webp_method: int = WEBP_METHOD):
        self.webp_method = webp_method

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        img = Image.open(io.BytesIO(data))
        # Force the full decode here so corrupt input fails before any encode
        img.load()
        return img

    def encode(
        self,
        img: Image.Image,
        fmt: str,
        quality: Optional[int] = None,
        max_compression: bool = False,
    ) -> bytes:
        """Encode img as fmt ("JPEG" | "PNG" | "WEBP"). quality is ignored for PNG."""
        fmt = fmt.upper()
        save_kw: dict = {}
        if fmt == "JPEG":
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            save_kw = {"format": "JPEG", "optimize": True}
            if quality is not None:
                save_kw["quality"] = quality
        elif fmt == "WEBP":
            if img.mode in ("P", "LA", "PA"):
                img = img.convert("RGBA")
            elif img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGB")
            save_kw = {"format": "WEBP", "method": 6 if max_compression else self.webp_method}
            if quality is not None:
                save_kw["quality"] = quality
        elif fmt == "PNG":
            if img.mode == "CMYK":
                img = img.convert("RGB")
            if max_compression:
                save_kw = {"format": "PNG", "optimize": True}
            else:
                save_kw = {"format": "PNG", "compress_level": 6}
        else:
            raise ValueError(f"Unsupported output format: {fmt}")
        out = io.BytesIO()
        img.save(out, **save_kw)
        return out.getvalue()

    def convert(self, data: bytes, fmt: str, quality: Optional[int] = None) -> bytes:
        """Decode data and re-encode it in one call."""
        with self.decode(data) as img:
            return self.encode(img, fmt, quality=quality)
