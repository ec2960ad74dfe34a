"""Output filename helpers."""
from pathlib import PurePosixPath


def bare_name(filename: str) -> str:
    """Last path component of an uploaded filename; both separators are honored."""
    return PurePosixPath((filename or "").replace("\\", "/")).name


def strip_extension(filename: str) -> str:
    """Join every dot-separated segment except the last.

    "photo.JPEG" -> "photo", "a.b.png" -> "a.b", "photo" -> "".
    """
    return ".".join(filename.split(".")[:-1])


def derive_output_name(filename: str, extension: str, suffix: str = "") -> str:
    """derive_output_name("d.jpeg", "jpg", "-compressed") -> "d-compressed.jpg"."""
    return f"{strip_extension(filename)}{suffix}.{extension}"
