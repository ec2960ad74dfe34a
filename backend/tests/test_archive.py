"""Unit tests for zip building and document archiving."""

import asyncio
import io
from unittest.mock import patch
import zipfile

import pytest

from app.archive import ARCHIVE_NAME, ARCHIVE_OK, DocumentArchiveService, ZipArchiveBuilder, build_archive
from app.conversion.models import UploadedFile
from app.errors import ARCHIVE_FAILED, EMPTY_BATCH, UNSUPPORTED_TYPE, ArchiveError


def run(coro):
    return asyncio.run(coro)


def doc(name: str, mime: str, data: bytes) -> UploadedFile:
    return UploadedFile(name=name, mime_type=mime, data=data)


@pytest.fixture
def documents() -> list[UploadedFile]:
    return [
        doc("r.pdf", "application/pdf", b"%PDF-1.4\n" + b"0" * 2000),
        doc("s.txt", "text/plain", b"hello world\n" * 100),
    ]


class TestZipArchiveBuilder:
    """Tests for ZipArchiveBuilder."""

    def test_entries_in_append_order(self):
        builder = ZipArchiveBuilder()
        builder.append("b.txt", b"second")
        builder.append("a.txt", b"first")
        data = b"".join(builder.finalize())

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["b.txt", "a.txt"]
            assert zf.read("a.txt") == b"first"

    def test_entries_are_deflated(self):
        builder = ZipArchiveBuilder()
        builder.append("big.txt", b"a" * 10_000)
        data = b"".join(builder.finalize())

        assert len(data) < 10_000
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.getinfo("big.txt").compress_type == zipfile.ZIP_DEFLATED

    def test_append_after_finalize_fails(self):
        builder = ZipArchiveBuilder()
        list(builder.finalize())
        with pytest.raises(ArchiveError):
            builder.append("late.txt", b"x")

    def test_build_archive_uses_bare_names(self):
        data = build_archive([doc("../secret/notes.txt", "text/plain", b"n")])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["notes.txt"]


class TestDocumentArchiveService:
    """Tests for DocumentArchiveService.archive_batch."""

    def test_one_result_for_whole_batch(self, documents):
        batch = run(DocumentArchiveService().archive_batch(documents))

        assert batch.error is False
        assert len(batch.results) == 1
        result = batch.results[0]
        assert result.file_name == ARCHIVE_NAME
        assert result.mime_type == "application/zip"
        assert result.message == ARCHIVE_OK
        with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
            assert zf.namelist() == ["r.pdf", "s.txt"]
            assert zf.read("s.txt") == documents[1].data

    def test_images_are_rejected(self, documents):
        image = doc("a.png", "image/png", b"\x89PNG")
        batch = run(DocumentArchiveService().archive_batch(documents + [image]))
        assert batch.code == UNSUPPORTED_TYPE
        assert batch.results == []

    def test_empty_batch(self):
        batch = run(DocumentArchiveService().archive_batch([]))
        assert batch.code == EMPTY_BATCH

    def test_archive_failure_returns_no_partial_archive(self, documents):
        with patch("app.archive.build_archive", side_effect=OSError("disk full")):
            batch = run(DocumentArchiveService().archive_batch(documents))

        assert batch.error is True
        assert batch.code == ARCHIVE_FAILED
        assert batch.results == []
        assert "disk full" not in batch.message
