"""Unit tests for output filename derivation and result encoding."""

import base64

from app.conversion.models import BatchResult, Failure, Success
from app.conversion.naming import bare_name, derive_output_name, strip_extension
from app.conversion.results import encode_batch, encode_result, to_data_uri


class TestFilenames:
    """Output names join every dot segment except the last."""

    def test_uppercase_extension_replaced(self):
        assert derive_output_name("photo.JPEG", "webp") == "photo.webp"

    def test_no_extension_gives_empty_base(self):
        assert strip_extension("photo") == ""
        assert derive_output_name("photo", "webp") == ".webp"

    def test_multiple_dots_keep_all_but_last(self):
        assert derive_output_name("a.b.c.png", "webp") == "a.b.c.webp"

    def test_suffix_before_extension(self):
        assert derive_output_name("d.jpeg", "jpg", suffix="-compressed") == "d-compressed.jpg"

    def test_bare_name_strips_directories(self):
        assert bare_name("../../etc/report.pdf") == "report.pdf"
        assert bare_name("C:\\Users\\me\\notes.txt") == "notes.txt"
        assert bare_name("") == ""


class TestResultEncoding:
    """Tests for the response encoders."""

    def test_data_uri(self):
        assert to_data_uri("image/png", b"abc") == "data:image/png;base64,YWJj"

    def test_success_result(self):
        encoded = encode_result(Success(data=b"\x01\x02", file_name="a.webp", mime_type="image/webp", message="ok"))
        assert encoded["error"] is False
        assert encoded["fileName"] == "a.webp"
        prefix, payload = encoded["convertedImage"].split(",", 1)
        assert prefix == "data:image/webp;base64"
        assert base64.b64decode(payload) == b"\x01\x02"

    def test_failure_result_has_no_payload(self):
        encoded = encode_result(Failure("nope"))
        assert encoded == {"message": "nope", "error": True}

    def test_batch_aggregation(self):
        batch = BatchResult.from_results(
            [Success(data=b"x", file_name="a.webp", mime_type="image/webp", message="ok"), Failure("bad")],
            "all good",
            "some bad",
        )
        encoded = encode_batch(batch)
        assert encoded["error"] is True
        assert encoded["message"] == "some bad"
        assert [r["error"] for r in encoded["results"]] == [False, True]

    def test_rejected_batch(self):
        batch = BatchResult.rejected("empty_batch", "No files provided.")
        assert batch.is_rejected
        assert encode_batch(batch) == {"results": [], "error": True, "message": "No files provided."}
