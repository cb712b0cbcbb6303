from __future__ import annotations

import io

import fitz
import pytest

from core.error_types import ParseError, ParseErrorKind
from core.pdf_engine import PDFEngine


class BrokenStream(io.RawIOBase):
    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        raise OSError("connection reset")


def test_load_reports_page_geometry(pdf_bytes_factory) -> None:
    data = pdf_bytes_factory(3, width=300, height=400)

    document = PDFEngine().load(data).unwrap()

    assert document.page_count == 3
    assert PDFEngine.page_sizes(document) == {1: (300, 400), 2: (300, 400), 3: (300, 400)}
    assert document.get_page_info(4) is None
    document.close()


def test_load_empty_buffer_is_malformed() -> None:
    result = PDFEngine().load(b"")

    assert result.is_failure()
    error = result.get_error()
    assert isinstance(error, ParseError)
    assert error.kind == ParseErrorKind.MALFORMED
    assert error.error_code() == "PARSE_MALFORMED_ERR"


@pytest.mark.parametrize("data", [b"hello world", b"GIF89a not a document"])
def test_load_garbage_is_malformed(data: bytes) -> None:
    result = PDFEngine().load(data)

    assert result.is_failure()
    assert result.get_error().is_malformed


def test_load_copies_mutable_buffers(two_page_pdf: bytes) -> None:
    buffer = bytearray(two_page_pdf)

    document = PDFEngine().load(buffer).unwrap()
    buffer[:] = b"\x00" * len(buffer)

    assert document.data == two_page_pdf
    document.close()


def test_load_stream_reads_to_end(two_page_pdf: bytes) -> None:
    document = PDFEngine().load_stream(io.BytesIO(two_page_pdf)).unwrap()

    assert document.page_count == 2
    document.close()


def test_load_stream_read_failure_is_io_error() -> None:
    result = PDFEngine().load_stream(BrokenStream())

    assert result.is_failure()
    assert result.get_error().kind == ParseErrorKind.IO
    assert result.get_error().error_code() == "PARSE_IO_ERR"


def test_encrypted_document_requires_password() -> None:
    source = fitz.open()
    source.new_page()
    data = source.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="secret",
    )
    source.close()

    engine = PDFEngine()
    assert engine.load(data).is_failure()

    document = engine.load(data, password="secret").unwrap()
    assert document.page_count == 1
    document.close()


def test_same_bytes_hash_identically(two_page_pdf: bytes) -> None:
    engine = PDFEngine()
    first = engine.load(two_page_pdf).unwrap()
    second = engine.load(two_page_pdf).unwrap()

    assert first.file_hash == second.file_hash
    first.close()
    second.close()
