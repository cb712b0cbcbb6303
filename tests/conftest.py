from __future__ import annotations

import os
from typing import Callable, Iterator

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz
import pytest
from PyQt6.QtGui import QGuiApplication

from core.pdf_engine import PDFDocument, PDFEngine


@pytest.fixture(scope="session")
def qapp() -> QGuiApplication:
    app = QGuiApplication.instance()
    if app is None:
        app = QGuiApplication([])
    return app


@pytest.fixture()
def pdf_bytes_factory() -> Callable[..., bytes]:
    def _create(page_count: int = 2, width: float = 612, height: float = 792) -> bytes:
        document = fitz.open()
        for index in range(page_count):
            page = document.new_page(width=width, height=height)
            page.insert_text((72, 72), f"Page {index + 1}", fontname="helv", fontsize=12)
        data = document.tobytes()
        document.close()
        return data

    return _create


@pytest.fixture()
def two_page_pdf(pdf_bytes_factory: Callable[..., bytes]) -> bytes:
    return pdf_bytes_factory(2)


@pytest.fixture()
def loaded_document(two_page_pdf: bytes) -> Iterator[PDFDocument]:
    document = PDFEngine().load(two_page_pdf).unwrap()
    yield document
    document.close()
