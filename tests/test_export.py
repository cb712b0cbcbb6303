from __future__ import annotations

import fitz
import pytest

from core.error_types import ExportError, ParseError
from core.pdf_engine import PDFEngine
from models.annotation import AnnotationFactory, AnnotationType, Point
from models.settings import EditorSettings, HighlightExportPolicy
from services.export_service import ExportOptions, ExportService
from utils import fonts


def text_annotation(page: int, x: float, y: float, content: str):
    return AnnotationFactory.create(AnnotationType.TEXT, page, Point(x, y), content=content)


def open_output(data: bytes) -> fitz.Document:
    return fitz.open(stream=data, filetype="pdf")


def test_export_never_mutates_original(two_page_pdf: bytes) -> None:
    original = bytearray(two_page_pdf)
    engine = PDFEngine()
    before = engine.load(original).unwrap()

    ExportService().export(original, [text_annotation(1, 50, 700, "Approved")]).unwrap()

    after = engine.load(original).unwrap()
    assert bytes(original) == two_page_pdf
    assert after.pages == before.pages
    before.close()
    after.close()


def test_text_is_drawn_at_document_space_anchor(two_page_pdf: bytes) -> None:
    result = ExportService().export(two_page_pdf, [text_annotation(2, 100, 500, "Approved")]).unwrap()

    output = open_output(result.data)
    assert output[0].search_for("Approved") == []
    hits = output[1].search_for("Approved")
    assert len(hits) == 1
    assert hits[0].x0 == pytest.approx(100, abs=2)
    assert hits[0].y1 == pytest.approx(792 - 500, abs=6)
    output.close()


def test_signature_uses_accent_color(two_page_pdf: bytes) -> None:
    signature = AnnotationFactory.create(AnnotationType.SIGNATURE, 1, Point(300, 100), content="M. Santos")

    result = ExportService().export(two_page_pdf, [signature]).unwrap()

    output = open_output(result.data)
    spans = [
        span
        for block in output[0].get_text("dict")["blocks"]
        for line in block.get("lines", [])
        for span in line["spans"]
        if "M. Santos" in span["text"]
    ]
    assert spans
    assert spans[0]["color"] == 0x0066CC
    output.close()


def test_highlights_are_skipped_by_default(two_page_pdf: bytes) -> None:
    highlight = AnnotationFactory.create(AnnotationType.HIGHLIGHT, 1, Point(100, 692))

    result = ExportService().export(two_page_pdf, [highlight]).unwrap()

    assert result.annotations_flattened == 0
    assert result.annotations_skipped == 1
    output = open_output(result.data)
    assert output[0].get_drawings() == []
    output.close()


def test_highlights_flatten_when_policy_allows(two_page_pdf: bytes) -> None:
    highlight = AnnotationFactory.create(AnnotationType.HIGHLIGHT, 1, Point(100, 692))
    options = ExportOptions(highlight_policy=HighlightExportPolicy.FLATTEN)

    result = ExportService().export(two_page_pdf, [highlight], options).unwrap()

    assert result.annotations_flattened == 1
    output = open_output(result.data)
    drawings = output[0].get_drawings()
    assert len(drawings) == 1
    assert drawings[0]["rect"] == fitz.Rect(100, 100, 200, 120)
    assert drawings[0]["fill_opacity"] == pytest.approx(0.3, abs=0.01)
    output.close()


def test_settings_choose_default_policy(two_page_pdf: bytes) -> None:
    settings = EditorSettings(highlight_export_policy=HighlightExportPolicy.FLATTEN)
    highlight = AnnotationFactory.create(AnnotationType.HIGHLIGHT, 1, Point(100, 692))

    result = ExportService(settings).export(two_page_pdf, [highlight]).unwrap()

    assert result.annotations_flattened == 1


def test_annotations_outside_document_are_skipped(two_page_pdf: bytes) -> None:
    annotations = [text_annotation(3, 10, 10, "nowhere"), text_annotation(1, 10, 10, "here")]

    result = ExportService().export(two_page_pdf, annotations).unwrap()

    assert result.annotations_flattened == 1
    assert result.annotations_skipped == 1
    assert result.annotations == tuple(annotations)


def test_unparseable_original_fails_with_parse_error() -> None:
    result = ExportService().export(b"", [])

    assert isinstance(result.get_error(), ParseError)


def test_export_round_trip_preserves_geometry(two_page_pdf: bytes) -> None:
    result = ExportService().export(two_page_pdf, [text_annotation(1, 50, 50, "Approved")]).unwrap()

    engine = PDFEngine()
    original = engine.load(two_page_pdf).unwrap()
    exported = engine.load(result.data).unwrap()
    assert exported.pages == original.pages
    original.close()
    exported.close()


def test_export_emits_completion_signal(two_page_pdf: bytes) -> None:
    service = ExportService()
    completed = []
    service.export_completed.connect(completed.append)

    result = service.export(two_page_pdf, []).unwrap()

    assert completed == [result]


def test_one_shot_iterables_are_reported_back(two_page_pdf: bytes) -> None:
    annotations = [text_annotation(1, 50, 600, "Approved")]

    result = ExportService().export(two_page_pdf, iter(annotations)).unwrap()

    assert result.annotations_flattened == 1
    assert result.annotations == tuple(annotations)


def test_non_latin_content_is_written_with_fallback_font(two_page_pdf: bytes) -> None:
    signature = AnnotationFactory.create(AnnotationType.SIGNATURE, 1, Point(100, 500), content="Crew 山田")

    result = ExportService().export(two_page_pdf, [signature]).unwrap()

    output = open_output(result.data)
    text = output[0].get_text()
    assert "Crew" in text
    assert "山田" in text
    assert any(font[4] == "fallback-cjk" for font in output[0].get_fonts())
    output.close()


def test_content_without_any_glyph_fails_instead_of_mangling(two_page_pdf: bytes, monkeypatch) -> None:
    monkeypatch.setattr(fonts, "FALLBACK_FONT_NAMES", ())

    result = ExportService().export(two_page_pdf, [text_annotation(1, 50, 600, "山田")])

    assert isinstance(result.get_error(), ExportError)
