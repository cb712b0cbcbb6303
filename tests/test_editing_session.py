from __future__ import annotations

from typing import List

import pytest

from core.editing_session import EditingSession, SessionEvent, SessionEventType
from core.error_types import ParseErrorKind
from core.pdf_engine import PDFEngine
from models.annotation import AnnotationFactory, AnnotationType, Point
from models.document import ToolMode
from utils.geometry import Point2D


@pytest.fixture()
def session(two_page_pdf: bytes) -> EditingSession:
    session = EditingSession()
    session.load_document(two_page_pdf).unwrap()
    return session


def test_annotation_lifecycle(session: EditingSession) -> None:
    session.set_tool(ToolMode.TEXT)

    request = session.click(Point2D(50, 50))
    request.complete("Approved")

    page_one = session.store.list_for_page(1)
    assert len(page_one) == 1
    assert page_one[0].annotation_type == AnnotationType.TEXT
    assert page_one[0].content == "Approved"
    assert session.store.list_for_page(2) == []


def test_read_only_session_ignores_clicks(two_page_pdf: bytes) -> None:
    session = EditingSession(read_only=True)
    session.load_document(two_page_pdf)

    for tool in ToolMode:
        session.set_tool(tool)
        session.click(Point2D(50, 50))

    assert len(session.store) == 0
    assert session.view_state.read_only


def test_failed_load_leaves_session_untouched(session: EditingSession) -> None:
    session.set_tool(ToolMode.HIGHLIGHT)
    session.click(Point2D(10, 10))
    session.go_to_page(2)
    document = session.document
    view_state = session.view_state

    result = session.load_document(b"")

    assert result.get_error().kind == ParseErrorKind.MALFORMED
    assert session.document is document
    assert session.view_state == view_state
    assert len(session.store) == 1


def test_load_replaces_state_wholesale(session: EditingSession, pdf_bytes_factory) -> None:
    session.set_tool(ToolMode.HIGHLIGHT)
    session.click(Point2D(10, 10))
    session.set_zoom(2.0)

    session.load_document(pdf_bytes_factory(1))

    assert session.page_count == 1
    assert len(session.store) == 0
    assert session.view_state.current_page == 1
    assert session.view_state.scale == 1.2
    assert session.view_state.active_tool == ToolMode.SELECT


def test_seeded_annotations_on_missing_pages_are_dropped(two_page_pdf: bytes) -> None:
    kept = AnnotationFactory.create(AnnotationType.TEXT, 2, Point(10, 10), content="kept")
    dropped = AnnotationFactory.create(AnnotationType.TEXT, 3, Point(10, 10), content="dropped")

    session = EditingSession()
    session.load_document(two_page_pdf, annotations=[kept, dropped])

    assert session.annotations() == [kept]


def test_navigation_ignores_out_of_range_pages(session: EditingSession) -> None:
    assert session.next_page() is True
    assert session.next_page() is False
    assert session.view_state.current_page == 2
    assert session.go_to_page(0) is False
    assert session.previous_page() is True
    assert session.view_state.current_page == 1


def test_zoom_is_clamped(session: EditingSession) -> None:
    assert session.set_zoom(10) == 3.0
    assert session.set_zoom(0.01) == 0.5
    assert session.zoom_in() == pytest.approx(0.6)
    assert session.zoom_out() == pytest.approx(0.5)


def test_events_report_state_changes(session: EditingSession) -> None:
    events: List[SessionEvent] = []
    session.session_event.connect(events.append)

    session.go_to_page(2)
    session.set_zoom(2.0)
    session.set_tool(ToolMode.HIGHLIGHT)
    session.click(Point2D(10, 10))

    assert [event.event_type for event in events] == [
        SessionEventType.PAGE_CHANGED,
        SessionEventType.ZOOM_CHANGED,
        SessionEventType.TOOL_CHANGED,
        SessionEventType.ANNOTATIONS_CHANGED,
    ]


def test_remove_annotation_respects_read_only(session: EditingSession) -> None:
    session.set_tool(ToolMode.HIGHLIGHT)
    session.click(Point2D(10, 10))
    annotation_id = session.annotations()[0].annotation_id

    session.set_read_only(True)
    assert session.remove_annotation(annotation_id) is False

    session.set_read_only(False)
    assert session.remove_annotation(annotation_id) is True
    assert session.remove_annotation(annotation_id) is False


def test_save_returns_bytes_and_keeps_editing(session: EditingSession, two_page_pdf: bytes) -> None:
    session.set_tool(ToolMode.TEXT)
    session.click(Point2D(50, 50)).complete("Approved")

    export_result = session.save().unwrap()

    assert export_result.annotations == tuple(session.annotations())
    assert session.document.data == two_page_pdf

    reloaded = PDFEngine().load(export_result.data).unwrap()
    assert "Approved" in reloaded.working_copy()[0].get_text()
    reloaded.close()

    session.click(Point2D(80, 80)).complete("Second")
    assert len(session.store) == 2


@pytest.mark.usefixtures("qapp")
def test_render_current_page_follows_view_state(session: EditingSession) -> None:
    session.go_to_page(2)
    session.set_zoom(1.0)

    result = session.render_current_page()

    assert result.request.page_number == 2
    assert abs(result.width - 612) <= 1


@pytest.mark.usefixtures("qapp")
def test_highlight_follows_zoom_on_rendered_page(session: EditingSession) -> None:
    session.set_tool(ToolMode.HIGHLIGHT)
    session.click(Point2D(120, 120))

    session.set_zoom(2.0)
    image = session.render_current_page().image

    anchor = session.store.list_for_page(1)[0].anchor
    assert anchor.x == pytest.approx(100)
    assert anchor.y == pytest.approx(692)
    assert image.pixelColor(210, 210).blue() < 220
    assert image.pixelColor(390, 235).blue() < 220
    assert image.pixelColor(300, 250).blue() == 255
    assert image.pixelColor(410, 220).blue() == 255


def test_save_without_document_fails() -> None:
    assert EditingSession().save().is_failure()
