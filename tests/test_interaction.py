from __future__ import annotations

from typing import List

import pytest

from core.annotation_store import AnnotationStore
from core.interaction import ContentRequest, InteractionController
from models.annotation import AnnotationType, Extent
from models.document import ToolMode
from utils.geometry import Point2D


@pytest.fixture()
def controller(loaded_document) -> InteractionController:
    controller = InteractionController()
    controller.attach_document(loaded_document, AnnotationStore())
    return controller


def test_select_tool_ignores_clicks(controller: InteractionController) -> None:
    assert controller.on_pointer_click(Point2D(50, 50)) is None
    assert len(controller.store) == 0


def test_text_click_requests_content_then_inserts(controller: InteractionController) -> None:
    requests: List[ContentRequest] = []
    controller.content_requested.connect(requests.append)
    controller.set_tool(ToolMode.TEXT)

    controller.on_pointer_click(Point2D(60, 120))

    assert len(requests) == 1
    draft = requests[0].draft
    assert draft.annotation_type == AnnotationType.TEXT
    assert draft.page_number == 1
    assert draft.anchor.x == pytest.approx(50)
    assert draft.anchor.y == pytest.approx(692)

    annotation_id = requests[0].complete("Approved")

    annotation = controller.store.get(annotation_id)
    assert annotation.content == "Approved"
    assert annotation.extent is None


@pytest.mark.parametrize("text", [None, "", "   "])
def test_empty_content_discards_click(controller: InteractionController, text) -> None:
    controller.set_tool(ToolMode.SIGNATURE)

    request = controller.on_pointer_click(Point2D(10, 10))

    assert request.complete(text) is None
    assert len(controller.store) == 0


def test_cancel_discards_click(controller: InteractionController) -> None:
    controller.set_tool(ToolMode.TEXT)
    request = controller.on_pointer_click(Point2D(10, 10))

    request.cancel()

    assert request.is_resolved
    assert request.complete("late") is None
    assert len(controller.store) == 0


def test_request_resolves_only_once(controller: InteractionController) -> None:
    controller.set_tool(ToolMode.TEXT)
    request = controller.on_pointer_click(Point2D(10, 10))

    assert request.complete("first") is not None
    assert request.complete("second") is None
    assert len(controller.store) == 1


def test_highlight_click_inserts_fixed_extent(controller: InteractionController) -> None:
    added: List[str] = []
    controller.annotation_added.connect(added.append)
    controller.set_tool(ToolMode.HIGHLIGHT)

    assert controller.on_pointer_click(Point2D(120, 240)) is None

    highlight = controller.store.get(added[0])
    assert highlight.annotation_type == AnnotationType.HIGHLIGHT
    assert highlight.extent == Extent(100, 20)
    assert highlight.anchor.x == pytest.approx(100)
    assert highlight.anchor.y == pytest.approx(592)


@pytest.mark.parametrize("tool", list(ToolMode))
def test_read_only_blocks_every_tool(controller: InteractionController, tool: ToolMode) -> None:
    controller.view_state = controller.view_state.with_read_only(True).with_tool(tool)

    assert controller.on_pointer_click(Point2D(50, 50)) is None
    assert len(controller.store) == 0


def test_content_after_read_only_switch_is_discarded(controller: InteractionController) -> None:
    controller.set_tool(ToolMode.TEXT)
    request = controller.on_pointer_click(Point2D(50, 50))

    controller.view_state = controller.view_state.with_read_only(True)

    assert request.complete("Approved") is None
    assert len(controller.store) == 0


def test_content_for_replaced_document_is_discarded(controller: InteractionController, loaded_document) -> None:
    controller.set_tool(ToolMode.TEXT)
    request = controller.on_pointer_click(Point2D(50, 50))

    controller.attach_document(loaded_document, AnnotationStore())

    assert request.complete("Approved") is None
    assert len(controller.store) == 0


def test_click_without_document_is_ignored() -> None:
    controller = InteractionController()
    controller.set_tool(ToolMode.HIGHLIGHT)

    assert controller.on_pointer_click(Point2D(50, 50)) is None
    assert len(controller.store) == 0


def test_click_on_missing_page_is_ignored(controller: InteractionController) -> None:
    controller.view_state = controller.view_state.with_page(5).with_tool(ToolMode.HIGHLIGHT)

    controller.on_pointer_click(Point2D(50, 50))

    assert len(controller.store) == 0
