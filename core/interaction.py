from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from core.annotation_store import AnnotationStore
from core.pdf_engine import PDFDocument
from models.annotation import AnnotationType, Point
from models.document import ToolMode, ViewState
from models.settings import EditorSettings
from utils.geometry import Point2D, to_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotationDraft:
    """A pending annotation waiting for operator-supplied content."""

    annotation_type: AnnotationType
    page_number: int
    anchor: Point


class ContentRequest:
    """
    Request for the textual content of a Text or Signature annotation.

    The UI layer answers it with ``complete(text)`` or ``cancel()``. Only the
    first answer counts; later calls are ignored.
    """

    def __init__(self, controller: InteractionController, draft: AnnotationDraft, generation: int):
        self._controller = controller
        self._generation = generation
        self._resolved = False
        self.draft = draft

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    @property
    def generation(self) -> int:
        return self._generation

    def complete(self, text: Optional[str]) -> Optional[str]:
        """
        Supply content for the draft.

        Returns:
            The new annotation's identifier, or None when the click was
            discarded.
        """
        if self._resolved:
            return None
        self._resolved = True
        return self._controller._resolve_request(self, text)

    def cancel(self) -> None:
        """Discard the draft without creating an annotation."""
        if self._resolved:
            return
        self._resolved = True
        logger.debug(f"Content request for page {self.draft.page_number} cancelled")


class InteractionController(QObject):
    """
    Turns pointer clicks into annotations according to the active tool.

    The controller is the only writer of its AnnotationStore. Clicks are
    total: anything that cannot produce an annotation is ignored.
    """

    content_requested = pyqtSignal(object)
    annotation_added = pyqtSignal(str)
    annotation_removed = pyqtSignal(str)

    def __init__(
        self,
        store: Optional[AnnotationStore] = None,
        settings: Optional[EditorSettings] = None,
    ):
        super().__init__()
        self._store = store if store is not None else AnnotationStore()
        self._settings = settings or EditorSettings()
        self._document: Optional[PDFDocument] = None
        self._view_state = ViewState(scale=self._settings.default_scale)
        self._generation = 0

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def document(self) -> Optional[PDFDocument]:
        return self._document

    @property
    def view_state(self) -> ViewState:
        return self._view_state

    @view_state.setter
    def view_state(self, view_state: ViewState) -> None:
        self._view_state = view_state

    def attach_document(self, document: Optional[PDFDocument], store: AnnotationStore) -> None:
        """
        Replace the document and store wholesale. Content requests issued
        for the previous document can no longer resolve.
        """
        self._document = document
        self._store = store
        self._generation += 1

    def set_tool(self, tool: ToolMode) -> None:
        self._view_state = self._view_state.with_tool(tool)

    def _current_page_height(self) -> Optional[float]:
        if self._document is None or self._document.page_count == 0:
            return None
        page_info = self._document.get_page_info(self._view_state.current_page)
        return page_info.height if page_info is not None else None

    def on_pointer_click(self, device_point: Point2D) -> Optional[ContentRequest]:
        """
        Handle a click on the current page.

        Highlights are inserted at once. Text and Signature clicks emit
        ``content_requested`` and return the pending request.
        """
        view_state = self._view_state

        if view_state.read_only or view_state.active_tool == ToolMode.SELECT:
            logger.debug(f"Ignoring click in {view_state.active_tool.name} mode (read_only={view_state.read_only})")
            return None

        page_height = self._current_page_height()
        if page_height is None:
            logger.debug(f"Ignoring click on unavailable page {view_state.current_page}")
            return None

        doc_point = to_document(device_point, view_state.scale, page_height)
        anchor = Point(doc_point.x, doc_point.y)
        annotation_type = view_state.active_tool.annotation_type

        if annotation_type == AnnotationType.HIGHLIGHT:
            annotation_id = self._store.insert(
                AnnotationType.HIGHLIGHT,
                view_state.current_page,
                anchor,
                extent=self._settings.highlight_extent,
                style=self._settings.style_for(AnnotationType.HIGHLIGHT),
            )
            self.annotation_added.emit(annotation_id)
            return None

        request = ContentRequest(
            self,
            AnnotationDraft(annotation_type, view_state.current_page, anchor),
            self._generation,
        )
        self.content_requested.emit(request)
        return request

    def _resolve_request(self, request: ContentRequest, text: Optional[str]) -> Optional[str]:
        draft = request.draft

        if request.generation != self._generation:
            logger.debug("Discarding content for a replaced document")
            return None

        if self._view_state.read_only:
            logger.debug("Discarding content received in read-only mode")
            return None

        if not text or not text.strip():
            logger.debug(f"No content supplied, discarding {draft.annotation_type.name} click")
            return None

        annotation_id = self._store.insert(
            draft.annotation_type,
            draft.page_number,
            draft.anchor,
            content=text,
            style=self._settings.style_for(draft.annotation_type),
        )
        self.annotation_added.emit(annotation_id)
        return annotation_id

    def remove_annotation(self, annotation_id: str) -> bool:
        """Remove an annotation unless the view is read-only."""
        if self._view_state.read_only:
            return False
        removed = self._store.remove(annotation_id)
        if removed:
            self.annotation_removed.emit(annotation_id)
        return removed
