from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Dict, List, Any, Iterable, BinaryIO
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from core.annotation_store import AnnotationStore
from core.error_types import Result, Failure, ParseError, ParseErrorKind
from core.interaction import ContentRequest, InteractionController
from core.pdf_engine import PDFEngine, PDFDocument
from core.render_engine import RenderEngine, RenderResult
from models.annotation import Annotation
from models.document import ToolMode, ViewState
from models.settings import EditorSettings
from services.export_service import ExportService, ExportOptions, ExportResult
from utils.geometry import Point2D

logger = logging.getLogger(__name__)


class SessionEventType(Enum):
    """Types of session events."""
    DOCUMENT_LOADED = auto()
    DOCUMENT_LOAD_ERROR = auto()
    PAGE_CHANGED = auto()
    ZOOM_CHANGED = auto()
    TOOL_CHANGED = auto()
    READ_ONLY_CHANGED = auto()
    ANNOTATIONS_CHANGED = auto()


@dataclass(frozen=True)
class SessionEvent:
    """Event emitted when session state changes."""

    event_type: SessionEventType
    document_hash: str
    data: Optional[Dict[str, Any]] = None


class EditingSession(QObject):
    """
    One editing session: a single document, its annotation store and the
    view state, with an InteractionController as the store's only writer.

    A failed load leaves the previous document, store and view untouched.
    """

    session_event = pyqtSignal(object)

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        read_only: bool = False,
        pdf_engine: Optional[PDFEngine] = None,
        render_engine: Optional[RenderEngine] = None,
        export_service: Optional[ExportService] = None,
    ):
        super().__init__()

        self._settings = settings or EditorSettings()
        self._pdf_engine = pdf_engine or PDFEngine()
        self._render_engine = render_engine or RenderEngine(self._settings)
        self._export_service = export_service or ExportService(self._settings, self._pdf_engine)

        self._document: Optional[PDFDocument] = None
        self._controller = InteractionController(AnnotationStore(), self._settings)
        self._controller.view_state = self._initial_view_state(read_only)

        self._controller.annotation_added.connect(self._on_annotations_changed)
        self._controller.annotation_removed.connect(self._on_annotations_changed)

    def _initial_view_state(self, read_only: bool) -> ViewState:
        return ViewState(
            current_page=1,
            scale=self._settings.default_scale,
            active_tool=ToolMode.SELECT,
            read_only=read_only,
        )

    def _emit_event(
        self,
        event_type: SessionEventType,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a session event signal."""
        document_hash = self._document.file_hash if self._document else ""
        self.session_event.emit(SessionEvent(event_type, document_hash, data))
        logger.debug(f"Emitted event: {event_type.name}")

    def _on_annotations_changed(self, annotation_id: str) -> None:
        self._emit_event(
            SessionEventType.ANNOTATIONS_CHANGED,
            {"annotation_id": annotation_id, "count": len(self.store)},
        )

    # Properties

    @property
    def document(self) -> Optional[PDFDocument]:
        return self._document

    @property
    def store(self) -> AnnotationStore:
        return self._controller.store

    @property
    def view_state(self) -> ViewState:
        return self._controller.view_state

    @property
    def controller(self) -> InteractionController:
        return self._controller

    @property
    def settings(self) -> EditorSettings:
        return self._settings

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def page_count(self) -> int:
        return self._document.page_count if self._document else 0

    # Loading

    def load_document(
        self,
        data: bytes,
        annotations: Optional[Iterable[Annotation]] = None,
        password: Optional[str] = None,
    ) -> Result[PDFDocument]:
        """
        Load a document, replacing the current one wholesale.

        Args:
            data: Complete document bytes.
            annotations: Previously returned annotations to seed the store
                with; records on pages the document lacks are dropped.
            password: Optional password for encrypted PDFs.

        Returns:
            Result containing the loaded PDFDocument or a ParseError.
        """
        load_result = self._pdf_engine.load(data, password)
        return self._install(load_result, annotations)

    def load_stream(
        self,
        stream: BinaryIO,
        annotations: Optional[Iterable[Annotation]] = None,
        password: Optional[str] = None,
    ) -> Result[PDFDocument]:
        """Load a document from a binary stream read to the end."""
        load_result = self._pdf_engine.load_stream(stream, password)
        return self._install(load_result, annotations)

    def _install(
        self,
        load_result: Result[PDFDocument],
        annotations: Optional[Iterable[Annotation]],
    ) -> Result[PDFDocument]:
        if load_result.is_failure():
            error = load_result.get_error()
            error.log(logger)
            self._emit_event(
                SessionEventType.DOCUMENT_LOAD_ERROR,
                {"error": error.message, "code": error.error_code()},
            )
            return load_result

        document = load_result.unwrap()
        store = AnnotationStore()
        for annotation in annotations or ():
            if document.has_page(annotation.page_number):
                store.add(annotation)
            else:
                logger.warning(
                    f"Dropping seeded annotation {annotation.annotation_id}: "
                    f"page {annotation.page_number} is outside the document"
                )

        previous = self._document
        if previous is not None:
            self._render_engine.invalidate_document_cache(previous.file_hash)
            previous.close()

        self._document = document
        self._controller.attach_document(document, store)
        self._controller.view_state = self._initial_view_state(self.view_state.read_only)

        logger.info(
            f"Session loaded document {document.file_hash[:12]} "
            f"with {len(store)} annotations"
        )
        self._emit_event(
            SessionEventType.DOCUMENT_LOADED,
            {"page_count": document.page_count, "annotation_count": len(store)},
        )
        return load_result

    # Navigation

    def go_to_page(self, page_number: int) -> bool:
        """
        Navigate to a one-based page. Out-of-range pages are ignored.

        Returns:
            True if the current page changed.
        """
        if self._document is None or not self._document.has_page(page_number):
            logger.debug(f"Ignoring navigation to page {page_number}")
            return False
        if page_number == self.view_state.current_page:
            return False

        self._controller.view_state = self.view_state.with_page(page_number)
        self._emit_event(SessionEventType.PAGE_CHANGED, {"page": page_number})
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.view_state.current_page + 1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.view_state.current_page - 1)

    # Zoom

    def set_zoom(self, scale: float) -> float:
        """
        Set the zoom factor, clamped into the configured range.

        Returns:
            The zoom factor actually applied.
        """
        scale = round(self._settings.clamp_scale(scale), 6)
        if scale != self.view_state.scale:
            self._controller.view_state = self.view_state.with_scale(scale)
            self._emit_event(SessionEventType.ZOOM_CHANGED, {"scale": scale})
        return scale

    def zoom_in(self) -> float:
        return self.set_zoom(self.view_state.scale + self._settings.zoom_step)

    def zoom_out(self) -> float:
        return self.set_zoom(self.view_state.scale - self._settings.zoom_step)

    # Tools and interaction

    def set_tool(self, tool: ToolMode) -> None:
        if tool == self.view_state.active_tool:
            return
        self._controller.set_tool(tool)
        self._emit_event(SessionEventType.TOOL_CHANGED, {"tool": tool.name})

    def set_read_only(self, read_only: bool) -> None:
        if read_only == self.view_state.read_only:
            return
        self._controller.view_state = self.view_state.with_read_only(read_only)
        self._emit_event(SessionEventType.READ_ONLY_CHANGED, {"read_only": read_only})

    def click(self, device_point: Point2D) -> Optional[ContentRequest]:
        """Forward a pointer click on the current page to the controller."""
        return self._controller.on_pointer_click(device_point)

    def remove_annotation(self, annotation_id: str) -> bool:
        """Remove an annotation; a no-op when read-only or unknown."""
        return self._controller.remove_annotation(annotation_id)

    def annotations(self) -> List[Annotation]:
        """Get every annotation ordered by page, then insertion."""
        return self.store.list_in_page_order()

    # Output

    def render_current_page(self) -> Optional[RenderResult]:
        """Render the current page with its annotations, or None without a document."""
        if self._document is None:
            return None
        view_state = self.view_state
        return self._render_engine.render(
            self._document,
            view_state.current_page,
            view_state.scale,
            self.store.list_for_page(view_state.current_page),
        )

    def save(self, options: Optional[ExportOptions] = None) -> Result[ExportResult]:
        """
        Export the document with annotations flattened. The session keeps
        its state, so editing can continue after a save.
        """
        if self._document is None:
            return Failure(ParseError(
                message="No document is loaded",
                kind=ParseErrorKind.MALFORMED,
            ))
        return self._export_service.export(
            self._document.data,
            self.annotations(),
            options,
            password=self._document.password,
        )

    def close(self) -> None:
        """Release the current document."""
        if self._document is not None:
            self._render_engine.invalidate_document_cache(self._document.file_hash)
            self._document.close()
            self._document = None
            self._controller.attach_document(None, AnnotationStore())
