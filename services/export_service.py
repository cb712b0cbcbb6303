"""
Export Service

Flattens annotations into a copy of the original document:
- Text and Signature content drawn into the page content stream
- Highlights flattened or skipped according to the export policy
- Annotations on pages the document does not have are skipped
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple
import logging
import time

from PyQt6.QtCore import QObject, pyqtSignal

import fitz

from core.error_types import (
    Result,
    Success,
    Failure,
    ExportError,
    capture_exception,
    try_execute,
)
from core.pdf_engine import PDFEngine
from models.annotation import Annotation, AnnotationType
from models.settings import EditorSettings, HighlightExportPolicy
from utils import fonts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportOptions:
    """Options for export operations."""

    highlight_policy: HighlightExportPolicy = HighlightExportPolicy.SKIP
    compress: bool = True
    garbage_collect: bool = True


@dataclass(frozen=True)
class ExportResult:
    """Result of an export operation."""

    data: bytes
    annotations: Tuple[Annotation, ...] = field(default_factory=tuple)
    annotations_flattened: int = 0
    annotations_skipped: int = 0
    processing_time_ms: float = 0.0

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ExportService(QObject):
    """
    Service for exporting documents with annotations baked in.

    Signals:
        export_started: Emitted when export begins
        export_completed: Emitted when export finishes (ExportResult)
    """

    export_started = pyqtSignal()
    export_completed = pyqtSignal(object)

    TEXT_FONT = "helv"
    SIGNATURE_FONT = "heit"

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        pdf_engine: Optional[PDFEngine] = None,
    ):
        super().__init__()
        self._settings = settings or EditorSettings()
        self._pdf_engine = pdf_engine or PDFEngine()

    def default_options(self) -> ExportOptions:
        """Export options derived from the editor settings."""
        return ExportOptions(highlight_policy=self._settings.highlight_export_policy)

    def export(
        self,
        original_bytes: bytes,
        annotations: Iterable[Annotation],
        options: Optional[ExportOptions] = None,
        password: Optional[str] = None,
    ) -> Result[ExportResult]:
        """
        Export a document with annotations flattened into its pages.

        Args:
            original_bytes: The document as originally loaded. Never modified.
            annotations: Annotations to flatten, drawn in page then insertion order.
            options: Export options.
            password: Password for encrypted originals. The output is
                written unencrypted.

        Returns:
            Result containing ExportResult with the new bytes, or ParseError
            when the original bytes cannot be parsed.
        """
        options = options or self.default_options()
        start_time = time.time()
        self.export_started.emit()

        load_result = self._pdf_engine.load(original_bytes, password)
        if load_result.is_failure():
            return load_result

        source = load_result.unwrap()
        annotations = tuple(annotations)
        ordered = sorted(annotations, key=lambda annotation: annotation.page_number)

        open_result = try_execute(source.working_copy, ExportError, "Failed to open working copy")
        if open_result.is_failure():
            source.close()
            return open_result
        output_doc = open_result.unwrap()

        flattened = 0
        skipped = 0
        try:
            for annotation in ordered:
                if not source.has_page(annotation.page_number):
                    logger.warning(
                        f"Skipping annotation {annotation.annotation_id}: "
                        f"page {annotation.page_number} is outside the document"
                    )
                    skipped += 1
                    continue

                if (
                    annotation.annotation_type == AnnotationType.HIGHLIGHT
                    and options.highlight_policy == HighlightExportPolicy.SKIP
                ):
                    skipped += 1
                    continue

                page = output_doc[annotation.page_number - 1]
                self._flatten_annotation(page, annotation)
                flattened += 1

            data = output_doc.tobytes(
                garbage=3 if options.garbage_collect else 0,
                deflate=options.compress,
            )
        except Exception as e:
            return Failure(capture_exception(ExportError, f"PDF export failed: {e}"))
        finally:
            output_doc.close()
            source.close()

        export_result = ExportResult(
            data=data,
            annotations=annotations,
            annotations_flattened=flattened,
            annotations_skipped=skipped,
            processing_time_ms=(time.time() - start_time) * 1000,
        )

        logger.info(
            f"Exported {export_result.size_bytes} bytes "
            f"({flattened} annotations flattened, {skipped} skipped)"
        )
        self.export_completed.emit(export_result)
        return Success(export_result)

    def _flatten_annotation(self, page: fitz.Page, annotation: Annotation) -> None:
        """Render annotation directly onto page content."""
        page_height = page.rect.height
        color = annotation.style.color.to_unit_rgb()
        x, y = annotation.anchor.x, page_height - annotation.anchor.y

        if annotation.annotation_type == AnnotationType.HIGHLIGHT:
            extent = annotation.extent or self._settings.highlight_extent
            shape = page.new_shape()
            shape.draw_rect(fitz.Rect(x, y, x + extent.width, y + extent.height))
            shape.finish(
                color=None,
                fill=color,
                fill_opacity=self._settings.highlight_opacity,
            )
            shape.commit()
            return

        fontname = (
            self.SIGNATURE_FONT
            if annotation.annotation_type == AnnotationType.SIGNATURE
            else self.TEXT_FONT
        )
        fonts.insert_text(
            page,
            fitz.Point(x, y),
            annotation.content,
            fontname,
            annotation.style.font_size,
            color,
        )
