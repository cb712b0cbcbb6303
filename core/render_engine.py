from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Sequence, Any
from collections import OrderedDict
import logging
import time

from PyQt6.QtCore import QByteArray, QBuffer, QIODevice
from PyQt6.QtGui import QImage, QPainter, QColor, QFont

import fitz

from core.pdf_engine import PDFDocument
from models.annotation import Annotation, AnnotationType, Color
from models.settings import EditorSettings
from utils.geometry import CoordinateTransformer, Point2D

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderRequest:
    """Immutable description of one page render."""

    document_hash: str
    page_number: int
    scale: float

    @property
    def cache_key(self) -> str:
        """Generate unique cache key for the page background."""
        return f"{self.document_hash}:{self.page_number}:{self.scale!r}"


@dataclass
class RenderResult:
    """A freshly painted raster surface for one page."""

    request: RenderRequest
    image: QImage
    annotation_count: int
    render_time_ms: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def width(self) -> int:
        return self.image.width()

    @property
    def height(self) -> int:
        return self.image.height()

    def to_png_bytes(self) -> bytes:
        """Encode the surface as PNG."""
        buffer_bytes = QByteArray()
        buffer = QBuffer(buffer_bytes)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        self.image.save(buffer, "PNG")
        buffer.close()
        return bytes(buffer_bytes.data())


class RenderCache:
    """
    LRU cache for page backgrounds with a memory limit.
    Entries are never handed out directly; callers paint on copies.
    """

    def __init__(self, max_memory_bytes: int = 64 * 1024 * 1024):
        self._max_memory_bytes = max_memory_bytes
        self._current_memory_bytes = 0
        self._cache: OrderedDict[str, QImage] = OrderedDict()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
        }

    def get(self, cache_key: str) -> Optional[QImage]:
        """Get a cached background or None if not found."""
        image = self._cache.get(cache_key)
        if image is not None:
            self._cache.move_to_end(cache_key)
            self._stats["hits"] += 1
            return image
        self._stats["misses"] += 1
        return None

    def put(self, cache_key: str, image: QImage) -> None:
        """Store a background, evicting the oldest entries to fit."""
        if cache_key in self._cache:
            self._current_memory_bytes -= self._cache.pop(cache_key).sizeInBytes()

        image_size = image.sizeInBytes()
        while self._cache and self._current_memory_bytes + image_size > self._max_memory_bytes:
            self._evict_oldest()

        if image_size <= self._max_memory_bytes:
            self._cache[cache_key] = image
            self._current_memory_bytes += image_size

    def _evict_oldest(self) -> None:
        """Evict the least recently used entry."""
        _, oldest_image = self._cache.popitem(last=False)
        self._current_memory_bytes -= oldest_image.sizeInBytes()
        self._stats["evictions"] += 1

    def invalidate(self, document_hash: str) -> int:
        """Drop every entry belonging to a document."""
        keys_to_remove = [
            key for key in self._cache
            if key.startswith(f"{document_hash}:")
        ]
        for key in keys_to_remove:
            self._current_memory_bytes -= self._cache.pop(key).sizeInBytes()
        return len(keys_to_remove)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()
        self._current_memory_bytes = 0

    @property
    def entry_count(self) -> int:
        return len(self._cache)

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total_requests if total_requests > 0 else 0.0
        return {
            **self._stats,
            "hit_rate": hit_rate,
            "entry_count": len(self._cache),
            "memory_usage_bytes": self._current_memory_bytes,
        }


class RenderEngine:
    """
    Paints a page and its annotations onto a new QImage.

    ``render`` is a pure function of its arguments: every call returns a new
    surface and identical inputs produce identical pixels. Requires a
    QGuiApplication for font rendering.
    """

    TEXT_FONT_FAMILY = "Helvetica"
    SIGNATURE_FONT_FAMILY = "Comic Sans MS"

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        cache: Optional[RenderCache] = None,
    ):
        self._settings = settings or EditorSettings()
        self._cache = cache or RenderCache()

    @staticmethod
    def _fitz_pixmap_to_qimage(pixmap: fitz.Pixmap) -> QImage:
        """Convert PyMuPDF Pixmap to a paintable Qt QImage."""
        image = QImage(
            pixmap.samples,
            pixmap.width,
            pixmap.height,
            pixmap.stride,
            QImage.Format.Format_RGB888,
        )
        return image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)

    def _background(self, document: PDFDocument, request: RenderRequest) -> QImage:
        """Get the rasterized page, from cache when possible."""
        background = self._cache.get(request.cache_key)
        if background is None:
            pixmap = document.render_page_to_pixmap(request.page_number, request.scale)
            background = self._fitz_pixmap_to_qimage(pixmap)
            self._cache.put(request.cache_key, background)
        return background.copy()

    def render(
        self,
        document: PDFDocument,
        page_number: int,
        scale: float,
        annotations: Sequence[Annotation],
    ) -> RenderResult:
        """
        Render a page with its annotations.

        Args:
            document: The loaded document.
            page_number: One-based page index, clamped into range.
            scale: Zoom factor, clamped into the configured range.
            annotations: Annotations to paint in order; records for other
                pages are ignored.

        Returns:
            RenderResult holding a new surface of roughly
            (page.width * scale, page.height * scale) pixels.
        """
        start_time = time.perf_counter()
        scale = self._settings.clamp_scale(scale)

        if document.page_count == 0:
            request = RenderRequest(document.file_hash, 0, scale)
            return RenderResult(request=request, image=QImage(), annotation_count=0, render_time_ms=0.0)

        page_number = max(1, min(document.page_count, page_number))
        page_info = document.get_page_info(page_number)
        request = RenderRequest(document.file_hash, page_number, scale)

        image = self._background(document, request)
        transformer = CoordinateTransformer(page_info.height, scale)

        page_annotations = [a for a in annotations if a.page_number == page_number]

        painter = QPainter(image)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            for annotation in page_annotations:
                self._paint_annotation(painter, annotation, transformer)
        finally:
            painter.end()

        render_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Rendered page {page_number} at scale {scale:.2f} with "
            f"{len(page_annotations)} annotations in {render_time_ms:.1f}ms"
        )

        return RenderResult(
            request=request,
            image=image,
            annotation_count=len(page_annotations),
            render_time_ms=render_time_ms,
        )

    def _paint_annotation(
        self,
        painter: QPainter,
        annotation: Annotation,
        transformer: CoordinateTransformer,
    ) -> None:
        anchor = Point2D(annotation.anchor.x, annotation.anchor.y)

        if annotation.annotation_type == AnnotationType.HIGHLIGHT:
            extent = annotation.extent or self._settings.highlight_extent
            rect = transformer.pdf_box_to_screen(anchor, extent.width, extent.height)
            alpha = round(255 * self._settings.highlight_opacity)
            painter.fillRect(rect.to_qrectf(), self._qcolor(annotation.style.color, alpha))
            return

        if annotation.annotation_type == AnnotationType.SIGNATURE:
            font = QFont(self.SIGNATURE_FONT_FAMILY)
            font.setStyleHint(QFont.StyleHint.Cursive)
            font.setItalic(True)
        else:
            font = QFont(self.TEXT_FONT_FAMILY)
            font.setStyleHint(QFont.StyleHint.SansSerif)

        font.setPixelSize(max(1, round(transformer.scale_distance(annotation.style.font_size))))
        painter.setFont(font)
        painter.setPen(self._qcolor(annotation.style.color))
        painter.drawText(transformer.pdf_to_screen(anchor).to_qpointf(), annotation.content)

    @staticmethod
    def _qcolor(color: Color, alpha: Optional[int] = None) -> QColor:
        return QColor(color.red, color.green, color.blue, color.alpha if alpha is None else alpha)

    def invalidate_document_cache(self, document_hash: str) -> int:
        """Invalidate all cached backgrounds for a document."""
        return self._cache.invalidate(document_hash)

    @property
    def cache_statistics(self) -> Dict[str, Any]:
        """Get render cache statistics."""
        return self._cache.statistics
