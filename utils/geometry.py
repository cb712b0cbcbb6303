from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from PyQt6.QtCore import QPointF, QRectF


@dataclass(frozen=True)
class Point2D:
    """Simple 2D point for geometry calculations."""
    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_qpointf(self) -> QPointF:
        return QPointF(self.x, self.y)


@dataclass(frozen=True)
class Rect2D:
    """Simple 2D rectangle for geometry calculations (top-left origin)."""
    x: float
    y: float
    width: float
    height: float

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    def to_qrectf(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)


def to_device(doc_point: Point2D, scale: float, page_height: float) -> Point2D:
    """
    Map a point from document space to device space.

    Document space has its origin at the bottom-left of the page with Y
    increasing upward, in document points. Device space has its origin at
    the top-left with Y increasing downward, in pixels at ``scale``.
    """
    return Point2D(
        doc_point.x * scale,
        (page_height - doc_point.y) * scale,
    )


def to_document(device_point: Point2D, scale: float, page_height: float) -> Point2D:
    """Map a point from device space back to document space."""
    return Point2D(
        device_point.x / scale,
        page_height - device_point.y / scale,
    )


class CoordinateTransformer:
    """
    Handles coordinate transformations between PDF space and screen space
    for a single page at a single zoom level.
    """

    def __init__(self, page_height: float, scale: float = 1.0):
        if scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        self._page_height = page_height
        self._scale = scale

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def page_height(self) -> float:
        return self._page_height

    def pdf_to_screen(self, point: Point2D) -> Point2D:
        """Transform a point from PDF coordinates to screen coordinates."""
        return to_device(point, self._scale, self._page_height)

    def pdf_box_to_screen(self, top_left: Point2D, width: float, height: float) -> Rect2D:
        """
        Transform a box given by its top-left corner in PDF space and its
        extent in PDF units into a screen rectangle.
        """
        origin = self.pdf_to_screen(top_left)
        return Rect2D(
            origin.x,
            origin.y,
            self.scale_distance(width),
            self.scale_distance(height),
        )

    def scale_distance(self, distance: float) -> float:
        """Scale a distance value from PDF to screen space."""
        return distance * self._scale
