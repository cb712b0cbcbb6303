from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional, List, Dict, Any, Tuple
import json
import uuid


class AnnotationType(Enum):
    """Types of annotations an operator can place on a page."""
    TEXT = auto()
    HIGHLIGHT = auto()
    SIGNATURE = auto()


@dataclass(frozen=True)
class Color:
    """Immutable RGBA color representation."""

    red: int = 0
    green: int = 0
    blue: int = 0
    alpha: int = 255

    def to_hex(self) -> str:
        """Convert to hex string (#RRGGBB or #RRGGBBAA)."""
        if self.alpha == 255:
            return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}{self.alpha:02x}"

    def to_unit_rgb(self) -> Tuple[float, float, float]:
        """Convert to the 0..1 RGB triple used by the PDF library."""
        return (self.red / 255, self.green / 255, self.blue / 255)

    @classmethod
    def from_hex(cls, hex_string: str) -> Color:
        """Create color from hex string."""
        hex_string = hex_string.lstrip("#")
        if len(hex_string) == 6:
            return cls(
                red=int(hex_string[0:2], 16),
                green=int(hex_string[2:4], 16),
                blue=int(hex_string[4:6], 16),
            )
        elif len(hex_string) == 8:
            return cls(
                red=int(hex_string[0:2], 16),
                green=int(hex_string[2:4], 16),
                blue=int(hex_string[4:6], 16),
                alpha=int(hex_string[6:8], 16),
            )
        raise ValueError(f"Invalid hex color: {hex_string}")

    @classmethod
    def black_color(cls) -> Color:
        return cls(0, 0, 0)

    @classmethod
    def yellow_color(cls) -> Color:
        return cls(255, 255, 0)


@dataclass(frozen=True)
class Point:
    """Immutable 2D point in PDF coordinate space."""

    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Extent:
    """Width and height of an area annotation, in PDF units."""

    width: float
    height: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.width, self.height)


@dataclass(frozen=True)
class AnnotationStyle:
    """Immutable styling shared by every annotation kind."""

    color: Color = field(default_factory=Color.black_color)
    font_size: float = 14.0

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color.to_hex(), "font_size": self.font_size}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AnnotationStyle:
        return cls(
            color=Color.from_hex(data.get("color", "#000000")),
            font_size=data.get("font_size", 14.0),
        )


def new_annotation_id() -> str:
    """Return a process-unique annotation identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Annotation:
    """
    A single piece of operator markup on a page.

    ``anchor`` and ``extent`` are always in document space, so the record
    does not change when the viewer zooms. For Text and Signature the anchor
    is the baseline origin of the text; for Highlight it is the top-left
    corner of the rectangle.
    """

    annotation_id: str
    annotation_type: AnnotationType
    page_number: int
    anchor: Point
    content: str = ""
    extent: Optional[Extent] = None
    style: AnnotationStyle = field(default_factory=AnnotationStyle)
    created_at: datetime = field(default_factory=datetime.now)

    def serialize(self) -> Dict[str, Any]:
        """Serialize annotation to dictionary for transport."""
        return {
            "annotation_id": self.annotation_id,
            "annotation_type": self.annotation_type.name,
            "page_number": self.page_number,
            "anchor": self.anchor.to_tuple(),
            "extent": self.extent.to_tuple() if self.extent else None,
            "content": self.content,
            "style": self.style.to_dict(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any]) -> Annotation:
        """Deserialize annotation from dictionary."""
        type_name = data.get("annotation_type")
        try:
            annotation_type = AnnotationType[type_name]
        except KeyError:
            raise ValueError(f"Unknown annotation type: {type_name}")

        extent_data = data.get("extent")
        created_at = data.get("created_at")
        return cls(
            annotation_id=data["annotation_id"],
            annotation_type=annotation_type,
            page_number=int(data["page_number"]),
            anchor=Point(*data["anchor"]),
            content=data.get("content", ""),
            extent=Extent(*extent_data) if extent_data else None,
            style=AnnotationStyle.from_dict(data.get("style", {})),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )


class AnnotationFactory:
    """Factory applying per-kind defaults when creating annotations."""

    DEFAULT_HIGHLIGHT_EXTENT = Extent(100.0, 20.0)
    DEFAULT_HIGHLIGHT_CONTENT = "Highlight"

    _default_styles: Dict[AnnotationType, AnnotationStyle] = {
        AnnotationType.TEXT: AnnotationStyle(Color.black_color(), 14.0),
        AnnotationType.HIGHLIGHT: AnnotationStyle(Color.yellow_color(), 14.0),
        AnnotationType.SIGNATURE: AnnotationStyle(Color(0, 102, 204), 16.0),
    }

    @classmethod
    def default_style(cls, annotation_type: AnnotationType) -> AnnotationStyle:
        return cls._default_styles[annotation_type]

    @classmethod
    def create(
        cls,
        annotation_type: AnnotationType,
        page_number: int,
        anchor: Point,
        content: str = "",
        extent: Optional[Extent] = None,
        style: Optional[AnnotationStyle] = None,
    ) -> Annotation:
        """
        Create a new annotation of the specified type.

        Args:
            annotation_type: Type of annotation to create.
            page_number: One-based page the annotation belongs to.
            anchor: Anchor point in document space.
            content: Text payload.
            extent: Area size, only kept for highlights.
            style: Explicit style; falls back to the kind's default.

        Returns:
            New annotation instance with a fresh identifier.
        """
        if annotation_type == AnnotationType.HIGHLIGHT:
            extent = extent or cls.DEFAULT_HIGHLIGHT_EXTENT
            content = content or cls.DEFAULT_HIGHLIGHT_CONTENT
        else:
            extent = None

        return Annotation(
            annotation_id=new_annotation_id(),
            annotation_type=annotation_type,
            page_number=page_number,
            anchor=anchor,
            content=content,
            extent=extent,
            style=style or cls.default_style(annotation_type),
        )

    @classmethod
    def serialize_list(cls, annotations: List[Annotation]) -> str:
        """Serialize a list of annotations to JSON string."""
        return json.dumps([ann.serialize() for ann in annotations])

    @classmethod
    def deserialize_list(cls, json_string: str) -> List[Annotation]:
        """Deserialize annotations from JSON string."""
        data_list = json.loads(json_string)
        return [Annotation.deserialize(data) for data in data_list]
