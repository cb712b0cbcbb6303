from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Dict, Any

from models.annotation import AnnotationType


class ToolMode(Enum):
    """Operator tool selected in the editor toolbar."""
    SELECT = auto()
    TEXT = auto()
    HIGHLIGHT = auto()
    SIGNATURE = auto()

    @property
    def annotation_type(self) -> AnnotationType | None:
        """Annotation kind created by this tool, None for Select."""
        return {
            ToolMode.TEXT: AnnotationType.TEXT,
            ToolMode.HIGHLIGHT: AnnotationType.HIGHLIGHT,
            ToolMode.SIGNATURE: AnnotationType.SIGNATURE,
        }.get(self)


@dataclass(frozen=True)
class ViewState:
    """Immutable editor view state. Pages are one-based."""

    current_page: int = 1
    scale: float = 1.2
    active_tool: ToolMode = ToolMode.SELECT
    read_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert view state to dictionary."""
        return {
            "current_page": self.current_page,
            "scale": self.scale,
            "active_tool": self.active_tool.name,
            "read_only": self.read_only,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ViewState:
        """Create view state from dictionary."""
        return cls(
            current_page=data.get("current_page", 1),
            scale=data.get("scale", 1.2),
            active_tool=ToolMode[data.get("active_tool", "SELECT")],
            read_only=data.get("read_only", False),
        )

    def with_page(self, page: int) -> ViewState:
        """Create new ViewState with different page."""
        return replace(self, current_page=page)

    def with_scale(self, scale: float) -> ViewState:
        """Create new ViewState with different scale."""
        return replace(self, scale=scale)

    def with_tool(self, tool: ToolMode) -> ViewState:
        """Create new ViewState with different active tool."""
        return replace(self, active_tool=tool)

    def with_read_only(self, read_only: bool) -> ViewState:
        """Create new ViewState with different read-only flag."""
        return replace(self, read_only=read_only)


@dataclass(frozen=True)
class GenerationRequest:
    """Field set consumed once by the certificate composer."""

    memo_no: str = ""
    purpose: str = ""
    crew_name: str = ""
    crew_id: str = ""
    signed: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GenerationRequest:
        return cls(
            memo_no=data.get("memo_no") or "",
            purpose=data.get("purpose") or "",
            crew_name=data.get("crew_name") or "",
            crew_id=data.get("crew_id") or "",
            signed=bool(data.get("signed", False)),
        )
