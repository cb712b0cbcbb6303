from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Optional, Dict, Any, Tuple
import json
import logging

from PyQt6.QtCore import QSettings

from models.annotation import AnnotationStyle, AnnotationType, Color, Extent
from utils.validators import validate_color_hex

logger = logging.getLogger(__name__)


class HighlightExportPolicy(Enum):
    """Whether highlights are baked into exported documents."""
    SKIP = auto()
    FLATTEN = auto()


@dataclass
class EditorSettings:
    """Settings for the annotation editor."""

    default_scale: float = 1.2
    min_scale: float = 0.5
    max_scale: float = 3.0
    zoom_step: float = 0.1

    text_color: str = "#000000"
    highlight_color: str = "#ffff00"
    signature_color: str = "#0066cc"

    text_font_size: float = 14.0
    signature_font_size: float = 16.0

    highlight_width: float = 100.0
    highlight_height: float = 20.0
    highlight_opacity: float = 0.3

    highlight_export_policy: HighlightExportPolicy = HighlightExportPolicy.SKIP

    def clamp_scale(self, scale: float) -> float:
        """Clamp a requested zoom factor into the supported range."""
        return max(self.min_scale, min(self.max_scale, scale))

    def style_for(self, annotation_type: AnnotationType) -> AnnotationStyle:
        """Get the default style for an annotation kind."""
        if annotation_type == AnnotationType.SIGNATURE:
            return AnnotationStyle(Color.from_hex(self.signature_color), self.signature_font_size)
        if annotation_type == AnnotationType.HIGHLIGHT:
            return AnnotationStyle(Color.from_hex(self.highlight_color), self.text_font_size)
        return AnnotationStyle(Color.from_hex(self.text_color), self.text_font_size)

    @property
    def highlight_extent(self) -> Extent:
        return Extent(self.highlight_width, self.highlight_height)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "default_scale": self.default_scale,
            "min_scale": self.min_scale,
            "max_scale": self.max_scale,
            "zoom_step": self.zoom_step,
            "text_color": self.text_color,
            "highlight_color": self.highlight_color,
            "signature_color": self.signature_color,
            "text_font_size": self.text_font_size,
            "signature_font_size": self.signature_font_size,
            "highlight_width": self.highlight_width,
            "highlight_height": self.highlight_height,
            "highlight_opacity": self.highlight_opacity,
            "highlight_export_policy": self.highlight_export_policy.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EditorSettings:
        """Create settings from dictionary."""
        return cls(
            default_scale=data.get("default_scale", 1.2),
            min_scale=data.get("min_scale", 0.5),
            max_scale=data.get("max_scale", 3.0),
            zoom_step=data.get("zoom_step", 0.1),
            text_color=validate_color_hex(data.get("text_color", "#000000")).unwrap_or("#000000"),
            highlight_color=validate_color_hex(data.get("highlight_color", "#ffff00")).unwrap_or("#ffff00"),
            signature_color=validate_color_hex(data.get("signature_color", "#0066cc")).unwrap_or("#0066cc"),
            text_font_size=data.get("text_font_size", 14.0),
            signature_font_size=data.get("signature_font_size", 16.0),
            highlight_width=data.get("highlight_width", 100.0),
            highlight_height=data.get("highlight_height", 20.0),
            highlight_opacity=data.get("highlight_opacity", 0.3),
            highlight_export_policy=HighlightExportPolicy[
                data.get("highlight_export_policy", "SKIP")
            ],
        )


@dataclass
class ComposerSettings:
    """Letterhead and layout settings for generated certificates."""

    page_width: float = 612.0
    page_height: float = 792.0
    margin: float = 50.0

    company_name: str = "NYK-FIL SHIP MANAGEMENT, INC."
    address_lines: Tuple[str, ...] = (
        "7th Floor, NYK-FIL Maritime E-Training, Inc. Building",
        "Bonifacio Global City, Taguig City, Metro Manila, Philippines",
    )
    document_title: str = "JOB DESCRIPTION CERTIFICATE"
    employer_name: str = "NYK-FIL Ship Management, Inc."
    issuing_place: str = "Taguig City, Metro Manila, Philippines"
    signatory_caption: str = "Authorized Signatory"

    company_font_size: float = 18.0
    title_font_size: float = 16.0
    body_font_size: float = 12.0
    small_font_size: float = 10.0
    line_spacing: float = 20.0
    paragraph_indent: float = 36.0

    @property
    def body_width(self) -> float:
        return self.page_width - 2 * self.margin

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "page_width": self.page_width,
            "page_height": self.page_height,
            "margin": self.margin,
            "company_name": self.company_name,
            "address_lines": list(self.address_lines),
            "document_title": self.document_title,
            "employer_name": self.employer_name,
            "issuing_place": self.issuing_place,
            "signatory_caption": self.signatory_caption,
            "company_font_size": self.company_font_size,
            "title_font_size": self.title_font_size,
            "body_font_size": self.body_font_size,
            "small_font_size": self.small_font_size,
            "line_spacing": self.line_spacing,
            "paragraph_indent": self.paragraph_indent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ComposerSettings:
        """Create settings from dictionary."""
        defaults = cls()
        return cls(
            page_width=data.get("page_width", defaults.page_width),
            page_height=data.get("page_height", defaults.page_height),
            margin=data.get("margin", defaults.margin),
            company_name=data.get("company_name", defaults.company_name),
            address_lines=tuple(data.get("address_lines", defaults.address_lines)),
            document_title=data.get("document_title", defaults.document_title),
            employer_name=data.get("employer_name", defaults.employer_name),
            issuing_place=data.get("issuing_place", defaults.issuing_place),
            signatory_caption=data.get("signatory_caption", defaults.signatory_caption),
            company_font_size=data.get("company_font_size", defaults.company_font_size),
            title_font_size=data.get("title_font_size", defaults.title_font_size),
            body_font_size=data.get("body_font_size", defaults.body_font_size),
            small_font_size=data.get("small_font_size", defaults.small_font_size),
            line_spacing=data.get("line_spacing", defaults.line_spacing),
            paragraph_indent=data.get("paragraph_indent", defaults.paragraph_indent),
        )


class AppSettings:
    """
    Settings manager with QSettings persistence.

    Each settings group is stored as a JSON blob. Pass ``ini_path`` to keep
    the settings in an explicit INI file instead of the platform store.
    """

    ORGANIZATION_NAME = "CertificateEngine"
    APPLICATION_NAME = "CertificateEditor"

    def __init__(self, ini_path: Optional[Path] = None):
        if ini_path is not None:
            self._qsettings = QSettings(str(ini_path), QSettings.Format.IniFormat)
        else:
            self._qsettings = QSettings(self.ORGANIZATION_NAME, self.APPLICATION_NAME)

        self.editor = self._load_group("settings/editor", EditorSettings)
        self.composer = self._load_group("settings/composer", ComposerSettings)

    def _load_group(self, key: str, settings_class):
        """Load one settings group, falling back to defaults."""
        data = self._qsettings.value(key)
        if data:
            try:
                return settings_class.from_dict(json.loads(data))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                logger.warning(f"Ignoring malformed settings group {key}")
        return settings_class()

    def save(self) -> None:
        """Save all settings to persistent storage."""
        self._qsettings.setValue("settings/editor", json.dumps(self.editor.to_dict()))
        self._qsettings.setValue("settings/composer", json.dumps(self.composer.to_dict()))
        self._qsettings.sync()

    def reset_to_defaults(self) -> None:
        """Reset all settings to defaults."""
        self.editor = EditorSettings()
        self.composer = ComposerSettings()
