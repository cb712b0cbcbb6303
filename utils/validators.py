from __future__ import annotations
from pathlib import Path
from typing import Optional
import re

from core.error_types import (
    Result,
    Success,
    Failure,
    ValidationError,
)


def validate_file_path(
    file_path: str | Path,
    must_exist: bool = True,
    allowed_extensions: Optional[list[str]] = None,
) -> Result[Path]:
    """
    Validate a file path.

    Args:
        file_path: Path to validate.
        must_exist: Whether the file must exist.
        allowed_extensions: List of allowed extensions (e.g., ['.pdf']).

    Returns:
        Result containing the validated Path or validation error.
    """
    path = Path(file_path).expanduser()

    if must_exist and not path.is_file():
        return Failure(ValidationError(
            message="File does not exist",
            field_name="file_path",
            invalid_value=str(file_path),
        ))

    if allowed_extensions:
        normalized_extensions = [
            ext.lower() if ext.startswith('.') else f'.{ext.lower()}'
            for ext in allowed_extensions
        ]
        if path.suffix.lower() not in normalized_extensions:
            return Failure(ValidationError(
                message=f"Invalid file extension. Allowed: {', '.join(normalized_extensions)}",
                field_name="file_path",
                invalid_value=path.suffix,
            ))

    return Success(path)


def validate_page_number(page_number: int, total_pages: int) -> Result[int]:
    """
    Validate a one-based page number.

    Args:
        page_number: Page number to validate.
        total_pages: Total number of pages in the document.

    Returns:
        Result containing the validated page number.
    """
    if not isinstance(page_number, int) or isinstance(page_number, bool):
        return Failure(ValidationError(
            message="Page number must be an integer",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    if page_number < 1 or page_number > total_pages:
        return Failure(ValidationError(
            message=f"Page number must be between 1 and {total_pages}",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    return Success(page_number)


def validate_zoom_level(
    zoom_level: float,
    min_zoom: float = 0.5,
    max_zoom: float = 3.0,
) -> Result[float]:
    """
    Validate a zoom level.

    Args:
        zoom_level: Zoom level to validate.
        min_zoom: Minimum allowed zoom.
        max_zoom: Maximum allowed zoom.

    Returns:
        Result containing the validated (and clamped) zoom level.
    """
    if not isinstance(zoom_level, (int, float)) or zoom_level != zoom_level:
        return Failure(ValidationError(
            message="Zoom level must be a number",
            field_name="zoom_level",
            invalid_value=str(zoom_level),
        ))

    return Success(float(max(min_zoom, min(max_zoom, zoom_level))))


def validate_color_hex(color_hex: str) -> Result[str]:
    """
    Validate a hex color string.

    Args:
        color_hex: Color string to validate (with or without #).

    Returns:
        Result containing the validated color string (with #).
    """
    if not isinstance(color_hex, str):
        return Failure(ValidationError(
            message="Color must be a string",
            field_name="color",
            invalid_value=str(color_hex),
        ))

    color_hex = color_hex.strip().lstrip("#")

    hex_pattern = re.compile(r'^[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$')

    if not hex_pattern.match(color_hex):
        return Failure(ValidationError(
            message="Invalid hex color format. Use #RRGGBB or #RRGGBBAA",
            field_name="color",
            invalid_value=color_hex,
        ))

    return Success(f"#{color_hex.lower()}")


def validate_required_text(value: Optional[str], field_name: str) -> Result[str]:
    """
    Validate that a text field is present and not blank.

    Returns:
        Result containing the stripped text.
    """
    if value is None or not isinstance(value, str) or not value.strip():
        return Failure(ValidationError(
            message=f"{field_name} cannot be empty",
            field_name=field_name,
            invalid_value="" if value is None else str(value),
        ))

    return Success(value.strip())
