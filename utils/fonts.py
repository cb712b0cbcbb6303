"""
Font selection for text written into PDF pages.

Base-14 fonts only encode Latin-1. Characters outside it are written with
an embedded fallback font that has a glyph for them; text no font can
encode is rejected rather than written as substitute glyphs.
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple

import fitz

BASE14_CODE_LIMIT = 256
FALLBACK_FONT_NAMES = ("cjk",)


class UnencodableTextError(ValueError):
    """Raised when no available font has a glyph for a character."""


@dataclass(frozen=True)
class TextRun:
    """A stretch of text written with a single font."""

    text: str
    fontname: str
    font: Optional[fitz.Font] = None

    @property
    def is_embedded(self) -> bool:
        return self.font is not None

    def width(self, fontsize: float) -> float:
        if self.font is None:
            return fitz.get_text_length(self.text, fontname=self.fontname, fontsize=fontsize)
        return self.font.text_length(self.text, fontsize=fontsize)


@lru_cache(maxsize=None)
def _load_fallback(name: str) -> fitz.Font:
    return fitz.Font(name)


def fallback_fonts() -> List[Tuple[str, fitz.Font]]:
    """Embedded fallback fonts, in lookup order, with their page resource names."""
    return [(f"fallback-{name}", _load_fallback(name)) for name in FALLBACK_FONT_NAMES]


def split_runs(text: str, base_fontname: str) -> List[TextRun]:
    """
    Split text into runs of characters sharing a font.

    Raises:
        UnencodableTextError: A character has no glyph in any font.
    """
    fallbacks = fallback_fonts()
    runs: List[TextRun] = []

    for char in text:
        fontname, font = _font_for(char, base_fontname, fallbacks)
        if runs and runs[-1].fontname == fontname:
            last = runs.pop()
            runs.append(TextRun(last.text + char, fontname, font))
        else:
            runs.append(TextRun(char, fontname, font))
    return runs


def _font_for(
    char: str,
    base_fontname: str,
    fallbacks: List[Tuple[str, fitz.Font]],
) -> Tuple[str, Optional[fitz.Font]]:
    if ord(char) < BASE14_CODE_LIMIT:
        return base_fontname, None
    for fontname, font in fallbacks:
        if font.has_glyph(ord(char)):
            return fontname, font
    raise UnencodableTextError(f"No available font can encode {char!r} (U+{ord(char):04X})")


def text_length(text: str, fontname: str, fontsize: float) -> float:
    """Width of text in points, measured run by run."""
    return sum(run.width(fontsize) for run in split_runs(text, fontname))


def insert_text(
    page: fitz.Page,
    origin: fitz.Point,
    text: str,
    fontname: str,
    fontsize: float,
    color: Tuple[float, float, float],
) -> float:
    """
    Write text with its baseline starting at ``origin``, switching to a
    fallback font for characters the base font cannot encode.

    Returns:
        The width of the written text in points.
    """
    runs = split_runs(text, fontname)
    embedded = {font[4] for font in page.get_fonts()}

    x = origin.x
    for run in runs:
        if run.is_embedded and run.fontname not in embedded:
            page.insert_font(fontname=run.fontname, fontbuffer=run.font.buffer)
            embedded.add(run.fontname)
        page.insert_text(
            fitz.Point(x, origin.y),
            run.text,
            fontname=run.fontname,
            fontsize=fontsize,
            color=color,
        )
        x += run.width(fontsize)
    return x - origin.x
