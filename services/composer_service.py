"""
Composer Service

Builds job description certificates from scratch:
- Letterhead, rule, title and memo/date line
- Certification and purpose paragraphs, word-wrapped to the body width
- Issuance sentence and signatory block, with an optional signed mark
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Tuple
import logging

import fitz

from core.error_types import Result, Success, Failure, ExportError, capture_exception
from models.document import GenerationRequest
from models.settings import ComposerSettings
from utils import fonts
from utils.validators import validate_required_text

logger = logging.getLogger(__name__)

BLACK = (0.0, 0.0, 0.0)
SIGNED_COLOR = (0.0, 0.4, 0.8)


def format_issue_date(issued_on: date) -> str:
    """Format a date as 'Month D, YYYY'."""
    return f"{issued_on.strftime('%B')} {issued_on.day}, {issued_on.year}"


@dataclass
class _LayoutCursor:
    """
    Running vertical offset measured down from the top of the page.

    Document space is bottom-up, so an offset ``y`` corresponds to the
    document-space baseline ``page_height - y``; PyMuPDF addresses pages
    top-down and takes ``y`` as is.
    """

    document: fitz.Document
    settings: ComposerSettings
    pages: List[fitz.Page] = field(default_factory=list)
    offset: float = 0.0

    @property
    def page(self) -> fitz.Page:
        return self.pages[-1]

    @property
    def bottom_limit(self) -> float:
        return self.settings.page_height - self.settings.margin

    def new_page(self) -> fitz.Page:
        page = self.document.new_page(
            width=self.settings.page_width,
            height=self.settings.page_height,
        )
        self.pages.append(page)
        self.offset = self.settings.margin + self.settings.body_font_size
        return page

    def ensure_room(self, needed: float) -> None:
        """Start a new page when ``needed`` points no longer fit."""
        if self.offset + needed > self.bottom_limit:
            self.new_page()

    def place(self, offset: float) -> float:
        """Move to a fixed offset on the current page."""
        self.offset = offset
        return offset


class CertificateComposer:
    """
    Generates a job description certificate as PDF bytes.

    Text lands at the same fixed offsets for every request; long names or
    purposes wrap and push following blocks down, onto a new page if needed.
    """

    MEMO_PLACEHOLDER = "[TO BE ASSIGNED]"
    PURPOSE_PLACEHOLDER = "[PURPOSE TO BE SPECIFIED]"
    SIGNED_LABEL = "Digitally Signed"
    SALUTATION = "TO WHOM IT MAY CONCERN:"

    BODY_FONT = "tiro"
    BOLD_FONT = "tibo"
    SYMBOL_FONT = "zadb"
    CHECK_MARK = "4"

    COMPANY_OFFSET = 80.0
    ADDRESS_OFFSET = 110.0
    RULE_OFFSET = 150.0
    TITLE_OFFSET = 190.0
    MEMO_OFFSET = 230.0
    SALUTATION_OFFSET = 280.0
    BODY_OFFSET = 320.0
    PARAGRAPH_GAP = 40.0
    SIGNATURE_GAP = 70.0
    SIGNATURE_BLOCK_HEIGHT = 80.0
    SIGNATURE_LINE_WIDTH = 200.0
    DATE_COLUMN_FROM_RIGHT = 200.0
    SIGNATURE_COLUMN_FROM_RIGHT = 250.0

    def __init__(self, settings: Optional[ComposerSettings] = None):
        self._settings = settings or ComposerSettings()

    @property
    def settings(self) -> ComposerSettings:
        return self._settings

    def generate(
        self,
        request: GenerationRequest,
        issued_on: Optional[date] = None,
    ) -> Result[bytes]:
        """
        Compose a certificate.

        Args:
            request: Field set for the certificate.
            issued_on: Issue date printed on the certificate, today if omitted.

        Returns:
            Result containing the PDF bytes, or ValidationError when
            ``crew_name`` or ``crew_id`` is missing.
        """
        for field_name in ("crew_name", "crew_id"):
            validation = validate_required_text(getattr(request, field_name), field_name)
            if validation.is_failure():
                logger.warning(f"Certificate generation rejected: {field_name} is empty")
                return validation

        issue_date = format_issue_date(issued_on or date.today())
        document = fitz.open()

        try:
            cursor = _LayoutCursor(document, self._settings)
            cursor.new_page()

            self._draw_letterhead(cursor)
            self._draw_memo_line(cursor, request, issue_date)
            self._draw_body(cursor, request, issue_date)
            self._draw_signature_block(cursor, request.signed)

            document.set_metadata({
                "title": self._settings.document_title.title(),
                "subject": f"{self._settings.document_title.title()} - {request.crew_name.strip()}",
                "author": self._settings.employer_name,
                "creator": self._settings.employer_name,
                "keywords": request.memo_no or "",
            })

            data = document.tobytes(garbage=3, deflate=True)
        except Exception as e:
            return Failure(capture_exception(ExportError, f"Certificate composition failed: {e}"))
        finally:
            document.close()

        logger.info(
            f"Generated certificate for crew {request.crew_id.strip()} "
            f"({len(cursor.pages)} pages, {len(data)} bytes, signed={request.signed})"
        )
        return Success(data)

    def _text(
        self,
        page: fitz.Page,
        x: float,
        offset: float,
        text: str,
        bold: bool = False,
        size: Optional[float] = None,
        color: Tuple[float, float, float] = BLACK,
    ) -> float:
        """Draw a line of text; returns its width."""
        fontname = self.BOLD_FONT if bold else self.BODY_FONT
        fontsize = size or self._settings.body_font_size
        return fonts.insert_text(page, fitz.Point(x, offset), text, fontname, fontsize, color)

    def _draw_rule(self, page: fitz.Page, offset: float, x0: float, x1: float, width: float) -> None:
        shape = page.new_shape()
        shape.draw_line(fitz.Point(x0, offset), fitz.Point(x1, offset))
        shape.finish(color=BLACK, width=width)
        shape.commit()

    def _draw_letterhead(self, cursor: _LayoutCursor) -> None:
        settings = self._settings
        page = cursor.page

        self._text(
            page, settings.margin, cursor.place(self.COMPANY_OFFSET),
            settings.company_name, bold=True, size=settings.company_font_size,
        )
        for index, address_line in enumerate(settings.address_lines):
            offset = self.ADDRESS_OFFSET + index * settings.line_spacing
            self._text(page, settings.margin, cursor.place(offset), address_line)

        self._draw_rule(
            page,
            cursor.place(self.RULE_OFFSET),
            settings.margin,
            settings.page_width - settings.margin,
            width=2,
        )
        self._text(
            page, settings.margin, cursor.place(self.TITLE_OFFSET),
            settings.document_title, bold=True, size=settings.title_font_size,
        )

    def _draw_memo_line(self, cursor: _LayoutCursor, request: GenerationRequest, issue_date: str) -> None:
        settings = self._settings
        offset = cursor.place(self.MEMO_OFFSET)
        memo_no = request.memo_no.strip() or self.MEMO_PLACEHOLDER

        self._text(cursor.page, settings.margin, offset, f"MEMO NO: {memo_no}", bold=True)
        self._text(
            cursor.page,
            settings.page_width - self.DATE_COLUMN_FROM_RIGHT,
            offset,
            f"DATE: {issue_date}",
            bold=True,
        )

    def _draw_body(self, cursor: _LayoutCursor, request: GenerationRequest, issue_date: str) -> None:
        settings = self._settings
        purpose = request.purpose.strip() or self.PURPOSE_PLACEHOLDER

        self._text(cursor.page, settings.margin, cursor.place(self.SALUTATION_OFFSET), self.SALUTATION, bold=True)

        paragraphs = [
            f"This is to certify that {request.crew_name.strip()}, bearing Crew ID No. "
            f"{request.crew_id.strip()}, has been employed with {settings.employer_name}",
            f"This certification is being issued upon request of the above-mentioned person "
            f"for {purpose} purposes and for whatever legal purposes it may serve.",
            f"Issued this {issue_date} at {settings.issuing_place}.",
        ]

        cursor.place(self.BODY_OFFSET)
        for index, paragraph in enumerate(paragraphs):
            if index > 0:
                cursor.offset += self.PARAGRAPH_GAP - settings.line_spacing
            self._draw_paragraph(cursor, paragraph)

    def _draw_paragraph(self, cursor: _LayoutCursor, paragraph: str) -> None:
        """Word-wrap a paragraph with a first-line indent, one line per step."""
        settings = self._settings
        lines = self.wrap_text(
            paragraph,
            settings.body_width,
            first_line_indent=settings.paragraph_indent,
        )
        for index, line in enumerate(lines):
            cursor.ensure_room(settings.body_font_size)
            x = settings.margin + (settings.paragraph_indent if index == 0 else 0.0)
            self._text(cursor.page, x, cursor.offset, line)
            cursor.offset += settings.line_spacing

    def wrap_text(
        self,
        text: str,
        max_width: float,
        first_line_indent: float = 0.0,
        fontname: Optional[str] = None,
        fontsize: Optional[float] = None,
    ) -> List[str]:
        """
        Split text into lines no wider than ``max_width`` points.

        A single word wider than the line is kept whole on its own line.
        """
        fontname = fontname or self.BODY_FONT
        fontsize = fontsize or self._settings.body_font_size

        lines: List[str] = []
        current = ""
        available = max_width - first_line_indent

        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if current and fonts.text_length(candidate, fontname, fontsize) > available:
                lines.append(current)
                current = word
                available = max_width
            else:
                current = candidate

        if current:
            lines.append(current)
        return lines

    def _draw_signature_block(self, cursor: _LayoutCursor, signed: bool) -> None:
        settings = self._settings
        x = settings.page_width - self.SIGNATURE_COLUMN_FROM_RIGHT

        cursor.offset += self.SIGNATURE_GAP - settings.line_spacing
        cursor.ensure_room(self.SIGNATURE_BLOCK_HEIGHT)

        line_offset = cursor.offset
        self._draw_rule(cursor.page, line_offset, x, x + self.SIGNATURE_LINE_WIDTH, width=1)
        self._text(cursor.page, x, line_offset + 20, settings.signatory_caption, bold=True)
        self._text(
            cursor.page, x, line_offset + 40,
            settings.employer_name, size=settings.small_font_size,
        )

        if signed:
            mark_offset = line_offset + 60
            check_width = self._symbol(cursor.page, x, mark_offset)
            self._text(
                cursor.page,
                x + check_width + 4,
                mark_offset,
                self.SIGNED_LABEL,
                bold=True,
                size=settings.small_font_size,
                color=SIGNED_COLOR,
            )

        cursor.offset = line_offset + self.SIGNATURE_BLOCK_HEIGHT

    def _symbol(self, page: fitz.Page, x: float, offset: float) -> float:
        """Draw the check mark of the signed stamp; returns its width."""
        fontsize = self._settings.small_font_size
        page.insert_text(
            fitz.Point(x, offset),
            self.CHECK_MARK,
            fontname=self.SYMBOL_FONT,
            fontsize=fontsize,
            color=SIGNED_COLOR,
        )
        return fitz.get_text_length(self.CHECK_MARK, fontname=self.SYMBOL_FONT, fontsize=fontsize)
