from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple, BinaryIO
import hashlib
import logging

import fitz

from core.error_types import (
    Result,
    Success,
    Failure,
    ParseError,
    ParseErrorKind,
)

logger = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-"


@dataclass(frozen=True)
class PageInfo:
    """Immutable container for PDF page geometry. Pages are one-based."""

    page_number: int
    width: float
    height: float

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)


@dataclass(frozen=True)
class PDFDocument:
    """
    Immutable handle over a loaded document.

    Holds the exact bytes it was parsed from, their hash, and the geometry
    of every page. The parsed PyMuPDF document is kept only for rasterizing;
    nothing writes through it.
    """

    data: bytes
    file_hash: str
    pages: Tuple[PageInfo, ...]
    _document: fitz.Document = field(repr=False, compare=False)
    password: Optional[str] = field(default=None, repr=False, compare=False)

    @property
    def page_count(self) -> int:
        """Get the total number of pages."""
        return len(self.pages)

    def has_page(self, page_number: int) -> bool:
        """Check whether a one-based page index exists."""
        return 1 <= page_number <= self.page_count

    def get_page_info(self, page_number: int) -> Optional[PageInfo]:
        """
        Get geometry for a page.

        Args:
            page_number: One-based page index.

        Returns:
            PageInfo, or None when the page does not exist.
        """
        if not self.has_page(page_number):
            return None
        return self.pages[page_number - 1]

    def render_page_to_pixmap(self, page_number: int, scale: float) -> fitz.Pixmap:
        """Rasterize the page background at ``scale`` without alpha."""
        page = self._document[page_number - 1]
        return page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)

    def working_copy(self) -> fitz.Document:
        """Parse the original bytes again into an independent, writable document."""
        document = fitz.open(stream=self.data, filetype="pdf")
        if document.needs_pass and self.password is not None:
            document.authenticate(self.password)
        return document

    def close(self) -> None:
        """Close the underlying PDF document."""
        if not self._document.is_closed:
            self._document.close()


class PDFEngine:
    """
    Loads caller-supplied byte buffers into immutable PDFDocument handles.
    The engine owns no I/O; streams are read exactly once.
    """

    def __init__(self):
        logger.debug("PDFEngine initialized")

    @staticmethod
    def _compute_hash(data: bytes) -> str:
        """Compute SHA-256 hash of a byte buffer."""
        return hashlib.sha256(data).hexdigest()

    def load(self, data: bytes, password: Optional[str] = None) -> Result[PDFDocument]:
        """
        Parse a byte buffer into a document.

        Args:
            data: The complete document bytes. Mutable buffers are copied.
            password: Optional password for encrypted PDFs.

        Returns:
            Result containing PDFDocument or a ParseError.
        """
        data = bytes(data)

        if not data:
            return Failure(ParseError(
                message="Document buffer is empty",
                kind=ParseErrorKind.MALFORMED,
                byte_count=0,
            ))

        if not data.lstrip().startswith(PDF_HEADER):
            return Failure(ParseError(
                message="Buffer does not start with a PDF header",
                kind=ParseErrorKind.MALFORMED,
                byte_count=len(data),
            ))

        try:
            fitz_document = fitz.open(stream=data, filetype="pdf")
        except Exception as exception:
            return Failure(ParseError(
                message=f"Document is malformed: {exception}",
                kind=ParseErrorKind.MALFORMED,
                byte_count=len(data),
            ))

        if fitz_document.needs_pass:
            if password is None or not fitz_document.authenticate(password):
                fitz_document.close()
                return Failure(ParseError(
                    message="Document is encrypted and the password is missing or wrong",
                    kind=ParseErrorKind.MALFORMED,
                    byte_count=len(data),
                ))

        try:
            pages = tuple(
                PageInfo(
                    page_number=index + 1,
                    width=page.rect.width,
                    height=page.rect.height,
                )
                for index, page in enumerate(fitz_document)
            )
        except Exception as exception:
            fitz_document.close()
            return Failure(ParseError(
                message=f"Failed to read page geometry: {exception}",
                kind=ParseErrorKind.MALFORMED,
                byte_count=len(data),
            ))

        document = PDFDocument(
            data=data,
            file_hash=self._compute_hash(data),
            pages=pages,
            _document=fitz_document,
            password=password,
        )

        logger.info(f"Loaded document {document.file_hash[:12]} ({document.page_count} pages)")
        return Success(document)

    def load_stream(self, stream: BinaryIO, password: Optional[str] = None) -> Result[PDFDocument]:
        """
        Read a binary stream to the end and parse it.

        Args:
            stream: Readable binary file-like object.
            password: Optional password for encrypted PDFs.

        Returns:
            Result containing PDFDocument, ParseError(IO) when the stream
            cannot be fully read, or ParseError(MALFORMED).
        """
        chunks: List[bytes] = []
        try:
            for chunk in iter(lambda: stream.read(65536), b""):
                chunks.append(chunk)
        except OSError as exception:
            return Failure(ParseError(
                message=f"Failed to read document bytes: {exception}",
                kind=ParseErrorKind.IO,
                byte_count=sum(len(chunk) for chunk in chunks),
            ))

        return self.load(b"".join(chunks), password)

    @staticmethod
    def page_sizes(document: PDFDocument) -> Dict[int, Tuple[float, float]]:
        """Get a mapping of one-based page index to (width, height)."""
        return {page.page_number: page.size for page in document.pages}
