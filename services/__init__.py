"""
Services Package

Provides certificate composition and annotated export.
"""

from services.composer_service import CertificateComposer
from services.export_service import ExportService, ExportOptions, ExportResult

__all__ = [
    "CertificateComposer",
    "ExportService",
    "ExportOptions",
    "ExportResult",
]
