"""Core package - document loading, annotation store, rendering, and editing sessions."""

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ParseError",
    "ParseErrorKind",
    "ValidationError",
    "ExportError",
    "PDFEngine",
    "PDFDocument",
    "AnnotationStore",
    "RenderEngine",
    "InteractionController",
    "ContentRequest",
    "EditingSession",
]

# Lazy imports to avoid circular dependencies
def __getattr__(name):
    if name in ("Result", "Success", "Failure", "ParseError", "ParseErrorKind", "ValidationError", "ExportError"):
        from core import error_types
        return getattr(error_types, name)
    elif name in ("PDFEngine", "PDFDocument"):
        from core import pdf_engine
        return getattr(pdf_engine, name)
    elif name == "AnnotationStore":
        from core.annotation_store import AnnotationStore
        return AnnotationStore
    elif name == "RenderEngine":
        from core.render_engine import RenderEngine
        return RenderEngine
    elif name in ("InteractionController", "ContentRequest"):
        from core import interaction
        return getattr(interaction, name)
    elif name == "EditingSession":
        from core.editing_session import EditingSession
        return EditingSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
