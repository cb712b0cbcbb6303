from models.document import (
    ToolMode,
    ViewState,
    GenerationRequest,
)
from models.annotation import (
    AnnotationType,
    Annotation,
    AnnotationStyle,
    AnnotationFactory,
    Color,
    Extent,
    Point,
)
from models.settings import (
    AppSettings,
    EditorSettings,
    ComposerSettings,
    HighlightExportPolicy,
)

__all__ = [
    "ToolMode",
    "ViewState",
    "GenerationRequest",
    "AnnotationType",
    "Annotation",
    "AnnotationStyle",
    "AnnotationFactory",
    "Color",
    "Extent",
    "Point",
    "AppSettings",
    "EditorSettings",
    "ComposerSettings",
    "HighlightExportPolicy",
]
