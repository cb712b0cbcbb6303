from __future__ import annotations
from typing import Optional, Dict, List, Iterable, Iterator
import logging

from models.annotation import (
    Annotation,
    AnnotationFactory,
    AnnotationStyle,
    AnnotationType,
    Extent,
    Point,
)

logger = logging.getLogger(__name__)


class AnnotationStore:
    """
    Arena of annotations keyed by identifier.

    Records keep insertion order globally and per page, so iteration order is
    also paint order. Insert and remove are O(1); identifiers stay valid
    across unrelated mutations.
    """

    def __init__(self, annotations: Optional[Iterable[Annotation]] = None):
        self._records: Dict[str, Annotation] = {}
        self._pages: Dict[int, Dict[str, None]] = {}
        for annotation in annotations or ():
            self.add(annotation)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._records

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._records.values()))

    def insert(
        self,
        annotation_type: AnnotationType,
        page_number: int,
        anchor: Point,
        content: str = "",
        extent: Optional[Extent] = None,
        style: Optional[AnnotationStyle] = None,
    ) -> str:
        """
        Create and store a new annotation.

        Returns:
            The new annotation's identifier.
        """
        annotation = AnnotationFactory.create(
            annotation_type,
            page_number,
            anchor,
            content=content,
            extent=extent,
            style=style,
        )
        self.add(annotation)
        return annotation.annotation_id

    def add(self, annotation: Annotation) -> None:
        """Store an existing annotation record under its own identifier."""
        if annotation.annotation_id in self._records:
            self.remove(annotation.annotation_id)
        self._records[annotation.annotation_id] = annotation
        self._pages.setdefault(annotation.page_number, {})[annotation.annotation_id] = None
        logger.debug(
            f"Stored {annotation.annotation_type.name} annotation "
            f"{annotation.annotation_id} on page {annotation.page_number}"
        )

    def remove(self, annotation_id: str) -> bool:
        """
        Remove an annotation. Unknown identifiers are ignored.

        Returns:
            True if an annotation was removed.
        """
        annotation = self._records.pop(annotation_id, None)
        if annotation is None:
            return False

        page_ids = self._pages.get(annotation.page_number)
        if page_ids is not None:
            page_ids.pop(annotation_id, None)
            if not page_ids:
                del self._pages[annotation.page_number]

        logger.debug(f"Removed annotation {annotation_id}")
        return True

    def get(self, annotation_id: str) -> Optional[Annotation]:
        """Get an annotation by identifier."""
        return self._records.get(annotation_id)

    def list_for_page(self, page_number: int) -> List[Annotation]:
        """Get the annotations on a page in insertion order."""
        return [
            self._records[annotation_id]
            for annotation_id in self._pages.get(page_number, {})
        ]

    def list_in_page_order(self) -> List[Annotation]:
        """Get every annotation ordered by page, then insertion."""
        return [
            annotation
            for page_number in sorted(self._pages)
            for annotation in self.list_for_page(page_number)
        ]

    def pages_with_annotations(self) -> List[int]:
        """Get the sorted page numbers that carry annotations."""
        return sorted(self._pages)

    def clear(self) -> None:
        """Remove every annotation."""
        self._records.clear()
        self._pages.clear()
