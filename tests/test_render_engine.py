from __future__ import annotations

import pytest

from core.render_engine import RenderEngine
from models.annotation import AnnotationFactory, AnnotationType, Point

pytestmark = pytest.mark.usefixtures("qapp")


def highlight_at(page: int, x: float, y: float):
    return AnnotationFactory.create(AnnotationType.HIGHLIGHT, page, Point(x, y))


def test_surface_matches_scaled_page_size(loaded_document) -> None:
    result = RenderEngine().render(loaded_document, 1, 1.5, [])

    assert abs(result.width - 612 * 1.5) <= 1
    assert abs(result.height - 792 * 1.5) <= 1


def test_render_is_idempotent(loaded_document) -> None:
    engine = RenderEngine()
    annotations = [
        highlight_at(1, 100, 692),
        AnnotationFactory.create(AnnotationType.TEXT, 1, Point(50, 600), content="Approved"),
        AnnotationFactory.create(AnnotationType.SIGNATURE, 1, Point(300, 100), content="M. Santos"),
    ]

    first = engine.render(loaded_document, 1, 1.2, annotations)
    second = engine.render(loaded_document, 1, 1.2, annotations)

    assert first.image == second.image
    assert first.to_png_bytes() == second.to_png_bytes()


def test_each_render_returns_a_new_surface(loaded_document) -> None:
    engine = RenderEngine()
    first = engine.render(loaded_document, 1, 1.0, [])
    second = engine.render(loaded_document, 1, 1.0, [])

    first.image.fill(0)

    assert second.image.pixelColor(5, 5).red() == 255


def test_highlight_is_translucent_fill(loaded_document) -> None:
    result = RenderEngine().render(loaded_document, 1, 1.0, [highlight_at(1, 100, 692)])

    inside = result.image.pixelColor(150, 110)
    outside = result.image.pixelColor(150, 140)

    assert inside.red() > 240 and inside.green() > 240
    assert 150 < inside.blue() < 220
    assert outside.blue() == 255


def test_highlight_stays_anchored_across_zoom(loaded_document) -> None:
    engine = RenderEngine()
    annotations = [highlight_at(1, 100, 692)]

    zoomed = engine.render(loaded_document, 1, 2.0, annotations)

    assert zoomed.image.pixelColor(300, 220).blue() < 220
    assert zoomed.image.pixelColor(150, 110).blue() == 255


def test_close_scales_do_not_share_a_background(loaded_document) -> None:
    annotations = [highlight_at(1, 100, 692)]
    warmed = RenderEngine()
    warmed.render(loaded_document, 1, 0.5, annotations)

    after = warmed.render(loaded_document, 1, 0.5004, annotations)
    fresh = RenderEngine().render(loaded_document, 1, 0.5004, annotations)

    assert (after.width, after.height) == (fresh.width, fresh.height)
    assert after.image == fresh.image


def test_annotations_for_other_pages_are_not_painted(loaded_document) -> None:
    engine = RenderEngine()
    annotations = [highlight_at(2, 100, 692)]

    result = engine.render(loaded_document, 1, 1.0, annotations)

    assert result.annotation_count == 0
    assert result.image == engine.render(loaded_document, 1, 1.0, []).image


def test_out_of_range_inputs_are_clamped(loaded_document) -> None:
    result = RenderEngine().render(loaded_document, 7, 10.0, [])

    assert result.request.page_number == 2
    assert result.request.scale == 3.0


def test_backgrounds_are_cached_per_page_and_scale(loaded_document) -> None:
    engine = RenderEngine()
    engine.render(loaded_document, 1, 1.0, [])
    engine.render(loaded_document, 1, 1.0, [])
    engine.render(loaded_document, 2, 1.0, [])

    statistics = engine.cache_statistics
    assert statistics["hits"] == 1
    assert statistics["entry_count"] == 2
    assert engine.invalidate_document_cache(loaded_document.file_hash) == 2
