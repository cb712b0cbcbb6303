from __future__ import annotations

import fitz
import pytest

from utils import fonts


def test_latin1_text_stays_in_base_font() -> None:
    runs = fonts.split_runs("Café Ñandú", "helv")

    assert [(run.text, run.fontname) for run in runs] == [("Café Ñandú", "helv")]
    assert not runs[0].is_embedded


def test_other_characters_switch_to_fallback() -> None:
    runs = fonts.split_runs("Crew 山田", "helv")

    assert [(run.text, run.fontname) for run in runs] == [("Crew ", "helv"), ("山田", "fallback-cjk")]
    assert runs[1].is_embedded


def test_text_length_sums_runs() -> None:
    base = fitz.get_text_length("Crew ", fontname="helv", fontsize=12)

    assert fonts.text_length("Crew 山田", "helv", 12) > base
    assert fonts.text_length("Crew ", "helv", 12) == pytest.approx(base)


def test_unencodable_character_raises(monkeypatch) -> None:
    monkeypatch.setattr(fonts, "FALLBACK_FONT_NAMES", ())

    with pytest.raises(fonts.UnencodableTextError):
        fonts.split_runs("山", "helv")


def test_insert_text_embeds_fallback_once() -> None:
    document = fitz.open()
    page = document.new_page()

    fonts.insert_text(page, fitz.Point(72, 100), "山田", "helv", 12, (0, 0, 0))
    fonts.insert_text(page, fitz.Point(72, 140), "太郎", "helv", 12, (0, 0, 0))

    names = [font[4] for font in page.get_fonts()]
    assert names.count("fallback-cjk") == 1
    document.close()
