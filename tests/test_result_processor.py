"""Tests for OCR result post-processing."""

import math

import pytest
from manga_ocr_pipeline.ocr.models import BoundingBox, OcrResult, TextRegion
from manga_ocr_pipeline.postprocessing import ResultProcessor, clean_text_content


@pytest.fixture
def processor():
    return ResultProcessor()


def result_of(*regions):
    return OcrResult(success=True, text_regions=tuple(regions), elapsed_ms=12)


def test_filter_by_confidence_keeps_order(processor, make_region):
    """Confidences [0.9, 0.3, 0.6] with threshold 0.5 keep 0.9 and 0.6 in order."""
    result = result_of(
        make_region(0, 0, text="a", confidence=0.9),
        make_region(100, 0, text="b", confidence=0.3),
        make_region(200, 0, text="c", confidence=0.6),
    )

    filtered = processor.filter_by_confidence(result, 0.5)

    assert [r.text for r in filtered.text_regions] == ["a", "c"]
    assert len(result.text_regions) == 3
    assert filtered.elapsed_ms == 12


def test_filter_by_confidence_drops_unscored(processor, make_region):
    result = result_of(make_region(0, 0, confidence=math.nan), make_region(50, 0, confidence=0.5))
    filtered = processor.filter_by_confidence(result, 0.5)

    assert len(filtered.text_regions) == 1
    assert filtered.text_regions[0].confidence == 0.5


def test_remove_empty_regions(processor, make_region):
    result = result_of(
        make_region(0, 0, text=""),
        make_region(50, 0, text="  \t\n"),
        make_region(100, 0, text="セリフ"),
    )

    kept = processor.remove_empty_regions(result)

    assert [r.text for r in kept.text_regions] == ["セリフ"]


def test_remove_duplicates_keeps_most_confident(processor):
    """Two near-identical boxes keep only the 0.9 region."""
    low = TextRegion("low", 0.6, BoundingBox(100, 100, 50, 100))
    high = TextRegion("high", 0.9, BoundingBox(101, 100, 50, 100))

    deduped = processor.remove_duplicates(result_of(low, high), 0.95)

    assert [r.text for r in deduped.text_regions] == ["high"]


def test_remove_duplicates_contained_box(processor):
    """A box fully inside another overlaps 100% of the smaller area."""
    outer = TextRegion("outer", 0.8, BoundingBox(0, 0, 200, 200))
    inner = TextRegion("inner", 0.7, BoundingBox(50, 50, 20, 20))

    deduped = processor.remove_duplicates(result_of(outer, inner))

    assert [r.text for r in deduped.text_regions] == ["outer"]


def test_remove_duplicates_sorts_by_y_then_x(processor, make_region):
    result = result_of(
        make_region(300, 200, text="c", confidence=0.9),
        make_region(100, 10, text="b", confidence=0.7),
        make_region(10, 10, text="a", confidence=0.8),
    )

    deduped = processor.remove_duplicates(result)

    assert [r.text for r in deduped.text_regions] == ["a", "b", "c"]


def test_remove_duplicates_is_idempotent(processor):
    regions = [
        TextRegion("a", 0.9, BoundingBox(0, 0, 100, 40)),
        TextRegion("b", 0.5, BoundingBox(2, 1, 98, 39)),
        TextRegion("c", 0.7, BoundingBox(60, 0, 100, 40)),
        TextRegion("d", math.nan, BoundingBox(300, 300, 10, 10)),
        TextRegion("e", 0.4, BoundingBox(300, 300, 0, 0)),
    ]

    once = processor.remove_duplicates(result_of(*regions))
    twice = processor.remove_duplicates(once)

    assert once == twice


def test_overlap_ratio_edge_cases():
    box = BoundingBox(0, 0, 10, 10)

    assert box.overlap_ratio(BoundingBox(20, 20, 10, 10)) == 0.0
    assert box.overlap_ratio(BoundingBox(10, 0, 10, 10)) == 0.0
    assert box.overlap_ratio(BoundingBox(5, 5, 0, 0)) == 0.0
    assert box.overlap_ratio(BoundingBox(5, 0, 10, 10)) == pytest.approx(0.5)


@pytest.mark.parametrize("raw, expected", [
    ("  hello   world  ", "hello world"),
    ("line\x00one\x07", "lineone"),
    ("tab\tand\nnewline", "tab and newline"),
    ("delete\x7fme", "deleteme"),
    ("ドラゴン　ボール", "ドラゴン ボール"),
    ("漢字かなカナ", "漢字かなカナ"),
    ("", ""),
])
def test_clean_text_content(raw, expected):
    assert clean_text_content(raw) == expected


def test_clean_text_is_idempotent(processor, make_region):
    result = result_of(
        make_region(0, 0, text=" \x01 混ざった\x1f  テキスト \r\n"),
        make_region(50, 0, text="plain"),
    )

    once = processor.clean_text(result)

    assert processor.clean_text(once) == once
    assert once.text_regions[0].text == "混ざった テキスト"


def test_failed_result_passes_through(processor):
    failed = OcrResult.failure("engine exploded", elapsed_ms=5)

    assert processor.remove_empty_regions(failed) is failed
    assert processor.filter_by_confidence(failed, 0.5) is failed
    assert processor.remove_duplicates(failed) is failed
    assert processor.clean_text(failed) is failed
    assert processor.process(failed) is failed


def test_process_full_chain(processor):
    result = result_of(
        TextRegion("  second\x00 ", 0.8, BoundingBox(10, 300, 50, 50)),
        TextRegion("first", 0.95, BoundingBox(10, 10, 50, 50)),
        TextRegion("first dup", 0.6, BoundingBox(11, 10, 50, 50)),
        TextRegion("weak", 0.2, BoundingBox(400, 400, 50, 50)),
        TextRegion("   ", 0.99, BoundingBox(600, 600, 50, 50)),
    )

    processed = processor.process(result, min_confidence=0.5)

    assert [r.text for r in processed.text_regions] == ["first", "second"]
    assert processed.success is True
    assert processed.full_text == "first\nsecond"
