"""Tests for image quality assessment."""

import pytest
import numpy as np
import cv2
from manga_ocr_pipeline.exceptions import ImageNotFoundError, UnsupportedFormatError
from manga_ocr_pipeline.quality.image_quality import (
    ImageQualityAnalyzer,
    QualityLevel,
    QualityMetrics,
    determine_quality_level,
)


@pytest.fixture
def analyzer():
    return ImageQualityAnalyzer()


@pytest.fixture
def blurry_image(page_image):
    """Create a blurry test image."""
    return cv2.GaussianBlur(page_image, (51, 51), 0)


def test_blur_detection(analyzer, page_image, blurry_image):
    """Sharp strokes score higher than the same page blurred."""
    sharp = analyzer.calculate_blur_score(page_image)
    blurry = analyzer.calculate_blur_score(blurry_image)

    assert sharp > blurry
    assert sharp >= 300


def test_contrast_and_brightness(analyzer):
    """Test contrast and brightness on known pixel values."""
    half = np.zeros((100, 100), dtype=np.uint8)
    half[:, 50:] = 200

    assert analyzer.calculate_contrast(half) == pytest.approx(100.0)
    assert analyzer.calculate_brightness(half) == pytest.approx(100.0)

    uniform = np.full((100, 100, 3), 128, dtype=np.uint8)
    assert analyzer.calculate_contrast(uniform) == pytest.approx(0.0)
    assert analyzer.calculate_blur_score(uniform) == pytest.approx(0.0)


def test_assess_sharp_page_is_high(analyzer, page_image):
    """A sharp, high-contrast page is graded HIGH."""
    metrics = analyzer.assess(page_image)

    assert metrics.width == 800
    assert metrics.height == 1000
    assert metrics.max_dimension == 1000
    assert metrics.quality_level is QualityLevel.HIGH


def test_analyze_from_file(analyzer, blank_path):
    """A flat gray file has no edges and is graded LOW."""
    metrics = analyzer.analyze(blank_path)

    assert metrics.quality_level is QualityLevel.LOW
    assert metrics.brightness == pytest.approx(128.0)
    assert metrics.total_pixels == 400 * 300


def test_analyze_missing_file(analyzer, tmp_path):
    with pytest.raises(ImageNotFoundError):
        analyzer.analyze(tmp_path / "missing.png")


def test_analyze_unsupported_file(analyzer, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")
    with pytest.raises(UnsupportedFormatError):
        analyzer.analyze(path)


@pytest.mark.parametrize("blur, contrast, max_dim, expected", [
    (300.0, 50.0, 100, QualityLevel.HIGH),
    (299.9, 50.0, 2000, QualityLevel.MEDIUM),
    (300.0, 49.9, 800, QualityLevel.MEDIUM),
    (100.0, 30.0, 800, QualityLevel.MEDIUM),
    (100.0, 30.0, 799, QualityLevel.LOW),
    (99.9, 60.0, 2000, QualityLevel.LOW),
    (250.0, 29.9, 2000, QualityLevel.LOW),
])
def test_quality_level_boundaries(blur, contrast, max_dim, expected):
    """Thresholds are inclusive and checked in order."""
    assert determine_quality_level(blur, contrast, max_dim) is expected


def test_metrics_to_dict():
    metrics = QualityMetrics(400.0, 60.0, 128.0, 2000, 1500, QualityLevel.HIGH)
    data = metrics.to_dict()

    assert data['max_dimension'] == 2000
    assert data['quality_level'] == 'high'
    assert "2000x1500" in metrics.summary
