"""Pytest configuration."""

import threading
import time

import cv2
import numpy as np
import pytest

from manga_ocr_pipeline.ocr.models import BoundingBox, TextRegion


class FakeEngine:
    """In-memory OCR engine returning canned results."""

    def __init__(self, regions=None, recognized=("テキスト", 0.95), detect_error=None,
                 recognize_error=None, delay=0.0):
        self.regions = regions if regions is not None else [
            ([(300, 40), (360, 40), (360, 200), (300, 200)], "こんにちは", 0.92),
            ([(100, 60), (160, 60), (160, 220), (100, 220)], "元気？", 0.81),
        ]
        self.recognized = recognized
        self.detect_error = detect_error
        self.recognize_error = recognize_error
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def _enter(self, name):
        with self._lock:
            self.calls.append(name)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        if self.delay:
            time.sleep(self.delay)

    def _exit(self):
        with self._lock:
            self.active -= 1

    def detect(self, image):
        self._enter('detect')
        try:
            if self.detect_error:
                raise self.detect_error
            return [quad for quad, _, _ in self.regions]
        finally:
            self._exit()

    def recognize(self, image):
        self._enter('recognize')
        try:
            if self.recognize_error:
                raise self.recognize_error
            return self.recognized
        finally:
            self._exit()

    def run_full(self, image):
        self._enter('run_full')
        try:
            if self.detect_error:
                raise self.detect_error
            return list(self.regions)
        finally:
            self._exit()


@pytest.fixture
def fake_engine():
    """Fake OCR engine with two vertical text regions."""
    return FakeEngine()


@pytest.fixture
def engine_cls():
    """FakeEngine class, for tests that need custom canned results."""
    return FakeEngine


@pytest.fixture
def make_region():
    """Factory for text regions from x, y, width, height."""
    def _make(x, y, width=40, height=40, text="text", confidence=0.9):
        return TextRegion(text=text, confidence=confidence, bounding_box=BoundingBox(x, y, width, height))
    return _make


@pytest.fixture
def page_image():
    """Sharp synthetic page with dark text-like strokes."""
    image = np.full((1000, 800, 3), 255, dtype=np.uint8)
    for column in range(6):
        x = 680 - column * 110
        for row in range(12):
            y = 60 + row * 70
            cv2.rectangle(image, (x, y), (x + 40, y + 40), (0, 0, 0), -1)
            cv2.line(image, (x + 5, y + 20), (x + 35, y + 20), (255, 255, 255), 2)
    return image


@pytest.fixture
def page_path(tmp_path, page_image):
    """Synthetic page written to a PNG file."""
    path = tmp_path / "page.png"
    cv2.imwrite(str(path), page_image)
    return path


@pytest.fixture
def blank_path(tmp_path):
    """Uniform gray image file (no edges, no contrast)."""
    path = tmp_path / "blank.png"
    cv2.imwrite(str(path), np.full((400, 300, 3), 128, dtype=np.uint8))
    return path


@pytest.fixture
def corrupt_path(tmp_path):
    """File with an image extension but no image content."""
    path = tmp_path / "corrupt.png"
    path.write_bytes(b"this is not an image")
    return path
