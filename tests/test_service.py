"""Tests for the manga OCR service."""

import math
import threading

import pytest
from manga_ocr_pipeline import (
    BatchCancelledError,
    BatchOptions,
    EngineFailureError,
    ImageNotFoundError,
    InvalidArgumentError,
    LogLevel,
    MangaOcrService,
    OcrMode,
    ReadingDirection,
    RecognitionSettings,
)


@pytest.fixture
def service(fake_engine):
    with MangaOcrService(mode=OcrMode.STANDARD, engine_factory=lambda settings: fake_engine) as svc:
        yield svc


def test_recognize_text(service, page_path, fake_engine):
    result = service.recognize_text(page_path)

    assert result.success is True
    assert [r.text for r in result.text_regions] == ["こんにちは", "元気？"]
    first = result.text_regions[0]
    assert first.confidence == pytest.approx(0.92)
    assert first.bounding_box.to_tuple() == (300, 40, 60, 160)
    assert len(first.bounding_box.points) == 4
    assert result.elapsed_ms >= 0
    assert fake_engine.calls == ['run_full']


def test_recognize_text_missing_file_raises(service, tmp_path, fake_engine):
    with pytest.raises(ImageNotFoundError):
        service.recognize_text(tmp_path / "missing.png")
    assert fake_engine.calls == []


@pytest.mark.parametrize("path", [None, "", "   "])
def test_recognize_text_empty_path_raises(service, path):
    with pytest.raises(InvalidArgumentError):
        service.recognize_text(path)


def test_recognize_text_undecodable_returns_failure(service, corrupt_path):
    result = service.recognize_text(corrupt_path)

    assert result.success is False
    assert result.error_message


def test_recognize_text_engine_error_returns_failure(page_path, engine_cls):
    engine = engine_cls(detect_error=RuntimeError("model crashed"))
    svc = MangaOcrService(mode=OcrMode.STANDARD, engine_factory=lambda s: engine)

    result = svc.recognize_text(page_path)

    assert result.success is False
    assert "model crashed" in result.error_message


def test_detect_regions_only(service, page_path, fake_engine):
    regions = service.detect_regions_only(page_path)

    assert len(regions) == 2
    assert all(r.text == "" for r in regions)
    assert all(math.isnan(r.confidence) for r in regions)
    assert fake_engine.calls == ['detect']


def test_detect_regions_only_raises_on_failure(page_path, corrupt_path, engine_cls):
    engine = engine_cls(detect_error=RuntimeError("model crashed"))
    svc = MangaOcrService(mode=OcrMode.STANDARD, engine_factory=lambda s: engine)

    with pytest.raises(EngineFailureError):
        svc.detect_regions_only(page_path)
    with pytest.raises(EngineFailureError):
        svc.detect_regions_only(corrupt_path)


def test_recognize_region_only(service, page_path, fake_engine):
    result = service.recognize_region_only(page_path)

    assert result.success is True
    assert len(result.text_regions) == 1
    region = result.text_regions[0]
    assert region.text == "テキスト"
    assert region.bounding_box.to_tuple() == (0, 0, 800, 1000)
    assert fake_engine.calls == ['recognize']


def test_recognize_region_only_engine_error(page_path, engine_cls):
    engine = engine_cls(recognize_error=RuntimeError("no luck"))
    svc = MangaOcrService(mode=OcrMode.STANDARD, engine_factory=lambda s: engine)

    result = svc.recognize_region_only(page_path)

    assert result.success is False
    assert "no luck" in result.error_message


def test_preprocessing_error_becomes_failed_result(page_path, fake_engine, monkeypatch):
    svc = MangaOcrService(
        settings=RecognitionSettings(use_preprocessing=True),
        mode=OcrMode.STANDARD,
        engine_factory=lambda s: fake_engine,
    )

    def broken_preprocess(image):
        raise ValueError("Input image must not be empty")

    monkeypatch.setattr(svc.image_processor, 'preprocess_for_ocr', broken_preprocess)

    for result in (svc.recognize_text(page_path), svc.recognize_region_only(page_path)):
        assert result.success is False
        assert "Preprocessing failed" in result.error_message
    with pytest.raises(EngineFailureError):
        svc.detect_regions_only(page_path)
    assert fake_engine.calls == []


def test_engine_factory_failure_becomes_failed_result(page_path):
    def broken_factory(settings):
        raise ImportError("paddleocr not installed")

    svc = MangaOcrService(mode=OcrMode.STANDARD, engine_factory=broken_factory)
    result = svc.recognize_text(page_path)

    assert result.success is False
    assert "paddleocr not installed" in result.error_message


def test_adaptive_mode_uses_recommended_settings(page_path, blank_path, engine_cls):
    created = []

    def factory(settings):
        created.append(settings)
        return engine_cls()

    svc = MangaOcrService(RecognitionSettings(language="Korean"), mode=OcrMode.ADAPTIVE, engine_factory=factory)
    svc.recognize_text(page_path)
    svc.recognize_text(page_path)
    svc.recognize_text(blank_path)

    # One engine per distinct settings value
    assert len(created) == 2
    assert created[0].max_size == 1024
    assert created[1].max_size == 1920
    assert created[1].use_preprocessing is True
    assert all(s.language == "Korean" for s in created)


def test_standard_mode_uses_base_settings(page_path, blank_path, engine_cls):
    created = []

    def factory(settings):
        created.append(settings)
        return engine_cls()

    base = RecognitionSettings(max_size=960)
    svc = MangaOcrService(base, mode=OcrMode.STANDARD, engine_factory=factory)
    svc.recognize_text(page_path)
    svc.recognize_text(blank_path)

    assert created == [base]


def test_read_page(service, page_path):
    page = service.read_page(page_path, ReadingDirection.RIGHT_TO_LEFT_TOP_TO_BOTTOM)

    assert page.result.success is True
    assert [(o.reading_order, o.region.text) for o in page.ordered_regions] == [
        (1, "こんにちは"), (2, "元気？")]
    assert page.layout.is_two_page is False
    assert page.full_text == "こんにちは\n元気？"
    assert page.to_dict()['reading_order'][0]['order'] == 1


def test_read_page_failure(corrupt_path, service):
    page = service.read_page(corrupt_path)

    assert page.result.success is False
    assert page.ordered_regions == ()


def test_analyze_and_explain(service, page_path):
    settings, metrics = service.analyze_and_recommend(page_path)
    explanation = service.explain_recommendation(page_path)

    assert settings.max_size == 1024
    assert metrics.width == 800
    assert "MaxSize: 1024" in explanation


def test_recognize_batch_isolates_failures(service, page_path, tmp_path):
    results = service.recognize_batch([page_path, tmp_path / "missing.png", page_path])

    assert [r.success for r in results] == [True, False, True]
    assert results[1].error_message.startswith("Failed to process")


def test_recognize_batch_full_pipeline(service, page_path, fake_engine):
    results = service.recognize_batch([page_path], full_pipeline=True)

    assert len(results[0].text_regions) == 2
    assert fake_engine.calls == ['run_full']


def test_recognize_batch_empty(service):
    with pytest.raises(InvalidArgumentError):
        service.recognize_batch([])
    with pytest.raises(InvalidArgumentError):
        service.recognize_batch_parallel([])


def test_recognize_batch_parallel_progress(service, page_path):
    events = []
    service.subscribe_progress(events.append)

    paths = [page_path] * 6
    results = service.recognize_batch_parallel(paths, BatchOptions(max_parallelism=3))

    assert len(results) == 6
    assert all(r.success for r in results)
    assert [e.current for e in events] == [1, 2, 3, 4, 5, 6]


def test_recognize_batch_parallel_cancel(service, page_path):
    cancel = threading.Event()
    events = []

    def on_progress(event):
        events.append(event)
        if event.current == 2:
            cancel.set()

    service.subscribe_progress(on_progress)

    with pytest.raises(BatchCancelledError):
        service.recognize_batch_parallel([page_path] * 10, BatchOptions(max_parallelism=1, cancel_event=cancel))

    assert len(events) == 2


def test_log_subscription(service, page_path):
    events = []
    unsubscribe = service.subscribe_log(events.append)

    service.recognize_text(page_path)
    count = len(events)
    unsubscribe()
    service.recognize_text(page_path)

    assert count > 0
    assert len(events) == count
    assert any(e.level is LogLevel.INFORMATION and "Recognized 2 regions" in e.message for e in events)


def test_async_variants(service, page_path):
    future = service.recognize_text_async(page_path)
    assert future.result(timeout=10).success is True

    page = service.read_page_async(page_path).result(timeout=10)
    assert len(page.ordered_regions) == 2


def test_closed_service_rejects_calls(fake_engine, page_path):
    svc = MangaOcrService(mode=OcrMode.STANDARD, engine_factory=lambda s: fake_engine)
    svc.close()

    with pytest.raises(InvalidArgumentError):
        svc.recognize_text(page_path)
    with pytest.raises(InvalidArgumentError):
        svc.recognize_text_async(page_path)


def test_from_config(tmp_path, fake_engine, page_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "ocr:\n"
        "  language: English\n"
        "  max_size: 1600\n"
        "mode: standard\n"
        "reading_order:\n"
        "  direction: ltr-ttb\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding='utf-8',
    )

    svc = MangaOcrService.from_config(config_path, engine_factory=lambda s: fake_engine)

    assert svc.mode is OcrMode.STANDARD
    assert svc.settings.language == "English"
    assert svc.settings.max_size == 1600
    assert svc.default_direction is ReadingDirection.LEFT_TO_RIGHT_TOP_TO_BOTTOM
    assert svc.recognize_text(page_path).success is True
