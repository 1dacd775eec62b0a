import numpy as np
import pytest

from mangalayout.core.batch import run_batch
from mangalayout.core.config import Settings
from mangalayout.errors import ErrorKind, SegmentationError
from mangalayout.layout import LayoutType
from mangalayout import pipeline
from mangalayout.pipeline import analyze_batch, analyze_page
from mangalayout.raster import RasterImage


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


def _grid_page() -> RasterImage:
    image = np.full((400, 400), 255, dtype=np.uint8)
    for x0, y0, x1, y1 in ((20, 20, 196, 196), (204, 20, 380, 196), (20, 204, 196, 380), (204, 204, 380, 380)):
        image[y0 : y0 + 2, x0:x1] = 0
        image[y1 - 2 : y1, x0:x1] = 0
        image[y0:y1, x0 : x0 + 2] = 0
        image[y0:y1, x1 - 2 : x1] = 0
    return RasterImage.from_array(image)


def test_analyze_page_runs_deskew_then_segmentation(settings):
    page = _grid_page()

    analysis = analyze_page(page, settings=settings)

    assert analysis.ok
    assert analysis.image is page
    assert analysis.deskew.applied is False
    assert analysis.segmentation.layout_type is LayoutType.GRID
    assert analysis.segmentation.panel_count == 4
    record = analysis.to_dict()
    assert record["error"] is None
    assert record["segmentation"]["layout_type"] == "grid"


def test_analyze_page_reports_invalid_input(settings):
    empty = RasterImage(np.zeros((0, 0, 4), dtype=np.uint8))

    analysis = analyze_page(empty, settings=settings)

    assert not analysis.ok
    assert analysis.error.kind is ErrorKind.INVALID_INPUT
    assert analysis.segmentation is None
    assert analysis.image is empty


def test_batch_isolates_failing_page(settings):
    pages = [_grid_page(), RasterImage(np.zeros((0, 0, 4), dtype=np.uint8)), _grid_page()]
    progress = []

    results = analyze_batch(
        pages,
        settings=settings,
        concurrency=2,
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert [result.ok for result in results] == [True, False, True]
    assert results[2].segmentation.panel_count == 4
    assert progress == [(2, 3), (3, 3)]


def _blank_page() -> RasterImage:
    return RasterImage.from_array(np.full((300, 300), 255, dtype=np.uint8))


def test_segmentation_failure_is_reported_as_internal(settings, monkeypatch: pytest.MonkeyPatch):
    bad_page = _blank_page()
    real_segment = pipeline.segment

    def flaky_segment(image, config=None, **options):
        if image is bad_page:
            raise SegmentationError("Segmentation failed: no contours")
        return real_segment(image, config, **options)

    monkeypatch.setattr(pipeline, "segment", flaky_segment)

    results = analyze_batch([_grid_page(), bad_page, _grid_page()], settings=settings, concurrency=2)

    assert len(results) == 3
    assert [result.error.kind for result in results if result.error] == [ErrorKind.INTERNAL]
    assert results[1].image is bad_page
    assert results[1].deskew.ok
    assert results[1].segmentation is None
    assert "no contours" in results[1].error.message
    assert results[0].segmentation.panel_count == 4


def test_unknown_direction_is_reported_as_invalid_input(settings):
    analysis = analyze_page(_grid_page(), settings=settings, direction="diagonal")

    assert analysis.error.kind is ErrorKind.INVALID_INPUT


def test_batch_reports_worker_crash_as_internal(settings, monkeypatch: pytest.MonkeyPatch):
    pages = [_grid_page(), _blank_page(), _grid_page()]
    real_analyze = pipeline.analyze_page

    def crashing_analyze(page, **options):
        if page is pages[1]:
            raise RuntimeError("worker crashed")
        return real_analyze(page, **options)

    monkeypatch.setattr(pipeline, "analyze_page", crashing_analyze)

    results = analyze_batch(pages, settings=settings, concurrency=3)

    assert [result.ok for result in results] == [True, False, True]
    assert results[1].image is pages[1]
    assert results[1].error.kind is ErrorKind.INTERNAL
    assert results[1].error.message == "worker crashed"
    assert results[1].deskew is None


def test_run_batch_captures_exceptions_and_survives_bad_callback():
    def invert(value: int) -> float:
        return 1 / value

    def broken_progress(done: int, total: int) -> None:
        raise RuntimeError("progress sink down")

    outcomes = run_batch(invert, [1, 0, 4], concurrency=3, on_progress=broken_progress)

    assert [outcome.index for outcome in outcomes] == [0, 1, 2]
    assert outcomes[0].result == 1.0
    assert isinstance(outcomes[1].error, ZeroDivisionError)
    assert outcomes[2].ok and outcomes[2].result == 0.25


def test_run_batch_with_no_items():
    assert run_batch(lambda item: item, [], concurrency=4) == []
