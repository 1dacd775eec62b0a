from __future__ import annotations

import itertools

import numpy as np
import pytest

from mangalayout.errors import InvalidInputError
from mangalayout.layout import (
    LayoutType,
    PanelType,
    ReadingDirection,
    ReadingOrderAlgorithm,
    SegmentConfig,
    crop_panel,
    segment,
)
from mangalayout.raster import RasterImage, Rect


def _page(width: int, height: int) -> np.ndarray:
    return np.full((height, width), 255, dtype=np.uint8)


def _grid_page() -> RasterImage:
    """2x2 bordered panels with 8 px gutters and a little art in each."""

    image = _page(400, 400)
    boxes = [(20, 20, 196, 196), (204, 20, 380, 196), (20, 204, 196, 380), (204, 204, 380, 380)]
    for index, (x0, y0, x1, y1) in enumerate(boxes):
        image[y0 : y0 + 2, x0:x1] = 0
        image[y1 - 2 : y1, x0:x1] = 0
        image[y0:y1, x0 : x0 + 2] = 0
        image[y0:y1, x1 - 2 : x1] = 0
        offset = 30 + index * 25
        image[y0 + offset : y0 + offset + 30, x0 + offset : x0 + offset + 30] = 90
    return RasterImage.from_array(image)


def _webtoon_page() -> RasterImage:
    image = _page(200, 1400)
    for top, bottom in ((20, 420), (460, 860), (900, 1380)):
        image[top:bottom, 10:190] = 100
    return RasterImage.from_array(image)


def _borderless_page() -> RasterImage:
    image = _page(400, 400)
    image[0:260, 0:240] = 60
    image[0:180, 260:400] = 60
    image[270:400, 160:400] = 60
    return RasterImage.from_array(image)


def _inset_page() -> RasterImage:
    image = _page(400, 400)
    # framed panel holding two separate drawings
    image[5:8, 5:256] = 0
    image[233:236, 5:256] = 0
    image[5:236, 5:8] = 0
    image[5:236, 253:256] = 0
    image[20:100, 20:240] = 80
    image[140:220, 20:240] = 80
    # tall panel on the right and a wide one below
    image[5:395, 280:395] = 80
    image[260:395, 5:256] = 80
    return RasterImage.from_array(image)


def _assert_consistent(result):
    orders = sorted(panel.reading_order for panel in result.panels)
    assert orders == list(range(len(result.panels)))
    for panel in result.panels:
        assert result.page_bounds.contains(panel.bounds)
        assert panel.content_bounds is not None
        assert panel.bounds.contains(panel.content_bounds)
        assert 0.0 <= panel.confidence <= 1.0
    for first, second in itertools.combinations(result.panels, 2):
        assert first.bounds.overlap_ratio(second.bounds) <= 0.3


def test_grid_page_yields_four_grid_panels():
    result = segment(_grid_page())

    assert result.layout_type is LayoutType.GRID
    assert result.panel_count == 4
    assert all(panel.type is PanelType.GRID_PANEL for panel in result.panels)
    assert all(panel.confidence == pytest.approx(0.95) for panel in result.panels)
    assert sorted(panel.grid_position for panel in result.panels) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    _assert_consistent(result)


def test_grid_reading_order_follows_direction():
    rtl = segment(_grid_page())
    ltr = segment(_grid_page(), direction="western")

    assert [panel.grid_position for panel in rtl.in_reading_order()] == [(0, 1), (0, 0), (1, 1), (1, 0)]
    assert [panel.grid_position for panel in ltr.in_reading_order()] == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_grid_neighbors_link_adjacent_cells():
    result = segment(_grid_page())
    by_position = {panel.grid_position: panel for panel in result.panels}

    top_left = by_position[(0, 0)]
    assert top_left.neighbors.right == by_position[(0, 1)].id
    assert top_left.neighbors.bottom == by_position[(1, 0)].id
    assert top_left.neighbors.top is None
    assert top_left.neighbors.left is None
    graph = result.adjacency()
    assert by_position[(1, 1)].id in graph[by_position[(0, 1)].id]


def test_webtoon_strip_is_split_top_to_bottom():
    page = _webtoon_page()

    result = segment(page, direction=ReadingDirection.RTL)

    assert result.layout_type is LayoutType.WEBTOON
    assert result.panel_count == 3
    assert result.scale_factor < 1.0
    ordered = result.in_reading_order()
    assert [panel.bounds.y for panel in ordered] == sorted(panel.bounds.y for panel in ordered)
    for panel in ordered:
        assert panel.type is PanelType.WEBTOON_PANEL
        assert panel.bounds.x == 0
        assert panel.bounds.width >= page.width - 2
    _assert_consistent(result)


def test_webtoon_panels_span_width_when_sides_do_not_divide_evenly():
    # 801x4001 shrinks to 240x1200, so x and y scale by slightly different factors
    image = _page(801, 4001)
    for top, bottom in ((100, 1300), (1450, 2650), (2800, 3900)):
        image[top:bottom, 30:770] = 100
    page = RasterImage.from_array(image)

    result = segment(page)

    assert result.layout_type is LayoutType.WEBTOON
    assert result.panel_count == 3
    for panel in result.panels:
        assert panel.bounds.x == 0
        assert panel.bounds.width == 801
    assert max(panel.bounds.bottom for panel in result.panels) <= 4001
    _assert_consistent(result)


def test_column_major_order_reads_right_column_first():
    config = SegmentConfig(reading_order_algorithm=ReadingOrderAlgorithm.COLUMN_MAJOR)

    result = segment(_grid_page(), config)

    assert [panel.grid_position for panel in result.in_reading_order()] == [(0, 1), (1, 1), (0, 0), (1, 0)]


@pytest.mark.parametrize("options", [{"direction": "diagonal"}, {"layout": "collage"}])
def test_unknown_options_are_rejected_as_invalid_input(options):
    with pytest.raises(InvalidInputError):
        segment(_grid_page(), **options)


def test_borderless_regions_are_found():
    result = segment(_borderless_page(), layout=LayoutType.TRADITIONAL)

    assert result.layout_type is LayoutType.TRADITIONAL
    assert result.panel_count == 3
    assert all(panel.type is PanelType.BORDERLESS for panel in result.panels)
    assert all(panel.confidence == pytest.approx(0.7) for panel in result.panels)
    assert [panel.bounds.x for panel in result.in_reading_order()] == [260, 0, 160]
    assert result.panel_at(50, 50).bounds == Rect(0, 0, 240, 260)
    _assert_consistent(result)


def test_framed_panel_is_split_into_insets():
    result = segment(_inset_page(), layout="traditional")

    insets = [panel for panel in result.panels if panel.type is PanelType.INSET]
    assert len(insets) == 3
    assert len({panel.parent_id for panel in insets}) == 1
    assert insets[0].parent_id is not None
    assert all(panel.confidence == pytest.approx(0.8) for panel in insets)
    assert all(panel.ink_density > 0 for panel in insets)
    _assert_consistent(result)


def test_blank_page_has_no_panels():
    result = segment(RasterImage.from_array(_page(300, 300)))

    assert result.panel_count == 0
    assert result.average_panel_area == 0.0
    assert result.partial is False


def test_zero_sized_page_is_rejected():
    with pytest.raises(InvalidInputError):
        segment(RasterImage(np.zeros((0, 10, 4), dtype=np.uint8)))


def test_to_dict_is_json_ready():
    result = segment(_grid_page())

    record = result.to_dict()

    assert record["layout_type"] == "grid"
    assert len(record["panels"]) == 4
    assert record["panels"][0]["type"] == "grid-panel"
    assert set(record["panels"][0]["neighbors"]) == {"top", "bottom", "left", "right"}


def test_crop_panel_copies_pixels_with_padding():
    page = _borderless_page()
    result = segment(page, layout=LayoutType.TRADITIONAL)
    panel = result.panel_at(300, 50)

    crop = crop_panel(page, panel)
    padded = crop_panel(page, panel, padding=10)

    assert crop.size == (140, 180)
    assert padded.size == (150, 190)
    assert (crop.pixels[..., 0] == 60).all()


def test_tight_time_budget_still_returns_result():
    config = SegmentConfig(max_processing_time_ms=1e-9)

    result = segment(_inset_page(), config, layout=LayoutType.TRADITIONAL)

    assert result.partial
    assert result.panel_count >= 1
