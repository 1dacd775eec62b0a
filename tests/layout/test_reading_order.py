import pytest

from mangalayout.layout import (
    Panel,
    ReadingDirection,
    ReadingOrderAlgorithm,
    assign_reading_order,
    group_columns,
    group_rows,
    link_neighbors,
)
from mangalayout.raster import Rect


def _panels():
    return [
        Panel(Rect(0, 0, 190, 200)),
        Panel(Rect(210, 10, 190, 180)),
        Panel(Rect(0, 220, 400, 150)),
    ]


def test_rows_group_panels_with_close_centres():
    rows = group_rows(_panels())

    assert [len(row) for row in rows] == [2, 1]


def test_rtl_reads_right_panel_first():
    ordered = assign_reading_order(_panels(), ReadingDirection.RTL)

    assert [panel.reading_order for panel in ordered] == [1, 0, 2]


def test_ltr_and_ttb_orders():
    ltr = assign_reading_order(_panels(), "ltr")
    ttb = assign_reading_order(_panels(), "webtoon")

    assert [panel.reading_order for panel in ltr] == [0, 1, 2]
    assert [panel.reading_order for panel in ttb] == [0, 1, 2]


def test_order_is_a_permutation_for_scattered_panels():
    panels = [Panel(Rect(x * 37 % 300, y * 53 % 300, 60, 60 + y)) for x in range(4) for y in range(3)]

    ordered = assign_reading_order(panels)

    assert sorted(panel.reading_order for panel in ordered) == list(range(len(panels)))
    assert [panel.id for panel in ordered] == [panel.id for panel in panels]


def test_neighbors_may_be_one_sided():
    wide, right, left = link_neighbors(_panels()[::-1])

    assert left.neighbors.right == right.id
    assert right.neighbors.left == left.id
    assert wide.neighbors.top in {left.id, right.id}
    # seen from the narrow upper panels the wide centre is too far sideways
    assert left.neighbors.bottom is None
    assert right.neighbors.bottom is None


def _staggered_grid():
    """2x2 cells in input order TL, TR, BL, BR; the top-left cell sits 10 px lower."""

    return [
        Panel(Rect(0, 10, 190, 190)),
        Panel(Rect(210, 0, 190, 190)),
        Panel(Rect(0, 210, 190, 190)),
        Panel(Rect(210, 210, 190, 190)),
    ]


def test_columns_group_panels_with_close_centres():
    columns = group_columns(_staggered_grid())

    assert [[panel.bounds.x for panel in column] for column in columns] == [[0, 0], [210, 210]]


@pytest.mark.parametrize(
    "algorithm, direction, expected",
    [
        ("z-pattern", "rtl", [1, 0, 3, 2]),
        ("z-pattern", "ltr", [0, 1, 2, 3]),
        # strict top-edge sort puts the higher right cell first
        ("row-major", "ltr", [1, 0, 2, 3]),
        ("row-major", "rtl", [1, 0, 3, 2]),
        # whole right column first, then the left one
        ("column-major", "rtl", [2, 0, 3, 1]),
        ("column-major", "ltr", [0, 2, 1, 3]),
    ],
)
def test_ordering_algorithms(algorithm, direction, expected):
    ordered = assign_reading_order(_staggered_grid(), direction, algorithm)

    assert [panel.reading_order for panel in ordered] == expected


def test_top_to_bottom_ignores_the_algorithm():
    for algorithm in ReadingOrderAlgorithm:
        ordered = assign_reading_order(_staggered_grid(), ReadingDirection.TTB, algorithm)

        assert [panel.reading_order for panel in ordered] == [1, 0, 2, 3]


def test_algorithm_names_are_normalised():
    assert ReadingOrderAlgorithm.parse(" Column_Major ") is ReadingOrderAlgorithm.COLUMN_MAJOR
    with pytest.raises(ValueError):
        ReadingOrderAlgorithm.parse("spiral")
