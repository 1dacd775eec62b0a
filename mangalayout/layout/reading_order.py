"""Reading order and neighbour links between panels."""
from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Sequence

from .types import Panel, PanelNeighbors, ReadingDirection, ReadingOrderAlgorithm


def _cluster(panels: Sequence[Panel], axis: int) -> List[List[Panel]]:
    # axis 1 clusters by centre y (rows), axis 0 by centre x (columns)
    clusters: List[List[Panel]] = []
    for panel in sorted(panels, key=lambda item: item.center[axis]):
        if clusters:
            anchor = clusters[-1][0]
            if axis == 1:
                limit = 0.5 * min(anchor.bounds.height, panel.bounds.height)
            else:
                limit = 0.5 * min(anchor.bounds.width, panel.bounds.width)
            if abs(panel.center[axis] - anchor.center[axis]) < limit:
                clusters[-1].append(panel)
                continue
        clusters.append([panel])
    return clusters


def group_rows(panels: Sequence[Panel]) -> List[List[Panel]]:
    """Cluster panels into rows, top to bottom.

    Panels are visited by centre ``y``; a panel joins the current row when its
    centre is closer to the row's first panel than half the smaller height.
    """

    return _cluster(panels, 1)


def group_columns(panels: Sequence[Panel]) -> List[List[Panel]]:
    """Cluster panels into columns, left to right, using the same rule on centre ``x``."""

    return _cluster(panels, 0)


def _ordered(
    panels: Sequence[Panel],
    direction: ReadingDirection,
    algorithm: ReadingOrderAlgorithm = ReadingOrderAlgorithm.Z_PATTERN,
) -> List[Panel]:
    if direction is ReadingDirection.TTB:
        return sorted(panels, key=lambda item: (item.bounds.y, item.bounds.x))

    sign = -1.0 if direction is ReadingDirection.RTL else 1.0
    if algorithm is ReadingOrderAlgorithm.ROW_MAJOR:
        return sorted(panels, key=lambda item: (item.bounds.y, sign * item.center[0]))

    ordered: List[Panel] = []
    if algorithm is ReadingOrderAlgorithm.COLUMN_MAJOR:
        columns = group_columns(panels)
        if direction is ReadingDirection.RTL:
            columns.reverse()
        for column in columns:
            ordered.extend(sorted(column, key=lambda item: item.center[1]))
        return ordered

    for row in group_rows(panels):
        ordered.extend(sorted(row, key=lambda item: sign * item.center[0]))
    return ordered


def assign_reading_order(
    panels: Sequence[Panel],
    direction: ReadingDirection | str = ReadingDirection.RTL,
    algorithm: ReadingOrderAlgorithm | str = ReadingOrderAlgorithm.Z_PATTERN,
) -> List[Panel]:
    """Return the panels, in their input order, with ``reading_order`` set.

    ``z-pattern`` groups panels into rows with a tolerance, ``row-major`` sorts
    strictly by top edge, and ``column-major`` reads whole columns top to bottom,
    taking the columns in ``direction`` order.
    """

    direction = ReadingDirection.parse(direction)
    algorithm = ReadingOrderAlgorithm.parse(algorithm)
    ordered = _ordered(panels, direction, algorithm)
    positions: Dict[str, int] = {panel.id: index for index, panel in enumerate(ordered)}
    return [dataclasses.replace(panel, reading_order=positions[panel.id]) for panel in panels]


def _nearest(panel: Panel, candidates: Sequence[Panel], vertical: bool, forward: bool) -> Optional[str]:
    cx, cy = panel.center
    best: Optional[Panel] = None
    best_distance = 0.0
    for other in candidates:
        if other.id == panel.id:
            continue
        ox, oy = other.center
        dx = ox - cx
        dy = oy - cy
        if vertical:
            main, cross, span = dy, dx, panel.bounds.width
        else:
            main, cross, span = dx, dy, panel.bounds.height
        if (main > 0) != forward or main == 0:
            continue
        if abs(cross) >= span / 2.0 or abs(cross) >= abs(main):
            continue
        distance = dx * dx + dy * dy
        if best is None or distance < best_distance:
            best = other
            best_distance = distance
    return best.id if best is not None else None


def link_neighbors(panels: Sequence[Panel]) -> List[Panel]:
    """Attach the nearest panel above, below, left and right of each panel.

    Links are computed from each panel's own extent, so they can be one-sided.
    """

    linked: List[Panel] = []
    for panel in panels:
        neighbors = PanelNeighbors(
            top=_nearest(panel, panels, vertical=True, forward=False),
            bottom=_nearest(panel, panels, vertical=True, forward=True),
            left=_nearest(panel, panels, vertical=False, forward=False),
            right=_nearest(panel, panels, vertical=False, forward=True),
        )
        linked.append(dataclasses.replace(panel, neighbors=neighbors))
    return linked
