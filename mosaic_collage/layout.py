"""Justified mosaic layout.

Rows of equal-height images spanning the container width:

1. resolve one aspect ratio per image,
2. estimate the row count from the ratio mass,
3. split the images greedily into that many rows,
4. size each row to the container width,
5. stretch the gaps between rows to fill the height,
6. shrink and center the block if it still overflows.

Everything here is pure and synchronous; measured ratios are passed in
as a read-only snapshot.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from functools import reduce

from mosaic_collage.config import DEFAULT_GAP, FALLBACK_RATIO
from mosaic_collage.models import (
    FitTransform,
    Item,
    LayoutResult,
    PlacedItem,
    Row,
    RowItem,
    RowLayout,
    VerticalFit,
)
from mosaic_collage.ratios import build_items

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    # built-in round() rounds halves to even
    return math.floor(value + 0.5)


def estimate_row_count(
    total_ratio: float,
    container_ratio: float,
    item_count: int,
) -> int:
    """Number of rows whose combined shape best matches the container.

    A block of K rows with ratio mass *total_ratio* has an overall aspect
    of roughly ``total_ratio / K**2``; solving for the container aspect
    gives ``K = sqrt(total_ratio / container_ratio)``.
    """
    k = _round_half_up(math.sqrt(total_ratio / container_ratio))
    return max(1, min(k, item_count))


def partition_rows(items: Sequence[Item], k: int) -> tuple[Row, ...]:
    """Split *items* into at most *k* contiguous rows.

    Single greedy pass: the open row is closed as soon as admitting the
    next item would move its ratio sum further from ``total / k``. Once
    ``k - 1`` rows are closed the last row takes everything left.
    """
    if not items:
        return ()
    total = sum(item.ratio for item in items)
    if k <= 1:
        return (Row(items=tuple(items), sum_ratio=total),)

    ideal = total / k
    last = len(items) - 1

    def step(
        state: tuple[tuple[Row, ...], int, float],
        i: int,
    ) -> tuple[tuple[Row, ...], int, float]:
        rows, start, running = state
        running += items[i].ratio
        if i == last:
            return rows + (Row(tuple(items[start:]), running),), last + 1, 0.0
        if len(rows) < k - 1:
            current_diff = abs(running - ideal)
            next_diff = abs(running + items[i + 1].ratio - ideal)
            if next_diff > current_diff:
                row = Row(tuple(items[start:i + 1]), running)
                return rows + (row,), i + 1, 0.0
        return rows, start, running

    rows, _, _ = reduce(step, range(len(items)), ((), 0, 0.0))
    return rows


def build_row(row: Row, container_width: float, gap: float) -> RowLayout:
    """Size one row so it spans *container_width* exactly."""
    available = container_width - (len(row) - 1) * gap
    height = available / row.sum_ratio

    cells: list[RowItem] = []
    x = 0.0
    for item in row.items:
        width = item.ratio * height
        cells.append(
            RowItem(index=item.index, source=item.source, x=x, width=width, height=height)
        )
        x += width + gap
    return RowLayout(height=height, items=tuple(cells))


def fit_vertical(
    row_layouts: Sequence[RowLayout],
    gap: float,
    container_height: float,
    stretch: bool = True,
) -> VerticalFit:
    """Stack rows top to bottom, growing only the gaps between them.

    With *stretch* on and more than one row, a block shorter than the
    container gets its inter-row gap enlarged until it fills the height.
    Row heights and the horizontal gap are left alone.
    """
    spacing = max(0, len(row_layouts) - 1)
    sum_heights = sum(row.height for row in row_layouts)

    vertical_gap = gap
    total_height = sum_heights + vertical_gap * spacing
    if stretch and spacing > 0 and total_height < container_height:
        vertical_gap = gap + (container_height - total_height) / spacing
        total_height = sum_heights + vertical_gap * spacing

    placed: list[PlacedItem] = []
    y = 0.0
    for row in row_layouts:
        placed.extend(
            PlacedItem(
                index=cell.index,
                source=cell.source,
                x=cell.x,
                y=y,
                width=cell.width,
                height=cell.height,
            )
            for cell in row.items
        )
        y += row.height + vertical_gap
    return VerticalFit(vertical_gap, total_height, tuple(placed))


def scale_to_fit(
    total_height: float,
    container_width: float,
    container_height: float,
) -> FitTransform:
    """Uniform shrink factor and centering offsets for the whole block."""
    scale = 1.0
    if total_height > container_height:
        scale = container_height / total_height

    final_width = container_width * scale
    final_height = total_height * scale
    return FitTransform(
        scale=scale,
        left_offset=(container_width - final_width) / 2,
        top_offset=(container_height - final_height) / 2,
    )


def compute_layout(
    images: Sequence[str],
    ratios: Mapping[str, float],
    container_width: float,
    container_height: float,
    gap: float = DEFAULT_GAP,
    *,
    fallback_ratio: float = FALLBACK_RATIO,
    stretch_rows: bool = True,
) -> LayoutResult:
    """Compute the justified mosaic for *images* inside the container.

    Args:
        images:           Image sources in display order.
        ratios:           Measured aspect ratios keyed by source.
        container_width:  Width of the container (> 0).
        container_height: Height of the container (> 0).
        gap:              Spacing between images (>= 0).
        fallback_ratio:   Ratio for sources that are neither measured nor
                          parseable.
        stretch_rows:     Grow the inter-row gap to fill the height.

    Returns:
        A :class:`LayoutResult` with raw item coordinates plus the scale
        and offsets that place the block inside the container.
    """
    if container_width <= 0:
        raise ValueError("container_width must be > 0")
    if container_height <= 0:
        raise ValueError("container_height must be > 0")
    if gap < 0:
        raise ValueError("gap must be >= 0")

    if not images:
        return LayoutResult()

    items = build_items(images, ratios, fallback_ratio)
    total_ratio = sum(item.ratio for item in items)
    k = estimate_row_count(total_ratio, container_width / container_height, len(items))
    rows = partition_rows(items, k)
    row_layouts = [build_row(row, container_width, gap) for row in rows]
    fit = fit_vertical(row_layouts, gap, container_height, stretch=stretch_rows)
    transform = scale_to_fit(fit.total_height, container_width, container_height)

    logger.debug(
        "Layout: %d images -> %d rows (k=%d)  height=%.1f  scale=%.3f",
        len(items), len(rows), k, fit.total_height, transform.scale,
    )
    return LayoutResult(
        items=fit.items,
        total_height=fit.total_height,
        scale=transform.scale,
        top_offset=transform.top_offset,
        left_offset=transform.left_offset,
    )
