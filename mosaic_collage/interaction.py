"""Pointer geometry for an already rendered collage.

These helpers only compute where a dragged or resized image ends up.
They never feed back into the layout.
"""

from __future__ import annotations

from mosaic_collage.config import CollageConfig
from mosaic_collage.models import LayoutResult

MIN_HANDLE_SIZE = 10


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def drag_position(
    left: float,
    top: float,
    dx: float,
    dy: float,
    item_width: float,
    item_height: float,
    container_width: float,
    container_height: float,
) -> tuple[float, float]:
    """Move an item by (dx, dy) without letting it leave the container."""
    max_left = max(0.0, container_width - item_width)
    max_top = max(0.0, container_height - item_height)
    return clamp(left + dx, 0.0, max_left), clamp(top + dy, 0.0, max_top)


def resize_item(
    start_width: float,
    dx: float,
    left: float,
    top: float,
    ratio: float,
    container_width: float,
    container_height: float,
    min_size: float = 50,
) -> tuple[float, float]:
    """Corner-handle resize keeping the item's aspect ratio.

    The width follows the pointer, bounded below by *min_size* (never
    less than ``MIN_HANDLE_SIZE``) and above by the container edges on
    both axes.

    Returns:
        (width, height) of the resized item.
    """
    if ratio <= 0:
        raise ValueError("ratio must be > 0")
    min_size = max(MIN_HANDLE_SIZE, min_size)
    max_width = min(
        max(min_size, container_width - left),
        max(min_size, (container_height - top) * ratio),
    )
    width = clamp(start_width + dx, min_size, max_width)
    return width, width / ratio


def resize_in_collage(
    config: CollageConfig,
    start_width: float,
    dx: float,
    left: float,
    top: float,
    ratio: float,
) -> tuple[float, float]:
    """:func:`resize_item` bounded by *config*'s container and minimum size."""
    return resize_item(
        start_width, dx, left, top, ratio,
        config.width, config.height, min_size=config.min_image_size,
    )


def hit_test(layout: LayoutResult, x: float, y: float) -> int | None:
    """Index of the image under container point (x, y), if any.

    Later items are drawn on top, so they win on overlap.
    """
    for placed in reversed(layout.placements()):
        if placed.x <= x < placed.x + placed.width and placed.y <= y < placed.y + placed.height:
            return placed.index
    return None
