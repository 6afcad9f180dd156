"""
Mosaic Collage
==============

Lay a list of images of any aspect ratio out as a justified mosaic
inside a fixed-size container: rows of equal-height images spanning the
full width, gaps stretched to fill the height, and a uniform
scale-to-fit when the rows still overflow.

- **Layout** is a pure function of sources, known ratios and container size.
- **Probing** measures missing ratios in the background and re-renders.
"""

__version__ = "1.0.0"

from mosaic_collage.config import DEFAULT_GAP, FALLBACK_RATIO, CollageConfig
from mosaic_collage.html_export import render_stage, save_stage
from mosaic_collage.interaction import (
    clamp,
    drag_position,
    hit_test,
    resize_in_collage,
    resize_item,
)
from mosaic_collage.layout import (
    build_row,
    compute_layout,
    estimate_row_count,
    fit_vertical,
    partition_rows,
    scale_to_fit,
)
from mosaic_collage.markup import parse_collage_attributes
from mosaic_collage.models import (
    Item,
    LayoutResult,
    PlacedItem,
    Row,
    RowItem,
    RowLayout,
)
from mosaic_collage.probe import RatioProbe, measure_ratios, read_image_ratio
from mosaic_collage.ratios import build_items, ratio_from_url, resolve_ratio
from mosaic_collage.session import CollageSession

__all__ = [
    "DEFAULT_GAP",
    "FALLBACK_RATIO",
    "CollageConfig",
    "CollageSession",
    "Item",
    "LayoutResult",
    "PlacedItem",
    "RatioProbe",
    "Row",
    "RowItem",
    "RowLayout",
    "build_items",
    "build_row",
    "clamp",
    "compute_layout",
    "drag_position",
    "estimate_row_count",
    "fit_vertical",
    "hit_test",
    "measure_ratios",
    "parse_collage_attributes",
    "partition_rows",
    "ratio_from_url",
    "read_image_ratio",
    "render_stage",
    "resize_in_collage",
    "resize_item",
    "resolve_ratio",
    "save_stage",
    "scale_to_fit",
]
