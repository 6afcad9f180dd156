"""Collage configuration from ``data-*`` markup attributes.

Recognised attributes on an ``.img_collage`` element::

    data-images          comma-separated image sources (required)
    data-width           container width
    data-height          container height
    data-gaps-images     gap between images, >= 0
    data-enable-drag     true/false, 1/0, yes/no, on/off
    data-enable-resize   same as above
    data-min-image-size  smallest width a resize may reach
    class                extra CSS classes

Values that fail to parse are ignored and the defaults apply.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from mosaic_collage.config import CollageConfig

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})
# leading number, so "12px" reads as 12
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_image_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [src.strip() for src in value.split(",") if src.strip()]


def parse_number(value: str | None) -> float | None:
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_bool(value: str | None) -> bool | None:
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    return None


def parse_gap(value: str | None) -> float | None:
    if not value:
        return None
    match = _LEADING_FLOAT.match(value)
    if match is None:
        return None
    parsed = float(match.group(1))
    if not math.isfinite(parsed) or parsed < 0:
        return None
    return parsed


def parse_collage_attributes(
    attrs: Mapping[str, str],
    base: CollageConfig | None = None,
) -> tuple[list[str], CollageConfig]:
    """Build the image list and config for one collage element.

    Args:
        attrs: Element attributes, e.g. ``{"data-images": "a.jpg,b.jpg"}``.
        base:  Config supplying the defaults for absent attributes.

    Raises:
        ValueError: No image sources were given.
    """
    images = parse_image_list(attrs.get("data-images"))
    if not images:
        raise ValueError(
            "Each .img_collage must define at least one image via data-images"
        )

    fields: dict[str, Any] = {}
    width = parse_number(attrs.get("data-width"))
    if width is not None and width > 0:
        fields["width"] = width
    height = parse_number(attrs.get("data-height"))
    if height is not None and height > 0:
        fields["height"] = height
    gap = parse_gap(attrs.get("data-gaps-images"))
    if gap is not None:
        fields["gap"] = gap
    enable_drag = parse_bool(attrs.get("data-enable-drag"))
    if enable_drag is not None:
        fields["enable_drag"] = enable_drag
    enable_resize = parse_bool(attrs.get("data-enable-resize"))
    if enable_resize is not None:
        fields["enable_resize"] = enable_resize
    min_size = parse_number(attrs.get("data-min-image-size"))
    if min_size is not None:
        fields["min_image_size"] = min_size
    class_name = (attrs.get("class") or "").strip()
    if class_name:
        fields["class_name"] = class_name

    base = base or CollageConfig()
    return images, replace(base, **fields)
