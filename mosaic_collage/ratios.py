"""Aspect-ratio resolution: measured > URL-derived > fallback."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping

from mosaic_collage.config import FALLBACK_RATIO
from mosaic_collage.models import Item

# Picsum-style sources carry their size in the path: .../<w>/<h>[/]
URL_RATIO_PATTERN = re.compile(r"picsum\.photos/(?:.*/)?(\d+)/(\d+)/?\Z")


def ratio_from_url(source: str) -> float | None:
    """Read the aspect ratio embedded in a Picsum-style URL.

    Returns ``None`` when *source* does not match or the height is zero.
    """
    match = URL_RATIO_PATTERN.search(source)
    if match is None:
        return None
    w, h = int(match.group(1)), int(match.group(2))
    if h == 0:
        return None
    return w / h


def resolve_ratio(
    source: str,
    measured_ratios: Mapping[str, float],
    fallback: float = FALLBACK_RATIO,
) -> float:
    """Return the ratio to lay *source* out with.

    A measured ratio wins; otherwise the URL is parsed; otherwise
    *fallback* is used. Never raises.
    """
    measured = measured_ratios.get(source)
    if measured and math.isfinite(measured) and measured > 0:
        return measured
    return ratio_from_url(source) or fallback


def build_items(
    sources: Iterable[str],
    measured_ratios: Mapping[str, float],
    fallback: float = FALLBACK_RATIO,
) -> tuple[Item, ...]:
    """Wrap *sources* into indexed items carrying their resolved ratio."""
    return tuple(
        Item(index=i, source=src, ratio=resolve_ratio(src, measured_ratios, fallback))
        for i, src in enumerate(sources)
    )
