"""Immutable records passed between the layout stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple


@dataclass(frozen=True)
class Item:
    """One input image; *index* is its position in the input list."""

    index: int
    source: str
    ratio: float


@dataclass(frozen=True)
class Row:
    items: tuple[Item, ...]
    sum_ratio: float

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class RowItem:
    index: int
    source: str
    x: float
    width: float
    height: float


@dataclass(frozen=True)
class RowLayout:
    """Geometry of one row; every item shares *height*."""

    height: float
    items: tuple[RowItem, ...]


@dataclass(frozen=True)
class PlacedItem:
    index: int
    source: str
    x: float
    y: float
    width: float
    height: float


class VerticalFit(NamedTuple):
    vertical_gap: float
    total_height: float
    items: tuple[PlacedItem, ...]


class FitTransform(NamedTuple):
    scale: float
    left_offset: float
    top_offset: float


@dataclass(frozen=True)
class LayoutResult:
    """Output of :func:`mosaic_collage.layout.compute_layout`.

    *items* hold raw coordinates. The block is drawn at
    ``offset + value * scale``; use :meth:`to_container` or
    :meth:`placements` to get coordinates inside the container.
    """

    items: tuple[PlacedItem, ...] = ()
    total_height: float = 0.0
    scale: float = 1.0
    top_offset: float = 0.0
    left_offset: float = 0.0

    def to_container(self, item: PlacedItem) -> PlacedItem:
        """Apply the scale and centering offsets to one item."""
        return PlacedItem(
            index=item.index,
            source=item.source,
            x=self.left_offset + item.x * self.scale,
            y=self.top_offset + item.y * self.scale,
            width=item.width * self.scale,
            height=item.height * self.scale,
        )

    def placements(self) -> tuple[PlacedItem, ...]:
        """All items in container coordinates, in layout order."""
        return tuple(self.to_container(item) for item in self.items)

    def to_dict(self) -> dict:
        return {
            "items": [
                {
                    "index": p.index,
                    "source": p.source,
                    "x": p.x,
                    "y": p.y,
                    "width": p.width,
                    "height": p.height,
                }
                for p in self.items
            ],
            "totalHeight": self.total_height,
            "scale": self.scale,
            "topOffset": self.top_offset,
            "leftOffset": self.left_offset,
        }
