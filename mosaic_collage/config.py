"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_GAP = 2.0
FALLBACK_RATIO = 1.5


@dataclass(frozen=True)
class CollageConfig:
    """All tuneable parameters for a collage.

    Attributes:
        width:          Container width in pixels.
        height:         Container height in pixels.
        gap:            Spacing between neighbouring images (both axes).
        fallback_ratio: Aspect ratio used until an image has been measured.
        stretch_rows:   Grow the vertical gap so rows fill the full height.
        enable_drag:    Let the rendering layer move images around.
        enable_resize:  Show a corner handle for aspect-preserving resize.
        min_image_size: Smallest width a resize may shrink an image to.
        class_name:     Extra CSS classes for the container element.
        probe_timeout:  Seconds allowed for fetching a remote image header.
    """

    # Container
    width: float = 720
    height: float = 560
    gap: float = DEFAULT_GAP

    # Layout
    fallback_ratio: float = FALLBACK_RATIO
    stretch_rows: bool = True  # False keeps the configured gap between rows

    # Interaction
    enable_drag: bool = False
    enable_resize: bool = False
    min_image_size: float = 50

    # Presentation
    class_name: str | None = None

    # Probing
    probe_timeout: float = 10.0

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".jfif"}
    )

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError("width must be > 0")
        if self.height <= 0:
            raise ValueError("height must be > 0")
        if self.gap < 0:
            raise ValueError("gap must be >= 0")
        if self.fallback_ratio <= 0:
            raise ValueError("fallback_ratio must be > 0")
