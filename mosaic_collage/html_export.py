"""Stage markup: one absolutely positioned wrapper per image."""

from __future__ import annotations

import html
import logging
from pathlib import Path

from mosaic_collage.config import CollageConfig
from mosaic_collage.interaction import MIN_HANDLE_SIZE
from mosaic_collage.models import LayoutResult

logger = logging.getLogger(__name__)

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ margin: 0; padding: 2rem; background: #faf9f6; }}
  .img_collage .resize-handle {{ opacity: 0; transition: opacity 150ms ease; }}
  .img_collage .tile:hover .resize-handle {{ opacity: 1; }}
</style>
</head>
<body>
{stage}
</body>
</html>
"""


def _px(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".") + "px"


def render_stage(
    layout: LayoutResult,
    config: CollageConfig,
    clickable: bool = False,
) -> str:
    """Markup for a ``width x height`` container holding every image.

    Item boxes use container coordinates (scale and offsets applied).
    With *clickable* the tiles show a pointer cursor for click handlers
    keyed on ``data-index``.
    """
    classes = " ".join(["img_collage", *(config.class_name or "").split()])
    container_style = (
        f"position: relative; overflow: hidden; display: block; "
        f"width: {_px(config.width)}; height: {_px(config.height)};"
    )
    resize_attr = ""
    if config.enable_resize:
        min_size = max(MIN_HANDLE_SIZE, config.min_image_size)
        resize_attr = f' data-min-image-size="{min_size:g}"'
    lines = [
        f'<div class="{html.escape(classes)}"{resize_attr} style="{container_style}">'
    ]

    placements = layout.placements()
    if not placements:
        lines.append("  No Images")
    cursor = "pointer" if clickable else "default"
    for p in placements:
        style = (
            f"position: absolute; overflow: hidden; cursor: {cursor}; "
            f"left: {_px(p.x)}; top: {_px(p.y)}; "
            f"width: {_px(p.width)}; height: {_px(p.height)};"
        )
        lines.append(f'  <div class="tile" data-index="{p.index}" style="{style}">')
        lines.append(
            f'    <img src="{html.escape(p.source)}" alt="" '
            'style="width: 100%; height: 100%; display: block; '
            'object-fit: cover; pointer-events: none;">'
        )
        if config.enable_resize:
            lines.append(
                '    <div class="resize-handle" data-resize-handle="true" '
                'style="position: absolute; right: 4px; bottom: 4px; '
                "width: 12px; height: 12px; background-color: #4A90E2; "
                'border-radius: 50%; cursor: nwse-resize;"></div>'
            )
        lines.append("  </div>")
    lines.append("</div>")
    return "\n".join(lines)


def save_stage(
    layout: LayoutResult,
    config: CollageConfig,
    path: str | Path,
    title: str = "Mosaic Collage",
) -> Path:
    """Write a standalone HTML page containing the stage."""
    path = Path(path)
    page = _PAGE.format(title=html.escape(title), stage=render_stage(layout, config))
    path.write_text(page, encoding="utf-8")
    logger.info("Collage page saved: %s (%d images)", path, len(layout.items))
    return path
