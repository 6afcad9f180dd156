"""A mounted collage: layout + ratio probing + re-rendering."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Sequence
from functools import partial

from mosaic_collage.config import CollageConfig
from mosaic_collage.layout import compute_layout
from mosaic_collage.models import LayoutResult
from mosaic_collage.probe import RatioProbe, read_image_ratio
from mosaic_collage.ratios import ratio_from_url

logger = logging.getLogger(__name__)

RenderCallback = Callable[[LayoutResult, CollageConfig], None]


class CollageSession:
    """Keeps one collage's layout in sync with measured image ratios.

    On construction the layout is computed once from whatever ratios are
    already known and *on_render* is called with it. Every image without a
    measured or URL-derived ratio is then probed; each successful probe
    triggers one full re-render. After :meth:`destroy` nothing is rendered
    any more, even if probes are still completing.

    Usable as a context manager; leaving the block destroys the session.
    """

    def __init__(
        self,
        images: Sequence[str],
        config: CollageConfig | None = None,
        on_render: RenderCallback | None = None,
        probe: RatioProbe | None = None,
    ) -> None:
        self.images: list[str] = list(images)
        self.config = config or CollageConfig()
        self._on_render = on_render
        self._probe = probe or RatioProbe(
            partial(read_image_ratio, timeout=self.config.probe_timeout),
        )
        self._destroyed = False
        self._lock = threading.RLock()
        self.layout: LayoutResult = LayoutResult()

        self.render()
        self.load_missing_ratios()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def ratios(self) -> dict[str, float]:
        return self._probe.snapshot()

    def render(self) -> LayoutResult | None:
        """Recompute the layout and hand it to the render callback."""
        if self._destroyed:
            return None
        cfg = self.config
        layout = compute_layout(
            self.images,
            self._probe.snapshot(),
            cfg.width,
            cfg.height,
            cfg.gap,
            fallback_ratio=cfg.fallback_ratio,
            stretch_rows=cfg.stretch_rows,
        )
        with self._lock:
            # destroy() may have landed while the layout was computed
            if self._destroyed:
                return None
            self.layout = layout
            if self._on_render is not None:
                self._on_render(layout, cfg)
        return layout

    def load_missing_ratios(self) -> int:
        """Probe every image that has neither a measured nor a URL ratio.

        Returns the number of probes started.
        """
        known = self._probe.snapshot()
        started = 0
        for src in dict.fromkeys(self.images):
            if known.get(src) or ratio_from_url(src):
                continue
            if self._probe.request(src, self._on_ratio):
                started += 1
        if started:
            logger.debug("Started %d ratio probe(s)", started)
        return started

    def _on_ratio(self, source: str, ratio: float) -> None:
        if self._destroyed:
            return
        self.render()

    def update(self, images: Sequence[str] | None = None, **changes: object) -> LayoutResult | None:
        """Replace images and/or config fields, then re-render and re-probe.

        Keyword arguments are :class:`CollageConfig` field names.
        """
        if self._destroyed:
            return None
        if images is not None:
            self.images = list(images)
        if changes:
            self.config = dataclasses.replace(self.config, **changes)
        layout = self.render()
        self.load_missing_ratios()
        return layout

    def destroy(self) -> None:
        with self._lock:
            self._destroyed = True
            self.layout = LayoutResult()
        self._probe.close()

    def __enter__(self) -> CollageSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()
