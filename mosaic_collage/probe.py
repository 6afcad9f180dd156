"""Out-of-band aspect-ratio measurement.

:class:`RatioProbe` owns the ratio cache and the set of in-flight
probes. Each source is probed at most once at a time; a successful probe
stores its ratio and notifies the caller, a failed one is dropped and the
image keeps whatever ratio the layout falls back to.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path

import requests
from PIL import Image

logger = logging.getLogger(__name__)

ResolveDimensions = Callable[[str], float]
RatioCallback = Callable[[str, float], None]


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def read_image_ratio(source: str | Path, timeout: float = 10.0) -> float:
    """Return width / height of the image at *source*.

    Only the image header is read. Remote sources are fetched with
    ``requests``; HTTP errors propagate.

    Raises:
        ValueError: The image reports a zero height.
    """
    source = str(source)
    if _is_remote(source):
        with requests.get(source, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            resp.raw.decode_content = True
            with Image.open(resp.raw) as img:
                w, h = img.size
    else:
        with Image.open(source) as img:
            w, h = img.size
    if h == 0:
        raise ValueError(f"Image has zero height: {source}")
    return w / h


class RatioProbe:
    """Measured-ratio cache fed by asynchronous probes.

    Args:
        resolve_dimensions: Callable returning the aspect ratio of a source,
                            raising on failure. Runs on the executor.
        executor:           Where probes run. A private thread pool is
                            created (and shut down on :meth:`close`) when
                            omitted.
    """

    def __init__(
        self,
        resolve_dimensions: ResolveDimensions = read_image_ratio,
        executor: Executor | None = None,
    ) -> None:
        self._resolve = resolve_dimensions
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="ratio-probe",
        )
        self._ratios: dict[str, float] = {}
        self._pending: set[str] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> dict[str, float]:
        """Copy of the measured ratios, safe to hand to the layout."""
        with self._lock:
            return dict(self._ratios)

    def is_pending(self, source: str) -> bool:
        with self._lock:
            return source in self._pending

    def request(self, source: str, on_ratio: RatioCallback | None = None) -> bool:
        """Start probing *source* unless it is measured or already in flight.

        Returns ``True`` when a probe was submitted.
        """
        with self._lock:
            if self._closed or source in self._ratios or source in self._pending:
                return False
            self._pending.add(source)

        logger.debug("Probing %s", source)
        future = self._executor.submit(self._resolve, source)
        future.add_done_callback(partial(self._complete, source, on_ratio))
        return True

    def _complete(
        self,
        source: str,
        on_ratio: RatioCallback | None,
        future: Future,
    ) -> None:
        with self._lock:
            self._pending.discard(source)
            if self._closed or future.cancelled():
                return

        exc = future.exception()
        if exc is not None:
            logger.debug("Probe failed for %s: %s", source, exc)
            return
        ratio = future.result()
        if not isinstance(ratio, (int, float)) or not math.isfinite(ratio) or ratio <= 0:
            logger.debug("Probe for %s gave no usable ratio (%r)", source, ratio)
            return

        with self._lock:
            if self._closed or source in self._ratios:
                return
            self._ratios[source] = ratio

        logger.debug("Measured %s -> %.4f", source, ratio)
        if on_ratio is not None:
            on_ratio(source, ratio)

    def close(self) -> None:
        """Stop accepting probes and ignore any still in flight."""
        with self._lock:
            self._closed = True
            self._pending.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)


def measure_ratios(
    sources: Iterable[str],
    resolve_dimensions: ResolveDimensions = read_image_ratio,
    max_workers: int = 8,
) -> dict[str, float]:
    """Probe every source and block until all probes have finished.

    Failed probes are simply missing from the result.
    """
    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="ratio-probe",
    ) as pool:
        probe = RatioProbe(resolve_dimensions, executor=pool)
        for src in sources:
            probe.request(src)
    # leaving the pool joins every worker, done-callbacks included
    ratios = probe.snapshot()
    probe.close()
    return ratios
