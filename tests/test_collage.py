"""Tests for probing, sessions, markup, interaction, export and the CLI."""

from __future__ import annotations

import io
import json
import threading
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest
import requests
from PIL import Image
from typer.testing import CliRunner

from mosaic_collage import probe as probe_module
from mosaic_collage.cli import app
from mosaic_collage.config import CollageConfig
from mosaic_collage.html_export import render_stage, save_stage
from mosaic_collage.interaction import (
    clamp,
    drag_position,
    hit_test,
    resize_in_collage,
    resize_item,
)
from mosaic_collage.layout import compute_layout
from mosaic_collage.markup import (
    parse_bool,
    parse_collage_attributes,
    parse_gap,
    parse_image_list,
    parse_number,
)
from mosaic_collage.probe import RatioProbe, measure_ratios, read_image_ratio
from mosaic_collage.session import CollageSession

# -- Fixtures ----------------------------------------------------------

URL_IMAGE = "https://picsum.photos/id/1/400/200"


class ManualExecutor(Executor):
    """Queues jobs until :meth:`run_all` is called."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.jobs.append((future, fn, args))
        return future

    def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for future, fn, args in jobs:
            try:
                future.set_result(fn(*args))
            except Exception as exc:  # noqa: BLE001 - handed to the future
                future.set_exception(exc)


class FakeResolver:
    def __init__(self, ratios: dict[str, float]) -> None:
        self.ratios = ratios
        self.calls: list[str] = []

    def __call__(self, source: str) -> float:
        self.calls.append(source)
        if source not in self.ratios:
            raise OSError(f"cannot open {source}")
        return self.ratios[source]


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def tmp_image(tmp_path: Path) -> Path:
    """Write a small 64x48 PNG to disk."""
    p = tmp_path / "test.png"
    Image.new("RGB", (64, 48), (200, 120, 40)).save(p)
    return p


# -- Reading image dimensions ------------------------------------------

class TestReadImageRatio:
    def test_local_file(self, tmp_image: Path) -> None:
        assert read_image_ratio(tmp_image) == pytest.approx(64 / 48)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            read_image_ratio(tmp_path / "nope.png")

    def test_remote(self, monkeypatch: pytest.MonkeyPatch) -> None:
        buf = io.BytesIO()
        Image.new("RGB", (30, 60)).save(buf, format="PNG")

        buf.seek(0)

        class _Response:
            raw = buf
            closed = False

            def __enter__(self):
                return self

            def __exit__(self, *exc_info) -> None:
                _Response.closed = True

            def raise_for_status(self) -> None:
                return None

        seen = {}

        def fake_get(url, stream, timeout):
            seen.update(url=url, stream=stream, timeout=timeout)
            return _Response()

        monkeypatch.setattr(probe_module.requests, "get", fake_get)
        assert read_image_ratio("https://example.com/a.png", timeout=3) == pytest.approx(0.5)
        assert seen == {"url": "https://example.com/a.png", "stream": True, "timeout": 3}
        assert _Response.closed

    def test_remote_http_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class _Response:
            def __enter__(self):
                return self

            def __exit__(self, *exc_info) -> None:
                return None

            def raise_for_status(self) -> None:
                raise requests.HTTPError("404 Client Error")

        monkeypatch.setattr(probe_module.requests, "get", lambda url, stream, timeout: _Response())
        with pytest.raises(requests.HTTPError):
            read_image_ratio("https://example.com/missing.png")


# -- Ratio probe -------------------------------------------------------

class TestRatioProbe:
    def test_success_stores_and_notifies(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(FakeResolver({"a.jpg": 0.5}), executor=executor)
        seen: list[tuple[str, float]] = []
        assert probe.request("a.jpg", lambda s, r: seen.append((s, r)))
        assert probe.is_pending("a.jpg")

        executor.run_all()
        assert seen == [("a.jpg", 0.5)]
        assert probe.snapshot() == {"a.jpg": 0.5}
        assert not probe.is_pending("a.jpg")

    def test_pending_requests_deduplicated(self, executor: ManualExecutor) -> None:
        resolver = FakeResolver({"a.jpg": 0.5})
        probe = RatioProbe(resolver, executor=executor)
        assert probe.request("a.jpg")
        assert not probe.request("a.jpg")
        executor.run_all()
        assert resolver.calls == ["a.jpg"]

    def test_measured_source_not_probed_again(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(FakeResolver({"a.jpg": 0.5}), executor=executor)
        probe.request("a.jpg")
        executor.run_all()
        assert not probe.request("a.jpg")

    def test_failure_is_swallowed(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(FakeResolver({}), executor=executor)
        seen: list[str] = []
        probe.request("broken.jpg", lambda s, r: seen.append(s))
        executor.run_all()
        assert seen == []
        assert probe.snapshot() == {}
        assert not probe.is_pending("broken.jpg")
        # may be retried once the failed probe is done
        assert probe.request("broken.jpg")

    def test_unusable_ratio_ignored(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(lambda src: 0.0, executor=executor)
        probe.request("a.jpg")
        executor.run_all()
        assert probe.snapshot() == {}

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_ratio_ignored(self, executor: ManualExecutor, bad: float) -> None:
        probe = RatioProbe(lambda src: bad, executor=executor)
        seen: list[str] = []
        probe.request("a.jpg", lambda s, r: seen.append(s))
        executor.run_all()
        assert seen == []
        assert probe.snapshot() == {}
        # the layout still works off the (empty) cache
        layout = compute_layout(["a.jpg"], probe.snapshot(), 400, 300)
        assert len(layout.items) == 1

    def test_completion_after_close_is_noop(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(FakeResolver({"a.jpg": 0.5}), executor=executor)
        seen: list[str] = []
        probe.request("a.jpg", lambda s, r: seen.append(s))
        probe.close()
        executor.run_all()
        assert seen == []
        assert probe.snapshot() == {}
        assert probe.closed
        assert not probe.request("b.jpg")

    def test_snapshot_is_a_copy(self, executor: ManualExecutor) -> None:
        probe = RatioProbe(FakeResolver({"a.jpg": 0.5}), executor=executor)
        probe.request("a.jpg")
        executor.run_all()
        snap = probe.snapshot()
        snap["a.jpg"] = 9.0
        assert probe.snapshot() == {"a.jpg": 0.5}

    def test_measure_ratios_blocks_until_done(self) -> None:
        resolver = FakeResolver({"a.jpg": 2.0, "b.jpg": 0.5})
        ratios = measure_ratios(["a.jpg", "b.jpg", "broken.jpg"], resolver, max_workers=2)
        assert ratios == {"a.jpg": 2.0, "b.jpg": 0.5}
        assert sorted(resolver.calls) == ["a.jpg", "b.jpg", "broken.jpg"]


# -- Session -----------------------------------------------------------

class TestCollageSession:
    def _session(self, executor, ratios, images=None, **cfg):
        renders: list = []
        probe = RatioProbe(FakeResolver(ratios), executor=executor)
        session = CollageSession(
            images or ["a.jpg", URL_IMAGE],
            CollageConfig(width=400, height=300, gap=0, **cfg),
            on_render=lambda layout, config: renders.append(layout),
            probe=probe,
        )
        return session, renders

    def test_renders_immediately(self, executor: ManualExecutor) -> None:
        session, renders = self._session(executor, {"a.jpg": 0.5})
        assert len(renders) == 1
        first = session.layout.items[0]
        assert first.width / first.height == pytest.approx(1.5)

    def test_only_unknown_images_probed(self, executor: ManualExecutor) -> None:
        self._session(executor, {"a.jpg": 0.5}, images=["a.jpg", URL_IMAGE, "a.jpg"])
        assert [args for _, _, args in executor.jobs] == [("a.jpg",)]

    def test_probe_success_rerenders(self, executor: ManualExecutor) -> None:
        session, renders = self._session(executor, {"a.jpg": 0.5})
        executor.run_all()
        assert len(renders) == 2
        assert session.ratios == {"a.jpg": 0.5}
        first = session.layout.items[0]
        assert first.width / first.height == pytest.approx(0.5)

    def test_probe_failure_keeps_layout(self, executor: ManualExecutor) -> None:
        session, renders = self._session(executor, {})
        before = session.layout
        executor.run_all()
        assert len(renders) == 1
        assert session.layout == before

    def test_destroy_suppresses_late_probes(self, executor: ManualExecutor) -> None:
        session, renders = self._session(executor, {"a.jpg": 0.5})
        session.destroy()
        executor.run_all()
        assert session.destroyed
        assert len(renders) == 1
        assert session.layout.items == ()
        assert session.render() is None
        assert session.update(gap=4) is None

    def test_update_config(self, executor: ManualExecutor) -> None:
        session, renders = self._session(executor, {"a.jpg": 0.5})
        executor.run_all()
        layout = session.update(gap=10)
        assert session.config.gap == 10
        assert len(renders) == 3
        assert layout is session.layout
        # both images now fit one row
        assert layout.items[1].x == pytest.approx(layout.items[0].width + 10)

    def test_update_images_probes_new_ones(self, executor: ManualExecutor) -> None:
        session, _ = self._session(executor, {"a.jpg": 0.5, "b.jpg": 2.0})
        executor.run_all()
        session.update(images=["a.jpg", "b.jpg"])
        assert [args for _, _, args in executor.jobs] == [("b.jpg",)]

    def test_update_rejects_bad_config(self, executor: ManualExecutor) -> None:
        session, _ = self._session(executor, {})
        with pytest.raises(ValueError):
            session.update(width=0)

    def test_context_manager_destroys(self, executor: ManualExecutor) -> None:
        session, _ = self._session(executor, {})
        with session as s:
            assert not s.destroyed
        assert session.destroyed

    def test_default_reader_uses_configured_timeout(
        self, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        called = threading.Event()
        seen = {}

        def fake_get(url, stream, timeout):
            seen.update(url=url, timeout=timeout)
            called.set()
            raise requests.ConnectionError("offline")

        monkeypatch.setattr(probe_module.requests, "get", fake_get)
        session = CollageSession(
            ["https://example.com/a.png"], CollageConfig(probe_timeout=2.0),
        )
        try:
            assert called.wait(5)
        finally:
            session.destroy()
        assert seen == {"url": "https://example.com/a.png", "timeout": 2.0}

    def test_destroy_during_render_drops_layout(self, executor: ManualExecutor) -> None:
        class DestroyingCache(RatioProbe):
            session = None

            def snapshot(self):
                ratios = super().snapshot()
                if self.session is not None:
                    self.session.destroy()
                return ratios

        renders: list = []
        cache = DestroyingCache(FakeResolver({"a.jpg": 0.5}), executor=executor)
        session = CollageSession(
            ["a.jpg"], CollageConfig(width=400, height=300),
            on_render=lambda layout, config: renders.append(layout),
            probe=cache,
        )
        cache.session = session
        assert session.render() is None
        assert len(renders) == 1
        assert session.layout.items == ()
        assert session.destroyed


# -- Config & markup ---------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = CollageConfig()
        assert (cfg.width, cfg.height, cfg.gap) == (720, 560, 2.0)
        assert cfg.stretch_rows is True

    def test_frozen(self) -> None:
        cfg = CollageConfig()
        with pytest.raises(AttributeError):
            cfg.gap = 4  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [{"width": 0}, {"height": -5}, {"gap": -1}, {"fallback_ratio": 0}],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            CollageConfig(**kwargs)


class TestMarkup:
    def test_image_list(self) -> None:
        assert parse_image_list(" a.jpg, ,b.jpg ,") == ["a.jpg", "b.jpg"]
        assert parse_image_list(None) == []

    def test_numbers(self) -> None:
        assert parse_number("640") == 640
        assert parse_number("abc") is None
        assert parse_number("inf") is None
        assert parse_number("") is None

    def test_bools(self) -> None:
        assert parse_bool(" Yes ") is True
        assert parse_bool("off") is False
        assert parse_bool("maybe") is None

    def test_gap(self) -> None:
        assert parse_gap("12px") == 12
        assert parse_gap("0") == 0
        assert parse_gap("-3") is None
        assert parse_gap("wide") is None

    def test_full_attributes(self) -> None:
        images, cfg = parse_collage_attributes({
            "data-images": "a.jpg, b.jpg",
            "data-width": "640",
            "data-height": "480",
            "data-gaps-images": "6",
            "data-enable-drag": "true",
            "data-enable-resize": "1",
            "data-min-image-size": "80",
            "class": "gallery wide",
        })
        assert images == ["a.jpg", "b.jpg"]
        assert (cfg.width, cfg.height, cfg.gap) == (640, 480, 6)
        assert cfg.enable_drag and cfg.enable_resize
        assert cfg.min_image_size == 80
        assert cfg.class_name == "gallery wide"

    def test_defaults_for_bad_values(self) -> None:
        _, cfg = parse_collage_attributes({
            "data-images": "a.jpg",
            "data-width": "wide",
            "data-gaps-images": "-4",
            "data-enable-drag": "perhaps",
        })
        assert cfg == CollageConfig()

    def test_requires_images(self) -> None:
        with pytest.raises(ValueError, match="data-images"):
            parse_collage_attributes({"data-width": "300"})


# -- Interaction -------------------------------------------------------

class TestInteraction:
    def test_clamp(self) -> None:
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0

    def test_drag_within_bounds(self) -> None:
        assert drag_position(10, 10, 5, 7, 100, 50, 400, 300) == (15, 17)

    def test_drag_clamped(self) -> None:
        assert drag_position(10, 10, 1000, -50, 100, 50, 400, 300) == (300, 0)

    def test_drag_item_larger_than_container(self) -> None:
        assert drag_position(0, 0, 30, 30, 500, 50, 400, 300) == (0, 30)

    def test_resize_keeps_ratio(self) -> None:
        w, h = resize_item(100, 20, 0, 0, 2.0, 400, 300)
        assert (w, h) == (120, 60)

    def test_resize_minimum(self) -> None:
        assert resize_item(100, -500, 0, 0, 1.0, 400, 300, min_size=40) == (40, 40)
        # very small minimums are raised to the handle size
        assert resize_item(100, -500, 0, 0, 1.0, 400, 300, min_size=2) == (10, 10)

    def test_resize_bounded_by_container(self) -> None:
        # right edge allows 300, bottom edge allows (300 - 200) * 2 = 200
        w, h = resize_item(100, 500, 100, 200, 2.0, 400, 300)
        assert (w, h) == (200, 100)

    def test_resize_in_collage_uses_config(self) -> None:
        cfg = CollageConfig(width=400, height=300, min_image_size=80)
        assert resize_in_collage(cfg, 100, -500, 0, 0, 1.0) == (80, 80)
        # right edge of a 400 px container
        assert resize_in_collage(cfg, 100, 500, 100, 0, 1.0) == (300, 300)

    def test_resize_invalid_ratio(self) -> None:
        with pytest.raises(ValueError):
            resize_item(100, 0, 0, 0, 0, 400, 300)

    def test_hit_test(self) -> None:
        squares = [f"https://picsum.photos/id/{i}/100/100" for i in range(4)]
        layout = compute_layout(squares, {}, 400, 300, gap=0)
        # scaled to 0.75 and shifted 50 px right: tiles are 150 px
        assert hit_test(layout, 60, 10) == 0
        assert hit_test(layout, 210, 10) == 1
        assert hit_test(layout, 210, 160) == 3
        assert hit_test(layout, 10, 10) is None


# -- HTML export -------------------------------------------------------

class TestHtmlExport:
    def test_one_tile_per_image(self) -> None:
        cfg = CollageConfig(width=400, height=300)
        layout = compute_layout(["a.jpg", "b.jpg", "c.jpg"], {}, 400, 300)
        markup = render_stage(layout, cfg)
        for i in range(3):
            assert f'data-index="{i}"' in markup
        assert "width: 400px; height: 300px;" in markup
        assert "resize-handle" not in markup

    def test_sources_escaped(self) -> None:
        cfg = CollageConfig(width=400, height=300)
        layout = compute_layout(['x.jpg?a=1&b="2"'], {}, 400, 300)
        markup = render_stage(layout, cfg)
        assert 'src="x.jpg?a=1&amp;b=&quot;2&quot;"' in markup

    def test_empty_placeholder(self) -> None:
        markup = render_stage(compute_layout([], {}, 400, 300), CollageConfig())
        assert "No Images" in markup

    def test_resize_handles_and_classes(self) -> None:
        cfg = CollageConfig(enable_resize=True, class_name="wall")
        layout = compute_layout(["a.jpg"], {}, cfg.width, cfg.height)
        markup = render_stage(layout, cfg)
        assert 'data-resize-handle="true"' in markup
        assert 'class="img_collage wall"' in markup

    def test_min_image_size_exported_with_resize(self) -> None:
        layout = compute_layout(["a.jpg"], {}, 720, 560)
        markup = render_stage(layout, CollageConfig(enable_resize=True, min_image_size=80))
        assert 'data-min-image-size="80"' in markup
        floored = render_stage(layout, CollageConfig(enable_resize=True, min_image_size=2))
        assert 'data-min-image-size="10"' in floored
        assert "data-min-image-size" not in render_stage(layout, CollageConfig())

    def test_cursor(self) -> None:
        cfg = CollageConfig(enable_drag=True)
        layout = compute_layout(["a.jpg"], {}, cfg.width, cfg.height)
        assert "cursor: default;" in render_stage(layout, cfg)
        assert "cursor: pointer;" in render_stage(layout, cfg, clickable=True)
        assert "cursor: move" not in render_stage(layout, cfg)

    def test_save(self, tmp_path: Path) -> None:
        cfg = CollageConfig()
        layout = compute_layout(["a.jpg"], {}, cfg.width, cfg.height)
        out = save_stage(layout, cfg, tmp_path / "c.html")
        text = out.read_text(encoding="utf-8")
        assert text.startswith("<!DOCTYPE html>")
        assert 'src="a.jpg"' in text


# -- CLI ---------------------------------------------------------------

class TestCli:
    runner = CliRunner()

    def test_layout_json(self) -> None:
        result = self.runner.invoke(app, [
            "layout", "https://picsum.photos/id/1/1600/900",
            "https://picsum.photos/id/2/500/500",
            "--width", "400", "--height", "300", "--gap", "0", "--json",
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [item["index"] for item in data["items"]] == [0, 1]
        assert data["scale"] == 1
        assert data["topOffset"] == pytest.approx(78)

    def test_layout_table_with_local_files(self, tmp_image: Path) -> None:
        result = self.runner.invoke(app, ["layout", "--input", str(tmp_image.parent)])
        assert result.exit_code == 0, result.output
        assert "1 images in 720x560" in result.output
        assert "scale=1.000" in result.output

    def test_html(self, tmp_path: Path) -> None:
        out = tmp_path / "out" / "collage.html"
        result = self.runner.invoke(app, [
            "html", "a.jpg", "b.jpg", "--no-probe", "-o", str(out), "--resize",
        ])
        assert result.exit_code == 0, result.output
        assert out.exists()
        assert 'data-index="1"' in out.read_text(encoding="utf-8")

    def test_no_images(self) -> None:
        result = self.runner.invoke(app, ["layout"])
        assert result.exit_code == 0
        assert "No images" in result.output

    def test_bad_size(self) -> None:
        result = self.runner.invoke(app, ["layout", "a.jpg", "--width", "0"])
        assert result.exit_code == 2
