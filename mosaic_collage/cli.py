"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import json
import logging
from functools import partial
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from mosaic_collage.config import CollageConfig
from mosaic_collage.html_export import save_stage
from mosaic_collage.layout import compute_layout
from mosaic_collage.models import LayoutResult
from mosaic_collage.probe import measure_ratios, read_image_ratio
from mosaic_collage.ratios import ratio_from_url

app = typer.Typer(
    name="mosaic-collage",
    help="Lay images out as a justified mosaic inside a fixed-size box.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[str]:
    if not folder.exists():
        return []
    return sorted(
        str(f) for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


def _make_config(width: float, height: float, gap: float, stretch: bool, **extra) -> CollageConfig:
    try:
        return CollageConfig(width=width, height=height, gap=gap, stretch_rows=stretch, **extra)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _gather_sources(sources: list[str] | None, input_dir: Path | None) -> list[str]:
    images = list(sources or [])
    if input_dir is not None:
        images.extend(_collect_images(input_dir, _DEFAULTS.SUPPORTED_EXTENSIONS))
    if not images:
        console.print("\n[yellow]No images given.[/yellow]")
        console.print("Pass image paths / URLs or --input DIR and re-run.\n")
        raise typer.Exit(0)
    return images


def _run_layout(images: list[str], cfg: CollageConfig, probe: bool) -> LayoutResult:
    logger = logging.getLogger("mosaic_collage")
    ratios: dict[str, float] = {}
    if probe:
        unknown = [src for src in dict.fromkeys(images) if ratio_from_url(src) is None]
        if unknown:
            logger.info("Measuring %d image(s) ...", len(unknown))
            ratios = measure_ratios(
                unknown, partial(read_image_ratio, timeout=cfg.probe_timeout),
            )
            missed = len(unknown) - len(ratios)
            if missed:
                logger.info("%d image(s) kept the fallback ratio", missed)
    return compute_layout(
        images, ratios, cfg.width, cfg.height, cfg.gap,
        fallback_ratio=cfg.fallback_ratio,
        stretch_rows=cfg.stretch_rows,
    )


# Defaults come from CollageConfig - single source of truth
_DEFAULTS = CollageConfig()


# -- layout command ----------------------------------------------------

@app.command()
def layout(
    sources: list[str] | None = typer.Argument(None, help="Image paths or URLs"),
    input_dir: Path | None = typer.Option(
        None, "--input", "-i", help="Folder with source images",
    ),
    width: float = typer.Option(_DEFAULTS.width, "--width", "-w", help="Container width"),
    height: float = typer.Option(_DEFAULTS.height, "--height", "-h", help="Container height"),
    gap: float = typer.Option(_DEFAULTS.gap, "--gap", "-g", help="Gap between images"),
    stretch: bool = typer.Option(
        _DEFAULTS.stretch_rows, "--stretch/--no-stretch",
        help="Grow the gap between rows to fill the height",
    ),
    probe: bool = typer.Option(
        True, "--probe/--no-probe", help="Read image headers for exact ratios",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw layout as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Print the geometry of every image."""
    _setup_logging(verbose)
    cfg = _make_config(width, height, gap, stretch)
    images = _gather_sources(sources, input_dir)
    result = _run_layout(images, cfg, probe)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=f"{len(images)} images in {cfg.width:g}x{cfg.height:g}")
    for col in ("#", "source", "x", "y", "width", "height"):
        table.add_column(col, justify="left" if col == "source" else "right")
    for p in result.placements():
        table.add_row(
            str(p.index), p.source,
            f"{p.x:.1f}", f"{p.y:.1f}", f"{p.width:.1f}", f"{p.height:.1f}",
        )
    console.print(table)
    console.print(
        f"[dim]total height={result.total_height:.1f}  scale={result.scale:.3f}  "
        f"offset=({result.left_offset:.1f}, {result.top_offset:.1f})[/dim]"
    )


# -- html command ------------------------------------------------------

@app.command()
def html(
    sources: list[str] | None = typer.Argument(None, help="Image paths or URLs"),
    output: Path = typer.Option(Path("output/collage.html"), "--output", "-o"),
    input_dir: Path | None = typer.Option(None, "--input", "-i"),
    width: float = typer.Option(_DEFAULTS.width, "--width", "-w"),
    height: float = typer.Option(_DEFAULTS.height, "--height", "-h"),
    gap: float = typer.Option(_DEFAULTS.gap, "--gap", "-g"),
    stretch: bool = typer.Option(_DEFAULTS.stretch_rows, "--stretch/--no-stretch"),
    probe: bool = typer.Option(True, "--probe/--no-probe"),
    enable_drag: bool = typer.Option(_DEFAULTS.enable_drag, "--drag/--no-drag"),
    enable_resize: bool = typer.Option(_DEFAULTS.enable_resize, "--resize/--no-resize"),
    class_name: str | None = typer.Option(None, "--class", help="Extra CSS classes"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Write the collage as a standalone HTML page."""
    _setup_logging(verbose)
    cfg = _make_config(
        width, height, gap, stretch,
        enable_drag=enable_drag, enable_resize=enable_resize, class_name=class_name,
    )
    images = _gather_sources(sources, input_dir)
    result = _run_layout(images, cfg, probe)

    output.parent.mkdir(parents=True, exist_ok=True)
    save_stage(result, cfg, output)

    console.print(Panel.fit(
        f"[bold green]DONE[/bold green] - {len(images)} images -> [bold]{output}[/bold]\n"
        f"[dim]scale={result.scale:.3f}  total height={result.total_height:.1f}[/dim]",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
