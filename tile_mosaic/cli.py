"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from tile_mosaic.config import MosaicConfig
from tile_mosaic.image_io import (
    TileSourceError,
    load_target,
    save_candidates,
    save_image,
    save_labels,
)
from tile_mosaic.mosaic import build_mosaic
from tile_mosaic.tiles import generate_candidates

app = typer.Typer(
    name="tile-mosaic",
    help="Build photo mosaics out of a folder of tile images.",
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


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]error:[/bold red] {message}")
    raise typer.Exit(1)


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- build command -----------------------------------------------------

@app.command()
def build(
    target: Path = typer.Argument(..., help="Image to recreate as a mosaic"),
    tiles: Path = typer.Argument(..., help="Folder of tile images"),
    output: Path = typer.Option(
        _DEFAULTS.output, "--output", "-o", help="Mosaic image path",
    ),
    cell_size: int = typer.Option(
        _DEFAULTS.cell_size, "--size", "-s", help="Tile side length in pixels",
    ),
    grid_width: int = typer.Option(
        _DEFAULTS.grid_width, "--width", "-w", help="Number of tiles across",
    ),
    mirror: bool = typer.Option(
        _DEFAULTS.allow_mirror, "--mirror", "-m", help="Allow mirrored tiles",
    ),
    rotate: bool = typer.Option(
        _DEFAULTS.allow_rotate, "--rotate", "-r", help="Allow rotated tiles",
    ),
    invert: bool = typer.Option(
        _DEFAULTS.allow_invert, "--invert", "-I", help="Allow colour-inverted tiles",
    ),
    depth: int = typer.Option(
        _DEFAULTS.depth, "--depth", "-p",
        help="Layer transparent tiles over solid ones up to this depth (0 = off)",
    ),
    sqrt_distance: bool = typer.Option(
        _DEFAULTS.sqrt_distance, "--sqrt",
        help="Sum Euclidean instead of squared Lab distances",
    ),
    labels: Path | None = typer.Option(
        None, "--labels", "-l", help="Also write the grid of tile names here",
    ),
    unnamed_label: str = typer.Option(
        _DEFAULTS.unnamed_label, "--unnamed",
        help="Label-grid token for composited tiles that have no name",
    ),
    debug_dir: Path | None = typer.Option(
        None, "--debug", "-d", help="Dump every candidate tile into this folder",
    ),
    workers: int | None = typer.Option(
        _DEFAULTS.workers, "--workers", "-j", help="Worker threads",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Recreate TARGET out of the images in TILES."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            cell_size=cell_size,
            grid_width=grid_width,
            allow_mirror=mirror,
            allow_rotate=rotate,
            allow_invert=invert,
            depth=depth,
            sqrt_distance=sqrt_distance,
            workers=workers,
            output=output,
            labels_output=labels,
            unnamed_label=unnamed_label,
            debug_dir=debug_dir,
        )
    except ValueError as err:
        _fail(str(err))

    console.print(Panel.fit(
        f"[bold]TILE MOSAIC[/bold]\n"
        f"Cells: {cfg.grid_width} across x {cfg.cell_size}px  |  Depth: {cfg.depth}\n"
        f"Mirror: {cfg.allow_mirror}  |  Rotate: {cfg.allow_rotate}  |  "
        f"Invert: {cfg.allow_invert}",
        border_style="cyan",
    ))
    t_total = time.perf_counter()

    try:
        image = load_target(target)
        candidates = generate_candidates(
            tiles, cfg.cell_size,
            mirror=cfg.allow_mirror,
            rotate=cfg.allow_rotate,
            invert=cfg.allow_invert,
            depth=cfg.depth,
            workers=cfg.workers,
        )
    except TileSourceError as err:
        _fail(str(err))

    if cfg.debug_dir is not None:
        save_candidates((c.pixels for c in candidates), cfg.debug_dir)

    try:
        result = build_mosaic(image, candidates, cfg)
    except ValueError as err:
        _fail(str(err))

    save_image(result.image, cfg.output)
    if result.labels is not None:
        save_labels(result.labels, cfg.labels_output)

    elapsed = time.perf_counter() - t_total
    h, w = result.image.shape[:2]
    console.print(Panel.fit(
        f"[bold green]DONE[/bold green] - [bold]{cfg.output}[/bold]\n"
        f"[dim]{result.grid_width}x{result.grid_height} cells = {w}x{h} px  "
        f"candidates={len(candidates)}  error={result.mean_error:.1f}  "
        f"time={elapsed:.1f}s[/dim]",
        border_style="green",
    ))


# -- tiles command -----------------------------------------------------

@app.command("tiles")
def dump_tiles(
    tiles: Path = typer.Argument(..., help="Folder of tile images"),
    output_dir: Path = typer.Argument(..., help="Folder for the numbered candidates"),
    cell_size: int = typer.Option(_DEFAULTS.cell_size, "--size", "-s"),
    mirror: bool = typer.Option(_DEFAULTS.allow_mirror, "--mirror", "-m"),
    rotate: bool = typer.Option(_DEFAULTS.allow_rotate, "--rotate", "-r"),
    invert: bool = typer.Option(_DEFAULTS.allow_invert, "--invert", "-I"),
    depth: int = typer.Option(_DEFAULTS.depth, "--depth", "-p"),
    workers: int | None = typer.Option(_DEFAULTS.workers, "--workers", "-j"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Generate the candidate pool from TILES and save it to OUTPUT_DIR."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(cell_size=cell_size, depth=depth, workers=workers)
        candidates = generate_candidates(
            tiles, cfg.cell_size,
            mirror=mirror, rotate=rotate, invert=invert,
            depth=cfg.depth, workers=cfg.workers,
        )
    except (TileSourceError, ValueError) as err:
        _fail(str(err))

    count = save_candidates((c.pixels for c in candidates), output_dir)
    console.print(f"[green]✓[/green] {count} candidates saved to {output_dir}/")


if __name__ == "__main__":
    app()
