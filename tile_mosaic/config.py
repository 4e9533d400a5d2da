"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        cell_size:      Side length in pixels of one grid cell (and of every tile).
        grid_width:     Number of cells across; the row count follows from the
                        target's aspect ratio.
        allow_mirror:   Add horizontally mirrored copies of every tile.
        allow_rotate:   Add 90, 180 and 270 degree rotated copies.
        allow_invert:   Add colour-inverted copies.
        depth:          Permutation depth for layering transparent tiles over
                        solid ones (0 = no compositing).
        sqrt_distance:  Sum per-pixel Euclidean Lab distances instead of the
                        squared ones.
        workers:        Thread-pool size for tile loading and matching
                        (None = executor default).
        output:         Path of the mosaic image.
        labels_output:  Optional path for the text grid of tile names.
        unnamed_label:  Token written in the label grid for unnamed
                        (composited) tiles.
        debug_dir:      Optional folder that receives every candidate tile.
    """

    # Grid
    cell_size: int = 16
    grid_width: int = 16

    # Augmentation
    allow_mirror: bool = False
    allow_rotate: bool = False
    allow_invert: bool = False
    depth: int = 0

    # Matching
    sqrt_distance: bool = False
    workers: int | None = None

    # Output
    output: Path = Path("output.png")
    labels_output: Path | None = None
    unnamed_label: str = "-"
    debug_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.cell_size <= 0:
            msg = f"cell_size must be positive, got {self.cell_size}"
            raise ValueError(msg)
        if self.grid_width <= 0:
            msg = f"grid_width must be positive, got {self.grid_width}"
            raise ValueError(msg)
        if self.depth < 0:
            msg = f"depth must be non-negative, got {self.depth}"
            raise ValueError(msg)
        if self.workers is not None and self.workers <= 0:
            msg = f"workers must be positive, got {self.workers}"
            raise ValueError(msg)
        if not self.unnamed_label or any(c.isspace() for c in self.unnamed_label):
            msg = f"unnamed_label must be a non-empty token, got {self.unnamed_label!r}"
            raise ValueError(msg)
