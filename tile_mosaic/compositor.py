"""Assemble the mosaic image and its label grid from match results."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from tile_mosaic.matcher import MatchResult, grid_positions
from tile_mosaic.tiles import TileCandidate


def _check_count(grid_width: int, grid_height: int, results: Sequence[MatchResult]) -> None:
    if len(results) != grid_width * grid_height:
        msg = f"{len(results)} match results for a {grid_width}x{grid_height} grid"
        raise RuntimeError(msg)


def _token(name: str) -> str:
    return "_".join(name.split())


def compose(
    grid_width: int,
    grid_height: int,
    cell_size: int,
    results: Sequence[MatchResult],
    candidates: Sequence[TileCandidate],
) -> np.ndarray:
    """Paste each cell's winning tile into a fresh image.

    Returns:
        (grid_height * cell_size, grid_width * cell_size, 3) uint8.
    """
    _check_count(grid_width, grid_height, results)

    mosaic = np.zeros((grid_height * cell_size, grid_width * cell_size, 3), dtype=np.uint8)
    positions = grid_positions(grid_width, grid_height, cell_size)
    for (x, y), result in zip(positions, results, strict=True):
        mosaic[y : y + cell_size, x : x + cell_size] = candidates[result.index].pixels[..., :3]
    return mosaic


def label_grid(
    grid_width: int,
    grid_height: int,
    results: Sequence[MatchResult],
    candidates: Sequence[TileCandidate],
    unnamed: str = "-",
) -> str:
    """Names of the chosen tiles laid out like the mosaic.

    Names are separated by single spaces within a row and rows by
    newlines, with no trailing separator.  Tiles without a name
    (composites) are written as *unnamed*; whitespace inside a name is
    replaced by underscores so every cell stays a single token.
    """
    _check_count(grid_width, grid_height, results)

    names = [_token(candidates[r.index].name) or unnamed for r in results]
    rows = (names[i : i + grid_width] for i in range(0, len(names), grid_width))
    return "\n".join(" ".join(row) for row in rows)
