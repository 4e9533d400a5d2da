"""Tile candidate generation: loading, augmentation and layer permutation.

A small folder of tile images is expanded into a much larger pool of
candidates:

- **Geometric / tonal augmentation** - horizontal mirrors, 90° rotations
  and colour inversion.
- **Permutation** - tiles with transparency are stacked on top of each
  other (up to *depth* layers) and every stack is painted over every
  fully opaque tile.

The pool order is fixed once generated; matches refer to candidates by
index only.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from tile_mosaic.image_io import load_tiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TileCandidate:
    """One square tile of the candidate pool.

    Attributes:
        pixels: (S, S, 3) uint8 RGB, or (S, S, 4) RGBA before permutation.
        name:   Source file stem; empty for composited tiles.
    """

    pixels: np.ndarray
    name: str = ""


# -- Pixel helpers -----------------------------------------------------


def _normalize(pixels: np.ndarray) -> np.ndarray:
    if np.issubdtype(pixels.dtype, np.integer):
        return pixels.astype(np.float64) / 255.0
    return pixels.astype(np.float64)


def _quantize(pixels: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(pixels * 255.0), 0, 255).astype(np.uint8)


def _alpha(pixels: np.ndarray) -> np.ndarray:
    if pixels.shape[-1] == 4:
        return pixels[..., 3:4]
    return np.ones(pixels.shape[:-1] + (1,), dtype=pixels.dtype)


def blend_over(bottom: np.ndarray, top: np.ndarray) -> np.ndarray:
    """Paint *top* over *bottom* with standard "over" compositing.

    Either image may have 3 (opaque) or 4 (RGBA, straight alpha)
    channels; the result has as many channels as *bottom*.  Integer
    inputs are blended in [0, 1] floats and quantized back to uint8;
    float inputs are expected in [0, 1] and stay float, so chained blends
    only round once.

    With an opaque bottom this reduces to
    ``top_alpha * top + (1 - top_alpha) * bottom`` per channel.
    """
    integer = np.issubdtype(bottom.dtype, np.integer)
    b = _normalize(bottom)
    t = _normalize(top)

    top_a = _alpha(t)
    bottom_a = _alpha(b) * (1.0 - top_a)
    out_a = top_a + bottom_a
    weighted = t[..., :3] * top_a + b[..., :3] * bottom_a
    rgb = np.divide(
        weighted, out_a, out=np.zeros_like(weighted), where=out_a > 0,
    )

    out = np.concatenate([rgb, out_a], axis=-1) if b.shape[-1] == 4 else rgb
    return _quantize(out) if integer else out


def is_transparent(pixels: np.ndarray) -> bool:
    """True when any pixel is not fully opaque."""
    return pixels.shape[-1] == 4 and bool(np.any(pixels[..., 3] != 255))


def _mirror(pixels: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(pixels[:, ::-1])


def _rotate(pixels: np.ndarray, quarter_turns: int) -> np.ndarray:
    # negative k turns clockwise
    return np.ascontiguousarray(np.rot90(pixels, k=-quarter_turns))


def _invert(pixels: np.ndarray) -> np.ndarray:
    out = pixels.copy()
    out[..., :3] = 255 - out[..., :3]
    return out


# -- Augmentation ------------------------------------------------------


def augment(
    tiles: Sequence[TileCandidate],
    mirror: bool = False,
    rotate: bool = False,
    invert: bool = False,
) -> list[TileCandidate]:
    """Expand *tiles* with mirrored, rotated and inverted copies.

    Order: originals, mirrors, then every image so far rotated 90°, then
    180°, then 270° (clockwise), then inverted copies of everything so
    far.  Copies keep the name of their source tile.
    """
    out = list(tiles)

    if mirror:
        out += [TileCandidate(_mirror(t.pixels), t.name) for t in out]

    if rotate:
        base = list(out)
        for turns in (1, 2, 3):
            out += [TileCandidate(_rotate(t.pixels, turns), t.name) for t in base]

    if invert:
        out += [TileCandidate(_invert(t.pixels), t.name) for t in out]

    return out


# -- Permutation -------------------------------------------------------


def combine_transparents(
    layers: Sequence[np.ndarray],
    depth: int,
) -> list[np.ndarray]:
    """Stack transparent layers on top of each other up to *depth* deep.

    Depth 1 is the layers themselves.  Every further level paints each
    original layer over each stack of the previous level, so level *d*
    holds ``len(layers) ** d`` stacks exactly *d* layers deep.  All levels
    are returned, shallowest first.

    Stacks are never rebuilt from earlier levels, so no duplicates are
    produced: two layers at depth 3 give 2 + 4 + 8 = 14 stacks, where
    re-stacking every combination made so far would give 18.

    Args:
        layers: (S, S, 4) float arrays in [0, 1].
        depth:  Maximum stack depth (>= 1).
    """
    stacks = list(layers)
    frontier = stacks
    for level in range(2, depth + 1):
        frontier = [blend_over(stack, layer) for stack in frontier for layer in layers]
        logger.debug("Depth %d: %d stacks", level, len(frontier))
        stacks = stacks + frontier
    return stacks


def permute(tiles: Sequence[TileCandidate], depth: int) -> list[TileCandidate]:
    """Composite transparent stacks over solid tiles.

    Tiles are split into transparent and solid ones.  Every stack from
    :func:`combine_transparents` is painted over every solid tile
    (unnamed composites, solid-major order), followed by the solid tiles
    themselves.  All candidates come out as opaque RGB.
    """
    layers = [t for t in tiles if is_transparent(t.pixels)]
    solids = [t for t in tiles if not is_transparent(t.pixels)]
    logger.info(
        "Permuting %d transparent over %d solid tiles (depth %d) …",
        len(layers), len(solids), depth,
    )

    stacks = combine_transparents([_normalize(t.pixels) for t in layers], depth)

    composites = [
        TileCandidate(_quantize(blend_over(_normalize(solid.pixels[..., :3]), stack)))
        for solid in solids
        for stack in stacks
    ]
    return composites + [_opaque(t) for t in solids]


def _opaque(tile: TileCandidate) -> TileCandidate:
    return TileCandidate(np.ascontiguousarray(tile.pixels[..., :3]), tile.name)


# -- Pool generation ---------------------------------------------------


def generate_candidates(
    directory: str | Path,
    cell_size: int,
    mirror: bool = False,
    rotate: bool = False,
    invert: bool = False,
    depth: int = 0,
    workers: int | None = None,
) -> list[TileCandidate]:
    """Build the candidate pool from every file in *directory*.

    Args:
        directory: Folder of tile source images.
        cell_size: Side length every tile is fill-resized to.
        mirror:    Add horizontal mirrors.
        rotate:    Add 90/180/270 degree rotations.
        invert:    Add colour-inverted copies.
        depth:     Permutation depth; 0 keeps the augmented tiles as they
                   are (alpha dropped).
        workers:   Thread count for loading.

    Returns:
        Ordered list of opaque (cell_size, cell_size, 3) candidates.

    Raises:
        TileSourceError: if any source cannot be read or decoded.
    """
    t0 = time.perf_counter()
    sources = [
        TileCandidate(pixels, name)
        for name, pixels in load_tiles(directory, cell_size, workers)
    ]
    tiles = augment(sources, mirror=mirror, rotate=rotate, invert=invert)
    logger.info("Augmented %d sources into %d tiles", len(sources), len(tiles))

    if depth > 0:
        candidates = permute(tiles, depth)
    else:
        candidates = [_opaque(t) for t in tiles]

    logger.info(
        "Candidate pool ready: %d tiles  (%.1f s)",
        len(candidates), time.perf_counter() - t0,
    )
    return candidates
