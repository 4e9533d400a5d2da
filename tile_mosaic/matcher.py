"""Best-fit tile search per grid cell, with early-exit pruning.

Every cell of the target is compared against every candidate in CIELAB.
Errors are accumulated row by row and a candidate is abandoned as soon
as its running error reaches the best error found so far for that cell.
Per-pixel distances are non-negative, so the running error never
decreases and pruning cannot change the winner.  Ties go to the lowest
candidate index.

Cells are independent; each one is a task on a thread pool reading the
same read-only Lab arrays.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
from PIL import Image

from tile_mosaic.color_utils import lab_distance, rgb_to_lab
from tile_mosaic.tiles import TileCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """Winning candidate for one cell."""

    index: int
    error: float


# -- Grid geometry -----------------------------------------------------


def compute_grid_size(
    width: int,
    height: int,
    grid_width: int,
    cell_size: int,
) -> tuple[int, int, int]:
    """Size of the resized target and the number of cell rows.

    The target is scaled so its width is exactly ``grid_width * cell_size``;
    the height follows from the same scale factor, rounded up.  The row
    count is the scaled height divided by *cell_size*, truncated, so a
    strip thinner than one cell may be left unused at the bottom.

    Returns:
        ``(scaled_width, scaled_height, grid_height)``.
    """
    scaled_w = grid_width * cell_size
    scaled_h = max(1, -(-height * scaled_w // width))
    grid_height = scaled_h // cell_size
    if grid_height == 0:
        msg = (
            f"Target {width}x{height} is too wide for a {grid_width}-cell grid "
            f"of {cell_size}px cells (no complete row fits)"
        )
        raise ValueError(msg)
    return scaled_w, scaled_h, grid_height


def prepare_target(image: Image.Image, grid_width: int, cell_size: int) -> np.ndarray:
    """Resize the target onto the cell grid.

    Returns:
        (grid_height * cell_size, grid_width * cell_size, 3) uint8 array.
    """
    w, h, grid_height = compute_grid_size(image.width, image.height, grid_width, cell_size)
    resized = image.convert("RGB").resize((w, h), Image.BICUBIC)
    return np.array(resized, dtype=np.uint8)[: grid_height * cell_size]


def grid_positions(
    grid_width: int,
    grid_height: int,
    cell_size: int,
) -> Iterator[tuple[int, int]]:
    """Pixel offsets ``(x, y)`` of every cell in row-major order."""
    for row in range(grid_height):
        for col in range(grid_width):
            yield col * cell_size, row * cell_size


# -- Scoring -----------------------------------------------------------


def cell_error(
    cell: np.ndarray,
    candidate: np.ndarray,
    sqrt: bool = False,
    bound: float = math.inf,
) -> float:
    """Summed Lab distance between two (S, S, 3) Lab blocks.

    Rows are accumulated in order.  Once the running sum reaches *bound*
    the partial sum is returned immediately.  The bound is checked per
    row rather than per pixel; the selected winner is the same.
    """
    error = 0.0
    for cell_row, candidate_row in zip(cell, candidate, strict=True):
        error += float(np.sum(lab_distance(cell_row, candidate_row, sqrt)))
        if error >= bound:
            break
    return error


def best_fit(cell: np.ndarray, pool: np.ndarray, sqrt: bool = False) -> MatchResult:
    """Index of the candidate in *pool* closest to *cell*.

    Args:
        cell: (S, S, 3) Lab block of the target.
        pool: (N, S, S, 3) Lab candidates, N >= 1.
        sqrt: Sum Euclidean instead of squared Euclidean distances.
    """
    if len(pool) == 0:
        msg = "Cannot match against an empty candidate pool"
        raise ValueError(msg)

    best_index = 0
    best_error = cell_error(cell, pool[0], sqrt)
    for index in range(1, len(pool)):
        error = cell_error(cell, pool[index], sqrt, bound=best_error)
        if error < best_error:
            best_index, best_error = index, error
    return MatchResult(best_index, best_error)


# -- Matcher -----------------------------------------------------------


class MosaicMatcher:
    """Match every cell of a target against a fixed candidate pool.

    Args:
        candidates:    Non-empty pool of equally sized square tiles.
        sqrt_distance: Sum Euclidean instead of squared Euclidean distances.
        max_workers:   Thread-pool size (None = executor default).
    """

    def __init__(
        self,
        candidates: Sequence[TileCandidate],
        sqrt_distance: bool = False,
        max_workers: int | None = None,
    ) -> None:
        if not candidates:
            msg = "Candidate pool is empty - the tile folder must contain at least one image"
            raise ValueError(msg)

        shapes = {c.pixels.shape[:2] for c in candidates}
        if len(shapes) != 1:
            msg = f"Candidates differ in size: {sorted(shapes)}"
            raise ValueError(msg)
        (h, w), = shapes
        if h != w:
            msg = f"Candidates must be square, got {w}x{h}"
            raise ValueError(msg)

        self.cell_size = h
        self.sqrt_distance = sqrt_distance
        self.max_workers = max_workers

        logger.info("Converting %d candidates to Lab …", len(candidates))
        self.pool_lab = np.stack([rgb_to_lab(c.pixels) for c in candidates])
        self.pool_lab.flags.writeable = False

    def __len__(self) -> int:
        return len(self.pool_lab)

    def match(self, target: np.ndarray) -> list[MatchResult]:
        """Best candidate for every cell of *target*, in row-major order.

        Args:
            target: (H, W, 3) uint8 RGB whose sides are multiples of the
                    cell size (see :func:`prepare_target`).
        """
        h, w = target.shape[:2]
        s = self.cell_size
        if h % s or w % s:
            msg = f"Target {w}x{h} is not a whole number of {s}px cells"
            raise ValueError(msg)
        grid_width, grid_height = w // s, h // s

        target_lab = rgb_to_lab(target)
        target_lab.flags.writeable = False

        logger.info(
            "Matching %dx%d cells against %d candidates …",
            grid_width, grid_height, len(self),
        )
        t0 = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._match_cell, target_lab[y : y + s, x : x + s])
                for x, y in grid_positions(grid_width, grid_height, s)
            ]
            results = [f.result() for f in futures]
        logger.info("Matching done  (%.1f s)", time.perf_counter() - t0)

        if len(results) != grid_width * grid_height:
            msg = f"Expected {grid_width * grid_height} matches, got {len(results)}"
            raise RuntimeError(msg)
        return results

    def _match_cell(self, cell: np.ndarray) -> MatchResult:
        return best_fit(cell, self.pool_lab, self.sqrt_distance)
