"""End-to-end mosaic synthesis from an in-memory target and candidate pool."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from PIL import Image

from tile_mosaic.compositor import compose, label_grid
from tile_mosaic.config import MosaicConfig
from tile_mosaic.matcher import MosaicMatcher, prepare_target
from tile_mosaic.tiles import TileCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MosaicResult:
    """Output of :func:`build_mosaic`.

    Attributes:
        image:       (grid_height * cell_size, grid_width * cell_size, 3) uint8.
        labels:      Label grid text, or None when not requested.
        grid_width:  Cells across.
        grid_height: Cells down.
        mean_error:  Mean per-cell matching error.
    """

    image: np.ndarray
    labels: str | None
    grid_width: int
    grid_height: int
    mean_error: float


def build_mosaic(
    target: Image.Image,
    candidates: Sequence[TileCandidate],
    config: MosaicConfig,
    with_labels: bool | None = None,
) -> MosaicResult:
    """Resize *target* onto the grid, match every cell and compose.

    Args:
        target:      Decoded target image.
        candidates:  Non-empty candidate pool of ``config.cell_size`` tiles.
        config:      Run configuration.
        with_labels: Produce the label grid; defaults to whether
                     ``config.labels_output`` is set.
    """
    if with_labels is None:
        with_labels = config.labels_output is not None

    matcher = MosaicMatcher(
        candidates,
        sqrt_distance=config.sqrt_distance,
        max_workers=config.workers,
    )
    if matcher.cell_size != config.cell_size:
        msg = f"Candidates are {matcher.cell_size}px but cells are {config.cell_size}px"
        raise ValueError(msg)

    t0 = time.perf_counter()
    grid = prepare_target(target, config.grid_width, config.cell_size)
    grid_height = grid.shape[0] // config.cell_size
    logger.info(
        "Target %dx%d → grid %dx%d of %dpx cells",
        target.width, target.height, config.grid_width, grid_height, config.cell_size,
    )

    results = matcher.match(grid)
    image = compose(config.grid_width, grid_height, config.cell_size, results, candidates)
    labels = (
        label_grid(config.grid_width, grid_height, results, candidates, config.unnamed_label)
        if with_labels else None
    )
    mean_error = float(np.mean([r.error for r in results]))
    logger.info("Mosaic composed  (%.1f s)", time.perf_counter() - t0)

    return MosaicResult(image, labels, config.grid_width, grid_height, mean_error)
