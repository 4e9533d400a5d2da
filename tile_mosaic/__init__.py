"""
Tile Mosaic Generator
=====================

Recreate a target image out of a folder of small tile images.  The
tile pool can be expanded with:

- **Augmentation** (mirrors, 90° rotations, colour inversion)
- **Permutation** (transparent tiles layered over solid ones)

Each grid cell gets the candidate closest to it in CIELAB.
"""

__version__ = "1.0.0"

from tile_mosaic.color_utils import lab_distance, rgb_to_lab
from tile_mosaic.compositor import compose, label_grid
from tile_mosaic.config import MosaicConfig
from tile_mosaic.image_io import (
    TileSourceError,
    load_target,
    save_candidates,
    save_image,
    save_labels,
)
from tile_mosaic.matcher import MatchResult, MosaicMatcher, prepare_target
from tile_mosaic.mosaic import MosaicResult, build_mosaic
from tile_mosaic.tiles import TileCandidate, generate_candidates

__all__ = [
    "MatchResult",
    "MosaicConfig",
    "MosaicMatcher",
    "MosaicResult",
    "TileCandidate",
    "TileSourceError",
    "build_mosaic",
    "compose",
    "generate_candidates",
    "lab_distance",
    "label_grid",
    "load_target",
    "prepare_target",
    "rgb_to_lab",
    "save_candidates",
    "save_image",
    "save_labels",
]
