"""Image loading and saving for targets, tile sources and results."""

from __future__ import annotations

import errno
import logging
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

# Pause before retrying an open that hit the file-descriptor limit
EMFILE_RETRY_DELAY = 0.05


class TileSourceError(OSError):
    """An image file could not be opened or decoded."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot read image {self.path}: {reason}")


def _open_image(path: Path, mode: str) -> Image.Image:
    """Open and fully decode *path*, retrying while the process is out of fds."""
    while True:
        try:
            with Image.open(path) as img:
                img.load()
                return img.convert(mode)
        except OSError as err:
            if err.errno == errno.EMFILE:
                logger.debug("Too many open files, retrying %s", path)
                time.sleep(EMFILE_RETRY_DELAY)
                continue
            raise TileSourceError(path, str(err)) from err
        except (Image.DecompressionBombError, SyntaxError, ValueError) as err:
            raise TileSourceError(path, str(err)) from err


def load_target(path: str | Path) -> Image.Image:
    """Load the target image as RGB."""
    return _open_image(Path(path), "RGB")


def list_tile_sources(directory: str | Path) -> list[Path]:
    """Every regular file in *directory*, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise TileSourceError(directory, "not a directory")
    return sorted(f for f in directory.iterdir() if f.is_file())


def load_tile(path: str | Path, cell_size: int) -> np.ndarray:
    """Load one tile source, fill-resized to *cell_size* x *cell_size*.

    The image is scaled to cover the square and the overflow is cropped
    around the centre (no letterboxing).

    Returns:
        (cell_size, cell_size, 4) uint8 RGBA array.
    """
    img = _open_image(Path(path), "RGBA")
    img = ImageOps.fit(img, (cell_size, cell_size), Image.BICUBIC)
    return np.array(img, dtype=np.uint8)


def load_tiles(
    directory: str | Path,
    cell_size: int,
    workers: int | None = None,
) -> list[tuple[str, np.ndarray]]:
    """Load every tile source in *directory* concurrently.

    Returns:
        ``(name, pixels)`` pairs in discovery order, where *name* is the
        file stem and *pixels* is a (cell_size, cell_size, 4) uint8 array.
    """
    paths = list_tile_sources(directory)
    logger.info("Loading %d tile sources from %s …", len(paths), directory)
    t0 = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers) as executor:
        images = list(executor.map(lambda p: load_tile(p, cell_size), paths))
    logger.info("Tiles loaded  (%.1f s)", time.perf_counter() - t0)
    return [(p.stem, img) for p, img in zip(paths, images, strict=True)]


def save_image(array: np.ndarray, path: str | Path) -> None:
    """Save an (H, W, 3|4) uint8 array, creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(array.astype(np.uint8)).save(path)


def save_labels(text: str, path: str | Path) -> None:
    """Write the label grid as UTF-8 text."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def save_candidates(images: Iterable[np.ndarray], directory: str | Path) -> int:
    """Dump every candidate as ``<index>.png`` into *directory*.

    Returns:
        Number of files written.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    count = 0
    for index, pixels in enumerate(images):
        Image.fromarray(pixels).save(directory / f"{index}.png")
        count += 1
    logger.info("Dumped %d candidates to %s", count, directory)
    return count
