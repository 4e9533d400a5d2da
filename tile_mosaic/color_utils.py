"""sRGB → XYZ → CIELAB conversion and perceptual distance."""

from __future__ import annotations

import numpy as np

# sRGB (D65) → XYZ
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)

# D65 reference white, 0-100 scale
_WHITE = np.array([95.047, 100.0, 108.883], dtype=np.float64)

_DELTA = 6.0 / 29.0
_DELTA_CUBE = _DELTA ** 3
_LOWER_SCALE = 1.0 / (3.0 * _DELTA ** 2)


def srgb_to_xyz(rgb: np.ndarray) -> np.ndarray:
    """Convert (..., 3) sRGB floats in [0, 1] to XYZ on the 0-100 scale."""
    rgb = np.asarray(rgb, dtype=np.float64)
    linear = np.where(
        rgb <= 0.04045,
        rgb / 12.92,
        ((rgb + 0.055) / 1.055) ** 2.4,
    ) * 100.0
    r, g, b = linear[..., 0], linear[..., 1], linear[..., 2]
    # elementwise, so a pixel converts identically whatever array holds it
    return np.stack([m[0] * r + m[1] * g + m[2] * b for m in _RGB_TO_XYZ], axis=-1)


def xyz_to_lab(xyz: np.ndarray) -> np.ndarray:
    """Convert (..., 3) XYZ (0-100 scale) to CIELAB."""
    t = np.asarray(xyz, dtype=np.float64) / _WHITE
    f = np.where(
        t > _DELTA_CUBE,
        np.cbrt(t),
        t * _LOWER_SCALE + 4.0 / 29.0,
    )
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    return np.stack(
        [116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)],
        axis=-1,
    )


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert RGB pixels of any leading shape to float64 CIELAB.

    Integer input is treated as 0-255 channel values; float input is
    taken to be in [0, 1] already.  Extra channels (alpha) are ignored.
    """
    rgb = np.asarray(rgb)[..., :3]
    if np.issubdtype(rgb.dtype, np.integer):
        rgb = rgb.astype(np.float64) / 255.0
    return xyz_to_lab(srgb_to_xyz(rgb))


def lab_distance(a: np.ndarray, b: np.ndarray, sqrt: bool = False) -> np.ndarray:
    """Per-pixel distance between two Lab arrays over the last axis.

    Squared Euclidean by default; plain Euclidean when *sqrt* is set.
    """
    d = np.sum((a - b) ** 2, axis=-1)
    return np.sqrt(d) if sqrt else d
