# utils/luma.py
# Luminance, Pearson correlation and min-max normalization on numpy arrays.

from __future__ import annotations
from typing import Tuple

import numpy as np

from .errors import PreconditionError

LUMA_WEIGHTS: Tuple[float, float, float] = (0.299, 0.587, 0.114)
DEGENERATE_EPS = 1e-12


def luminance_field(pixels: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) pixels -> (H, W) float64 luminance. Alpha is ignored."""
    rgb = np.asarray(pixels)[..., :3].astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]


def pearson(a: np.ndarray, b: np.ndarray) -> float:
    """
    Population Pearson correlation of two equal-length sequences.

    Returns exactly 0.0 when either sequence is (near) constant.
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.size != b.size:
        raise PreconditionError(f"sequences differ in length: {a.size} vs {b.size}")
    if a.size == 0:
        return 0.0

    da = a - a.mean()
    db = b - b.mean()
    var_a = float(np.mean(da * da))
    var_b = float(np.mean(db * db))
    if var_a <= DEGENERATE_EPS or var_b <= DEGENERATE_EPS:
        return 0.0
    cov = float(np.mean(da * db))
    return cov / float(np.sqrt(var_a * var_b))


def normalize_minmax(arr: np.ndarray) -> np.ndarray:
    """Scale to [0, 1] by the array's own min/max. Flat arrays are returned as-is."""
    out = np.asarray(arr, dtype=np.float64)
    lo = float(out.min())
    hi = float(out.max())
    rng = hi - lo
    if rng < DEGENERATE_EPS:
        return out.copy()
    return (out - lo) / rng
