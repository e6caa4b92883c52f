# utils/mask.py
# Stroke image -> soft intensity mask.
#
#   mask = alpha * (1 - brightness)
#   brightness = (R + G + B) / (3 * 255), alpha = A / 255
#
# Dark opaque ink -> ~1, white or transparent paper -> ~0.

from __future__ import annotations
import numpy as np
from PIL import Image

from .errors import PreconditionError

MIN_MASK_SIDE = 4


def rasterize_mask(stroke: Image.Image, width: int, height: int) -> np.ndarray:
    """Resample `stroke` to width x height (bilinear) and return the
    (height, width) float32 mask in [0, 1].

    Callers clamp the target with max(MIN_MASK_SIDE, ...) first; anything
    smaller is refused.
    """
    width, height = int(width), int(height)
    if width < MIN_MASK_SIDE or height < MIN_MASK_SIDE:
        raise PreconditionError(
            f"mask target {width}x{height} is below {MIN_MASK_SIDE}x{MIN_MASK_SIDE}")

    rgba = stroke.convert("RGBA")
    if rgba.size != (width, height):
        rgba = rgba.resize((width, height), resample=Image.BILINEAR)
    px = np.asarray(rgba, dtype=np.float32)

    brightness = px[..., :3].sum(axis=-1) / (3.0 * 255.0)
    alpha = px[..., 3] / 255.0
    mask = alpha * (1.0 - brightness)
    return np.maximum(mask, 0.0).astype(np.float32)
