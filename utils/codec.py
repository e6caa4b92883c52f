# utils/codec.py
# Image decode/encode boundary. Everything past this file works on numpy
# RGBA buffers (H, W, 4) uint8; nothing here knows about watermarks.
#
# Output format follows the extension:
#   .png          -> PNG
#   .jpg / .jpeg  -> JPEG, quality 95, alpha dropped
#   anything else -> PNG bytes under the given name

from __future__ import annotations
import logging
import os
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageReadError, ImageWriteError, PreconditionError

log = logging.getLogger(__name__)

JPEG_QUALITY = 95
_JPEG_EXTS = (".jpg", ".jpeg")


def _open(path: str) -> Image.Image:
    try:
        img = Image.open(path)
        img.load()
    except FileNotFoundError as e:
        raise ImageReadError(f"Image not found: {path}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ImageReadError(f"Could not read image: {path} ({e})") from e
    return img


def load_rgba(path: str) -> np.ndarray:
    """Decode any Pillow-readable image into an (H, W, 4) uint8 RGBA array.

    Sources without an alpha channel come back fully opaque.
    """
    img = _open(path)
    log.debug("decoded %s: mode=%s size=%dx%d", path, img.mode, img.size[0], img.size[1])
    return np.array(img.convert("RGBA"), dtype=np.uint8)


def load_stroke(path: str) -> Image.Image:
    """Decode a stroke (handwriting) image. Mode is left as stored."""
    return _open(path)


def output_format(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext in _JPEG_EXTS:
        return "JPEG"
    return "PNG"


def as_rgba_buffer(pixels: np.ndarray) -> np.ndarray:
    """Check a caller-supplied pixel buffer and return it as uint8 RGBA."""
    arr = np.asarray(pixels)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise PreconditionError(f"expected (H, W, 3|4) pixel buffer, got shape {arr.shape}")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise PreconditionError(f"empty pixel buffer: {arr.shape}")
    arr = arr.astype(np.uint8, copy=False)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=-1)
    return arr


def save_rgba(pixels: np.ndarray, path: str, fmt: Optional[str] = None) -> str:
    """Encode an RGBA buffer to `path`. Returns the path written.

    `fmt` overrides the extension-derived format ("PNG" or "JPEG").
    """
    rgba = as_rgba_buffer(pixels)
    fmt = (fmt or output_format(path)).upper()
    img = Image.fromarray(rgba)
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        if fmt == "JPEG":
            img.convert("RGB").save(path, format="JPEG", quality=JPEG_QUALITY)
        else:
            img.save(path, format="PNG")
    except OSError as e:
        raise ImageWriteError(f"Could not write image: {path} ({e})") from e
    log.debug("encoded %s as %s", path, fmt)
    return path
