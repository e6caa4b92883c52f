# utils/tile_grid.py
# Overlap-tiled reference field: the stroke mask is repeated across the
# whole image at each scale, tiles advancing by 75% of their own size, and
# overlapping contributions are summed.
#
# Per scale s (image W x H):
#   mask size   sw, sh = max(4, round(W*s)), max(4, round(H*s))
#   step        step_x = max(1, int(sw*0.75)), step_y likewise
#   phase       off_x = int(s*7) % step_x, off_y = int(s*11) % step_y
#   origins     tx in [-sw, W+sw) by step_x, ty in [-sh, H+sh) by step_y
#
# The constants below define the pattern; embed and detect only agree while
# they stay exactly as they are.

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .mask import MIN_MASK_SIDE, rasterize_mask

log = logging.getLogger(__name__)

TILE_SCALES: Tuple[float, ...] = (1.0, 0.5, 0.25)
OVERLAP_RATIO = 0.75          # tile step as a fraction of tile size
PHASE_MULTIPLIER_X = 7
PHASE_MULTIPLIER_Y = 11
MASK_EPS = 1e-6


def round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def scaled_size(W: int, H: int, scale: float) -> Tuple[int, int]:
    """Mask resolution used at `scale` for a W x H image."""
    return (max(MIN_MASK_SIDE, round_half_up(W * scale)),
            max(MIN_MASK_SIDE, round_half_up(H * scale)))


@dataclass(frozen=True)
class TileGeometry:
    scale: float
    tile_w: int
    tile_h: int
    step_x: int
    step_y: int
    off_x: int
    off_y: int
    origins_x: Tuple[int, ...]
    origins_y: Tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.origins_x) * len(self.origins_y)

    def as_dict(self) -> Dict[str, object]:
        return {
            "scale": self.scale,
            "tile": {"w": self.tile_w, "h": self.tile_h},
            "step": {"x": self.step_x, "y": self.step_y},
            "offset": {"x": self.off_x, "y": self.off_y},
            "tiles": self.count,
        }


def compute_tile_geometry(W: int, H: int, tile_w: int, tile_h: int, scale: float) -> TileGeometry:
    step_x = max(1, int(tile_w * OVERLAP_RATIO))
    step_y = max(1, int(tile_h * OVERLAP_RATIO))
    # int() before the modulo: 0.25*7 -> 1, not 1.75
    off_x = int(scale * PHASE_MULTIPLIER_X) % max(1, step_x)
    off_y = int(scale * PHASE_MULTIPLIER_Y) % max(1, step_y)
    xs = tuple(tx + off_x for tx in range(-tile_w, W + tile_w, step_x))
    ys = tuple(ty + off_y for ty in range(-tile_h, H + tile_h, step_y))
    return TileGeometry(scale, tile_w, tile_h, step_x, step_y, off_x, off_y, xs, ys)


def composite_reference(mask: np.ndarray, W: int, H: int, scale: float) -> np.ndarray:
    """Tile `mask` over a W x H plane and return the summed (H, W) float64 field."""
    tile_h, tile_w = mask.shape
    geo = compute_tile_geometry(W, H, tile_w, tile_h, scale)
    # cells at or below MASK_EPS add nothing
    m = np.where(mask > MASK_EPS, mask, 0.0).astype(np.float64)

    ref = np.zeros((H, W), dtype=np.float64)
    for by in geo.origins_y:
        y0, y1 = max(by, 0), min(by + tile_h, H)
        if y0 >= y1:
            continue
        for bx in geo.origins_x:
            x0, x1 = max(bx, 0), min(bx + tile_w, W)
            if x0 >= x1:
                continue
            ref[y0:y1, x0:x1] += m[y0 - by:y1 - by, x0 - bx:x1 - bx]

    log.debug("scale %.2f: mask %dx%d step (%d,%d) offset (%d,%d) tiles %d",
              scale, tile_w, tile_h, geo.step_x, geo.step_y, geo.off_x, geo.off_y, geo.count)
    return ref


def reference_fields(stroke: Image.Image, W: int, H: int,
                     scales: Sequence[float] = TILE_SCALES) -> Iterator[Tuple[float, np.ndarray]]:
    """Yield (scale, reference field) for each scale, one at a time."""
    for s in scales:
        tw, th = scaled_size(W, H, s)
        mask = rasterize_mask(stroke, tw, th)
        yield s, composite_reference(mask, W, H, s)


def combined_reference(stroke: Image.Image, W: int, H: int,
                       scales: Sequence[float] = TILE_SCALES) -> np.ndarray:
    """Sum of the per-scale reference fields."""
    total = np.zeros((H, W), dtype=np.float64)
    for _, ref in reference_fields(stroke, W, H, scales):
        total += ref
    return total


def layout_summary(W: int, H: int, scales: Sequence[float] = TILE_SCALES) -> List[Dict[str, object]]:
    out = []
    for s in scales:
        tw, th = scaled_size(W, H, s)
        out.append(compute_tile_geometry(W, H, tw, th, s).as_dict())
    return out


# ------------------ preview overlay ------------------

def draw_tile_overlay(
    base_img: Image.Image,
    stroke: Image.Image,
    scale: float,
    tile_color: Tuple[int, int, int] = (0, 255, 0),
    origin_color: Tuple[int, int, int] = (255, 0, 0),
    line_width: int = 1,
    alpha: int = 160,
) -> Image.Image:
    """
    Returns a copy of base_img with every tile placement at `scale` outlined
    and the stroke pattern of that scale tinted in.
    """
    if base_img.mode != "RGB":
        base_img = base_img.convert("RGB")

    W, H = base_img.size
    tw, th = scaled_size(W, H, scale)
    geo = compute_tile_geometry(W, H, tw, th, scale)
    ref = composite_reference(rasterize_mask(stroke, tw, th), W, H, scale)

    overlay = Image.new("RGBA", (W, H), (0, 0, 0, 0))
    peak = float(ref.max())
    if peak > 0.0:
        tint = np.zeros((H, W, 4), dtype=np.uint8)
        tint[..., 0] = 255
        tint[..., 3] = np.clip(ref / peak * alpha, 0, 255).astype(np.uint8)
        overlay = Image.fromarray(tint)

    draw = ImageDraw.Draw(overlay)
    tc = (*tile_color, alpha)
    oc = (*origin_color, alpha)
    for by in geo.origins_y:
        for bx in geo.origins_x:
            draw.rectangle([bx, by, bx + tw - 1, by + th - 1], outline=tc, width=line_width)
            draw.ellipse([bx - 2, by - 2, bx + 2, by + 2], fill=oc)

    combined = base_img.convert("RGBA")
    combined.alpha_composite(overlay)
    return combined.convert("RGB")
