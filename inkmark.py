#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Inkmark: handwriting-derived luminance watermark: embed, detect, extract.

Key ideas:
- A stroke image (dark ink on white or transparent) becomes a soft mask,
  mask = alpha * (1 - brightness).
- The mask is tiled over the whole carrier at scales 1.0, 0.5 and 0.25 with
  25% overlap and a per-scale phase, so any surviving region of a cropped or
  resized copy still holds some tile at some scale.
- Embed adds a small luminance delta under the pattern, spread over R/G/B by
  the 0.299/0.587/0.114 weights, one scale after another on the same buffer.
- Detect correlates suspect luminance with each scale's reference field on
  its own and keeps the best score.
- Extract multiplies normalized luminance by the normalized sum of all
  scales' fields and writes it out as a grayscale picture.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

import numpy as np
from PIL import Image

from utils.codec import JPEG_QUALITY, as_rgba_buffer, load_rgba, load_stroke, save_rgba
from utils.errors import InkmarkError
from utils.luma import LUMA_WEIGHTS, luminance_field, normalize_minmax, pearson
from utils.mask import MIN_MASK_SIDE
from utils.tile_grid import (
    MASK_EPS, OVERLAP_RATIO, PHASE_MULTIPLIER_X, PHASE_MULTIPLIER_Y, TILE_SCALES,
    combined_reference, draw_tile_overlay, layout_summary, reference_fields,
)

LOGGER = logging.getLogger("inkmark")

# strength -> luminance delta: strength 0.05 gives ~4.0 levels at mask 1.0
DELTA_GAIN = 80.0
MIN_DELTA = 1.5


def engine_defaults() -> Dict[str, object]:
    return {
        "scales": list(TILE_SCALES),
        "overlap_ratio": OVERLAP_RATIO,
        "phase_multipliers": [PHASE_MULTIPLIER_X, PHASE_MULTIPLIER_Y],
        "mask_eps": MASK_EPS,
        "min_mask_side": MIN_MASK_SIDE,
        "luma_weights": list(LUMA_WEIGHTS),
        "delta_gain": DELTA_GAIN,
        "min_delta": MIN_DELTA,
        "jpeg_quality": JPEG_QUALITY,
    }


def _configure_logging(level: str) -> None:
    lvl = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    LOGGER.setLevel(lvl)


def base_delta(strength: float) -> float:
    return max(MIN_DELTA, float(strength) * DELTA_GAIN)


# ------------------ EMBED ------------------

def embed(carrier: np.ndarray, stroke: Image.Image, strength: float) -> np.ndarray:
    """Return a watermarked copy of `carrier` (H, W, 3|4) as uint8 RGBA.

    Scales are applied in order to the same working buffer, each rounding
    and clamping before the next one sees the pixels. Alpha is untouched.
    """
    work = as_rgba_buffer(carrier).copy()
    H, W = work.shape[:2]
    delta0 = base_delta(strength)
    rgb = work[..., :3].astype(np.float64)

    for s, ref in reference_fields(stroke, W, H):
        hit = ref > MASK_EPS
        delta = delta0 * ref[hit]
        for c, wt in enumerate(LUMA_WEIGHTS):
            ch = rgb[..., c]
            ch[hit] = np.clip(np.floor(ch[hit] + delta * wt + 0.5), 0.0, 255.0)
        LOGGER.debug("embed scale %.2f: %d pixels touched, peak field %.3f",
                     s, int(hit.sum()), float(ref.max()))

    work[..., :3] = rgb.astype(np.uint8)
    return work


def embed_image(p_in: str, p_wm: str, p_out: str, strength: float) -> dict:
    carrier = load_rgba(p_in)
    stroke = load_stroke(p_wm)
    H, W = carrier.shape[:2]

    out = embed(carrier, stroke, strength)
    save_rgba(out, p_out)
    LOGGER.info("embedded %s into %s -> %s (strength %.3f)", p_wm, p_in, p_out, strength)

    return {
        "verdict": "EMBED_OK",
        "output": p_out,
        "size": {"W": W, "H": H},
        "strength": float(strength),
        "base_delta": base_delta(strength),
        "layout": layout_summary(W, H),
        "defaults": engine_defaults(),
    }


# ------------------ DETECT ------------------

def scale_scores(suspect: np.ndarray, stroke: Image.Image) -> Dict[float, float]:
    """Correlation of suspect luminance with each scale's field, scored separately."""
    lum = luminance_field(as_rgba_buffer(suspect))
    H, W = lum.shape
    scores: Dict[float, float] = {}
    for s, ref in reference_fields(stroke, W, H):
        scores[s] = pearson(lum, ref)
        LOGGER.debug("detect scale %.2f: r=%.5f", s, scores[s])
    return scores


def detect(suspect: np.ndarray, stroke: Image.Image) -> float:
    """Best correlation over the scales; never below 0.0."""
    return max([0.0] + list(scale_scores(suspect, stroke).values()))


def detect_image(p_img: str, p_wm: str) -> dict:
    suspect = load_rgba(p_img)
    stroke = load_stroke(p_wm)
    scores = scale_scores(suspect, stroke)
    best = max([0.0] + list(scores.values()))
    LOGGER.info("detection score for %s: %.5f", p_img, best)
    return {
        "verdict": "SCORED",
        "input": p_img,
        "score": best,
        "scales": {str(s): r for s, r in scores.items()},
    }


# ------------------ EXTRACT ------------------

def extract(suspect: np.ndarray, stroke: Image.Image) -> np.ndarray:
    """Visualize the pattern in `suspect`: opaque grayscale (H, W, 4) uint8."""
    lum = luminance_field(as_rgba_buffer(suspect))
    H, W = lum.shape
    ref = combined_reference(stroke, W, H)

    value = normalize_minmax(ref) * normalize_minmax(lum)
    gray = np.clip(np.floor(255.0 * value + 0.5), 0, 255).astype(np.uint8)

    out = np.empty((H, W, 4), dtype=np.uint8)
    out[..., 0] = gray
    out[..., 1] = gray
    out[..., 2] = gray
    out[..., 3] = 255
    return out


def extract_image(p_img: str, p_wm: str, p_out: str) -> dict:
    suspect = load_rgba(p_img)
    stroke = load_stroke(p_wm)
    out = extract(suspect, stroke)
    save_rgba(out, p_out, fmt="PNG")
    LOGGER.info("extracted pattern from %s -> %s", p_img, p_out)
    return {
        "verdict": "EXTRACT_OK",
        "output": p_out,
        "size": {"W": int(out.shape[1]), "H": int(out.shape[0])},
        "mean_level": float(out[..., 0].mean()),
    }


# ------------------ GRID PREVIEW ------------------

def grid_image(p_img: str, p_wm: str, p_out: str, scale: float) -> dict:
    base = Image.fromarray(load_rgba(p_img))
    stroke = load_stroke(p_wm)
    preview = draw_tile_overlay(base, stroke, scale)
    save_rgba(np.asarray(preview.convert("RGBA")), p_out)
    W, H = base.size
    return {
        "verdict": "GRID_OK",
        "output": p_out,
        "layout": layout_summary(W, H, [scale]),
    }


# ------------------ CLI ------------------

def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="inkmark",
                                 description="Handwriting luminance watermark: embed / detect / extract")
    ap.add_argument("--json", action="store_true", help="print a JSON summary instead of one line")
    ap.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ep = sub.add_parser("embed", help="embed a stroke pattern")
    ep.add_argument("input")
    ep.add_argument("watermark")
    ep.add_argument("output")
    ep.add_argument("strength", type=float, help="e.g. 0.08 (recommended 0.04 - 0.12)")

    dp = sub.add_parser("detect", help="score a suspect image")
    dp.add_argument("suspect")
    dp.add_argument("watermark")

    xp = sub.add_parser("extract", help="visualize the pattern in a suspect image")
    xp.add_argument("suspect")
    xp.add_argument("watermark")
    xp.add_argument("output")

    gp = sub.add_parser("grid", help="draw the tile layout of one scale over an image")
    gp.add_argument("image")
    gp.add_argument("watermark")
    gp.add_argument("output")
    gp.add_argument("--scale", type=float, default=TILE_SCALES[0], help="tile scale, default 1.0")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        if args.cmd == "embed":
            res = embed_image(args.input, args.watermark, args.output, args.strength)
            line = f"Embedded -> {args.output}"
        elif args.cmd == "detect":
            res = detect_image(args.suspect, args.watermark)
            line = f"Detection score: {res['score']:.5f}"
        elif args.cmd == "extract":
            res = extract_image(args.suspect, args.watermark, args.output)
            line = f"Extracted -> {args.output}"
        else:
            res = grid_image(args.image, args.watermark, args.output, args.scale)
            line = f"Grid -> {args.output}"
    except InkmarkError as e:
        LOGGER.error("%s failed: %s", args.cmd, e)
        if args.json:
            print(json.dumps({"verdict": "ERROR", "command": args.cmd, "message": str(e)}, indent=2))
        else:
            print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(res, indent=2) if args.json else line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
