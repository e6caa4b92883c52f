"""Shared fixtures: a flat noisy carrier and a synthetic handwriting stroke."""

import numpy as np
import pytest
from PIL import Image, ImageDraw


def make_carrier(width: int = 96, height: int = 64, level: int = 128,
                 noise: float = 8.0, seed: int = 7) -> np.ndarray:
    """Mid-gray RGBA carrier with mild per-pixel noise."""
    rng = np.random.default_rng(seed)
    rgb = level + rng.normal(0.0, noise, size=(height, width, 3))
    rgb = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    alpha = np.full((height, width, 1), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=-1)


def make_stroke(width: int = 60, height: int = 30, transparent: bool = False) -> Image.Image:
    """Dark pen strokes on white paper (or on a transparent sheet)."""
    if transparent:
        img = Image.new("RGBA", (width, height), (255, 255, 255, 0))
        ink = (0, 0, 0, 255)
    else:
        img = Image.new("RGB", (width, height), (255, 255, 255))
        ink = (0, 0, 0)
    d = ImageDraw.Draw(img)
    d.line([(4, height - 6), (width // 3, 4), (width // 2, height - 6)], fill=ink, width=4)
    d.line([(width // 2 + 4, 6), (width - 5, height - 5)], fill=ink, width=3)
    d.ellipse([width - 18, 3, width - 6, 15], outline=ink, width=2)
    return img


@pytest.fixture
def carrier() -> np.ndarray:
    return make_carrier()


@pytest.fixture
def stroke() -> Image.Image:
    return make_stroke()


@pytest.fixture
def carrier_path(tmp_path, carrier) -> str:
    p = tmp_path / "carrier.png"
    Image.fromarray(carrier).save(p)
    return str(p)


@pytest.fixture
def stroke_path(tmp_path, stroke) -> str:
    p = tmp_path / "signature.png"
    stroke.save(p)
    return str(p)
