"""Synthetic grayscale test images and noise for denoising demos."""

from typing import Optional

import numpy as np


def generate_checkerboard(size: int = 256, block_size: int = 32) -> np.ndarray:
    """High-contrast checkerboard - ideal for Haar (edges on dyadic boundaries)."""
    img = np.zeros((size, size), dtype=np.uint8)

    for i in range(0, size, block_size):
        for j in range(0, size, block_size):
            if (i // block_size + j // block_size) % 2 == 0:
                img[i:i+block_size, j:j+block_size] = 30
            else:
                img[i:i+block_size, j:j+block_size] = 220

    return img


def generate_stripes(size: int = 256, stripe_width: int = 4) -> np.ndarray:
    """Fine vertical stripes - detail the threshold should keep."""
    img = np.full((size, size), 60, dtype=np.uint8)
    for j in range(size):
        if (j // stripe_width) % 2 == 0:
            img[:, j] = 200
    return img


def generate_gradient(width: int = 256, height: Optional[int] = None) -> np.ndarray:
    """Smooth diagonal gradient - reveals blocking from coarse thresholds."""
    height = width if height is None else height
    rows = np.arange(height, dtype=np.float32)[:, None]
    cols = np.arange(width, dtype=np.float32)[None, :]
    t = (rows + cols) / max(width + height - 2, 1)
    return np.clip(40 + t * 180, 0, 255).astype(np.uint8)


def generate_shapes(size: int = 256) -> np.ndarray:
    """Bars of decreasing thickness and a filled disc on a light background."""
    img = np.full((size, size), 235, dtype=np.uint8)

    margin = size // 10
    bar_height = max(size // 16, 2)

    y = margin
    for thickness in [bar_height, bar_height // 2, bar_height // 4, 2]:
        img[y:y + thickness, margin:size - margin] = 25
        y += thickness + margin // 2

    cy, cx = (3 * size) // 4, size // 2
    radius = size // 8
    yy, xx = np.ogrid[:size, :size]
    img[(yy - cy) ** 2 + (xx - cx) ** 2 <= radius ** 2] = 90

    return img


def add_gaussian_noise(image: np.ndarray, sigma: float = 20.0, seed: Optional[int] = None) -> np.ndarray:
    """Add zero-mean Gaussian noise (in gray levels) and clip back to uint8."""
    rng = np.random.default_rng(seed)
    noisy = image.astype(np.float32) + rng.normal(0.0, sigma, image.shape).astype(np.float32)
    return np.clip(noisy, 0, 255).astype(np.uint8)


def generate_demo_image(key: str, size: int = 256) -> np.ndarray | None:
    """Generate demo image by key."""
    generators = {
        "checkerboard": lambda: generate_checkerboard(size),
        "stripes": lambda: generate_stripes(size),
        "gradient": lambda: generate_gradient(size),
        "shapes": lambda: generate_shapes(size),
    }

    if key in generators:
        return generators[key]()

    return None
