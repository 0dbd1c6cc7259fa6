"""
Color distance metrics.

Two metrics are used by the removal tools:

- CIE76 Delta-E in L*a*b* (perceptual, tolerance scale roughly 0-50)
- a weighted RGB distance that is cheaper to compute and biased against
  reds, so skin tones are not mistaken for a nearby background

Every function accepts either a single color or an ``H x W x C`` pixel
array; only the first three channels are read.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

# sRGB byte -> linear light, built once and never mutated
_SRGB_TO_LINEAR = np.array(
    [
        ((v / 255 + 0.055) / 1.055) ** 2.4 if v / 255 > 0.04045 else (v / 255) / 12.92
        for v in range(256)
    ],
    dtype=np.float64,
)
_SRGB_TO_LINEAR.setflags(write=False)

# D65 reference white
_XN, _YN, _ZN = 0.95047, 1.00000, 1.08883

_LAB_EPSILON = 0.008856
_LAB_KAPPA = 7.787


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(t > _LAB_EPSILON, np.cbrt(t), _LAB_KAPPA * t + 16 / 116)


def rgb_array_to_lab(pixels: np.ndarray) -> np.ndarray:
    """Convert an ``... x 3`` (or ``... x 4``) uint8 array to float L*a*b*."""
    rgb = np.asarray(pixels)[..., :3].astype(np.intp)
    r = _SRGB_TO_LINEAR[rgb[..., 0]]
    g = _SRGB_TO_LINEAR[rgb[..., 1]]
    b = _SRGB_TO_LINEAR[rgb[..., 2]]

    x = _lab_f((r * 0.4124 + g * 0.3576 + b * 0.1805) / _XN)
    y = _lab_f((r * 0.2126 + g * 0.7152 + b * 0.0722) / _YN)
    z = _lab_f((r * 0.0193 + g * 0.1192 + b * 0.9505) / _ZN)

    return np.stack([116 * y - 16, 500 * (x - y), 200 * (y - z)], axis=-1)


def rgb_to_lab(r: int, g: int, b: int) -> Tuple[float, float, float]:
    """Convert one sRGB color to L*a*b*."""
    lab = rgb_array_to_lab(np.array([r, g, b], dtype=np.uint8))
    return (float(lab[0]), float(lab[1]), float(lab[2]))


def delta_e(lab_a: Sequence[float], lab_b: Sequence[float]) -> float:
    """CIE76 distance between two L*a*b* colors."""
    dl = lab_a[0] - lab_b[0]
    da = lab_a[1] - lab_b[1]
    db = lab_a[2] - lab_b[2]
    return math.sqrt(dl * dl + da * da + db * db)


def delta_e_map(pixels: np.ndarray, target: Sequence[int]) -> np.ndarray:
    """Delta-E of every pixel against a target RGB color."""
    target_lab = np.array(rgb_to_lab(*target[:3]))
    diff = rgb_array_to_lab(pixels) - target_lab
    return np.sqrt(np.sum(diff * diff, axis=-1))


def weighted_rgb_distance(c1: Sequence[int], c2: Sequence[int]) -> float:
    """Weighted RGB distance between two colors."""
    dr = float(c1[0]) - float(c2[0])
    dg = float(c1[1]) - float(c2[1])
    db = float(c1[2]) - float(c2[2])
    r_mean = (float(c1[0]) + float(c2[0])) / 2
    r_weight = 2.0 if r_mean < 128 else 3.0
    return math.sqrt(dr * dr * r_weight + dg * dg * 4.0 + db * db * 2.0) / 3


def rgb_distance_map(pixels: np.ndarray, target: Sequence[int]) -> np.ndarray:
    """Weighted RGB distance of every pixel against a target color."""
    rgb = np.asarray(pixels)[..., :3].astype(np.int32)
    tr, tg, tb = (int(c) for c in target[:3])
    dr = rgb[..., 0] - tr
    dg = rgb[..., 1] - tg
    db = rgb[..., 2] - tb
    r_weight = np.where((rgb[..., 0] + tr) < 256, 2.0, 3.0)
    return np.sqrt(dr * dr * r_weight + dg * dg * 4.0 + db * db * 2.0) / 3
