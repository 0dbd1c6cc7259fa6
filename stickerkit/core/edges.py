"""
Edge detection for outline protection.

Sobel gradient magnitude on a luma image, then a bounded breadth-first
distance from the strongest edges. Removal tools refuse to clear pixels
closer than a safe margin to an edge, which keeps character outlines
intact even when they are close to the background color.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from ..config import RemovalConfig
from ..logger import get_logger
from ..models import Bitmap
from ..utils.timing import timed_operation
from .flood import neighbor_indices

logger = get_logger(__name__)

# Marks pixels that are farther than the cap (or never reached)
UNREACHED = 255

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def sobel_magnitude(pixels: np.ndarray) -> np.ndarray:
    """
    Gradient magnitude of the luma channel with 3x3 Sobel kernels.

    The one-pixel image border has no full neighbourhood and is left at 0.
    """
    rgb = pixels[..., :3].astype(np.float32)
    gray = (
        rgb[..., 0] * LUMA_WEIGHTS[0]
        + rgb[..., 1] * LUMA_WEIGHTS[1]
        + rgb[..., 2] * LUMA_WEIGHTS[2]
    )

    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(gx, gy)

    magnitude[0, :] = 0
    magnitude[-1, :] = 0
    magnitude[:, 0] = 0
    magnitude[:, -1] = 0
    return magnitude


def distance_from_edges(
    magnitude: np.ndarray,
    edge_threshold: float,
    max_distance: int = 10,
) -> np.ndarray:
    """
    4-connected distance from every pixel to the nearest edge pixel.

    Pixels with a gradient above ``edge_threshold`` are at distance 0.
    Distances stop growing at ``max_distance``; anything farther is
    UNREACHED (255).
    """
    height, width = magnitude.shape
    distance = np.full(height * width, UNREACHED, dtype=np.uint8)

    frontier = np.flatnonzero(magnitude.ravel() > edge_threshold)
    distance[frontier] = 0

    level = 0
    while frontier.size and level < max_distance:
        level += 1
        candidates = neighbor_indices(frontier, width, height)
        next_frontier = np.unique(candidates[distance[candidates] == UNREACHED])
        distance[next_frontier] = level
        frontier = next_frontier

    return distance.reshape(height, width)


def edge_distance_map(
    bitmap: Bitmap,
    edge_threshold: float,
    settings: RemovalConfig,
    pixel_limit: Optional[int] = None,
) -> Optional[np.ndarray]:
    """
    Distance-from-edge map for a bitmap, or None when the image is too large.

    Args:
        bitmap: Source bitmap (read only)
        edge_threshold: Gradient magnitude that counts as an edge
        settings: Removal configuration (distance cap)
        pixel_limit: Skip detection at or above this many pixels

    Returns:
        ``H x W`` uint8 distance map, or None if skipped
    """
    if pixel_limit is not None and bitmap.pixel_count >= pixel_limit:
        logger.debug(
            f"Edge detection skipped: {bitmap.pixel_count} px >= limit {pixel_limit}"
        )
        return None

    with timed_operation(f"Edge map {bitmap.width}x{bitmap.height}", logger):
        magnitude = sobel_magnitude(bitmap.pixels)
        return distance_from_edges(magnitude, edge_threshold, settings.edge_distance_cap)
