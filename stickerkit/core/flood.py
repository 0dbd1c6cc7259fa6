"""
Breadth-first region growing over flat pixel indices.

All flood fills in the package go through ``grow_region``: a frontier is
expanded into a next frontier, then the two are swapped, until no pixel
is left to visit. There is no recursion, so regions of millions of
pixels are safe.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def neighbor_indices(indices: np.ndarray, width: int, height: int) -> np.ndarray:
    """4-connected neighbours of flat pixel indices, clipped to the image."""
    x = indices % width
    y = indices // width
    return np.concatenate([
        indices[x + 1 < width] + 1,
        indices[x > 0] - 1,
        indices[y + 1 < height] + width,
        indices[y > 0] - width,
    ])


def border_indices(width: int, height: int) -> np.ndarray:
    """Flat indices of the top, bottom, left and right image edges."""
    top = np.arange(width)
    bottom = (height - 1) * width + np.arange(width)
    rows = np.arange(1, height - 1)
    left = rows * width
    right = rows * width + width - 1
    return np.unique(np.concatenate([top, bottom, left, right]))


def grow_region(
    seeds: np.ndarray,
    accept: np.ndarray,
    visited: np.ndarray,
    width: int,
    height: int,
    expand: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Collect the 4-connected region reachable from ``seeds``.

    Args:
        seeds: Flat indices to start from (always part of the region)
        accept: Flat bool mask; a neighbour joins the region only if set
        visited: Flat bool mask, updated in place; visited pixels never join
        width: Image width
        height: Image height
        expand: Optional flat bool mask; only pixels with it set spread
            to their neighbours (they still belong to the region)

    Returns:
        Flat indices of the region
    """
    frontier = np.unique(np.asarray(seeds, dtype=np.intp))
    visited[frontier] = True
    collected = [frontier]

    while frontier.size:
        sources = frontier if expand is None else frontier[expand[frontier]]
        candidates = neighbor_indices(sources, width, height)
        candidates = candidates[accept[candidates] & ~visited[candidates]]
        next_frontier = np.unique(candidates)
        visited[next_frontier] = True

        collected.append(next_frontier)
        frontier = next_frontier

    return np.concatenate(collected)
