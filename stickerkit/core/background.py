"""
Background removal tools.

All tools clear alpha (to 0) and leave RGB untouched. They mutate the
bitmap in place and report the outcome as an OperationResult; only
programming errors such as an out-of-bounds seed raise.

Two families:

- LAB Delta-E tools (global removal, contiguous fill, border fill with
  island cleanup), tolerance on the 0-50 perceptual scale.
- Weighted RGB tools with edge protection and hole filling (the magic
  wand and the automatic border-estimated variant), where the LAB-scale
  tolerance is multiplied into RGB-distance units.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..config import RemovalConfig, get_config
from ..logger import get_logger
from ..models import RGB, Bitmap, OperationResult
from ..utils.timing import timed_operation
from .color import delta_e_map, rgb_distance_map, weighted_rgb_distance
from .edges import edge_distance_map
from .flood import border_indices, grow_region

logger = get_logger(__name__)

# 4-connected structuring element
_CROSS = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))


def _seed_index(bitmap: Bitmap, x: float, y: float) -> int:
    bitmap.check_bounds(x, y)
    return int(y) * bitmap.width + int(x)


def _clear(bitmap: Bitmap, selection: np.ndarray) -> int:
    """Make the selected flat pixels transparent; return how many were opaque."""
    flat = bitmap.pixels.reshape(-1, 4)
    cleared = int(np.count_nonzero(flat[selection, 3]))
    flat[selection, 3] = 0
    return cleared


def _protected_mask(edge_distance: Optional[np.ndarray], settings: RemovalConfig) -> Optional[np.ndarray]:
    if edge_distance is None:
        return None
    return edge_distance.reshape(-1) < settings.edge_safe_margin


def _component_labels(mask: np.ndarray) -> Tuple[int, np.ndarray, np.ndarray]:
    """4-connected components of a 2-D bool mask: (count, labels, sizes)."""
    count, labels, stats, _ = cv2.connectedComponentsWithStats(
        mask.astype(np.uint8), connectivity=4
    )
    return count, labels, stats[:, cv2.CC_STAT_AREA]


def _outside_mask(bitmap: Bitmap) -> np.ndarray:
    """Transparent pixels connected to a transparent border pixel."""
    transparent = bitmap.alpha == 0
    count, labels, _ = _component_labels(transparent)
    if count <= 1:
        return np.zeros_like(transparent)

    border = labels.reshape(-1)[border_indices(bitmap.width, bitmap.height)]
    outside_labels = np.unique(border[border > 0])
    return np.isin(labels, outside_labels)


def _remove_enclosed_holes(
    bitmap: Bitmap,
    match: np.ndarray,
    protected: Optional[np.ndarray],
    max_hole_pixels: int,
) -> int:
    """
    Clear opaque matching components enclosed by the shape.

    A component is a hole when it has no 4-neighbour in the outside
    transparent area, contains no edge-protected pixel and is smaller
    than ``max_hole_pixels``.

    Returns:
        Number of pixels cleared
    """
    height, width = bitmap.height, bitmap.width
    outside = _outside_mask(bitmap)
    candidates = (bitmap.alpha != 0) & match.reshape(height, width)

    count, labels, sizes = _component_labels(candidates)
    if count <= 1:
        return 0

    rejected = np.zeros(count, dtype=bool)
    rejected[0] = True
    rejected[sizes >= max_hole_pixels] = True

    near_outside = cv2.dilate(outside.astype(np.uint8), _CROSS).astype(bool)
    rejected[np.unique(labels[near_outside & candidates])] = True

    if protected is not None:
        protected_2d = protected.reshape(height, width)
        rejected[np.unique(labels[protected_2d & candidates])] = True

    cleared = _clear(bitmap, (~rejected)[labels].reshape(-1))
    if cleared:
        holes = int(np.count_nonzero(~rejected))
        logger.debug(f"Removed {holes} enclosed hole(s), {cleared} px")
    return cleared


def remove_color_globally(bitmap: Bitmap, target_color: Sequence[int], tolerance: float = 20) -> OperationResult:
    """
    Make every opaque pixel within ``tolerance`` Delta-E of the target transparent.

    Connectivity is ignored.
    """
    with timed_operation("Global color removal", logger):
        opaque = bitmap.alpha.reshape(-1) != 0
        distance = delta_e_map(bitmap.pixels, target_color).reshape(-1)
        cleared = _clear(bitmap, opaque & (distance <= tolerance))

    if not cleared:
        return OperationResult.noop("No matching pixels")
    return OperationResult.ok(f"Removed {cleared} pixels")


def flood_fill_transparency(bitmap: Bitmap, x: float, y: float, tolerance: float = 20) -> OperationResult:
    """
    Clear the 4-connected region around (x, y) within ``tolerance`` Delta-E of the seed.

    Raises:
        CoordinateError: If the seed is outside the bitmap
    """
    seed = _seed_index(bitmap, x, y)
    flat = bitmap.pixels.reshape(-1, 4)
    if flat[seed, 3] == 0:
        return OperationResult.noop("Seed pixel is already transparent")

    with timed_operation("Contiguous fill", logger):
        opaque = flat[:, 3] != 0
        match = opaque & (delta_e_map(flat, flat[seed]) <= tolerance)

        visited = np.zeros(bitmap.pixel_count, dtype=bool)
        region = grow_region([seed], match, visited, bitmap.width, bitmap.height)
        cleared = _clear(bitmap, region)

    return OperationResult.ok(f"Removed {cleared} pixels")


def flood_fill_from_borders(
    bitmap: Bitmap,
    target_color: Sequence[int],
    tolerance: float = 20,
    remove_holes: bool = False,
    settings: Optional[RemovalConfig] = None,
) -> OperationResult:
    """
    Clear background connected to the image border.

    Every border pixel matching the target (Delta-E) seeds one flood fill.
    With ``remove_holes`` set, every remaining opaque matching component
    smaller than the island threshold is cleared too.
    """
    settings = settings or get_config().removal
    width, height = bitmap.width, bitmap.height
    flat = bitmap.pixels.reshape(-1, 4)

    with timed_operation("Border fill", logger):
        match = delta_e_map(flat, target_color) <= tolerance
        opaque = flat[:, 3] != 0

        border = border_indices(width, height)
        seeds = border[opaque[border] & match[border]]

        cleared = 0
        if seeds.size:
            visited = np.zeros(bitmap.pixel_count, dtype=bool)
            region = grow_region(seeds, opaque & match, visited, width, height)
            cleared = _clear(bitmap, region)

        if remove_holes:
            islands = (bitmap.alpha != 0) & match.reshape(height, width)
            count, labels, sizes = _component_labels(islands)
            small = sizes < settings.island_threshold
            small[0] = False
            island_cleared = _clear(bitmap, small[labels].reshape(-1))
            if island_cleared:
                logger.debug(f"Removed {island_cleared} px of small islands")
            cleared += island_cleared

    if not cleared:
        return OperationResult.noop("No background connected to the border")
    return OperationResult.ok(f"Removed {cleared} pixels")


def advanced_background_removal(
    bitmap: Bitmap,
    x: float,
    y: float,
    tolerance: float = 20,
    fill_holes: bool = True,
    edge_protection: bool = True,
    settings: Optional[RemovalConfig] = None,
) -> OperationResult:
    """
    Edge-protected magic wand.

    Flood fills from (x, y) with the weighted RGB distance to the seed
    color. Pixels within the safe margin of a detected edge stay opaque
    and do not spread the fill. With ``fill_holes``, enclosed matching
    regions are cleared as well.

    Edge protection and hole filling are skipped on images above the
    configured pixel ceilings.

    Raises:
        CoordinateError: If the seed is outside the bitmap
    """
    settings = settings or get_config().removal
    seed = _seed_index(bitmap, x, y)
    width, height = bitmap.width, bitmap.height
    flat = bitmap.pixels.reshape(-1, 4)

    if flat[seed, 3] == 0:
        return OperationResult.noop("Seed pixel is already transparent")

    target = tuple(int(c) for c in flat[seed, :3])
    rgb_tolerance = tolerance * settings.wand_rgb_scale

    with timed_operation(f"Magic wand {width}x{height}", logger):
        edge_distance = None
        if edge_protection:
            edge_distance = edge_distance_map(
                bitmap, settings.wand_edge_threshold, settings, settings.wand_edge_pixel_limit
            )
        protected = _protected_mask(edge_distance, settings)

        match = rgb_distance_map(flat, target).reshape(-1) <= rgb_tolerance
        opaque = flat[:, 3] != 0

        visited = np.zeros(bitmap.pixel_count, dtype=bool)
        region = grow_region(
            [seed],
            opaque & match,
            visited,
            width,
            height,
            expand=None if protected is None else ~protected,
        )
        if protected is not None:
            region = region[~protected[region]]
        cleared = _clear(bitmap, region)

        if fill_holes:
            if bitmap.pixel_count < settings.wand_hole_pixel_limit:
                cleared += _remove_enclosed_holes(bitmap, match, protected, settings.wand_max_hole_pixels)
            else:
                logger.debug(f"Hole filling skipped: {bitmap.pixel_count} px")

    if not cleared:
        return OperationResult.noop("Seed pixel is protected by a nearby edge")
    return OperationResult.ok(f"Removed {cleared} pixels", color=target)


def sample_points(width: int, height: int, settings: RemovalConfig) -> List[Tuple[int, int]]:
    """
    Border sample coordinates for background estimation.

    Corner blocks first, then evenly spaced points along the two outermost
    rows and columns. May contain duplicates.
    """
    points: List[Tuple[int, int]] = []
    block = settings.corner_block

    for dy in range(block):
        for dx in range(block):
            points.append((dx, dy))
            points.append((width - 1 - dx, dy))
            points.append((dx, height - 1 - dy))
            points.append((width - 1 - dx, height - 1 - dy))

    step_x = max(1, width // settings.border_sample_divisions)
    for x in range(0, width, step_x):
        points.extend([(x, 0), (x, 1), (x, height - 1), (x, height - 2)])

    step_y = max(1, height // settings.border_sample_divisions)
    for y in range(0, height, step_y):
        points.extend([(0, y), (1, y), (width - 1, y), (width - 2, y)])

    return points


def estimate_background_color(
    bitmap: Bitmap,
    edge_distance: Optional[np.ndarray] = None,
    settings: Optional[RemovalConfig] = None,
) -> OperationResult:
    """
    Estimate the background color from border samples.

    Opaque samples far enough from edges are clustered first-fit by
    weighted RGB distance to each cluster's running mean. The largest
    cluster wins if it holds enough samples.

    Returns:
        Successful result with ``color`` set, or a failed result when
        there are no usable samples
    """
    settings = settings or get_config().removal
    width, height = bitmap.width, bitmap.height
    pixels = bitmap.pixels

    samples: List[Tuple[int, int, int]] = []
    for sx, sy in sample_points(width, height, settings):
        if not (0 <= sx < width and 0 <= sy < height):
            continue
        if edge_distance is not None and edge_distance[sy, sx] < settings.sample_edge_distance:
            continue
        r, g, b, a = pixels[sy, sx]
        if a > 0:
            samples.append((int(r), int(g), int(b)))

    if not samples:
        return OperationResult.failed("No valid sample pixels found")

    # [count, mean_r, mean_g, mean_b]
    groups: List[List[float]] = []
    for color in samples:
        for group in groups:
            if weighted_rgb_distance(color, group[1:]) < settings.cluster_distance:
                group[0] += 1
                n = group[0]
                group[1] = (group[1] * (n - 1) + color[0]) / n
                group[2] = (group[2] * (n - 1) + color[1]) / n
                group[3] = (group[3] * (n - 1) + color[2]) / n
                break
        else:
            groups.append([1, float(color[0]), float(color[1]), float(color[2])])

    groups.sort(key=lambda g: g[0], reverse=True)
    main = groups[0]
    if main[0] < settings.min_cluster_samples:
        return OperationResult.failed(
            "Insufficient background samples; click the background manually"
        )

    color: RGB = (round(main[1]), round(main[2]), round(main[3]))
    logger.debug(f"Background estimate {color} from {int(main[0])}/{len(samples)} samples")
    return OperationResult(success=True, message="Background color estimated", color=color)


def auto_remove_background(
    bitmap: Bitmap,
    tolerance: float = 20,
    fill_holes: bool = True,
    edge_protection: bool = True,
    settings: Optional[RemovalConfig] = None,
) -> OperationResult:
    """
    Remove the background without a user click.

    Estimates the background color from border samples, then flood fills
    from every matching, unprotected opaque border pixel, with the same
    edge protection and hole filling as the magic wand.

    Returns:
        Failed result (bitmap untouched) when the background cannot be
        estimated; otherwise success with the estimated color
    """
    settings = settings or get_config().removal
    width, height = bitmap.width, bitmap.height
    flat = bitmap.pixels.reshape(-1, 4)
    rgb_tolerance = tolerance * settings.auto_rgb_scale

    with timed_operation(f"Auto background removal {width}x{height}", logger):
        edge_distance = None
        if edge_protection:
            edge_distance = edge_distance_map(
                bitmap, settings.auto_edge_threshold, settings, settings.auto_edge_pixel_limit
            )
        protected = _protected_mask(edge_distance, settings)

        estimate = estimate_background_color(bitmap, edge_distance, settings)
        if not estimate.success:
            logger.info(f"Auto removal skipped: {estimate.message}")
            return estimate
        target = estimate.color

        match = rgb_distance_map(flat, target).reshape(-1) <= rgb_tolerance
        opaque = flat[:, 3] != 0
        accept = opaque & match

        border = border_indices(width, height)
        seed_ok = accept[border]
        if protected is not None:
            seed_ok &= ~protected[border]
        seeds = border[seed_ok]

        if seeds.size:
            visited = np.zeros(bitmap.pixel_count, dtype=bool)
            region = grow_region(
                seeds,
                accept,
                visited,
                width,
                height,
                expand=None if protected is None else ~protected,
            )
            if protected is not None:
                region = region[~protected[region]]
            _clear(bitmap, region)

        if fill_holes:
            if bitmap.pixel_count < settings.auto_hole_pixel_limit:
                _remove_enclosed_holes(bitmap, match, protected, settings.auto_max_hole_pixels)
            else:
                logger.debug(f"Hole filling skipped: {bitmap.pixel_count} px")

    r, g, b = target
    return OperationResult.ok(f"Background removed (RGB: {r}, {g}, {b})", color=target)


def process_batch_transparency(
    bitmap: Bitmap,
    target_color: Sequence[int],
    tolerance: float,
    contiguous: bool,
    remove_holes: bool,
) -> Bitmap:
    """
    Apply one removal to a copy of a sticker.

    Contiguous mode clears border-connected background (optionally with
    island cleanup); otherwise matching pixels are cleared globally.
    """
    result = bitmap.copy()
    if contiguous:
        flood_fill_from_borders(result, target_color, tolerance, remove_holes)
    else:
        remove_color_globally(result, target_color, tolerance)
    return result
