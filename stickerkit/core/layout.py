"""
Grid layout detection.

Two independent guesses of (cols, rows) for a sticker sheet:

1. Aspect ratio: which standard sticker count, laid out on a grid of
   cells with a plausible cell shape, best reproduces the sheet's
   width/height ratio.
2. Pixel analysis: light separator lines repeat with the cell pitch, so
   the period of the per-row / per-column brightness signal gives the
   cell size directly.

``detect_layout`` combines them: pixel analysis wins when it is
confident, otherwise the aspect ratio guess is used.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..logger import get_logger
from ..models import Bitmap, GridLayout, LayoutCandidate, LayoutDetection, AxisProfiles
from ..models.geometry import MAX_GRID_CELLS

logger = get_logger(__name__)

# Cell width/height ratios considered, from clearly portrait to landscape.
# 370/320 is the standard sticker output size.
STAMP_RATIOS = (0.75, 0.80, 0.85, 0.90, 0.95, 1.0, 1.05, 1.10, 370 / 320, 1.20)

# Standard sticker set sizes, most preferred first
STANDARD_TOTALS = (40, 32, 24, 16, 8)

# Maximum |expected - actual| aspect ratio error for a candidate
MAX_ASPECT_ERROR = 0.15

# Used when nothing at all can be computed
DEFAULT_LAYOUT = GridLayout(cols=8, rows=5)

# Fallback search bounds (no error threshold)
FALLBACK_MIN_CELLS = 2
FALLBACK_MAX_CELLS = 10

# Pixel analysis
BRIGHTNESS_THRESHOLD = 245
PERIOD_WINDOW = 5
MIN_REPEATS_FOR_BONUS = 4
REPEAT_BONUS = 0.1
STANDARD_TOTAL_SLACK = 2
CONFIDENCE_STANDARD = 0.7
CONFIDENCE_NONSTANDARD = 0.4
MIN_CONFIDENCE = 0.3


def layout_candidates(width: int, height: int) -> List[LayoutCandidate]:
    """
    All layouts whose expected aspect ratio is within MAX_ASPECT_ERROR.

    Sorted by preference: larger sticker totals first, then smaller error.
    """
    image_ratio = width / height
    candidates: List[LayoutCandidate] = []

    for stamp_ratio in STAMP_RATIOS:
        for total in STANDARD_TOTALS:
            for cols in range(1, min(total, MAX_GRID_CELLS) + 1):
                if total % cols:
                    continue
                rows = total // cols
                if rows > MAX_GRID_CELLS:
                    continue

                error = abs((cols / rows) * stamp_ratio - image_ratio)
                if error < MAX_ASPECT_ERROR:
                    candidates.append(LayoutCandidate(cols, rows, total, error))

    return sorted(candidates, key=lambda c: (-c.total, c.error))


def _closest_layout(width: int, height: int) -> GridLayout:
    """Minimum-error layout with no error threshold."""
    image_ratio = width / height
    best = DEFAULT_LAYOUT
    min_error = float("inf")

    for stamp_ratio in STAMP_RATIOS:
        for total in STANDARD_TOTALS:
            for cols in range(FALLBACK_MIN_CELLS, min(total, FALLBACK_MAX_CELLS) + 1):
                if total % cols:
                    continue
                rows = total // cols
                if rows < FALLBACK_MIN_CELLS or rows > FALLBACK_MAX_CELLS:
                    continue

                error = abs((cols / rows) * stamp_ratio - image_ratio)
                if error < min_error:
                    min_error = error
                    best = GridLayout(cols, rows)

    return best


def detect_layout_from_aspect(width: int, height: int) -> GridLayout:
    """
    Guess the grid layout of a sheet from its dimensions alone.

    More stickers wins over a closer aspect match as long as the match is
    within tolerance. If nothing is within tolerance the closest layout
    overall is returned.
    """
    if width <= 0 or height <= 0:
        return DEFAULT_LAYOUT

    candidates = layout_candidates(width, height)
    if not candidates:
        layout = _closest_layout(width, height)
        logger.debug(f"No aspect candidate for {width}x{height}, closest is {layout.cols}x{layout.rows}")
        return layout

    best = candidates[0]
    logger.debug(
        f"Aspect layout for {width}x{height}: {best.cols}x{best.rows} "
        f"(total={best.total}, error={best.error:.3f}, candidates={len(candidates)})"
    )
    return best.layout


def compute_axis_profiles(bitmap: Bitmap) -> AxisProfiles:
    """
    Per-row and per-column brightness ratio and color variation.

    Brightness ratio is the fraction of pixels whose mean RGB exceeds
    BRIGHTNESS_THRESHOLD. Variation is the mean absolute RGB difference
    between neighbouring pixels along the row (or column).
    """
    rgb = bitmap.pixels[..., :3].astype(np.int16)
    height, width = rgb.shape[:2]

    bright = rgb.sum(axis=2) / 3 > BRIGHTNESS_THRESHOLD
    row_brightness = bright.sum(axis=1) / width
    col_brightness = bright.sum(axis=0) / height

    if width > 1:
        row_diff = np.abs(np.diff(rgb, axis=1)).sum(axis=2)
        row_variation = row_diff.sum(axis=1) / (width - 1)
    else:
        row_variation = np.zeros(height)

    if height > 1:
        col_diff = np.abs(np.diff(rgb, axis=0)).sum(axis=2)
        col_variation = col_diff.sum(axis=0) / (height - 1)
    else:
        col_variation = np.zeros(width)

    return AxisProfiles(
        row_brightness=row_brightness.tolist(),
        col_brightness=col_brightness.tolist(),
        row_variation=row_variation.tolist(),
        col_variation=col_variation.tolist(),
    )


def detect_period(series: Sequence[float], min_period: int, max_period: int) -> int:
    """
    Most likely repetition period of peaks in a 1-D signal.

    Each candidate period samples the series at 0, p, 2p, ... and takes the
    maximum over a small window at every sample. The score is the mean of
    those maxima, boosted when the pattern repeats at least
    MIN_REPEATS_FOR_BONUS times.

    Returns:
        Best period, or 0 if the range is empty
    """
    values = np.asarray(series, dtype=np.float64)
    n = values.size
    if n == 0:
        return 0

    # window_max[i] = max(values[i:i + PERIOD_WINDOW])
    padded = np.concatenate([values, np.full(PERIOD_WINDOW - 1, -np.inf)])
    windows = np.lib.stride_tricks.sliding_window_view(padded, PERIOD_WINDOW)
    window_max = windows.max(axis=1).tolist()

    best_period = 0
    best_score = -float("inf")

    for period in range(max(1, min_period), max_period + 1):
        samples = window_max[0:n:period]
        count = len(samples)
        score = sum(samples) / count
        bonus = 1 + (count - MIN_REPEATS_FOR_BONUS) * REPEAT_BONUS if count >= MIN_REPEATS_FOR_BONUS else 1
        final_score = score * bonus

        if final_score > best_score:
            best_score = final_score
            best_period = period

    return best_period


def detect_layout_from_pixels(bitmap: Bitmap) -> LayoutDetection:
    """
    Detect the grid layout from periodic light separator lines.

    Confidence is CONFIDENCE_STANDARD when the detected total is close to a
    standard set size, CONFIDENCE_NONSTANDARD otherwise, and 0 when the
    periods could not be turned into a plausible grid (the aspect ratio
    layout is returned instead).
    """
    width, height = bitmap.size
    profiles = compute_axis_profiles(bitmap)

    row_period = detect_period(profiles.row_brightness, height // 12, height // 3)
    col_period = detect_period(profiles.col_brightness, width // 12, width // 3)

    if row_period > 0 and col_period > 0:
        rows = round(height / row_period)
        cols = round(width / col_period)

        if 1 <= rows <= MAX_GRID_CELLS and 1 <= cols <= MAX_GRID_CELLS:
            total = rows * cols
            is_standard = any(abs(total - st) <= STANDARD_TOTAL_SLACK for st in STANDARD_TOTALS)
            confidence = CONFIDENCE_STANDARD if is_standard else CONFIDENCE_NONSTANDARD

            logger.debug(
                f"Pixel layout: {cols}x{rows} (periods col={col_period}, row={row_period}, "
                f"confidence={confidence})"
            )
            return LayoutDetection(
                layout=GridLayout(cols, rows),
                confidence=confidence,
                method="pixels",
                row_period=row_period,
                col_period=col_period,
                profiles=profiles,
            )

    fallback = detect_layout_from_aspect(width, height)
    return LayoutDetection(
        layout=fallback,
        confidence=0.0,
        method="aspect",
        row_period=row_period,
        col_period=col_period,
        profiles=profiles,
    )


def detect_layout(bitmap: Bitmap) -> LayoutDetection:
    """
    Pick a layout for a sheet: pixel analysis when confident, else aspect ratio.
    """
    analyzed = detect_layout_from_pixels(bitmap)
    if analyzed.confidence > MIN_CONFIDENCE:
        return analyzed

    return LayoutDetection(
        layout=detect_layout_from_aspect(bitmap.width, bitmap.height),
        confidence=analyzed.confidence,
        method="aspect",
        row_period=analyzed.row_period,
        col_period=analyzed.col_period,
        profiles=analyzed.profiles,
    )
