"""
Manual edit tools: eraser, restore brush, color brush, bucket fill and
eyedropper.

Brushes are hard-edged circles: a pixel is inside when its centre lies
within ``radius`` of (x, y). The pixel containing (x, y) is always inside,
so a brush smaller than a pixel still paints the clicked pixel. Circles may
extend past the bitmap edge and are clipped.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from ..exceptions import ValidationError
from ..models import Bitmap, OperationResult, as_rgba


def circle_mask(
    bitmap: Bitmap, x: float, y: float, radius: float
) -> Optional[Tuple[slice, slice, np.ndarray]]:
    """
    Pixels covered by a circular brush.

    Returns:
        (row slice, column slice, bool mask for that window), or None if
        the brush covers no pixel of the bitmap
    """
    if radius <= 0:
        raise ValidationError("Brush radius must be positive", field_name="radius", field_value=radius)

    x0 = max(0, int(math.floor(x - radius)))
    x1 = min(bitmap.width, int(math.ceil(x + radius)) + 1)
    y0 = max(0, int(math.floor(y - radius)))
    y1 = min(bitmap.height, int(math.ceil(y + radius)) + 1)
    if x0 >= x1 or y0 >= y1:
        return None

    cols = np.arange(x0, x1) + 0.5 - x
    rows = np.arange(y0, y1) + 0.5 - y
    mask = rows[:, None] ** 2 + cols[None, :] ** 2 <= radius * radius
    px, py = int(math.floor(x)), int(math.floor(y))
    if x0 <= px < x1 and y0 <= py < y1:
        mask[py - y0, px - x0] = True
    if not mask.any():
        return None
    return slice(y0, y1), slice(x0, x1), mask


def erase(bitmap: Bitmap, x: float, y: float, radius: float) -> OperationResult:
    """Clear alpha inside the circle; color channels are kept for restore."""
    window = circle_mask(bitmap, x, y, radius)
    if window is None:
        return OperationResult.noop("Brush outside the image")

    rows, cols, mask = window
    alpha = bitmap.pixels[rows, cols, 3]
    if not alpha[mask].any():
        return OperationResult.noop("Nothing to erase")
    alpha[mask] = 0
    return OperationResult.ok("Erased")


def restore(bitmap: Bitmap, original: Bitmap, x: float, y: float, radius: float) -> OperationResult:
    """
    Copy pixels from the untouched original back inside the circle.

    An original of a different size is resampled to the working size
    first.
    """
    if original.size != bitmap.size:
        resized = original.to_image().resize(bitmap.size, Image.Resampling.LANCZOS)
        original = Bitmap.from_image(resized)

    window = circle_mask(bitmap, x, y, radius)
    if window is None:
        return OperationResult.noop("Brush outside the image")

    rows, cols, mask = window
    target = bitmap.pixels[rows, cols]
    source = original.pixels[rows, cols]
    if np.array_equal(target[mask], source[mask]):
        return OperationResult.noop("Nothing to restore")
    target[mask] = source[mask]
    return OperationResult.ok("Restored")


def color_brush(
    bitmap: Bitmap, x: float, y: float, radius: float, color: Sequence[int]
) -> OperationResult:
    """Paint a solid opaque circle."""
    r, g, b, _ = as_rgba(color)
    window = circle_mask(bitmap, x, y, radius)
    if window is None:
        return OperationResult.noop("Brush outside the image")

    rows, cols, mask = window
    target = bitmap.pixels[rows, cols]
    paint = np.array((r, g, b, 255), dtype=np.uint8)
    if (target[mask] == paint).all():
        return OperationResult.noop("Already painted")
    target[mask] = paint
    return OperationResult.ok("Painted")


def bucket_fill(
    bitmap: Bitmap, x: float, y: float, color: Sequence[int], tolerance: int = 0
) -> OperationResult:
    """
    Scanline flood fill with a solid color.

    A pixel joins the fill when every RGBA channel is within ``tolerance``
    of the clicked pixel. An RGB ``color`` fills opaque. Filling with the
    clicked color is a no-op; for an RGB ``color`` only the RGB channels
    are compared, so a color taken with the eyedropper is a no-op on a
    semi-transparent pixel too.

    Raises:
        CoordinateError: If (x, y) is outside the bitmap
    """
    bitmap.check_bounds(x, y)
    sx, sy = int(x), int(y)
    fill = np.array(as_rgba(color), dtype=np.uint8)
    target = bitmap.pixels[sy, sx].copy()

    channels = 3 if len(color) == 3 else 4
    if np.array_equal(target[:channels], fill[:channels]):
        return OperationResult.noop("Target already has the fill color")

    width, height = bitmap.width, bitmap.height
    diff = np.abs(bitmap.pixels.astype(np.int16) - target.astype(np.int16))
    in_band = (diff <= tolerance).all(axis=2)
    filled = np.zeros((height, width), dtype=bool)

    stack = [(sx, sy)]
    while stack:
        px, py = stack.pop()
        row = in_band[py] & ~filled[py]
        if not row[px]:
            continue

        # Extend the span left and right from px
        left_gaps = np.flatnonzero(~row[:px])
        left = int(left_gaps[-1]) + 1 if left_gaps.size else 0
        right_gaps = np.flatnonzero(~row[px:])
        right = px + int(right_gaps[0]) if right_gaps.size else width

        filled[py, left:right] = True

        for ny in (py - 1, py + 1):
            if not 0 <= ny < height:
                continue
            open_run = in_band[ny, left:right] & ~filled[ny, left:right]
            # One seed per run of open pixels in the adjacent row
            starts = np.flatnonzero(open_run & ~np.concatenate(([False], open_run[:-1])))
            stack.extend((left + int(s), ny) for s in starts)

    bitmap.pixels[filled] = fill
    return OperationResult.ok(f"Filled {int(filled.sum())} pixels")


def eyedropper(bitmap: Bitmap, x: float, y: float) -> OperationResult:
    """
    Pick the RGB color at (x, y).

    Returns:
        Successful result with ``color`` set, or a failed result on a
        fully transparent pixel

    Raises:
        CoordinateError: If (x, y) is outside the bitmap
    """
    px, py = int(math.floor(x)), int(math.floor(y))
    r, g, b, a = bitmap.get_pixel(px, py)
    if a == 0:
        return OperationResult.failed("Cannot pick a color from a transparent pixel")
    return OperationResult(success=True, message=f"Picked RGB({r}, {g}, {b})", color=(r, g, b))
