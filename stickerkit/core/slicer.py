"""
Sheet slicing.

Cuts a sticker sheet into cells, either on a uniform grid with trim and
gap, or on explicit normalized grid lines, and resamples every cell to
the sticker output size with a high-quality Lanczos filter.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from PIL import Image

from ..config import get_config
from ..logger import get_logger
from ..models import Bitmap, CellBox, GapConfig, GridLayout, GridLines, TrimConfig
from ..utils.timing import timed_operation

logger = get_logger(__name__)


def compute_cell_boxes(
    width: int,
    height: int,
    layout: GridLayout,
    trim: Optional[TrimConfig] = None,
    gap: Optional[GapConfig] = None,
) -> List[CellBox]:
    """
    Source rectangles for a uniform grid, row-major.

    The gap is a fraction of the cell size the grid would have without
    gaps; the remaining space after subtracting all inner gaps is split
    evenly between the cells.
    """
    layout.validate()
    trim = (trim or TrimConfig()).validate()
    gap = (gap or GapConfig()).validate()

    region_x, region_y, region_w, region_h = trim.region(width, height)
    cols, rows = layout.cols, layout.rows

    gap_px_x = (region_w / cols) * gap.x
    gap_px_y = (region_h / rows) * gap.y

    total_gap_w = (cols - 1) * gap_px_x if cols > 1 else 0.0
    total_gap_h = (rows - 1) * gap_px_y if rows > 1 else 0.0

    cell_w = (region_w - total_gap_w) / cols
    cell_h = (region_h - total_gap_h) / rows

    boxes = []
    for r in range(rows):
        for c in range(cols):
            boxes.append(CellBox(
                x=region_x + c * (cell_w + gap_px_x),
                y=region_y + r * (cell_h + gap_px_y),
                width=cell_w,
                height=cell_h,
            ))
    return boxes


def compute_custom_cell_boxes(
    width: int,
    height: int,
    grid_lines: GridLines,
    trim: Optional[TrimConfig] = None,
) -> List[CellBox]:
    """Source rectangles between explicit grid lines inside the trimmed region."""
    grid_lines.validate()
    trim = (trim or TrimConfig()).validate()

    region_x, region_y, region_w, region_h = trim.region(width, height)
    col_bounds = grid_lines.col_bounds()
    row_bounds = grid_lines.row_bounds()

    boxes = []
    for r in range(len(row_bounds) - 1):
        for c in range(len(col_bounds) - 1):
            boxes.append(CellBox(
                x=region_x + col_bounds[c] * region_w,
                y=region_y + row_bounds[r] * region_h,
                width=(col_bounds[c + 1] - col_bounds[c]) * region_w,
                height=(row_bounds[r + 1] - row_bounds[r]) * region_h,
            ))
    return boxes


def resample_box(image: Image.Image, box: CellBox, size: Tuple[int, int]) -> Bitmap:
    """
    Resample a fractional source rectangle to ``size``.

    The box is clamped to the image bounds. Pillow premultiplies alpha
    for RGBA resampling, so transparent pixels do not bleed color.
    """
    left, upper, right, lower = box.box
    left = min(max(left, 0.0), image.width)
    upper = min(max(upper, 0.0), image.height)
    right = min(max(right, left), image.width)
    lower = min(max(lower, upper), image.height)

    if right <= left or lower <= upper:
        return Bitmap.blank(*size)

    resized = image.resize(size, Image.Resampling.LANCZOS, box=(left, upper, right, lower))
    return Bitmap.from_image(resized)


def _resample_all(bitmap: Bitmap, boxes: Sequence[CellBox], size: Tuple[int, int]) -> List[Bitmap]:
    image = bitmap.to_image()
    return [resample_box(image, box, size) for box in boxes]


def slice_sheet(
    bitmap: Bitmap,
    cols: int,
    rows: int,
    trim: Optional[TrimConfig] = None,
    gap: Optional[GapConfig] = None,
    size: Optional[Tuple[int, int]] = None,
) -> List[Bitmap]:
    """
    Slice a sheet on a uniform grid.

    Args:
        bitmap: Source sheet (read only)
        cols: Number of columns (>= 1)
        rows: Number of rows (>= 1)
        trim: Outer margins to ignore
        gap: Spacing between cells
        size: Output (width, height); defaults to the configured sticker size

    Returns:
        cols * rows bitmaps in row-major order

    Raises:
        InvalidGeometryError: If the geometry produces degenerate cells
    """
    if size is None:
        size = get_config().slicing.sticker_size

    boxes = compute_cell_boxes(bitmap.width, bitmap.height, GridLayout(cols, rows), trim, gap)

    with timed_operation(f"Slice {cols}x{rows} from {bitmap.width}x{bitmap.height}", logger):
        return _resample_all(bitmap, boxes, size)


def slice_custom(
    bitmap: Bitmap,
    col_lines: Sequence[float],
    row_lines: Sequence[float],
    trim: Optional[TrimConfig] = None,
    size: Optional[Tuple[int, int]] = None,
) -> List[Bitmap]:
    """
    Slice a sheet on explicit normalized grid lines.

    ``col_lines`` and ``row_lines`` are cut positions in (0, 1), measured
    inside the trimmed region. Gap settings do not apply here.

    Returns:
        (len(col_lines) + 1) * (len(row_lines) + 1) bitmaps, row-major
    """
    if size is None:
        size = get_config().slicing.sticker_size

    grid_lines = GridLines(tuple(col_lines), tuple(row_lines))
    boxes = compute_custom_cell_boxes(bitmap.width, bitmap.height, grid_lines, trim)

    with timed_operation(
        f"Slice custom {grid_lines.cols}x{grid_lines.rows} from {bitmap.width}x{bitmap.height}", logger
    ):
        return _resample_all(bitmap, boxes, size)


def create_main_image(bitmap: Bitmap, size: Optional[int] = None) -> Bitmap:
    """Resample a whole sticker to the square main icon, ignoring aspect ratio."""
    if size is None:
        size = get_config().slicing.main_size

    image = bitmap.to_image()
    resized = image.resize((size, size), Image.Resampling.LANCZOS)
    return Bitmap.from_image(resized)
