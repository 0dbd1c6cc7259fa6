"""
Image I/O utility functions.

Decoding and encoding between files and RGBA bitmaps, vertical sheet
combination and debug overlays. OpenCV works in BGR(A) order; every
function here converts at the boundary so the rest of the package only
sees RGBA.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import cv2
import numpy as np

from ..exceptions import ExportError, ImageLoadError, ValidationError
from ..models import Bitmap, CellBox


def _to_rgba(img: np.ndarray) -> np.ndarray:
    """Convert a decoded OpenCV image (gray, BGR or BGRA) to RGBA uint8."""
    if img.dtype == np.uint16:
        img = (img // 257).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)


def decode_image(data: bytes, source: str = "<bytes>") -> Bitmap:
    """
    Decode encoded image bytes into a bitmap.

    Raises:
        ImageLoadError: If the data is not a decodable image
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if img is None:
        raise ImageLoadError("Unsupported or corrupted image data", image_path=source)
    return Bitmap(_to_rgba(img))


def load_image(path: Path) -> Bitmap:
    """
    Load an image file as an RGBA bitmap.

    Uses ``cv2.imdecode`` on the raw bytes for proper Unicode path handling.

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise ImageLoadError("Image file not found", image_path=str(path))

    data = np.fromfile(str(path), dtype=np.uint8)
    return decode_image(data.tobytes(), source=str(path))


def encode_png(bitmap: Bitmap, compression: int = 3) -> bytes:
    """
    Encode a bitmap as lossless RGBA PNG.

    Raises:
        ExportError: If encoding fails
    """
    bgra = cv2.cvtColor(bitmap.pixels, cv2.COLOR_RGBA2BGRA)
    success, data = cv2.imencode(".png", bgra, [cv2.IMWRITE_PNG_COMPRESSION, compression])
    if not success:
        raise ExportError("PNG encoding failed", operation="encode")
    return data.tobytes()


def save_image(bitmap: Bitmap, path: Path, compression: int = 3) -> Path:
    """
    Save a bitmap as PNG with proper Unicode path handling.

    Parent directories are created as needed.

    Raises:
        ExportError: If encoding or writing fails
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = encode_png(bitmap, compression)
    try:
        path.write_bytes(data)
    except OSError as e:
        raise ExportError(f"Failed to write image: {e}", file_path=str(path), operation="write") from e
    return path


def combine_images_vertically(bitmaps: Sequence[Bitmap]) -> Bitmap:
    """
    Stack bitmaps top to bottom at their original sizes.

    Images are left-aligned; the output is as wide as the widest input and
    the uncovered area is transparent.
    """
    if not bitmaps:
        raise ValidationError("At least one image is required", field_name="bitmaps")
    if len(bitmaps) == 1:
        return bitmaps[0].copy()

    width = max(b.width for b in bitmaps)
    height = sum(b.height for b in bitmaps)
    combined = Bitmap.blank(width, height)

    y = 0
    for b in bitmaps:
        combined.pixels[y:y + b.height, :b.width] = b.pixels
        y += b.height
    return combined


def draw_grid_overlay(bitmap: Bitmap, boxes: Sequence[CellBox]) -> Bitmap:
    """
    Draw cell rectangles over a copy of the sheet for debugging.

    Returns:
        New bitmap with the cell outlines in red and their indices
    """
    output = bitmap.copy()
    # cv2 drawing needs a contiguous array it can write to
    canvas = output.pixels

    for index, box in enumerate(boxes):
        x1, y1 = int(round(box.x)), int(round(box.y))
        x2, y2 = int(round(box.x + box.width)) - 1, int(round(box.y + box.height)) - 1
        cv2.rectangle(canvas, (x1, y1), (x2, y2), (255, 0, 0, 255), 2)
        cv2.putText(
            canvas, f"{index + 1:02d}", (x1 + 4, y1 + 18),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 0, 0, 255), 1
        )

    return output
