import numpy as np
import pytest

from stickerkit.config import reset_config
from stickerkit.models import Bitmap


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch, tmp_path):
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.delenv("DEBUG", raising=False)
    reset_config()
    yield
    reset_config()


def solid(width, height, color):
    return Bitmap.blank(width, height, color)


def disk(bitmap, cx, cy, radius, color):
    """Paint a filled disk (pixel centres within radius) in place."""
    ys, xs = np.mgrid[0:bitmap.height, 0:bitmap.width]
    inside = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    bitmap.pixels[inside] = color
    return inside


def grid_sheet(cols, rows, cell=60, line=2, fill=(40, 40, 40, 255)):
    """Dark cells separated by white lines at every cell boundary."""
    sheet = Bitmap.blank(cols * cell, rows * cell, fill)
    for c in range(cols):
        sheet.pixels[:, c * cell:c * cell + line] = (255, 255, 255, 255)
    for r in range(rows):
        sheet.pixels[r * cell:r * cell + line, :] = (255, 255, 255, 255)
    return sheet


def numbered_sheet(cols, rows, cell_w=40, cell_h=30):
    """Each cell filled with a distinct gray level (10 * (index + 1))."""
    sheet = Bitmap.blank(cols * cell_w, rows * cell_h, (0, 0, 0, 255))
    for r in range(rows):
        for c in range(cols):
            level = 10 * (r * cols + c + 1)
            sheet.pixels[r * cell_h:(r + 1) * cell_h, c * cell_w:(c + 1) * cell_w] = (level, level, level, 255)
    return sheet
