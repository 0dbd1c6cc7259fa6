"""
RGBA bitmap model.

A Bitmap owns a row-major ``H x W x 4`` uint8 buffer (R, G, B, A) with the
origin at the top-left. Core operations read it and, where documented,
mutate ``pixels`` in place.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from PIL import Image

from ..exceptions import CoordinateError, ValidationError

RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]


def as_rgba(color: Sequence[int]) -> RGBA:
    """Normalize an RGB or RGBA sequence to an RGBA tuple (alpha 255 if absent)."""
    if len(color) == 3:
        r, g, b = color
        a = 255
    elif len(color) == 4:
        r, g, b, a = color
    else:
        raise ValidationError(
            "Color must have 3 or 4 channels",
            field_name="color",
            field_value=color,
            expected="(r, g, b) or (r, g, b, a)",
        )
    for channel in (r, g, b, a):
        if not 0 <= int(channel) <= 255:
            raise ValidationError(
                "Color channel out of range",
                field_name="color",
                field_value=color,
                expected="0-255",
            )
    return (int(r), int(g), int(b), int(a))


class Bitmap:
    """
    Owned RGBA pixel buffer with bounds-checked accessors.

    The numpy array is exposed as ``pixels`` for vectorized algorithms.
    Copies are always deep; nothing in this package keeps views of a
    caller's bitmap.
    """

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValidationError(
                "Bitmap buffer must be H x W x 4",
                field_name="pixels.shape",
                field_value=pixels.shape,
                expected="(height, width, 4)",
            )
        if pixels.dtype != np.uint8:
            raise ValidationError(
                "Bitmap buffer must be uint8",
                field_name="pixels.dtype",
                field_value=pixels.dtype,
            )
        self.pixels = np.ascontiguousarray(pixels)

    # --- Construction ---

    @classmethod
    def blank(cls, width: int, height: int, color: Sequence[int] = (0, 0, 0, 0)) -> "Bitmap":
        """Create a bitmap filled with a single color (transparent by default)."""
        if width <= 0 or height <= 0:
            raise ValidationError(
                "Bitmap dimensions must be positive",
                field_name="size",
                field_value=(width, height),
            )
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = as_rgba(color)
        return cls(pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Bitmap":
        """
        Create a bitmap from a copy of an array.

        Accepts ``H x W`` grayscale, ``H x W x 3`` RGB or ``H x W x 4`` RGBA
        arrays; missing alpha is set to fully opaque.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)
        if array.ndim == 2:
            array = np.stack([array, array, array], axis=-1)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValidationError(
                "Unsupported array shape for bitmap",
                field_name="array.shape",
                field_value=array.shape,
            )
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=-1)
        return cls(array.copy())

    @classmethod
    def from_image(cls, image: Image.Image) -> "Bitmap":
        """Create a bitmap from a Pillow image (converted to RGBA)."""
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    def to_image(self) -> Image.Image:
        """Return a Pillow RGBA image holding a copy of the pixels."""
        return Image.fromarray(self.pixels.copy())

    # --- Geometry ---

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def check_bounds(self, x: int, y: int) -> None:
        """Raise CoordinateError if (x, y) is outside the bitmap."""
        if not self.in_bounds(x, y):
            raise CoordinateError(x, y, self.width, self.height)

    # --- Pixel access ---

    def get_pixel(self, x: int, y: int) -> RGBA:
        self.check_bounds(x, y)
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def set_pixel(self, x: int, y: int, color: Sequence[int]) -> None:
        self.check_bounds(x, y)
        self.pixels[y, x] = as_rgba(color)

    @property
    def alpha(self) -> np.ndarray:
        """View of the alpha channel."""
        return self.pixels[:, :, 3]

    def copy(self) -> "Bitmap":
        return Bitmap(self.pixels.copy())

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitmap):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Bitmap({self.width}x{self.height})"
