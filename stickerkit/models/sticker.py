"""
Sticker models.

A sticker is one sliced tile of the source sheet. Stickers are created
by the slicer, edited in place by the removal and edit tools, and
replaced wholesale whenever the slice parameters change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .bitmap import Bitmap


@dataclass
class Sticker:
    """One sliced tile of a sticker sheet."""
    id: int
    original_index: int
    bitmap: Bitmap
    is_main: bool = False

    @property
    def number(self) -> int:
        """1-based position used for export file names."""
        return self.original_index + 1

    @property
    def file_name(self) -> str:
        return f"{self.number:02d}.png"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "original_index": self.original_index,
            "width": self.bitmap.width,
            "height": self.bitmap.height,
            "is_main": self.is_main,
            "file_name": self.file_name,
        }
