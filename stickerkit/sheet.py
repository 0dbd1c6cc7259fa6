"""
Sticker sheet state.

A StickerSheet owns the decoded source bitmap and the current slice
parameters. Changing any parameter (layout, trim, gap, custom grid
lines) discards every sliced sticker, including edits, and slices
again from the source.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from .config import Config, get_config
from .core.layout import detect_layout
from .core.slicer import create_main_image, slice_custom, slice_sheet
from .exceptions import ValidationError
from .logger import get_logger
from .models import (
    Bitmap,
    GapConfig,
    GridLayout,
    GridLines,
    LayoutDetection,
    Sticker,
    TrimConfig,
)
from .utils.image_utils import combine_images_vertically, load_image

logger = get_logger(__name__)

# Custom grid line states kept for undo / redo
GRID_HISTORY_LIMIT = 20


class StickerSheet:
    """
    A source sheet and the stickers sliced from it.

    Usage:
        sheet = StickerSheet.from_files([Path("sheet.png")])
        sheet.set_trim(TrimConfig(top=0.05))
        main = sheet.main_image()
    """

    def __init__(
        self,
        source: Bitmap,
        name: str = "sheet",
        layout: Optional[GridLayout] = None,
        config: Optional[Config] = None,
    ):
        self.source = source
        self.name = name
        self.config = config or get_config()

        self.detection: Optional[LayoutDetection] = None
        if layout is None:
            self.detection = detect_layout(source)
            layout = self.detection.layout
            logger.info(
                f"{name}: detected {layout.cols}x{layout.rows} layout "
                f"({self.detection.method}, confidence {self.detection.confidence:.1f})"
            )

        self.layout = layout.validate()
        self.trim = TrimConfig()
        self.gap = GapConfig()
        self.grid_lines: Optional[GridLines] = None
        self.main_index = 0

        self._grid_history: List[GridLines] = []
        self._grid_index = -1

        self.stickers: List[Sticker] = []
        self._originals: List[Bitmap] = []
        self.reslice()

    @classmethod
    def from_bitmaps(cls, bitmaps: Sequence[Bitmap], name: str = "sheet", **kwargs) -> "StickerSheet":
        """Build a sheet from one or more images stacked vertically."""
        return cls(combine_images_vertically(bitmaps), name=name, **kwargs)

    @classmethod
    def from_files(cls, paths: Sequence[Path], name: Optional[str] = None, **kwargs) -> "StickerSheet":
        """Load and stack one or more image files into a single sheet."""
        if not paths:
            raise ValidationError("At least one image path is required", field_name="paths")
        bitmaps = [load_image(Path(p)) for p in paths]
        return cls.from_bitmaps(bitmaps, name=name or Path(paths[0]).stem, **kwargs)

    # --- Slicing ---

    @property
    def uses_custom_lines(self) -> bool:
        return self.grid_lines is not None

    @property
    def grid(self) -> GridLayout:
        """Effective grid: custom lines when set, otherwise the layout."""
        return self.grid_lines.layout if self.grid_lines is not None else self.layout

    def reslice(self) -> List[Sticker]:
        """Regenerate all stickers from the source with the current parameters."""
        size = self.config.slicing.sticker_size
        if self.grid_lines is not None:
            bitmaps = slice_custom(
                self.source, self.grid_lines.col_lines, self.grid_lines.row_lines, self.trim, size
            )
        else:
            bitmaps = slice_sheet(
                self.source, self.layout.cols, self.layout.rows, self.trim, self.gap, size
            )

        self._originals = [b.copy() for b in bitmaps]
        self.stickers = [Sticker(id=i, original_index=i, bitmap=b) for i, b in enumerate(bitmaps)]

        if not 0 <= self.main_index < len(self.stickers):
            self.main_index = 0
        self._mark_main()

        logger.debug(f"{self.name}: sliced {len(self.stickers)} stickers")
        return self.stickers

    def set_layout(self, cols: int, rows: int) -> List[Sticker]:
        """Change the uniform grid; custom grid lines and their history are dropped."""
        self.layout = GridLayout(cols, rows).validate()
        self.grid_lines = None
        self._grid_history = []
        self._grid_index = -1
        return self.reslice()

    def set_trim(self, trim: TrimConfig) -> List[Sticker]:
        self.trim = trim.validate()
        return self.reslice()

    def set_gap(self, gap: GapConfig) -> List[Sticker]:
        self.gap = gap.validate()
        return self.reslice()

    # --- Custom grid lines ---

    def uniform_grid_lines(self) -> GridLines:
        """Evenly spaced lines for the current layout, as a starting point for editing."""
        return GridLines.uniform(self.layout.cols, self.layout.rows)

    def set_grid_lines(self, grid_lines: Optional[GridLines]) -> List[Sticker]:
        """
        Slice on explicit grid lines (None returns to the uniform grid).

        Each new set of lines is recorded for undo; redo states past the
        current position are discarded.
        """
        if grid_lines is None:
            self.grid_lines = None
            self._grid_history = []
            self._grid_index = -1
            return self.reslice()

        grid_lines.validate()
        del self._grid_history[self._grid_index + 1:]
        self._grid_history.append(grid_lines)
        if len(self._grid_history) > GRID_HISTORY_LIMIT:
            self._grid_history.pop(0)
        self._grid_index = len(self._grid_history) - 1

        self.grid_lines = grid_lines
        return self.reslice()

    def undo_grid_lines(self) -> bool:
        """
        Step back one grid line change.

        Undoing the first change returns to the uniform grid.

        Returns:
            True if anything changed
        """
        if self._grid_index > 0:
            self._grid_index -= 1
            self.grid_lines = self._grid_history[self._grid_index]
        elif self._grid_index == 0:
            self._grid_index = -1
            self.grid_lines = None
        else:
            return False
        self.reslice()
        return True

    def redo_grid_lines(self) -> bool:
        if self._grid_index >= len(self._grid_history) - 1:
            return False
        self._grid_index += 1
        self.grid_lines = self._grid_history[self._grid_index]
        self.reslice()
        return True

    # --- Stickers ---

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.stickers):
            raise ValidationError(
                "Sticker index out of range",
                field_name="index",
                field_value=index,
                expected=f"0 <= index < {len(self.stickers)}",
            )

    def _mark_main(self) -> None:
        for i, sticker in enumerate(self.stickers):
            sticker.is_main = i == self.main_index

    def set_main(self, index: int) -> None:
        self._check_index(index)
        self.main_index = index
        self._mark_main()

    def main_image(self) -> Bitmap:
        """The main icon: the selected sticker resampled to a square."""
        self._check_index(self.main_index)
        return create_main_image(self.stickers[self.main_index].bitmap, self.config.slicing.main_size)

    def original(self, index: int) -> Bitmap:
        """Copy of the sticker as sliced, before any removal or edit."""
        self._check_index(index)
        return self._originals[index].copy()

    def replace_bitmap(self, index: int, bitmap: Bitmap) -> None:
        """Store an edited bitmap for a sticker."""
        self._check_index(index)
        self.stickers[index].bitmap = bitmap

    def __len__(self) -> int:
        return len(self.stickers)

    def __repr__(self) -> str:
        grid = self.grid
        return f"StickerSheet({self.name!r}, {self.source.width}x{self.source.height}, {grid.cols}x{grid.rows})"
