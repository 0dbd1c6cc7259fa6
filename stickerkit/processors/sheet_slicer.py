"""
Sheet slicer.

Loads one or more sheet images, stacks them vertically, detects the grid
layout (unless one is given) and slices the stickers.

Input: one or more image files
Output: context.sheet with sliced stickers
"""

from __future__ import annotations

import time

from .base import BaseProcessor
from ..core.slicer import compute_cell_boxes
from ..sheet import StickerSheet
from ..utils.image_utils import draw_grid_overlay, save_image


class SheetSlicer(BaseProcessor):
    """
    Slice a sticker sheet into stickers.

    Detection results and a grid overlay are written to the debug
    directory in debug mode.
    """

    name = "SheetSlicer"

    def validate(self) -> bool:
        """Validate prerequisites."""
        if not self.context.source_paths:
            self.log_error("No source images given")
            return False

        missing = [p for p in self.context.source_paths if not p.exists()]
        if missing:
            self.log_error(f"Source image not found: {missing[0]}")
            return False

        # Fail fast on bad geometry before decoding anything
        self.context.trim.validate()
        self.context.gap.validate()
        if self.context.layout is not None:
            self.context.layout.validate()

        return True

    def process(self) -> bool:
        ctx = self.context
        stats = ctx.stats

        start = time.perf_counter()
        sheet = StickerSheet.from_files(
            ctx.source_paths,
            name=ctx.sheet_name,
            layout=ctx.layout,
            config=self.config,
        )
        stats.detection_time_sec = time.perf_counter() - start

        start = time.perf_counter()
        # Each setter reslices, so only apply what differs from the defaults
        if ctx.trim != sheet.trim:
            sheet.set_trim(ctx.trim)
        if ctx.gap != sheet.gap:
            sheet.set_gap(ctx.gap)
        if ctx.main_index:
            sheet.set_main(ctx.main_index)
        stats.slicing_time_sec = time.perf_counter() - start

        ctx.sheet = sheet

        stats.source_width, stats.source_height = sheet.source.size
        stats.cols, stats.rows = sheet.layout.cols, sheet.layout.rows
        stats.total_stickers = len(sheet)
        if sheet.detection is not None:
            stats.layout_method = sheet.detection.method
            stats.layout_confidence = sheet.detection.confidence
        else:
            stats.layout_method = "manual"
            stats.layout_confidence = 1.0

        self.log_info(
            f"Sliced {len(sheet)} stickers",
            source=f"{sheet.source.width}x{sheet.source.height}",
            grid=f"{sheet.layout.cols}x{sheet.layout.rows}",
        )

        if sheet.detection is not None:
            self.save_debug_info("layout", {
                **sheet.detection.to_dict(),
                "profiles": sheet.detection.profiles.to_dict() if sheet.detection.profiles else None,
            })
        self._save_overlay(sheet)

        return True

    def _save_overlay(self, sheet: StickerSheet) -> None:
        if not self.debug_mode or not self.context.output_dir:
            return

        boxes = compute_cell_boxes(
            sheet.source.width, sheet.source.height, sheet.layout, sheet.trim, sheet.gap
        )
        path = save_image(
            draw_grid_overlay(sheet.source, boxes),
            self.context.output_dir / "debug" / "grid_overlay.png",
        )
        self.log_debug(f"Saved grid overlay to {path}")
