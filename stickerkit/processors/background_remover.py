"""
Batch background removal.

Runs automatic background removal on every sticker of the sliced sheet.
Stickers are independent bitmaps, so they are processed in parallel;
stickers whose background cannot be estimated are left untouched.

Input: context.sheet
Output: context.sheet stickers edited in place
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from .base import BaseProcessor, ProcessingContext
from ..core.background import auto_remove_background
from ..models import OperationResult, Sticker, StickerTiming


class BackgroundRemover(BaseProcessor):
    """
    Remove sticker backgrounds without user clicks.

    Uses border color estimation with edge protection and hole filling.
    A failed estimate for one sticker never fails the run.
    """

    name = "BackgroundRemover"

    def __init__(
        self,
        context: ProcessingContext,
        tolerance: Optional[float] = None,
        fill_holes: bool = True,
        edge_protection: bool = True,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize background remover.

        Args:
            context: Processing context
            tolerance: LAB-scale tolerance (default from config)
            fill_holes: Clear enclosed background regions too
            edge_protection: Keep pixels near detected outlines
            max_workers: Worker threads (default from config)
        """
        super().__init__(context)
        self.tolerance = self.config.default_tolerance if tolerance is None else tolerance
        self.fill_holes = fill_holes
        self.edge_protection = edge_protection
        self.max_workers = max_workers or self.config.export.max_workers

    def validate(self) -> bool:
        if self.context.sheet is None:
            self.log_error("No sliced sheet in context (run SheetSlicer first)")
            return False
        return True

    def _remove(self, sticker: Sticker) -> StickerTiming:
        start = time.perf_counter()
        result: OperationResult = auto_remove_background(
            sticker.bitmap,
            self.tolerance,
            self.fill_holes,
            self.edge_protection,
            self.config.removal,
        )
        return StickerTiming(
            sticker_number=sticker.number,
            success=result.success,
            changed=result.changed,
            message=result.message,
            removal_time_sec=time.perf_counter() - start,
        )

    def process(self) -> bool:
        sheet = self.context.sheet
        stats = self.context.stats
        total = len(sheet.stickers)
        done = 0

        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_sticker = {
                executor.submit(self._remove, sticker): sticker
                for sticker in sheet.stickers
            }

            for future in as_completed(future_to_sticker):
                sticker = future_to_sticker[future]
                try:
                    timing = future.result()
                except Exception as e:
                    self.log_error(f"Sticker {sticker.number:02d} failed", error=e)
                    timing = StickerTiming(sticker_number=sticker.number, success=False, message=str(e))

                stats.add_sticker_timing(timing)
                if not timing.success:
                    self.log_warning(f"Sticker {sticker.number:02d}: {timing.message}")
                else:
                    self.log_debug(f"Sticker {sticker.number:02d}: {timing.message}")

                done += 1
                self.context.report_progress(done, total)

        stats.sticker_timings.sort(key=lambda t: t.sticker_number)
        stats.removal_time_sec = time.perf_counter() - start

        cleaned = sum(1 for t in stats.sticker_timings if t.changed)
        self.log_info("Removed backgrounds", cleaned=f"{cleaned}/{total}")
        return True
