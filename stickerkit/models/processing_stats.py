"""
Processing statistics and timing models.

Tracks performance metrics for a sheet processing run.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Any


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StickerTiming:
    """Timing information for a single sticker's background removal."""
    sticker_number: int = 0
    success: bool = True
    changed: bool = False
    message: str = ""
    removal_time_sec: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["removal_time_sec"] = round(self.removal_time_sec, 4)
        return data


@dataclass
class ProcessingStats:
    """
    Complete processing statistics for a sheet.

    Tracks timing and counts for all processing stages.
    """

    # Sheet identification
    sheet_name: str = ""

    # Timestamps
    started_at: str = ""  # ISO format
    completed_at: str = ""  # ISO format

    # Status
    status: str = "pending"  # pending, processing, completed, failed
    error_message: str = ""

    # Geometry
    source_width: int = 0
    source_height: int = 0
    cols: int = 0
    rows: int = 0
    layout_method: str = ""
    layout_confidence: float = 0.0

    # Counts
    total_stickers: int = 0
    stickers_cleaned: int = 0
    stickers_failed: int = 0
    files_written: int = 0

    # Overall timing (seconds)
    detection_time_sec: float = 0.0
    slicing_time_sec: float = 0.0
    removal_time_sec: float = 0.0
    export_time_sec: float = 0.0
    total_time_sec: float = 0.0

    # Per-sticker details
    sticker_timings: List[StickerTiming] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def start(self) -> None:
        """Mark processing as started."""
        self.started_at = _utc_now()
        self.status = "processing"

    def complete(self) -> None:
        """Mark processing as completed."""
        self.completed_at = _utc_now()
        self.status = "completed"
        self._calculate_totals()

    def fail(self, error: str) -> None:
        """Mark processing as failed."""
        self.completed_at = _utc_now()
        self.status = "failed"
        self.error_message = error

    def add_sticker_timing(self, timing: StickerTiming) -> None:
        """Add timing for a processed sticker (thread-safe)."""
        with self._lock:
            self.sticker_timings.append(timing)

    def _calculate_totals(self) -> None:
        if not self.sticker_timings:
            return
        self.stickers_cleaned = sum(1 for t in self.sticker_timings if t.success and t.changed)
        self.stickers_failed = sum(1 for t in self.sticker_timings if not t.success)

    @property
    def avg_removal_time_ms(self) -> float:
        """Average background removal time per sticker in milliseconds."""
        if not self.sticker_timings:
            return 0.0
        total = sum(t.removal_time_sec for t in self.sticker_timings)
        return total / len(self.sticker_timings) * 1000

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sheet_name": self.sheet_name,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "status": self.status,
            "error_message": self.error_message,

            "geometry": {
                "source_width": self.source_width,
                "source_height": self.source_height,
                "cols": self.cols,
                "rows": self.rows,
                "layout_method": self.layout_method,
                "layout_confidence": self.layout_confidence,
            },

            "counts": {
                "total_stickers": self.total_stickers,
                "stickers_cleaned": self.stickers_cleaned,
                "stickers_failed": self.stickers_failed,
                "files_written": self.files_written,
            },

            "timing": {
                "detection_time_sec": round(self.detection_time_sec, 4),
                "slicing_time_sec": round(self.slicing_time_sec, 4),
                "removal_time_sec": round(self.removal_time_sec, 4),
                "export_time_sec": round(self.export_time_sec, 4),
                "total_time_sec": round(self.total_time_sec, 4),
                "avg_removal_time_ms": round(self.avg_removal_time_ms, 2),
            },

            "sticker_timings": [t.to_dict() for t in self.sticker_timings],
        }

    def summary_str(self) -> str:
        """Generate a human-readable summary string."""
        lines = [
            f"Processing Summary for: {self.sheet_name}",
            f"  Status: {self.status}",
            f"  Source: {self.source_width}x{self.source_height}",
            f"  Layout: {self.cols}x{self.rows} ({self.layout_method}, confidence {self.layout_confidence:.1f})",
            f"  Stickers: {self.total_stickers} (cleaned: {self.stickers_cleaned}, failed: {self.stickers_failed})",
            f"  Files written: {self.files_written}",
            f"  Total time: {self.total_time_sec:.2f}s",
        ]

        if self.sticker_timings:
            lines.append(f"  Avg removal per sticker: {self.avg_removal_time_ms:.1f}ms")

        if self.error_message:
            lines.append(f"  Error: {self.error_message}")

        return "\n".join(lines)
