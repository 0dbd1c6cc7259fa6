"""
Data models for the sticker slicing toolkit.

Pixel buffers, slice geometry, stickers and the results returned by the
detection and editing operations.
"""

from .bitmap import Bitmap, RGB, RGBA, as_rgba
from .geometry import TrimConfig, GapConfig, GridLayout, GridLines, CellBox
from .sticker import Sticker
from .results import OperationResult, LayoutCandidate, LayoutDetection, AxisProfiles
from .processing_stats import ProcessingStats, StickerTiming

__all__ = [
    # Pixel buffers
    "Bitmap",
    "RGB",
    "RGBA",
    "as_rgba",

    # Geometry
    "TrimConfig",
    "GapConfig",
    "GridLayout",
    "GridLines",
    "CellBox",

    # Stickers
    "Sticker",

    # Results
    "OperationResult",
    "LayoutCandidate",
    "LayoutDetection",
    "AxisProfiles",

    # Processing stats
    "ProcessingStats",
    "StickerTiming",
]
