"""
Sheet processors module.

Contains the processing stages of the sticker pipeline:
- SheetSlicer: Load sheets, detect the grid layout and slice stickers
- BackgroundRemover: Automatic background removal for every sticker
- StickerExporter: Write NN.png / main.png and the zip archive
"""

from .base import BaseProcessor, ProcessingContext
from .sheet_slicer import SheetSlicer
from .background_remover import BackgroundRemover
from .sticker_exporter import StickerExporter

__all__ = [
    "BaseProcessor",
    "ProcessingContext",
    "SheetSlicer",
    "BackgroundRemover",
    "StickerExporter",
]
