"""
stickerkit: slice sticker sheets into sticker sets and remove backgrounds.
"""

__version__ = "0.1.0"
