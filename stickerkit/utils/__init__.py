"""
Utility functions for the sticker slicing toolkit.
"""

from .file_utils import (
    iter_images,
    expand_inputs,
    safe_stem,
    ensure_dir,
)

from .image_utils import (
    load_image,
    decode_image,
    save_image,
    encode_png,
    combine_images_vertically,
    draw_grid_overlay,
)

from .timing import (
    timed_operation,
    format_duration,
)

__all__ = [
    # File utilities
    "iter_images",
    "expand_inputs",
    "safe_stem",
    "ensure_dir",

    # Image utilities
    "load_image",
    "decode_image",
    "save_image",
    "encode_png",
    "combine_images_vertically",
    "draw_grid_overlay",

    # Timing utilities
    "timed_operation",
    "format_duration",
]
