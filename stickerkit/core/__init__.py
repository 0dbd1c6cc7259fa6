"""
Image processing core: layout detection, slicing, background removal
and manual edit tools.
"""

from .layout import (
    detect_layout,
    detect_layout_from_aspect,
    detect_layout_from_pixels,
    layout_candidates,
)

from .slicer import (
    slice_sheet,
    slice_custom,
    create_main_image,
    compute_cell_boxes,
    compute_custom_cell_boxes,
)

from .background import (
    remove_color_globally,
    flood_fill_transparency,
    flood_fill_from_borders,
    advanced_background_removal,
    auto_remove_background,
    estimate_background_color,
    process_batch_transparency,
)

from .edit_ops import (
    erase,
    restore,
    color_brush,
    bucket_fill,
    eyedropper,
)

__all__ = [
    # Layout
    "detect_layout",
    "detect_layout_from_aspect",
    "detect_layout_from_pixels",
    "layout_candidates",

    # Slicing
    "slice_sheet",
    "slice_custom",
    "create_main_image",
    "compute_cell_boxes",
    "compute_custom_cell_boxes",

    # Background removal
    "remove_color_globally",
    "flood_fill_transparency",
    "flood_fill_from_borders",
    "advanced_background_removal",
    "auto_remove_background",
    "estimate_background_color",
    "process_batch_transparency",

    # Manual edits
    "erase",
    "restore",
    "color_brush",
    "bucket_fill",
    "eyedropper",
]
