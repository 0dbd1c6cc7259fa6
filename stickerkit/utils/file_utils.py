"""
File and path utility functions.

Common operations for locating input sheets and preparing output
directories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".webp", ".tif", ".tiff"}


def safe_stem(path: Path) -> str:
    """
    Get filesystem-safe stem from path.

    Replaces special characters with underscores so the result can be used
    as a directory name or archive prefix.

    Args:
        path: Path to extract stem from

    Returns:
        Sanitized filename stem
    """
    return "".join(
        ch if ch.isalnum() or ch in ("-", "_", ".") else "_"
        for ch in Path(path).stem
    )


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Returns:
        The same path (for chaining)
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_image_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def iter_images(images_dir: Path) -> Iterator[Path]:
    """
    Iterate over image files in a directory.

    Yields:
        Paths to image files (sorted alphabetically)
    """
    images_dir = Path(images_dir)
    if not images_dir.exists():
        return

    for path in sorted(images_dir.iterdir()):
        if is_image_file(path):
            yield path


def expand_inputs(paths: Iterable[Path]) -> List[Path]:
    """
    Resolve command line inputs to a list of image files.

    Directories are expanded to the images they contain; files are kept
    in the order given. Non-image files are dropped.
    """
    resolved: List[Path] = []
    for path in map(Path, paths):
        if path.is_dir():
            resolved.extend(iter_images(path))
        elif is_image_file(path):
            resolved.append(path)
    return resolved
