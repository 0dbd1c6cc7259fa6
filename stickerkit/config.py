"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from stickerkit.config import get_config
    config = get_config()
    print(config.removal.edge_safe_margin)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


def _load_dotenv(dotenv_path: Optional[Path] = None) -> None:
    """
    Read KEY=VALUE pairs from the project .env into os.environ.

    Blank lines, comments and lines without "=" are skipped. Variables
    already set in the environment win over the file.
    """
    if dotenv_path is None:
        dotenv_path = Path(__file__).resolve().parent.parent / ".env"

    if not dotenv_path.exists() or not dotenv_path.is_file():
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if not key:
            continue
        if os.getenv(key) in (None, ""):
            os.environ[key] = value


# Load .env on module import
_load_dotenv()


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class SliceConfig:
    """Output geometry for sliced stickers and the main icon."""
    sticker_width: int = field(default_factory=lambda: _get_int_env("STICKER_WIDTH", 370))
    sticker_height: int = field(default_factory=lambda: _get_int_env("STICKER_HEIGHT", 320))
    main_size: int = field(default_factory=lambda: _get_int_env("MAIN_IMAGE_SIZE", 240))

    @property
    def sticker_size(self) -> tuple[int, int]:
        return (self.sticker_width, self.sticker_height)


@dataclass
class RemovalConfig:
    """
    Background removal thresholds.

    These are empirically tuned values. Changing them changes which pixels
    are removed, so they are kept together here rather than inline.
    """
    # Edge protection
    edge_safe_margin: int = 2
    edge_distance_cap: int = 10
    wand_edge_threshold: float = 25.0
    auto_edge_threshold: float = 30.0

    # Pixel-count ceilings above which a pass is skipped
    wand_edge_pixel_limit: int = field(default_factory=lambda: _get_int_env("EDGE_PIXEL_LIMIT", 800_000))
    wand_hole_pixel_limit: int = field(default_factory=lambda: _get_int_env("HOLE_PIXEL_LIMIT", 600_000))
    auto_edge_pixel_limit: int = field(default_factory=lambda: _get_int_env("AUTO_EDGE_PIXEL_LIMIT", 1_000_000))
    auto_hole_pixel_limit: int = field(default_factory=lambda: _get_int_env("AUTO_HOLE_PIXEL_LIMIT", 500_000))

    # Hole / island sizes
    wand_max_hole_pixels: int = 50_000
    auto_max_hole_pixels: int = 10_000
    island_threshold: int = 500

    # Auto background sampling
    sample_edge_distance: int = 5
    cluster_distance: float = 30.0
    min_cluster_samples: int = 3
    corner_block: int = 3
    border_sample_divisions: int = 20

    # LAB tolerance -> weighted RGB tolerance
    wand_rgb_scale: float = 2.5
    auto_rgb_scale: float = 2.0


@dataclass
class ExportConfig:
    """Sticker set export configuration."""
    archive_folder: str = field(default_factory=lambda: os.getenv("ARCHIVE_FOLDER", "line_stickers"))
    archive_prefix: str = field(default_factory=lambda: os.getenv("ARCHIVE_PREFIX", "sticker"))
    png_compression: int = field(default_factory=lambda: _get_int_env("PNG_COMPRESSION", 3))
    max_workers: int = field(default_factory=lambda: _get_int_env("MAX_WORKERS", 4))


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """

    # Base directory (project root)
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    # Directory paths
    output_dir: Path = field(default=None)
    logs_dir: Path = field(default=None)

    # Debug mode (verbose logging, layout JSON and grid overlay dumps)
    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", False))

    # Default removal tolerance (LAB scale, 0-50)
    default_tolerance: int = field(default_factory=lambda: _get_int_env("DEFAULT_TOLERANCE", 25))

    # Sub-configurations
    slicing: SliceConfig = field(default_factory=SliceConfig)
    removal: RemovalConfig = field(default_factory=RemovalConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.output_dir is None:
            self.output_dir = self.base_dir / os.getenv("OUTPUT_DIR", "output")
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")
        self.output_dir = Path(self.output_dir)
        self.logs_dir = Path(self.logs_dir)
        self._validate()

    def _validate(self) -> None:
        for key, value in (
            ("STICKER_WIDTH", self.slicing.sticker_width),
            ("STICKER_HEIGHT", self.slicing.sticker_height),
            ("MAIN_IMAGE_SIZE", self.slicing.main_size),
            ("MAX_WORKERS", self.export.max_workers),
        ):
            if value <= 0:
                raise ConfigurationError(f"{key} must be positive, got {value}", config_key=key)
        if not 0 <= self.export.png_compression <= 9:
            raise ConfigurationError(
                f"PNG_COMPRESSION must be between 0 and 9, got {self.export.png_compression}",
                config_key="PNG_COMPRESSION",
            )


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
