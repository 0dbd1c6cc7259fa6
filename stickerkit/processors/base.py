"""
Base processor class and processing context.

Every pipeline stage shares one ProcessingContext holding the sheet,
its slicing parameters, output paths and run statistics.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..config import Config
from ..logger import get_logger
from ..models import GapConfig, GridLayout, ProcessingStats, TrimConfig
from ..sheet import StickerSheet
from ..utils.file_utils import safe_stem
from ..utils.timing import format_duration, timed_operation

# (done, total) progress callback
ProgressCallback = Callable[[int, int], None]


@dataclass
class ProcessingContext:
    """
    Shared context passed between processors.

    Contains:
    - Configuration
    - Input sheet paths and slicing parameters
    - The sliced sheet (set by SheetSlicer)
    - Accumulated statistics
    """

    config: Config
    source_paths: List[Path] = field(default_factory=list)
    sheet_name: Optional[str] = None
    output_dir: Optional[Path] = None

    # Slicing parameters (layout None = auto-detect)
    layout: Optional[GridLayout] = None
    trim: TrimConfig = field(default_factory=TrimConfig)
    gap: GapConfig = field(default_factory=GapConfig)
    main_index: int = 0

    # Set by SheetSlicer
    sheet: Optional[StickerSheet] = None

    # Set by StickerExporter
    written_files: List[Path] = field(default_factory=list)
    archive_path: Optional[Path] = None

    # Processing statistics
    stats: ProcessingStats = field(default_factory=ProcessingStats)

    # Optional progress reporting for long stages
    progress: Optional[ProgressCallback] = None

    def setup_paths(self, source_paths: List[Path], output_root: Optional[Path] = None) -> None:
        """
        Initialize the sheet name and output directory from the inputs.

        Args:
            source_paths: One or more sheet images (stacked vertically)
            output_root: Root output directory (default from config)
        """
        self.source_paths = [Path(p) for p in source_paths]
        if self.sheet_name is None and self.source_paths:
            self.sheet_name = safe_stem(self.source_paths[0])

        root = Path(output_root) if output_root else self.config.output_dir
        self.output_dir = root / (self.sheet_name or "sheet")
        self.stats.sheet_name = self.sheet_name or ""

    def report_progress(self, done: int, total: int) -> None:
        if self.progress is not None:
            self.progress(done, total)


class BaseProcessor(ABC):
    """
    One stage of the sheet pipeline.

    Subclasses set ``name``, implement ``process`` and may override
    ``validate``. ``run`` wraps both with timing and turns unexpected
    exceptions into a logged failure so the CLI can move on to the next
    sheet.
    """

    name: str = "BaseProcessor"

    def __init__(self, context: ProcessingContext):
        self.context = context
        self.config = context.config
        self.logger = get_logger(self.name)

    @property
    def debug_mode(self) -> bool:
        return self.config.debug

    @staticmethod
    def _with_fields(message: str, fields: dict[str, Any]) -> str:
        if not fields:
            return message
        return message + " " + " ".join(f"{k}={v}" for k, v in fields.items())

    def log_debug(self, message: str, **fields: Any) -> None:
        if self.debug_mode:
            self.logger.debug(self._with_fields(message, fields))

    def log_info(self, message: str, **fields: Any) -> None:
        self.logger.info(self._with_fields(message, fields))

    def log_warning(self, message: str, **fields: Any) -> None:
        self.logger.warning(self._with_fields(message, fields))

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        if error is None:
            self.logger.error(message)
        else:
            self.logger.error(f"{message}: {error}", exc_info=self.debug_mode)

    @abstractmethod
    def process(self) -> bool:
        """Do the stage's work; return False to stop the pipeline."""

    def validate(self) -> bool:
        """Check the context holds what this stage needs."""
        return True

    def run(self) -> bool:
        self.log_info(f"Starting {self.name}")
        if not self.validate():
            self.log_error(f"{self.name}: validation failed")
            return False

        try:
            with timed_operation(self.name) as timing:
                ok = self.process()
        except Exception as e:
            self.log_error(f"{self.name} failed after {format_duration(timing.duration_sec)}", error=e)
            return False

        self.log_info(f"Completed {self.name}", duration=format_duration(timing.duration_sec))
        return ok

    def save_debug_info(self, name: str, data: Any) -> Optional[Path]:
        """
        Write ``data`` to ``<output>/debug/<name>.json`` when DEBUG=1.

        Dicts and lists are dumped as JSON, anything else as its str().
        """
        if not self.debug_mode or self.context.output_dir is None:
            return None

        debug_path = self.context.output_dir / "debug" / f"{name}.json"
        debug_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, (dict, list)):
            text = json.dumps(data, ensure_ascii=False, indent=2)
        else:
            text = str(data)
        debug_path.write_text(text, encoding="utf-8")

        self.log_debug(f"Saved debug info to {debug_path}")
        return debug_path
