"""
Sticker set exporter.

Writes the stickers as ``01.png``..``NN.png`` plus ``main.png`` into the
sheet's output directory and bundles the same files into
``<prefix>_set.zip`` under a single folder.

Input: context.sheet
Output: <output_dir>/NN.png, main.png, <prefix>_set.zip
"""

from __future__ import annotations

import time
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

from .base import BaseProcessor, ProcessingContext
from ..exceptions import ExportError
from ..utils.file_utils import ensure_dir
from ..utils.image_utils import encode_png

MAIN_FILE_NAME = "main.png"


class StickerExporter(BaseProcessor):
    """
    Export the sticker set to PNG files and a zip archive.
    """

    name = "StickerExporter"

    def __init__(
        self,
        context: ProcessingContext,
        make_archive: bool = True,
        include_main: bool = True,
        archive_prefix: Optional[str] = None,
    ):
        """
        Initialize exporter.

        Args:
            context: Processing context
            make_archive: Also write the zip archive
            include_main: Export the main icon as main.png
            archive_prefix: Archive file name prefix (default from config)
        """
        super().__init__(context)
        self.make_archive = make_archive
        self.include_main = include_main
        self.archive_prefix = archive_prefix or self.config.export.archive_prefix

    def validate(self) -> bool:
        if self.context.sheet is None:
            self.log_error("No sliced sheet in context (run SheetSlicer first)")
            return False
        if not self.context.output_dir:
            self.log_error("Output directory not set")
            return False
        if not self.context.sheet.stickers:
            self.log_error("Sheet has no stickers to export")
            return False
        return True

    def _encode_all(self) -> List[Tuple[str, bytes]]:
        """Encode every export file as (file name, PNG bytes), in archive order."""
        sheet = self.context.sheet
        compression = self.config.export.png_compression

        files = [
            (sticker.file_name, encode_png(sticker.bitmap, compression))
            for sticker in sorted(sheet.stickers, key=lambda s: s.original_index)
        ]
        if self.include_main:
            files.append((MAIN_FILE_NAME, encode_png(sheet.main_image(), compression)))
        return files

    def _write_files(self, files: List[Tuple[str, bytes]]) -> List[Path]:
        output_dir = ensure_dir(self.context.output_dir)
        written = []
        for file_name, data in files:
            path = output_dir / file_name
            try:
                path.write_bytes(data)
            except OSError as e:
                raise ExportError(f"Failed to write {file_name}: {e}", file_path=str(path), operation="write") from e
            written.append(path)
        return written

    def _write_archive(self, files: List[Tuple[str, bytes]]) -> Path:
        folder = self.config.export.archive_folder
        archive_path = self.context.output_dir / f"{self.archive_prefix}_set.zip"
        try:
            with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for file_name, data in files:
                    zf.writestr(f"{folder}/{file_name}", data)
        except OSError as e:
            raise ExportError(f"Failed to write archive: {e}", file_path=str(archive_path), operation="write") from e
        return archive_path

    def process(self) -> bool:
        ctx = self.context
        start = time.perf_counter()

        files = self._encode_all()
        ctx.written_files = self._write_files(files)

        if self.make_archive:
            ctx.archive_path = self._write_archive(files)
            self.log_info(f"Wrote archive {ctx.archive_path.name}", files=len(files))

        ctx.stats.files_written = len(ctx.written_files)
        ctx.stats.export_time_sec = time.perf_counter() - start

        self.log_info(f"Exported {len(ctx.written_files)} files", output=str(ctx.output_dir))
        return True
