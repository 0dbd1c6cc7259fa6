"""
Command line interface.

Usage:
    stickerkit sheet.png -o output/
    stickerkit top.png bottom.png -o output/ --cols 8 --rows 5 --auto-remove
    stickerkit sheets/ --each --trim-top 0.05 --gap-x 0.02
"""

from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console

from .config import get_config
from .exceptions import StickerKitError
from .logger import get_logger, log_timing
from .models import GapConfig, GridLayout, TrimConfig
from .processors import BackgroundRemover, ProcessingContext, SheetSlicer, StickerExporter
from .progress import get_progress
from .utils.file_utils import expand_inputs

console = Console()
logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stickerkit",
        description="Slice sticker sheets into a sticker set with optional background removal",
    )

    parser.add_argument("sheets", nargs="+", type=Path, help="Sheet images or directories of images")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Output root directory")
    parser.add_argument(
        "--each",
        action="store_true",
        help="Process every input as its own sheet instead of stacking them vertically",
    )

    layout = parser.add_argument_group("layout")
    layout.add_argument("--cols", type=int, help="Grid columns (default: auto-detect)")
    layout.add_argument("--rows", type=int, help="Grid rows (default: auto-detect)")

    geometry = parser.add_argument_group("trim and gap (fractions)")
    geometry.add_argument("--trim-top", type=float, default=0.0)
    geometry.add_argument("--trim-bottom", type=float, default=0.0)
    geometry.add_argument("--trim-left", type=float, default=0.0)
    geometry.add_argument("--trim-right", type=float, default=0.0)
    geometry.add_argument("--gap-x", type=float, default=0.0)
    geometry.add_argument("--gap-y", type=float, default=0.0)

    removal = parser.add_argument_group("background removal")
    removal.add_argument("--auto-remove", action="store_true", help="Remove backgrounds automatically")
    removal.add_argument("--tolerance", type=float, default=None, help="LAB tolerance (default from config)")
    removal.add_argument("--no-edge-protection", action="store_true")
    removal.add_argument("--no-fill-holes", action="store_true")

    export = parser.add_argument_group("export")
    export.add_argument("--main-index", type=int, default=1, help="1-based sticker used for main.png")
    export.add_argument("--prefix", default=None, help="Archive name prefix")
    export.add_argument("--no-zip", action="store_true", help="Skip the zip archive")
    export.add_argument("--no-main", action="store_true", help="Skip main.png")

    return parser


def _layout_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> Optional[GridLayout]:
    if args.cols is None and args.rows is None:
        return None
    if args.cols is None or args.rows is None:
        parser.error("--cols and --rows must be given together")
    return GridLayout(args.cols, args.rows)


def process_sheet(
    sources: List[Path],
    args: argparse.Namespace,
    layout: Optional[GridLayout],
) -> ProcessingContext:
    """Run slice, optional removal and export for one sheet."""
    config = get_config()
    context = ProcessingContext(
        config=config,
        layout=layout,
        trim=TrimConfig(args.trim_top, args.trim_bottom, args.trim_left, args.trim_right),
        gap=GapConfig(args.gap_x, args.gap_y),
        main_index=max(0, args.main_index - 1),
    )
    context.setup_paths(sources, args.output)
    context.stats.start()
    start = time.perf_counter()

    if not SheetSlicer(context).run():
        context.stats.fail("Slicing failed")
        return context

    if args.auto_remove:
        with get_progress(transient=True) as progress:
            task = progress.add_task("Removing backgrounds", total=len(context.sheet))
            context.progress = lambda done, total: progress.update(task, completed=done)
            remover = BackgroundRemover(
                context,
                tolerance=args.tolerance,
                fill_holes=not args.no_fill_holes,
                edge_protection=not args.no_edge_protection,
            )
            remover.run()
            context.progress = None

    exporter = StickerExporter(
        context,
        make_archive=not args.no_zip,
        include_main=not args.no_main,
        archive_prefix=args.prefix,
    )
    if not exporter.run():
        context.stats.fail("Export failed")
        return context

    context.stats.total_time_sec = time.perf_counter() - start
    context.stats.complete()
    log_timing(logger, f"Sheet {context.sheet_name}", context.stats.total_time_sec)
    return context


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    layout = _layout_from_args(parser, args)

    sources = expand_inputs(args.sheets)
    if not sources:
        logger.error("No image files found in the given inputs")
        return 2

    batches = [[p] for p in sources] if args.each else [sources]
    logger.info(f"Processing {len(batches)} sheet(s) from {len(sources)} image(s)")

    failures = 0
    for batch in batches:
        try:
            context = process_sheet(batch, args, layout)
        except StickerKitError as e:
            logger.error(f"{batch[0].name}: {e}")
            failures += 1
            continue

        console.print(context.stats.summary_str())
        if context.stats.status != "completed":
            failures += 1
        elif context.archive_path is not None:
            console.print(f"[green]Archive:[/green] {context.archive_path}")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
