"""
Interactive edit session for a single sticker.

Every removal or edit runs on a dedicated single-worker thread pool, so
the caller gets a Future back immediately and operations on the same
sticker never overlap. After each change a deep copy of the bitmap is
pushed onto a bounded undo history.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Deque, Iterable, Optional, Sequence, Tuple

from .config import get_config
from .core import background, edit_ops
from .logger import get_logger
from .models import Bitmap, OperationResult
from .sheet import StickerSheet

logger = get_logger(__name__)

# Snapshots kept, including the current state
HISTORY_LIMIT = 16

EditOperation = Callable[..., OperationResult]


class EditSession:
    """
    Single-flight edit queue with undo for one bitmap.

    Usage:
        with EditSession.for_sticker(sheet, 3) as session:
            future = session.magic_wand(10, 12, tolerance=25)
            print(future.result().message)
            session.undo()
            session.commit()
    """

    def __init__(self, bitmap: Bitmap, original: Optional[Bitmap] = None, name: str = "sticker"):
        self.name = name
        self.bitmap = bitmap.copy()
        self.original = (original or bitmap).copy()
        self.default_tolerance = get_config().default_tolerance

        self._history: Deque[Bitmap] = deque([self.bitmap.copy()], maxlen=HISTORY_LIMIT)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"edit-{name}")

        self._sheet: Optional[StickerSheet] = None
        self._index: Optional[int] = None

    @classmethod
    def for_sticker(cls, sheet: StickerSheet, index: int) -> "EditSession":
        """Open a session on a sheet's sticker; ``commit`` writes it back."""
        session = cls(sheet.stickers[index].bitmap, sheet.original(index), name=f"{sheet.name}-{index + 1:02d}")
        session._sheet = sheet
        session._index = index
        return session

    # --- Queue ---

    def _run(self, operation: EditOperation, args: Tuple, kwargs: dict) -> OperationResult:
        try:
            result = operation(self.bitmap, *args, **kwargs)
        except Exception as e:
            logger.error(f"{self.name}: {operation.__name__} failed: {e}")
            raise

        if result.changed:
            self._history.append(self.bitmap.copy())
        logger.debug(f"{self.name}: {operation.__name__} -> {result.message}")
        return result

    def submit(self, operation: EditOperation, *args, **kwargs) -> "Future[OperationResult]":
        """
        Queue ``operation(bitmap, *args, **kwargs)`` on the edit worker.

        The operation must mutate the bitmap in place and return an
        OperationResult; a snapshot is recorded when it reports a change.
        """
        return self._executor.submit(self._run, operation, args, kwargs)

    def apply(self, operation: EditOperation, *args, **kwargs) -> OperationResult:
        """Run an operation and wait for its result."""
        return self.submit(operation, *args, **kwargs).result()

    # --- Tools ---

    def magic_wand(self, x: float, y: float, tolerance: Optional[float] = None) -> "Future[OperationResult]":
        tolerance = self.default_tolerance if tolerance is None else tolerance
        return self.submit(background.advanced_background_removal, x, y, tolerance, True, True)

    def auto_remove(self, tolerance: Optional[float] = None) -> "Future[OperationResult]":
        tolerance = self.default_tolerance if tolerance is None else tolerance
        return self.submit(background.auto_remove_background, tolerance, True, True)

    def flood_fill(self, x: float, y: float, tolerance: Optional[float] = None) -> "Future[OperationResult]":
        tolerance = self.default_tolerance if tolerance is None else tolerance
        return self.submit(background.flood_fill_transparency, x, y, tolerance)

    def remove_color(self, color: Sequence[int], tolerance: Optional[float] = None) -> "Future[OperationResult]":
        tolerance = self.default_tolerance if tolerance is None else tolerance
        return self.submit(background.remove_color_globally, color, tolerance)

    def erase_stroke(self, points: Iterable[Tuple[float, float]], radius: float) -> "Future[OperationResult]":
        """Erase along a brush stroke, recorded as a single undo step."""
        return self.submit(_stroke, edit_ops.erase, list(points), radius)

    def restore_stroke(self, points: Iterable[Tuple[float, float]], radius: float) -> "Future[OperationResult]":
        """Restore from the original along a brush stroke."""
        return self.submit(_stroke, _restore_from(self.original), list(points), radius)

    def paint_stroke(
        self, points: Iterable[Tuple[float, float]], radius: float, color: Sequence[int]
    ) -> "Future[OperationResult]":
        return self.submit(_stroke, _paint_with(color), list(points), radius)

    def bucket_fill(
        self, x: float, y: float, color: Sequence[int], tolerance: int = 0
    ) -> "Future[OperationResult]":
        return self.submit(edit_ops.bucket_fill, x, y, color, tolerance)

    def pick_color(self, x: float, y: float) -> OperationResult:
        """Eyedropper on the current state; never recorded."""
        return self.apply(edit_ops.eyedropper, x, y)

    # --- History ---

    @property
    def history_size(self) -> int:
        return len(self._history)

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 1

    def _undo(self) -> bool:
        if len(self._history) <= 1:
            return False
        self._history.pop()
        self.bitmap.pixels[...] = self._history[-1].pixels
        return True

    def undo(self) -> bool:
        """Return to the previous snapshot. False if there is none."""
        undone = self._executor.submit(self._undo).result()
        if undone:
            logger.debug(f"{self.name}: undo ({len(self._history)} snapshots left)")
        return undone

    def _reset(self) -> OperationResult:
        if self.bitmap == self.original:
            return OperationResult.noop("Already at the original")
        self.bitmap.pixels[...] = self.original.pixels
        self._history.append(self.bitmap.copy())
        return OperationResult.ok("Reset to original")

    def reset(self) -> OperationResult:
        """Restore the original bitmap; the reset itself can be undone."""
        return self._executor.submit(self._reset).result()

    def snapshot(self) -> Bitmap:
        """Deep copy of the current state, taken after queued work finishes."""
        return self._executor.submit(self.bitmap.copy).result()

    def commit(self) -> Bitmap:
        """Write the current state back to the sheet the session was opened on."""
        result = self.snapshot()
        if self._sheet is not None and self._index is not None:
            self._sheet.replace_bitmap(self._index, result)
        return result

    # --- Lifecycle ---

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "EditSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _stroke(bitmap: Bitmap, brush: EditOperation, points: Sequence[Tuple[float, float]], radius: float) -> OperationResult:
    changed = False
    for x, y in points:
        changed = brush(bitmap, x, y, radius).changed or changed
    if not changed:
        return OperationResult.noop("Stroke changed nothing")
    return OperationResult.ok(f"{brush.__name__} stroke ({len(points)} points)")


def _restore_from(original: Bitmap) -> EditOperation:
    def restore(bitmap: Bitmap, x: float, y: float, radius: float) -> OperationResult:
        return edit_ops.restore(bitmap, original, x, y, radius)
    return restore


def _paint_with(color: Sequence[int]) -> EditOperation:
    def paint(bitmap: Bitmap, x: float, y: float, radius: float) -> OperationResult:
        return edit_ops.color_brush(bitmap, x, y, radius, color)
    return paint
