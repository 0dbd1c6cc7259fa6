import pytest

from stickerkit.config import get_config
from stickerkit.exceptions import ValidationError
from stickerkit.models import GapConfig, GridLayout, GridLines, TrimConfig
from stickerkit.session import HISTORY_LIMIT, EditSession
from stickerkit.sheet import GRID_HISTORY_LIMIT, StickerSheet

from conftest import numbered_sheet, solid

WHITE = (255, 255, 255, 255)


@pytest.fixture
def small_sizes():
    config = get_config()
    config.slicing.sticker_width = 40
    config.slicing.sticker_height = 30
    config.slicing.main_size = 24
    return config


@pytest.fixture
def sheet(small_sizes):
    return StickerSheet(numbered_sheet(3, 2), name="demo", layout=GridLayout(3, 2))


# --- StickerSheet ---

def test_sheet_slices_on_creation(sheet):
    assert len(sheet) == 6
    assert [s.original_index for s in sheet.stickers] == list(range(6))
    assert sheet.stickers[0].is_main
    assert sheet.stickers[4].file_name == "05.png"
    assert tuple(sheet.stickers[4].bitmap.pixels[15, 20]) == (50, 50, 50, 255)


def test_sheet_detects_layout_when_missing(small_sizes):
    sheet = StickerSheet(solid(370, 320, (30, 30, 30, 255)), layout=None)
    assert sheet.detection is not None
    assert len(sheet) == sheet.layout.total


def test_set_layout_discards_edits(sheet):
    sheet.stickers[0].bitmap.pixels[...] = 0
    sheet.set_layout(2, 2)

    assert len(sheet) == 4
    assert sheet.stickers[0].bitmap.alpha.all()


def test_trim_and_gap_reslice(sheet):
    sheet.set_trim(TrimConfig(top=0.2))
    # First row now spans y 12..36 of the sheet, crossing into the second row
    first = sheet.stickers[0].bitmap
    assert first.pixels[2, 20, 0] == 10
    assert first.pixels[28, 20, 0] == 40

    sheet.set_gap(GapConfig(x=0.1))
    assert len(sheet) == 6

    with pytest.raises(ValidationError):
        sheet.set_trim(TrimConfig(left=0.5, right=0.5))


def test_main_image(sheet):
    sheet.set_main(2)
    assert sheet.stickers[2].is_main
    assert not sheet.stickers[0].is_main

    main = sheet.main_image()
    assert main.size == (24, 24)
    assert tuple(main.pixels[12, 12]) == (30, 30, 30, 255)

    with pytest.raises(ValidationError):
        sheet.set_main(6)


def test_main_index_resets_when_out_of_range(sheet):
    sheet.set_main(5)
    sheet.set_layout(2, 1)
    assert sheet.main_index == 0
    assert sheet.stickers[0].is_main


def test_grid_lines_undo_redo(sheet):
    uniform = sheet.uniform_grid_lines()
    assert uniform.col_lines == pytest.approx((1 / 3, 2 / 3))

    sheet.set_grid_lines(GridLines((0.5,), (0.5,)))
    sheet.set_grid_lines(GridLines((0.25, 0.5, 0.75), (0.5,)))
    assert sheet.uses_custom_lines
    assert len(sheet) == 8
    assert sheet.grid == GridLayout(4, 2)

    assert sheet.undo_grid_lines()
    assert len(sheet) == 4

    assert sheet.undo_grid_lines()
    assert not sheet.uses_custom_lines
    assert len(sheet) == 6
    assert not sheet.undo_grid_lines()

    assert sheet.redo_grid_lines()
    assert len(sheet) == 4
    assert sheet.redo_grid_lines()
    assert len(sheet) == 8
    assert not sheet.redo_grid_lines()


def test_new_grid_lines_drop_redo_states(sheet):
    sheet.set_grid_lines(GridLines((0.5,), ()))
    sheet.set_grid_lines(GridLines((0.3,), ()))
    sheet.undo_grid_lines()
    sheet.set_grid_lines(GridLines((0.6,), (0.5,)))

    assert not sheet.redo_grid_lines()
    assert sheet.grid_lines.col_lines == (0.6,)


def test_grid_history_is_bounded(sheet):
    for i in range(GRID_HISTORY_LIMIT + 5):
        sheet.set_grid_lines(GridLines((0.1 + i * 0.01,), ()))

    undone = 0
    while sheet.undo_grid_lines():
        undone += 1
    assert undone == GRID_HISTORY_LIMIT


def test_set_layout_clears_custom_lines(sheet):
    sheet.set_grid_lines(GridLines((0.5,), ()))
    sheet.set_layout(3, 2)
    assert not sheet.uses_custom_lines
    assert not sheet.undo_grid_lines()


def test_sheet_from_bitmaps_stacks_vertically(small_sizes):
    top = solid(50, 20, WHITE)
    bottom = solid(30, 40, (0, 0, 0, 255))
    sheet = StickerSheet.from_bitmaps([top, bottom], layout=GridLayout(1, 1))
    assert sheet.source.size == (50, 60)


# --- EditSession ---

def test_session_undo_and_reset(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        assert not session.can_undo

        session.erase_stroke([(5, 5), (10, 5)], 3).result()
        assert session.history_size == 2
        assert session.snapshot().alpha[5, 5] == 0

        assert session.undo()
        assert session.snapshot().alpha[5, 5] == 255
        assert not session.undo()

        session.paint_stroke([(20, 15)], 2, (255, 0, 0)).result()
        session.reset()
        assert session.snapshot() == sheet.original(0)
        assert session.undo()
        assert session.snapshot().get_pixel(20, 15) == (255, 0, 0, 255)


def test_session_noop_is_not_recorded(sheet):
    with EditSession.for_sticker(sheet, 1) as session:
        result = session.flood_fill(5, 5, 1).result()
        assert result.changed
        assert session.history_size == 2

        # Already transparent
        again = session.flood_fill(5, 5, 1).result()
        assert not again.changed
        assert session.history_size == 2


def test_session_history_is_bounded(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        for i in range(HISTORY_LIMIT + 4):
            session.paint_stroke([(20, 15)], 1, (i, 0, 0)).result()
        assert session.history_size == HISTORY_LIMIT


def test_session_commit_writes_back(sheet):
    with EditSession.for_sticker(sheet, 2) as session:
        session.magic_wand(5, 5, 10)
        session.bucket_fill(0, 0, (1, 2, 3)).result()
        committed = session.commit()

    assert sheet.stickers[2].bitmap == committed
    # Sheet original is untouched
    assert sheet.original(2).alpha.all()


def test_session_restore_stroke(sheet):
    with EditSession.for_sticker(sheet, 3) as session:
        session.erase_stroke([(20, 15)], 5)
        session.restore_stroke([(20, 15)], 5)
        assert session.snapshot() == sheet.original(3)
        assert session.history_size == 3


def test_session_pick_color(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        assert session.pick_color(3, 3).color == (10, 10, 10)
        assert session.history_size == 1


def test_session_errors_propagate(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        future = session.flood_fill(100, 100)
        with pytest.raises(IndexError):
            future.result()


def test_session_copies_input():
    bitmap = solid(10, 10, WHITE)
    with EditSession(bitmap) as session:
        session.remove_color((255, 255, 255), 5).result()
    assert bitmap.alpha.all()


def test_session_reset_on_unedited_sticker_is_not_recorded(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        result = session.reset()
        assert result.success and not result.changed
        assert session.history_size == 1

        session.erase_stroke([(5, 5)], 2).result()
        assert session.reset().changed
        assert session.history_size == 3
        assert not session.reset().changed
        assert session.history_size == 3


def test_session_repeated_paint_is_recorded_once(sheet):
    with EditSession.for_sticker(sheet, 0) as session:
        first = session.paint_stroke([(20, 15)], 0.5, (255, 0, 0)).result()
        again = session.paint_stroke([(20, 15)], 0.5, (255, 0, 0)).result()

        assert first.changed and not again.changed
        assert session.history_size == 2
        assert session.pick_color(20, 15).color == (255, 0, 0)
