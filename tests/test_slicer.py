import numpy as np
import pytest

from stickerkit.core.slicer import (
    compute_cell_boxes,
    compute_custom_cell_boxes,
    create_main_image,
    slice_custom,
    slice_sheet,
)
from stickerkit.exceptions import InvalidGeometryError
from stickerkit.models import GapConfig, GridLayout, GridLines, TrimConfig

from conftest import numbered_sheet, solid


def test_uniform_boxes_cover_sheet():
    boxes = compute_cell_boxes(400, 300, GridLayout(4, 3))

    assert len(boxes) == 12
    assert boxes[0].box == pytest.approx((0, 0, 100, 100))
    assert boxes[5].box == pytest.approx((100, 100, 200, 200))
    assert boxes[-1].box == pytest.approx((300, 200, 400, 300))


def test_trim_and_gap_boxes():
    trim = TrimConfig(top=0.1, bottom=0.1, left=0.05, right=0.15)
    gap = GapConfig(x=0.1, y=0.0)
    boxes = compute_cell_boxes(1000, 500, GridLayout(2, 2), trim, gap)

    # Trimmed region is 800 x 400 at (50, 50); gap is 10% of a 400 px cell
    assert boxes[0].x == pytest.approx(50)
    assert boxes[0].y == pytest.approx(50)
    assert boxes[0].width == pytest.approx((800 - 40) / 2)
    assert boxes[1].x == pytest.approx(50 + 380 + 40)
    assert boxes[2].y == pytest.approx(50 + 200)
    assert boxes[3].x + boxes[3].width == pytest.approx(850)


def test_custom_boxes_inside_trim():
    trim = TrimConfig(left=0.5)
    boxes = compute_custom_cell_boxes(200, 100, GridLines((0.25,), (0.5,)), trim)

    assert len(boxes) == 4
    assert boxes[0].box == pytest.approx((100, 0, 125, 50))
    assert boxes[3].box == pytest.approx((125, 50, 200, 100))


@pytest.mark.parametrize("kwargs", [
    {"layout": GridLayout(0, 3)},
    {"trim": TrimConfig(top=0.5, bottom=0.45)},
    {"trim": TrimConfig(left=-0.1)},
    {"gap": GapConfig(x=1.0)},
])
def test_invalid_geometry_raises(kwargs):
    layout = kwargs.pop("layout", GridLayout(2, 2))
    with pytest.raises(InvalidGeometryError):
        compute_cell_boxes(100, 100, layout, **kwargs)


def test_custom_lines_must_increase():
    with pytest.raises(InvalidGeometryError):
        compute_custom_cell_boxes(100, 100, GridLines((0.6, 0.4), ()))
    with pytest.raises(InvalidGeometryError):
        compute_custom_cell_boxes(100, 100, GridLines((1.0,), ()))


def test_slice_sheet_row_major_and_sized():
    sheet = numbered_sheet(3, 2)
    stickers = slice_sheet(sheet, 3, 2, size=(37, 32))

    assert len(stickers) == 6
    assert all(s.size == (37, 32) for s in stickers)
    for index, sticker in enumerate(stickers):
        level = 10 * (index + 1)
        assert tuple(sticker.pixels[16, 18]) == (level, level, level, 255)


def test_slice_sheet_default_size_from_config():
    stickers = slice_sheet(numbered_sheet(2, 1), 2, 1)
    assert stickers[0].size == (370, 320)


def test_slice_leaves_source_untouched():
    sheet = numbered_sheet(2, 2)
    before = sheet.copy()
    slice_sheet(sheet, 2, 2, TrimConfig(top=0.1), GapConfig(0.05, 0.05), size=(20, 20))
    assert sheet == before


def test_slice_custom_uneven_cells():
    sheet = numbered_sheet(3, 1)  # 120 x 30, cells of 40 px
    stickers = slice_custom(sheet, [1 / 3], [], size=(10, 10))

    assert len(stickers) == 2
    assert stickers[0].pixels[5, 5, 0] == pytest.approx(10, abs=2)
    # Right piece spans the second and third cell
    assert stickers[1].pixels[5, 2, 0] == pytest.approx(20, abs=3)
    assert stickers[1].pixels[5, 7, 0] == pytest.approx(30, abs=3)


def test_transparent_areas_do_not_bleed():
    sheet = solid(40, 40, (255, 0, 0, 0))
    sheet.pixels[:, 20:] = (0, 0, 255, 255)
    sticker = slice_sheet(sheet, 1, 1, size=(20, 20))[0]

    opaque = sticker.pixels[sticker.alpha > 0]
    assert opaque[:, 0].max() <= 2


def test_main_image_is_square():
    main = create_main_image(solid(370, 320, (5, 6, 7, 255)))
    assert main.size == (240, 240)
    assert tuple(main.pixels[100, 100]) == (5, 6, 7, 255)
    assert create_main_image(solid(10, 20, (0, 0, 0, 255)), 64).size == (64, 64)


def test_main_image_keeps_alpha():
    sticker = solid(100, 100, (0, 0, 0, 0))
    sticker.pixels[:, 50:] = (200, 100, 0, 255)
    main = create_main_image(sticker, 50)

    assert main.alpha[25, 2] == 0
    assert main.alpha[25, 47] == 255
    assert np.array_equal(main.pixels[25, 47, :3], [200, 100, 0])


def test_slicing_is_deterministic():
    sheet = numbered_sheet(3, 2)
    trim = TrimConfig(top=0.03, left=0.07)
    gap = GapConfig(0.02, 0.04)
    first = slice_sheet(sheet, 3, 2, trim, gap, size=(23, 19))
    second = slice_sheet(sheet, 3, 2, trim, gap, size=(23, 19))
    assert [b.tobytes() for b in first] == [b.tobytes() for b in second]


@pytest.mark.parametrize("trim, gap", [
    (TrimConfig(), GapConfig()),
    (TrimConfig(0.1, 0.2, 0.3, 0.4), GapConfig(0.5, 0.1)),
    (TrimConfig(left=0.8), GapConfig(0.9, 0.9)),
])
def test_slice_count_and_size(trim, gap):
    stickers = slice_sheet(numbered_sheet(3, 2), 4, 3, trim, gap, size=(11, 7))
    assert len(stickers) == 12
    assert all(s.size == (11, 7) for s in stickers)


def test_more_left_trim_narrows_cells():
    widths = [
        compute_cell_boxes(500, 400, GridLayout(5, 4), TrimConfig(left=left))[0].width
        for left in (0.0, 0.1, 0.2, 0.4)
    ]
    assert widths == sorted(widths, reverse=True)
    assert len(set(widths)) == len(widths)
