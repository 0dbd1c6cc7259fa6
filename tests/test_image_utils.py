import numpy as np
import pytest

from stickerkit.exceptions import ImageLoadError, ValidationError
from stickerkit.models import Bitmap, CellBox
from stickerkit.utils.file_utils import expand_inputs, safe_stem
from stickerkit.utils.image_utils import (
    combine_images_vertically,
    decode_image,
    draw_grid_overlay,
    encode_png,
    load_image,
    save_image,
)

from conftest import solid


def test_png_preserves_rgba(tmp_path):
    bitmap = solid(7, 5, (10, 20, 30, 255))
    bitmap.set_pixel(3, 2, (200, 100, 50, 0))
    bitmap.set_pixel(4, 2, (1, 2, 3, 128))

    path = save_image(bitmap, tmp_path / "nested" / "sticker.png")
    loaded = load_image(path)

    assert loaded == bitmap


def test_encoded_png_signature():
    data = encode_png(solid(2, 2, (0, 0, 0, 0)))
    assert data[:8] == b"\x89PNG\r\n\x1a\n"


def test_decode_rgb_and_gray_add_opaque_alpha():
    import cv2

    bgr = np.zeros((3, 4, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue in BGR order
    ok, data = cv2.imencode(".png", bgr)
    assert ok
    decoded = decode_image(data.tobytes())
    assert decoded.get_pixel(0, 0) == (0, 0, 255, 255)

    gray = np.full((2, 2), 77, dtype=np.uint8)
    ok, data = cv2.imencode(".png", gray)
    assert decode_image(data.tobytes()).get_pixel(1, 1) == (77, 77, 77, 255)


def test_decode_garbage_raises():
    with pytest.raises(ImageLoadError):
        decode_image(b"not an image")
    with pytest.raises(ImageLoadError):
        decode_image(b"")


def test_load_missing_file(tmp_path):
    with pytest.raises(ImageLoadError):
        load_image(tmp_path / "missing.png")


def test_combine_vertically_left_aligned():
    top = solid(10, 4, (255, 0, 0, 255))
    bottom = solid(6, 3, (0, 255, 0, 255))
    combined = combine_images_vertically([top, bottom])

    assert combined.size == (10, 7)
    assert combined.get_pixel(9, 0) == (255, 0, 0, 255)
    assert combined.get_pixel(0, 4) == (0, 255, 0, 255)
    assert combined.get_pixel(8, 5)[3] == 0


def test_combine_single_is_copy():
    only = solid(3, 3, (1, 1, 1, 255))
    combined = combine_images_vertically([only])
    assert combined == only
    assert combined.pixels is not only.pixels


def test_combine_requires_input():
    with pytest.raises(ValidationError):
        combine_images_vertically([])


def test_grid_overlay_does_not_touch_source():
    sheet = solid(100, 100, (255, 255, 255, 255))
    overlay = draw_grid_overlay(sheet, [CellBox(0, 0, 50, 50), CellBox(50, 0, 50, 50)])

    assert (sheet.pixels == 255).all()
    assert overlay.get_pixel(0, 25) == (255, 0, 0, 255)


def test_bitmap_from_array_and_image():
    gray = np.full((2, 3), 9, dtype=np.uint8)
    bitmap = Bitmap.from_array(gray)
    assert bitmap.size == (3, 2)
    assert bitmap.get_pixel(2, 1) == (9, 9, 9, 255)
    assert Bitmap.from_image(bitmap.to_image()) == bitmap


def test_expand_inputs(tmp_path):
    save_image(solid(2, 2, (0, 0, 0, 255)), tmp_path / "b.png")
    save_image(solid(2, 2, (0, 0, 0, 255)), tmp_path / "a.png")
    (tmp_path / "notes.txt").write_text("x")
    single = save_image(solid(2, 2, (0, 0, 0, 255)), tmp_path / "sub" / "c.png")

    found = expand_inputs([tmp_path, single, tmp_path / "notes.txt"])
    assert [p.name for p in found] == ["a.png", "b.png", "c.png"]


def test_safe_stem():
    assert safe_stem("sheets/my sheet (1).png") == "my_sheet__1_"
