import numpy as np
import pytest

from stickerkit.core.color import (
    delta_e,
    delta_e_map,
    rgb_array_to_lab,
    rgb_distance_map,
    rgb_to_lab,
    weighted_rgb_distance,
)


def test_white_and_black_lab():
    assert rgb_to_lab(255, 255, 255) == pytest.approx((100.0, 0.0, 0.0), abs=0.1)
    assert rgb_to_lab(0, 0, 0) == pytest.approx((0.0, 0.0, 0.0), abs=1e-6)


def test_red_is_positive_a():
    l, a, b = rgb_to_lab(255, 0, 0)
    assert 50 < l < 56
    assert a > 70
    assert b > 60


def test_delta_e_identity_and_symmetry():
    lab1 = rgb_to_lab(12, 200, 99)
    lab2 = rgb_to_lab(240, 10, 30)
    assert delta_e(lab1, lab1) == 0
    assert delta_e(lab1, lab2) == pytest.approx(delta_e(lab2, lab1))


def test_delta_e_map_matches_scalar():
    pixels = np.array([[[255, 255, 255, 255], [250, 240, 230, 0]],
                       [[0, 0, 0, 255], [128, 64, 32, 255]]], dtype=np.uint8)
    target = (250, 250, 250)
    result = delta_e_map(pixels, target)

    assert result.shape == (2, 2)
    target_lab = rgb_to_lab(*target)
    for y in range(2):
        for x in range(2):
            expected = delta_e(rgb_to_lab(*pixels[y, x, :3]), target_lab)
            assert result[y, x] == pytest.approx(expected)


def test_lab_array_ignores_alpha():
    rgba = np.array([[10, 20, 30, 0]], dtype=np.uint8)
    rgb = np.array([[10, 20, 30]], dtype=np.uint8)
    assert np.allclose(rgb_array_to_lab(rgba), rgb_array_to_lab(rgb))


def test_weighted_distance_dark_and_bright_reds():
    # Red weight is 2 below a mean red of 128 and 3 above
    assert weighted_rgb_distance((0, 0, 0), (10, 0, 0)) == pytest.approx(np.sqrt(200) / 3)
    assert weighted_rgb_distance((255, 0, 0), (245, 0, 0)) == pytest.approx(np.sqrt(300) / 3)
    assert weighted_rgb_distance((0, 0, 0), (0, 10, 0)) == pytest.approx(np.sqrt(400) / 3)
    assert weighted_rgb_distance((0, 0, 0), (0, 0, 10)) == pytest.approx(np.sqrt(200) / 3)


def test_weighted_distance_accepts_float_means():
    assert weighted_rgb_distance((100, 100, 100), (100.5, 100, 100)) == pytest.approx(np.sqrt(0.5) / 3)


def test_rgb_distance_map_matches_scalar():
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(5, 6, 4), dtype=np.uint8)
    target = (120, 200, 33)
    result = rgb_distance_map(pixels, target)

    for y in range(5):
        for x in range(6):
            assert result[y, x] == pytest.approx(weighted_rgb_distance(pixels[y, x], target))
