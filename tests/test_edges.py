import numpy as np

from stickerkit.config import RemovalConfig
from stickerkit.core.edges import UNREACHED, distance_from_edges, edge_distance_map, sobel_magnitude

from conftest import solid


def test_uniform_image_has_no_edges():
    magnitude = sobel_magnitude(solid(20, 20, (90, 90, 90, 255)).pixels)
    assert not magnitude.any()


def test_border_is_zeroed():
    bitmap = solid(20, 20, (255, 255, 255, 255))
    bitmap.pixels[:, :10] = (0, 0, 0, 255)
    magnitude = sobel_magnitude(bitmap.pixels)

    assert magnitude[5, 9] > 0
    assert magnitude[5, 10] > 0
    assert magnitude[0, 9] == 0
    assert magnitude[19, 10] == 0


def test_distance_is_manhattan_and_capped():
    magnitude = np.zeros((31, 31), dtype=np.float32)
    magnitude[15, 15] = 100.0
    distance = distance_from_edges(magnitude, edge_threshold=30.0, max_distance=10)

    assert distance[15, 15] == 0
    assert distance[15, 18] == 3
    assert distance[12, 11] == 7
    assert distance[15, 25] == 10
    assert distance[15, 26] == UNREACHED
    assert distance[0, 0] == UNREACHED


def test_no_edges_means_unreached_everywhere():
    distance = distance_from_edges(np.zeros((8, 8), dtype=np.float32), 30.0)
    assert (distance == UNREACHED).all()


def test_edge_map_skipped_above_pixel_limit():
    bitmap = solid(20, 20, (255, 255, 255, 255))
    assert edge_distance_map(bitmap, 25.0, RemovalConfig(), pixel_limit=400) is None
    assert edge_distance_map(bitmap, 25.0, RemovalConfig(), pixel_limit=401).shape == (20, 20)
