import numpy as np
import pytest

from mangatra.pipeline.raster import RasterBuffer, hconcat, vconcat


def _gradient(width: int = 8, height: int = 6) -> RasterBuffer:
    data = np.zeros((height, width, 3), dtype=np.uint8)
    data[..., 0] = np.arange(width, dtype=np.uint8)[None, :]
    data[..., 1] = np.arange(height, dtype=np.uint8)[:, None]
    return RasterBuffer.from_array(data)


def test_buffer_is_read_only() -> None:
    image = _gradient()
    with pytest.raises(ValueError):
        image.array[0, 0] = (1, 2, 3)


def test_from_array_copies_input() -> None:
    data = np.zeros((2, 2, 3), dtype=np.uint8)
    image = RasterBuffer.from_array(data)
    data[0, 0] = 255
    assert image.pixel(0, 0) == (0, 0, 0)


def test_grayscale_is_expanded() -> None:
    image = RasterBuffer.from_array(np.full((3, 4), 7, dtype=np.uint8))
    assert image.size == (4, 3)
    assert image.pixel(3, 2) == (7, 7, 7)


def test_view_shares_memory_and_bounds_are_checked() -> None:
    image = _gradient()
    view = image.view(2, 1, 3, 4)
    assert view.size == (3, 4)
    assert np.shares_memory(view.array, image.array)
    assert view.pixel(0, 0) == image.pixel(2, 1)
    assert image.view(8, 0, 0, 6).size == (0, 6)
    with pytest.raises(ValueError):
        image.view(6, 0, 3, 1)
    with pytest.raises(ValueError):
        image.view(-1, 0, 1, 1)


def test_pixel_equality_and_uniformity() -> None:
    image = RasterBuffer.blank(4, 3)
    assert image.is_uniform()
    assert image.pixel_equals((0, 0), (3, 2))
    assert not _gradient().pixel_equals((0, 0), (1, 1))


def test_concat_rebuilds_the_original() -> None:
    image = _gradient()
    top, bottom = image.view(0, 0, 8, 2), image.view(0, 2, 8, 4)
    assert vconcat([top, bottom]) == image
    left, right = image.view(0, 0, 5, 6), image.view(5, 0, 3, 6)
    assert hconcat([left, image.view(5, 0, 0, 6), right]) == image


def test_concat_rejects_mismatched_sizes() -> None:
    with pytest.raises(ValueError):
        vconcat([RasterBuffer.blank(3, 2), RasterBuffer.blank(4, 2)])
    with pytest.raises(ValueError):
        hconcat([RasterBuffer.blank(3, 2), RasterBuffer.blank(3, 5)])


def test_png_encoding_is_lossless() -> None:
    image = _gradient()
    assert RasterBuffer.decode(image.encode(".png")) == image


def test_decode_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        RasterBuffer.decode(b"definitely not an image")
    with pytest.raises(ValueError):
        RasterBuffer.decode(b"")
