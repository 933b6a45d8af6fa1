import numpy as np
import pytest
from PIL import Image

from ..errors import InvalidParameterError
from ..views import (
    Direction,
    ViewConfig,
    crop_window,
    extract_view_from_panorama,
    extract_views_from_panorama,
)

W, H = 2048, 1024


def gradient_panorama(width=W, height=H):
    """Panorama whose red channel encodes x and green channel encodes y."""
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, width).astype(np.uint8)[None, :]
    arr[..., 1] = np.linspace(0, 255, height).astype(np.uint8)[:, None]
    arr[..., 2] = 128
    return Image.fromarray(arr)


def test_direction_headings():
    assert Direction.FRONT.heading == 0
    assert Direction.RIGHT.heading == 90
    assert Direction.BACK.heading == 180
    assert Direction.LEFT.heading == 270
    assert [d.label for d in Direction] == ["front", "right", "back", "left"]


def test_view_config_defaults_and_from_direction():
    config = ViewConfig()
    assert (config.heading, config.fov, config.pitch, config.size, config.zoom) == (0.0, 90.0, 0.0, None, 3)

    config = ViewConfig.from_direction(Direction.BACK, fov=120, pitch=10, size=[800, 600])
    assert config.heading == 180
    assert config.fov == 120
    assert config.pitch == 10
    assert config.size == (800, 600)


@pytest.mark.parametrize("kwargs", [
    {"fov": 0},
    {"fov": -10},
    {"fov": 181},
    {"heading": 360},
    {"heading": -1},
    {"pitch": 91},
    {"pitch": -90.5},
    {"zoom": 0},
    {"zoom": 8},
    {"size": (0, 10)},
    {"size": (10,)},
    {"size": (10.5, 10)},
])
def test_view_config_rejects_invalid(kwargs):
    with pytest.raises(InvalidParameterError):
        ViewConfig(**kwargs)


def test_crop_window_centered_view():
    left, top, right, bottom = crop_window(W, H, ViewConfig(heading=180, pitch=0, fov=90))

    assert (right - left, bottom - top) == (W // 4, H // 2)
    assert ((left + right) // 2, (top + bottom) // 2) == (W // 2, H // 2)


def test_crop_window_heading_zero_saturates_at_left_edge():
    left, top, right, bottom = crop_window(W, H, ViewConfig(heading=0, pitch=0, fov=90))

    assert left == 0
    assert right - left == W // 4
    assert (top + bottom) // 2 == H // 2


def test_crop_window_not_wrapped_at_seam():
    left, _, right, _ = crop_window(W, H, ViewConfig(heading=359, fov=90))

    assert right == W
    assert right - left < W // 4


@pytest.mark.parametrize("pitch, expected", [(90, (0, H // 2)), (-90, (H - H // 4, H))])
def test_crop_window_pitch_extremes(pitch, expected):
    _, top, _, bottom = crop_window(W, H, ViewConfig(heading=180, pitch=pitch, fov=90))
    assert (top, bottom) == expected


def test_crop_window_aspect_ratio_from_size():
    left, top, right, bottom = crop_window(W, H, ViewConfig(heading=180, fov=90, size=(200, 100)))
    assert right - left == W // 4
    assert bottom - top == H // 4


def test_crop_window_never_empty():
    left, top, right, bottom = crop_window(W, H, ViewConfig(heading=180, fov=0.001))
    assert (right - left, bottom - top) == (1, 1)

    left, top, right, bottom = crop_window(4, 2, ViewConfig(heading=359.9, pitch=-90, fov=0.001))
    assert right - left >= 1 and bottom - top >= 1
    assert right <= 4 and bottom <= 2


def test_extract_view_native_size():
    pano = gradient_panorama()
    view = extract_view_from_panorama(pano, ViewConfig(heading=180, fov=90))

    assert view.size == (W // 4, H // 2)
    assert view.mode == "RGB"
    # top-left of the view is the crop origin in the panorama
    assert view.getpixel((0, 0)) == pano.getpixel((768, 256))


@pytest.mark.parametrize("size", [(1024, 1024), (640, 480), (10, 300), (1, 1)])
def test_extract_view_exact_target_size(size):
    pano = gradient_panorama(512, 256)
    view = extract_view_from_panorama(pano, ViewConfig(heading=45, fov=60, size=size))
    assert view.size == size
    assert view.mode == "RGB"


def test_extract_view_normalizes_rgba():
    pano = Image.new("RGBA", (360, 180), (10, 20, 30, 40))
    view = extract_view_from_panorama(pano, ViewConfig(heading=90, size=(32, 32)))
    assert view.mode == "RGB"

    native = extract_view_from_panorama(pano, ViewConfig(heading=90))
    assert native.mode == "RGB"


def test_extract_view_is_pure_and_idempotent():
    pano = gradient_panorama(512, 256)
    before = pano.tobytes()
    config = ViewConfig(heading=100, pitch=20, fov=75, size=(64, 48))

    first = extract_view_from_panorama(pano, config)
    second = extract_view_from_panorama(pano, config)

    assert first.tobytes() == second.tobytes()
    assert pano.tobytes() == before


def test_extract_views_batch():
    pano = gradient_panorama(512, 256)
    configs = [ViewConfig.from_direction(d, size=(32, 32)) for d in Direction]

    views = extract_views_from_panorama(pano, configs)

    assert len(views) == 4
    assert all(view.size == (32, 32) for view in views)
    assert views[0].tobytes() != views[2].tobytes()
    assert extract_views_from_panorama(pano, []) == []
