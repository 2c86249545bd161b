from __future__ import annotations

import numpy as np

from slimetrail.app.render import fade_frame, render_field, to_surface_array


def test_render_scales_intensity_by_tint_and_caps():
    field = np.array([[0.0, 127.5], [255.0, 1000.0]])
    rgb = render_field(field, (255, 128, 0))

    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert rgb[0, 0].tolist() == [0, 0, 0]
    assert rgb[0, 1].tolist() == [127, 64, 0]
    assert rgb[1, 0].tolist() == [255, 128, 0]
    assert rgb[1, 1].tolist() == [255, 128, 0]


def test_surface_array_is_column_major():
    rgb = np.zeros((3, 5, 3), dtype=np.uint8)
    rgb[2, 4] = (9, 8, 7)
    surface = to_surface_array(rgb)

    assert surface.shape == (5, 3, 3)
    assert surface[4, 2].tolist() == [9, 8, 7]


def test_fade_dims_empty_cells_and_repaints_trail():
    previous = np.full((1, 2, 3), 200, dtype=np.uint8)
    field = np.array([[0.0, 255.0]])
    rgb = render_field(field, (0, 255, 0))

    faded = fade_frame(previous, rgb, field, 0.1)

    assert faded[0, 0].tolist() == [180, 180, 180]
    assert faded[0, 1].tolist() == [0, 255, 0]
