"""
Tests for palette rendering.
"""

import cv2
import numpy as np
import pytest

from earthtones.schemas import Palette, PaletteBundle
from earthtones.services.colors.swatches import (
    hex_to_bgr,
    render_result,
    render_result_b64,
    render_swatch_strip,
)
from earthtones.services.tiles import Raster, bbox_around


def decode_png(data: bytes) -> np.ndarray:
    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    assert image is not None
    return image


class TestSwatchStrip:
    """Color chip strips"""

    def test_hex_to_bgr(self):
        assert hex_to_bgr("#FF0000") == (0, 0, 255)
        assert hex_to_bgr("#1F4E79") == (121, 78, 31)

    def test_strip_layout(self):
        strip = render_swatch_strip(["#FF0000", "#00FF00", "#0000FF"], chip_size=10)
        assert strip.shape == (10, 30, 3)
        np.testing.assert_array_equal(strip[5, 5], [0, 0, 255])
        np.testing.assert_array_equal(strip[5, 15], [0, 255, 0])
        np.testing.assert_array_equal(strip[5, 25], [255, 0, 0])

    def test_strip_fixed_width(self):
        strip = render_swatch_strip(["#000000", "#FFFFFF", "#808080"], chip_size=8, width=100)
        assert strip.shape == (8, 100, 3)
        np.testing.assert_array_equal(strip[0, -1], [128, 128, 128])

    def test_empty_palette(self):
        with pytest.raises(ValueError):
            render_swatch_strip([])


class TestRenderResult:
    """PNG rendering of palettes and bundles"""

    def test_palette_renders_strip_only(self):
        image = decode_png(render_result(Palette(colors=["#808080", "#FF0000"]), width=64, strip_height=16))
        assert image.shape == (16, 64, 3)

    def test_bundle_renders_map_above_strip(self, two_color_grid):
        raster = Raster(pixels=two_color_grid, extent=bbox_around(0.0, 0.0, 11), zoom=11)
        bundle = PaletteBundle(palette=Palette(colors=["#FF0000", "#0000FF"]), raster=raster)
        image = decode_png(render_result(bundle, width=100, strip_height=20))
        assert image.shape == (120, 100, 3)
        # top of the map is red (BGR)
        np.testing.assert_array_equal(image[2, 50], [0, 0, 255])

    def test_normalized_map_is_rescaled(self):
        pixels = np.zeros((10, 10, 3))
        pixels[..., 1] = 1.0
        pixels[0, 0] = np.nan
        raster = Raster(pixels=pixels, extent=bbox_around(0.0, 0.0, 11), zoom=11, scale=1.0)
        bundle = PaletteBundle(palette=Palette(colors=["#00FF00"]), raster=raster)
        image = decode_png(render_result(bundle, width=100, strip_height=20))
        # green (BGR)
        np.testing.assert_array_equal(image[50, 50], [0, 255, 0])

    def test_base64_output(self):
        import base64

        encoded = render_result_b64(Palette(colors=["#123456"]))
        assert base64.b64decode(encoded).startswith(b"\x89PNG")
