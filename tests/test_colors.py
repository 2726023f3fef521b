"""
Tests for globe_colors: colour map look-up tables.
"""

import numpy as np
import pytest

from matplotlib.colors import to_hex, to_rgb

from globe_colors import COLOR_MAPS, ColorLUT


def luminance(rgb):
    r, g, b = rgb
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


class TestColorLUT:

    def test_blackbody_extremes(self):
        lut = ColorLUT("blackbody")
        assert np.allclose(lut.get_color(0.0), (0.0, 0.0, 0.0))
        assert np.allclose(lut.get_color(1.0), (1.0, 1.0, 1.0))

    @pytest.mark.parametrize("name", sorted(COLOR_MAPS))
    def test_every_map_hits_its_end_stops(self, name):
        lut = ColorLUT(name)
        stops = COLOR_MAPS[name]
        assert np.allclose(lut.get_color(0.0), to_rgb(stops[0][1]))
        assert np.allclose(lut.get_color(1.0), to_rgb(stops[-1][1]))

    def test_values_outside_range_are_clamped(self):
        lut = ColorLUT("blackbody")
        assert lut.get_color(-5.0) == lut.get_color(0.0)
        assert lut.get_color(5.0) == lut.get_color(1.0)

    def test_deterministic(self):
        a, b = ColorLUT("blackbody"), ColorLUT("blackbody")
        for w in (0.0, 0.13, 0.5, 0.77, 1.0):
            assert a.get_color(w) == b.get_color(w)

    def test_blackbody_luminance_is_monotonic(self):
        lut = ColorLUT("blackbody")
        lum = [luminance(lut.get_color(w)) for w in np.linspace(0.0, 1.0, 201)]
        assert np.all(np.diff(lum) >= -1e-12)
        assert lum[0] < lum[100] < lum[-1]

    def test_stop_colour_is_reproduced(self):
        # 0.8 falls exactly on the yellow stop when the table has 6 entries
        lut = ColorLUT("blackbody", n_colors=6)
        assert np.allclose(lut.get_color(0.8), (1.0, 1.0, 0.0))

    def test_custom_value_range(self):
        lut = ColorLUT("grayscale", min_value=10.0, max_value=20.0)
        assert np.allclose(lut.get_color(10.0), (0.0, 0.0, 0.0))
        assert np.allclose(lut.get_color(20.0), (1.0, 1.0, 1.0))
        assert lut.get_color(15.0) == ColorLUT("grayscale").get_color(0.5)

    def test_table_shape(self):
        assert ColorLUT("rainbow", n_colors=32).table.shape == (32, 3)

    def test_unknown_map(self):
        with pytest.raises(ValueError, match="Unknown colour map"):
            ColorLUT("viridis")

    def test_bad_parameters(self):
        with pytest.raises(ValueError):
            ColorLUT(n_colors=1)
        with pytest.raises(ValueError):
            ColorLUT(min_value=1.0, max_value=1.0)


class TestMatplotlibColormap:

    def test_colormap_is_matplotlib(self):
        lut = ColorLUT("rainbow", n_colors=64)
        assert lut.cmap.N == 64
        assert lut.cmap.name == "rainbow"

    def test_table_matches_get_color(self):
        lut = ColorLUT("cooltowarm", n_colors=5)
        assert np.allclose(lut.table[0], lut.get_color(0.0))
        assert np.allclose(lut.table[-1], lut.get_color(1.0))
        assert np.allclose(lut.table[2], to_rgb("#dcdcdc"))

    def test_hex_output(self):
        assert to_hex(ColorLUT("blackbody").get_color(1.0)) == "#ffffff"
        assert to_hex(ColorLUT("rainbow").get_color(0.0)) == "#0000ff"
