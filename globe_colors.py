"""
globe_colors.py — colour look-up tables for arc weights

A ColorLUT maps a scalar (the edge weight) to an RGB triple through a matplotlib
colormap. The maps use the same stops as the three.js Lut helper so the desktop view
and the browser page agree.
"""

from typing import Dict, List, Tuple

import numpy as np
from matplotlib.colors import LinearSegmentedColormap

RGB = Tuple[float, float, float]

# Each map is a list of (position in [0, 1], '#rrggbb') stops
COLOR_MAPS: Dict[str, List[Tuple[float, str]]] = {
    "rainbow":    [(0.0, "#0000ff"), (0.2, "#00ffff"), (0.5, "#00ff00"), (0.8, "#ffff00"), (1.0, "#ff0000")],
    "cooltowarm": [(0.0, "#3c4ec2"), (0.2, "#9bbcff"), (0.5, "#dcdcdc"), (0.8, "#f6a385"), (1.0, "#b40426")],
    "blackbody":  [(0.0, "#000000"), (0.2, "#780000"), (0.5, "#e63200"), (0.8, "#ffff00"), (1.0, "#ffffff")],
    "grayscale":  [(0.0, "#000000"), (0.2, "#404040"), (0.5, "#7f7f80"), (0.8, "#bfbfbf"), (1.0, "#ffffff")],
}

DEFAULT_COLORMAP = "blackbody"
DEFAULT_N_COLORS = 256


class ColorLUT:
    """
    A discretised colour map.

    The colormap holds n_colors entries sampled evenly from the first stop to the last, so
    get_color(min_value) and get_color(max_value) return the map's two end colours.
    Values outside [min_value, max_value] are clamped.
    """

    def __init__(self, colormap: str = DEFAULT_COLORMAP, n_colors: int = DEFAULT_N_COLORS,
                 min_value: float = 0.0, max_value: float = 1.0):
        if colormap not in COLOR_MAPS:
            raise ValueError(f"Unknown colour map {colormap!r} (choose from {', '.join(sorted(COLOR_MAPS))})")
        if n_colors < 2:
            raise ValueError("n_colors must be at least 2")
        if max_value <= min_value:
            raise ValueError("max_value must be greater than min_value")

        self.colormap = colormap
        self.n_colors = n_colors
        self.min_value = float(min_value)
        self.max_value = float(max_value)

        self.cmap = LinearSegmentedColormap.from_list(colormap, COLOR_MAPS[colormap], N=n_colors)

    @property
    def table(self) -> np.ndarray:
        """The n_colors x 3 RGB entries of the colormap."""
        return self.cmap(np.arange(self.n_colors))[:, :3]

    def get_color(self, value: float) -> RGB:
        """Colormap entry for value (clamped into [min_value, max_value])."""
        v = min(max(float(value), self.min_value), self.max_value)
        alpha = (v - self.min_value) / (self.max_value - self.min_value)
        r, g, b, _a = self.cmap(alpha)
        return (float(r), float(g), float(b))

    def __repr__(self) -> str:
        return f"ColorLUT({self.colormap!r}, n_colors={self.n_colors})"
