"""Map styling utilities for embviz visualization module.

Defines the discrete palette used for cluster classes and a minimal figure theme
so that static maps share the same look.

Notes
-----
- Kelly palette: Kenneth Kelly's 22 colours of maximum contrast (white dropped),
  in the order shipped by grafify. Adjacent cluster IDs stay distinguishable.
- Continuous fields (difference, cosine similarity) use matplotlib's 'magma'.
"""

from __future__ import annotations

import logging
from typing import List

from matplotlib.axes import Axes
from matplotlib.colors import BoundaryNorm, ListedColormap

from ..core.exceptions import VisualizationError

logger = logging.getLogger(__name__)

KELLY_COLORS: List[str] = [
    "#F3C300", "#875692", "#F38400", "#A1CAF1", "#BE0032", "#C2B280",
    "#848482", "#008856", "#E68FAC", "#0067A5", "#F99379", "#604E97",
    "#F6A600", "#B3446C", "#DCD300", "#882D17", "#8DB600", "#654522",
    "#E25822", "#2B3D26", "#222222",
]

CONTINUOUS_CMAP = "magma"


def kelly_palette(n: int) -> List[str]:
    """First ``n`` Kelly colours as ``#RRGGBB`` strings.

    Raises:
        VisualizationError: If more classes are requested than the palette holds.
    """
    if n < 1:
        raise VisualizationError(f"Palette size must be positive, got {n}")
    if n > len(KELLY_COLORS):
        raise VisualizationError(
            f"Kelly palette has {len(KELLY_COLORS)} colours; cannot style {n} clusters"
        )
    return KELLY_COLORS[:n]


def discrete_cmap(n: int):
    """Colormap and norm mapping integer classes ``0..n-1`` to one colour each."""
    cmap = ListedColormap(kelly_palette(n), name=f"kelly_{n}")
    norm = BoundaryNorm([i - 0.5 for i in range(n + 1)], n)
    return cmap, norm


def apply_minimal_theme(ax: Axes, axis_text_size: float = 8) -> None:
    """Strip chart junk: no top/right spines, faint grid, small tick labels."""
    for side in ("top", "right"):
        ax.spines[side].set_visible(False)
    for side in ("left", "bottom"):
        ax.spines[side].set_color("#BBBBBB")
    ax.grid(True, color="#EBEBEB", linewidth=0.5)
    ax.set_axisbelow(True)
    ax.tick_params(labelsize=axis_text_size, colors="#4D4D4D", length=0)


__all__ = ["KELLY_COLORS", "CONTINUOUS_CMAP", "kelly_palette", "discrete_cmap", "apply_minimal_theme"]
