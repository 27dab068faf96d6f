"""Static plots for clustering and change-detection results.

ClusterPanelPlot draws discrete cluster rasters side by side, one panel per K.
DifferencePlot and CosineChangePlot draw continuous change fields computed
from two embedding years.

All classes subclass Visualizer and return matplotlib Figures; ``save_figure``
writes them with a white background at publication resolution.

Notes
-----
- Rasters are band-first arrays as returned by ``embviz.io.rasters.read_raster``;
  single-band inputs may also be passed as 2-D arrays.
- Passing the rasterio ``profile`` places the image in map coordinates
  (longitude/latitude axes); without it, pixel indices are used.
- NaN pixels are left transparent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from ..core.exceptions import DataValidationError, VisualizationError
from ..io.rasters import raster_extent
from .base import Visualizer
from .styling import CONTINUOUS_CMAP, apply_minimal_theme, discrete_cmap

logger = logging.getLogger(__name__)

DEFAULT_FIGSIZE = (7.5, 6.0)


def _as_2d(raster: np.ndarray) -> np.ndarray:
    arr = np.asarray(raster)
    if arr.ndim == 3 and arr.shape[0] == 1:
        arr = arr[0]
    if arr.ndim != 2:
        raise DataValidationError(f"Expected a single-band raster, got shape {arr.shape}")
    return arr


def _extent(profile: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float, float, float]]:
    return raster_extent(profile) if profile is not None else None


def make_cluster_plot(
    raster: np.ndarray,
    title: str,
    ax: Optional[Axes] = None,
    n_clusters: Optional[int] = None,
    profile: Optional[Dict[str, Any]] = None,
    show_legend: bool = False,
) -> Axes:
    """
    Draw one cluster raster with a discrete Kelly palette.

    Every class ``0..n_clusters-1`` keeps its colour even when absent from the
    raster, so panels for the same K are comparable.

    Args:
        raster: Cluster IDs (2-D, or 1-band 3-D).
        title: Panel title, e.g. ``"K = 5"``.
        ax: Axes to draw on (a new figure is created when omitted).
        n_clusters: Number of classes; defaults to ``max ID + 1``.
        profile: Rasterio profile for geographic axes.
        show_legend: Add a class legend to the panel.

    Returns:
        The axes drawn on.
    """
    arr = _as_2d(raster)
    if n_clusters is None:
        if np.all(np.isnan(arr)):
            raise VisualizationError(f"Cluster raster for '{title}' has no valid pixels")
        n_clusters = int(np.nanmax(arr)) + 1
    cmap, norm = discrete_cmap(n_clusters)

    if ax is None:
        _, ax = plt.subplots(figsize=DEFAULT_FIGSIZE)
    ax.imshow(arr, cmap=cmap, norm=norm, extent=_extent(profile), interpolation="nearest")
    ax.set_title(title)
    apply_minimal_theme(ax)

    if show_legend:
        handles = [Patch(color=cmap(i), label=str(i)) for i in range(n_clusters)]
        ax.legend(handles=handles, title="Cluster", loc="center left", bbox_to_anchor=(1.0, 0.5), frameon=False)
    return ax


class ClusterPanelPlot(Visualizer):
    """
    One-row panel of cluster maps, ordered by K.

    Examples
    --------
    >>> fig = ClusterPanelPlot().generate({3: r3, 5: r5, 10: r10}, profile=profile)
    >>> save_figure(fig, 'clusters_panel.png')
    """

    def __init__(self, panel_size: Tuple[float, float] = (4.0, 4.0)):
        self.panel_size = panel_size

    def generate(self, data: Mapping[int, np.ndarray], **kwargs: Any) -> Figure:
        """
        Parameters
        ----------
        data : Mapping[int, np.ndarray]
            Cluster raster per K.
        **kwargs : dict, optional
            - 'profile': rasterio profile shared by the rasters.
            - 'profiles': Mapping[int, Dict], per-K profiles (override 'profile').
            - 'title': str, figure suptitle.
        """
        if not data:
            raise VisualizationError("No cluster rasters to plot")
        profile = kwargs.get('profile')
        profiles = kwargs.get('profiles') or {}
        ks = sorted(data)
        width, height = self.panel_size
        fig, axs = plt.subplots(1, len(ks), figsize=(width * len(ks), height), squeeze=False)
        for ax, k in zip(axs[0], ks):
            make_cluster_plot(data[k], f"K = {k}", ax=ax, n_clusters=k, profile=profiles.get(k, profile))
        if kwargs.get('title'):
            fig.suptitle(kwargs['title'], fontweight='bold')
        fig.tight_layout()
        logger.info(f"Generated cluster panel for K={', '.join(str(k) for k in ks)}")
        return fig


class DifferencePlot(Visualizer):
    """Mean absolute embedding difference between two years."""

    def generate(self, data: np.ndarray, **kwargs: Any) -> Figure:
        """
        Parameters
        ----------
        data : np.ndarray
            Mean absolute difference raster.
        **kwargs : dict, optional
            - 'profile': rasterio profile for geographic axes.
            - 'figsize': Tuple[float, float] (default 7.5 x 6 in).
            - 'title': str.
        """
        arr = _as_2d(data)
        fig, ax = plt.subplots(figsize=kwargs.get('figsize', DEFAULT_FIGSIZE))
        im = ax.imshow(arr, cmap=CONTINUOUS_CMAP, extent=_extent(kwargs.get('profile')))
        fig.colorbar(im, ax=ax, label='Mean diff.')
        if kwargs.get('title'):
            ax.set_title(kwargs['title'])
        apply_minimal_theme(ax, axis_text_size=8)
        return fig


class CosineChangePlot(Visualizer):
    """
    Cosine similarity heatmap; dark (low similarity) marks the most change.
    """

    def generate(self, data: np.ndarray, **kwargs: Any) -> Figure:
        """
        Parameters
        ----------
        data : np.ndarray
            Cosine similarity raster in [-1, 1].
        **kwargs : dict, optional
            - 'years': Tuple[int, int] used in the title (default (2018, 2024)).
            - 'profile': rasterio profile for geographic axes.
            - 'figsize': Tuple[float, float] (default 7.5 x 6 in).
        """
        arr = _as_2d(data)
        start, end = kwargs.get('years', (2018, 2024))
        fig, ax = plt.subplots(figsize=kwargs.get('figsize', DEFAULT_FIGSIZE))
        im = ax.imshow(arr, cmap=f"{CONTINUOUS_CMAP}_r", extent=_extent(kwargs.get('profile')))
        fig.colorbar(im, ax=ax, label='Cosine similarity')
        fig.suptitle(f"Land Cover Change: {start} → {end}", fontsize=14, fontweight='bold')
        ax.set_title("Lower similarity indicates greater change", fontsize=12, fontweight='bold')
        apply_minimal_theme(ax, axis_text_size=8)
        return fig


def save_figure(fig: Figure, path: Union[str, Path], dpi: int = 600, size: Optional[Sequence[float]] = None) -> Path:
    """Save ``fig`` as PNG on a white background and close it."""
    dst = Path(path)
    dst.parent.mkdir(parents=True, exist_ok=True)
    if size is not None:
        fig.set_size_inches(*size)
    fig.savefig(dst, dpi=dpi, facecolor='white', bbox_inches='tight')
    plt.close(fig)
    logger.info(f"Saved figure {dst}")
    return dst


__all__ = [
    "make_cluster_plot",
    "ClusterPanelPlot",
    "DifferencePlot",
    "CosineChangePlot",
    "save_figure",
]
