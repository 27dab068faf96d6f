"""
embviz.visualization: lightweight package initializer.

Visualizers are exposed lazily so that importing the package does not pull in
folium or matplotlib until a specific map or plot is requested.

Public API (lazy-loaded on attribute access):
- InteractiveMapGenerator, extract_tile_url (from .maps_2d): folium.
- ClusterPanelPlot, DifferencePlot, CosineChangePlot, save_figure (from .plots): matplotlib.
- Visualizer (from .base).
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_lazy_exports = {
    "Visualizer": ".base",
    "InteractiveMapGenerator": ".maps_2d",
    "extract_tile_url": ".maps_2d",
    "ClusterPanelPlot": ".plots",
    "DifferencePlot": ".plots",
    "CosineChangePlot": ".plots",
    "make_cluster_plot": ".plots",
    "save_figure": ".plots",
}

__all__ = list(_lazy_exports)


def __getattr__(name: str) -> Any:
    """Lazy attribute resolver to delay importing plotting backends until accessed."""
    module_path = _lazy_exports.get(name)
    if module_path is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(module_path, __name__)
    return getattr(module, name)
