"""Abstract base class for visualization components in embviz."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class Visualizer(ABC):
    """
    Abstract base class for embedding visualizers.

    Subclasses render one kind of product (interactive cluster map, cluster panel,
    difference map, cosine-change heatmap) from Earth Engine images or local
    raster arrays. ``generate`` is the single entry point.

    Notes
    -----
    - **kwargs Handling**: Common kwargs include 'title', 'region' and
      'layer_name'; subclasses document the rest.
    - **Error Handling**: Raise VisualizationError for rendering failures and
      DataValidationError for unusable input (e.g. wrong array rank).
    - **Outputs**: Static products return ``matplotlib.figure.Figure``; the
      interactive map returns ``folium.Map``. Saving is the caller's job.

    Examples
    --------
    >>> from embviz.visualization.plots import DifferencePlot
    >>> fig = DifferencePlot().generate(diff, profile=profile)
    >>> save_figure(fig, 'mean_absolute_difference.png')
    """

    @abstractmethod
    def generate(self, data: Any, **kwargs: Any) -> Any:
        """
        Render ``data`` and return the figure/map object.

        Parameters
        ----------
        data : Any
            Input to render (``ee.Image``, ``np.ndarray`` or mapping of them).
        **kwargs : dict, optional
            Visualizer-specific parameters.
        """
        pass
