"""Interactive 2D mapping of Earth Engine images.

Earth Engine renders tiles server-side: ``image.getMapId(vis_params)`` returns a
map id whose tile URL template is handed to a Leaflet tile layer. The shape of
that response has changed between client versions, so the URL is looked up in
each known location in turn.

Notes
-----
- Base layers: Esri World Imagery ("Satellite") or OpenStreetMap ("Default").
- The EE overlay sits above the base layer at full opacity; a layer control
  lets it be toggled.
- Dependencies: folium.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import folium
from folium import LayerControl

from ..core.exceptions import VisualizationError
from ..core.geometry import Region
from .base import Visualizer

logger = logging.getLogger(__name__)

ESRI_IMAGERY_URL = (
    "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"
)
ESRI_ATTRIBUTION = "Tiles &copy; Esri &mdash; Source: Esri, Maxar, Earthstar Geographics, and the GIS User Community"


def _lookup(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def extract_tile_url(mapid: Any) -> str:
    """
    Tile URL template from an Earth Engine map id.

    Looks for ``tile_fetcher.url_format`` (current API), then ``urlFormat``, then
    the first entry of ``tiles`` (JS-style response).

    Raises
    ------
    VisualizationError
        If none of the known fields is present.
    """
    fetcher = _lookup(mapid, "tile_fetcher")
    if fetcher is not None and _lookup(fetcher, "url_format"):
        return _lookup(fetcher, "url_format")
    url_format = _lookup(mapid, "urlFormat")
    if url_format:
        return url_format
    tiles = _lookup(mapid, "tiles")
    if tiles:
        return tiles[0]
    raise VisualizationError("Could not extract tile URL from Earth Engine mapid object.")


def extract_attribution(mapid: Any) -> str:
    return _lookup(mapid, "attribution") or ""


class InteractiveMapGenerator(Visualizer):
    """
    Leaflet map (via folium) with an Earth Engine image as a tile overlay.

    Parameters
    ----------
    zoom_start : int, optional
        Initial zoom level before the map is fitted to the region (default: 13).

    Examples
    --------
    >>> generator = InteractiveMapGenerator(zoom_start=13)
    >>> m = generator.generate(
    ...     clustered.toInt(),
    ...     vis_params=cluster_vis_params(5),
    ...     region=region,
    ...     layer_name='K=5 clusters'
    ... )
    >>> m.save('clusters_k5.html')
    """

    def __init__(self, zoom_start: int = 13):
        self.zoom_start = zoom_start

    def generate(self, data: Any, **kwargs: Any) -> folium.Map:
        """
        Build the interactive map.

        Parameters
        ----------
        data : ee.Image
            Image to render; must provide ``getMapId``.
        **kwargs : dict
            - 'region': Region, required; the map is fitted to its bounds.
            - 'vis_params': Dict, EE visualization parameters
              (default ``{'min': 0, 'max': 1, 'palette': ['blue', 'red']}``).
            - 'satellite_base': bool, Esri imagery instead of OpenStreetMap (default True).
            - 'layer_name': str, overlay name (default 'EE layer').

        Returns
        -------
        folium.Map

        Raises
        ------
        VisualizationError
            If no region is given or the map id carries no tile URL.
        """
        region: Optional[Region] = kwargs.get('region')
        if region is None:
            raise VisualizationError("InteractiveMapGenerator needs a 'region' to fit the map to")
        vis_params: Dict[str, Any] = kwargs.get('vis_params') or {'min': 0, 'max': 1, 'palette': ['blue', 'red']}
        satellite_base = kwargs.get('satellite_base', True)
        layer_name = kwargs.get('layer_name', 'EE layer')

        logger.info(f"Creating interactive map for: {layer_name}")
        mapid = data.getMapId(vis_params)
        url_template = extract_tile_url(mapid)
        attribution = extract_attribution(mapid)

        lon, lat = region.center
        m = folium.Map(
            location=[lat, lon],
            zoom_start=self.zoom_start,
            tiles=None,
            prefer_canvas=True,
            control_scale=True,
        )

        if satellite_base:
            base_name = 'Satellite'
            folium.TileLayer(
                tiles=ESRI_IMAGERY_URL,
                attr=ESRI_ATTRIBUTION,
                name=base_name,
                overlay=False,
                control=True,
            ).add_to(m)
        else:
            base_name = 'Default'
            folium.TileLayer(tiles='OpenStreetMap', name=base_name, overlay=False, control=True).add_to(m)

        folium.TileLayer(
            tiles=url_template,
            attr=attribution or 'Google Earth Engine',
            name=layer_name,
            overlay=True,
            control=True,
            opacity=1,
        ).add_to(m)

        m.fit_bounds(region.folium_bounds())
        LayerControl(collapsed=False).add_to(m)

        logger.debug(f"Map base layer '{base_name}', overlay '{layer_name}'")
        return m
