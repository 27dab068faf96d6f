"""Unsupervised clustering of satellite embeddings on Earth Engine.

Training pixels are sampled from the embedding mosaic and a Weka k-means
clusterer is trained and applied server-side; locally we only build the
request objects.
"""

import logging
from typing import Any, Dict

import ee

from ..core.exceptions import DataValidationError
from ..core.geometry import Region
from ..ingestion.earth_engine import region_geometry
from ..visualization.styling import kelly_palette

logger = logging.getLogger(__name__)


def sample_training(
    image: ee.Image,
    region: Region,
    scale: int = 10,
    num_pixels: int = 1000,
    seed: int = 100,
) -> ee.FeatureCollection:
    """
    Draw random training pixels from ``image`` inside ``region``.

    Parameters
    ----------
    image : ee.Image
        Embedding mosaic to sample.
    region : Region
        Sampling area.
    scale : int
        Pixel size in metres.
    num_pixels : int
        Approximate number of points to sample.
    seed : int
        Random seed, so the same training set is drawn on every run.

    Returns
    -------
    ee.FeatureCollection
        Sample points without geometries.
    """
    if num_pixels < 1:
        raise DataValidationError(f"num_pixels must be positive, got {num_pixels}")
    return image.sample(
        region=region_geometry(region),
        scale=scale,
        numPixels=int(num_pixels),
        seed=int(seed),
        geometries=False,
    )


def get_clusters(image: ee.Image, training: ee.FeatureCollection, n_clusters: int) -> ee.Image:
    """Train k-means with ``n_clusters`` on ``training`` and cluster ``image``.

    Raises:
        DataValidationError: If fewer than two clusters are requested.
    """
    if n_clusters < 2:
        raise DataValidationError(f"n_clusters must be >= 2, got {n_clusters}")
    clusterer = ee.Clusterer.wekaKMeans(nClusters=int(n_clusters)).train(training)
    logger.info(f"Clustering embeddings with K={n_clusters}")
    return image.cluster(clusterer)


def cluster_vis_params(n_clusters: int) -> Dict[str, Any]:
    """Earth Engine visualization parameters for a K-class cluster image."""
    palette = [c.lstrip("#") for c in kelly_palette(n_clusters)]
    return {"min": 0, "max": n_clusters - 1, "palette": palette}


__all__ = ["sample_training", "get_clusters", "cluster_vis_params"]
