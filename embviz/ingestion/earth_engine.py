"""
Earth Engine access for the annual satellite embedding collection.

Functions
---------
connect : Initialize Earth Engine, authenticating once if needed
connectivity_test : Round-trip a trivial computation to the servers
region_geometry : Convert a Region to an ``ee.Geometry.Polygon``
get_satellite_embeddings : Yearly 64-band embedding mosaic clipped to a region

Notes
-----
Every image returned here is a lazy server-side object; nothing is computed
until it is sampled, clustered, rendered or exported.
"""

import logging
from typing import Optional

import ee

from ..core.config import EMBEDDINGS_COLLECTION
from ..core.exceptions import DataValidationError, EarthEngineError
from ..core.geometry import Region

logger = logging.getLogger(__name__)

EMBEDDING_DIMS = 64


def connect(project: Optional[str] = None) -> None:
    """Initialize connection to Google Earth Engine.

    Parameters
    ----------
    project : str, optional
        Google Cloud project registered for Earth Engine.

    Raises
    ------
    EarthEngineError
        If initialization still fails after an interactive authentication.

    Examples
    --------
    >>> connect("ee-your-project")
    """
    logger.info("Initializing Earth Engine...")
    try:
        ee.Initialize(project=project)
    except Exception:
        logger.info("EE init failed, attempting interactive auth...")
        try:
            ee.Authenticate()
            ee.Initialize(project=project)
        except Exception as e:
            raise EarthEngineError(f"Earth Engine initialization failed for project {project!r}: {e}") from e
    logger.info("EE ready.")


def connectivity_test() -> int:
    """Evaluate ``1 + 2`` on the Earth Engine servers; the answer must be 3."""
    result = ee.Number(1).add(2).getInfo()
    if result != 3:
        raise EarthEngineError(f"Earth Engine connectivity test returned {result!r}, expected 3")
    logger.info("Earth Engine connectivity test passed")
    return result


def region_geometry(region: Region) -> ee.Geometry:
    return ee.Geometry.Polygon([region.ring])


def get_satellite_embeddings(
    region: Region,
    start_year: int,
    end_year: Optional[int] = None,
    collection: str = EMBEDDINGS_COLLECTION,
) -> ee.Image:
    """Build the embedding mosaic for ``[start_year, end_year)``.

    Parameters
    ----------
    region : Region
        Area of interest; the mosaic is filtered to and clipped by it.
    start_year : int
        First year included (from January 1st).
    end_year : int, optional
        Exclusive end year. Defaults to ``start_year + 1``, i.e. one annual layer.
    collection : str
        Earth Engine asset id of the annual embedding collection.

    Returns
    -------
    ee.Image
        64-band float image.

    Raises
    ------
    DataValidationError
        If ``end_year`` is not after ``start_year``.
    """
    if end_year is None:
        end_year = start_year + 1
    if end_year <= start_year:
        raise DataValidationError(f"end_year ({end_year}) must be after start_year ({start_year})")

    geometry = region_geometry(region)
    logger.debug(f"Embedding mosaic {collection} {start_year}-{end_year} over {region.bounds}")
    return (
        ee.ImageCollection(collection)
        .filterDate(f"{start_year}-01-01", f"{end_year}-01-01")
        .filterBounds(geometry)
        .mosaic()
        .clip(geometry)
        .toFloat()
    )


__all__ = [
    "EMBEDDING_DIMS",
    "connect",
    "connectivity_test",
    "region_geometry",
    "get_satellite_embeddings",
]
