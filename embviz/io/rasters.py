"""GeoTIFF reading and writing utilities."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import numpy as np
import rasterio

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_raster(path: PathLike) -> Tuple[np.ndarray, Dict[str, Any]]:
    """Read every band of ``path`` as float64 with masked/nodata pixels set to NaN.

    Returns
    -------
    tuple
        ``(array, profile)`` where ``array`` has shape ``(bands, rows, cols)``.
    """
    with rasterio.open(path) as src:
        data = src.read(masked=True).astype("float64")
        profile = src.profile.copy()
    logger.debug(f"Read {path}: {data.shape[0]} band(s), {data.shape[1]}x{data.shape[2]}")
    return data.filled(np.nan), profile


def raster_extent(profile: Dict[str, Any]) -> Tuple[float, float, float, float]:
    """Matplotlib ``imshow`` extent ``(left, right, bottom, top)`` for a profile."""
    transform = profile["transform"]
    left, top = transform * (0, 0)
    right, bottom = transform * (profile["width"], profile["height"])
    return (left, right, min(bottom, top), max(bottom, top))


def write_raster(array: np.ndarray, dst_path: PathLike, profile: Dict[str, Any]) -> Path:
    """Persist ``array`` as a float32, deflate-compressed GeoTIFF.

    ``array`` may be 2-D (single band) or ``(bands, rows, cols)``. The georeferencing
    of ``profile`` is kept; dtype, band count and nodata are overwritten.
    """
    dst = Path(dst_path)
    dst.parent.mkdir(parents=True, exist_ok=True)
    data = np.asarray(array, dtype="float32")
    if data.ndim == 2:
        data = data[np.newaxis, ...]
    out_profile = profile.copy()
    out_profile.update(
        {
            "driver": "GTiff",
            "dtype": "float32",
            "count": data.shape[0],
            "height": data.shape[1],
            "width": data.shape[2],
            "nodata": np.nan,
            "compress": "deflate",
        }
    )
    with rasterio.open(dst, "w", **out_profile) as sink:
        sink.write(data)
    logger.info(f"Wrote raster {dst}")
    return dst


__all__ = ["read_raster", "raster_extent", "write_raster"]
