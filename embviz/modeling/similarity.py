"""Pixel-wise change metrics between two embedding years.

Each pixel carries a 64-value embedding per year. Change is measured either as
the mean absolute difference across channels or, direction-only, as the cosine
similarity of the two vectors: values near 1 mean the surface looks the same,
near 0 unrelated, near -1 opposite.

Arrays follow the rasterio band-first convention ``(channels, rows, cols)``, so
the channel axis defaults to 0. Any other axis can be passed explicitly, e.g.
``axis=-1`` for ``(pixels, channels)`` tables.

A pixel where either vector has zero length has no defined direction; its
similarity is NaN, the same marker used for nodata pixels.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from ..core.exceptions import DataValidationError
from ..ingestion.earth_engine import EMBEDDING_DIMS
from ..io.rasters import read_raster, write_raster

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _check_pair(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(a, dtype="float64")
    b = np.asarray(b, dtype="float64")
    if a.shape != b.shape:
        raise DataValidationError(f"Embedding arrays differ in shape: {a.shape} vs {b.shape}")
    return a, b


def _max_abs(x: np.ndarray, axis: int) -> np.ndarray:
    # zero vectors keep a divisor of 1 and stay zero; NaN propagates
    m = np.max(np.abs(x), axis=axis, keepdims=True)
    return np.where(m > 0, m, 1.0)


def cosine_similarity(a: np.ndarray, b: np.ndarray, axis: int = 0) -> np.ndarray:
    """
    Cosine similarity of ``a`` and ``b`` along ``axis``, clamped to [-1, 1].

    Parameters
    ----------
    a, b : np.ndarray
        Same-shape arrays; ``axis`` holds the embedding vector of each pixel.
    axis : int
        Channel axis (default 0, the band axis of a rasterio read).

    Returns
    -------
    np.ndarray
        Array with ``axis`` removed. NaN where either vector has zero magnitude
        or contains NaN.

    Raises
    ------
    DataValidationError
        If the shapes differ.

    Examples
    --------
    >>> float(cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 2.0])))
    0.0
    """
    a, b = _check_pair(a, b)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore", under="ignore"):
        # cosine is scale-free; unit max-abs keeps the squared norms finite and non-zero
        a = a / _max_abs(a, axis)
        b = b / _max_abs(b, axis)
        dot = np.sum(a * b, axis=axis)
        denom = np.sqrt(np.sum(a * a, axis=axis)) * np.sqrt(np.sum(b * b, axis=axis))
        cosine = np.where(denom > 0, dot / np.where(denom > 0, denom, 1.0), np.nan)
    # rounding can push |cos| a few ulps past 1; NaN survives np.clip
    return np.clip(cosine, -1.0, 1.0)


def split_stacked(stack: np.ndarray, n_channels: int = EMBEDDING_DIMS, axis: int = 0) -> Tuple[np.ndarray, np.ndarray]:
    """Split a concatenated two-year stack into its earlier and later halves.

    Raises:
        DataValidationError: If the stack does not have exactly ``2 * n_channels``
            channels along ``axis``.
    """
    stack = np.asarray(stack)
    if stack.shape[axis] != 2 * n_channels:
        raise DataValidationError(
            f"Expected {2 * n_channels} channels (2 x {n_channels}), got {stack.shape[axis]}"
        )
    first = np.take(stack, range(0, n_channels), axis=axis)
    second = np.take(stack, range(n_channels, 2 * n_channels), axis=axis)
    return first, second


def cosine_similarity_stacked(stack: np.ndarray, n_channels: int = EMBEDDING_DIMS, axis: int = 0) -> np.ndarray:
    """Cosine similarity between the two halves of a concatenated stack."""
    first, second = split_stacked(stack, n_channels=n_channels, axis=axis)
    return cosine_similarity(first, second, axis=axis)


def mean_absolute_difference(a: np.ndarray, b: np.ndarray, axis: int = 0) -> np.ndarray:
    """Mean over channels of ``|b - a|``; NaN in any channel propagates."""
    a, b = _check_pair(a, b)
    return np.mean(np.abs(b - a), axis=axis)


def read_pair(path_a: PathLike, path_b: PathLike) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    """Read two embedding GeoTIFFs that must share band count and grid.

    Returns:
        ``(a, b, profile)`` with the profile of ``path_a``.
    """
    a, profile_a = read_raster(path_a)
    b, profile_b = read_raster(path_b)
    if a.shape != b.shape:
        raise DataValidationError(
            f"Rasters {path_a} and {path_b} do not share bands/grid: {a.shape} vs {b.shape}"
        )
    if profile_a.get("transform") != profile_b.get("transform"):
        logger.warning(f"Rasters {path_a} and {path_b} have different transforms; using the first")
    return a, b, profile_a


def _log_missing(cosine: np.ndarray) -> None:
    n_missing = int(np.isnan(cosine).sum())
    if n_missing:
        logger.info(f"{n_missing} pixel(s) without a defined cosine similarity (nodata or zero vector)")


def difference_raster(
    path_a: PathLike, path_b: PathLike, out_path: Optional[PathLike] = None
) -> Tuple[np.ndarray, Dict[str, Any]]:
    """Mean absolute difference between two embedding GeoTIFFs, optionally saved."""
    a, b, profile = read_pair(path_a, path_b)
    diff = mean_absolute_difference(a, b, axis=0)
    if out_path is not None:
        write_raster(diff, out_path, profile)
    return diff, profile


def cosine_similarity_raster(
    path_a: PathLike, path_b: PathLike, out_path: Optional[PathLike] = None
) -> Tuple[np.ndarray, Dict[str, Any]]:
    """Pixel-wise cosine similarity between two embedding GeoTIFFs, optionally saved."""
    a, b, profile = read_pair(path_a, path_b)
    cosine = cosine_similarity(a, b, axis=0)
    _log_missing(cosine)
    if out_path is not None:
        write_raster(cosine, out_path, profile)
    return cosine, profile


def change_rasters(
    path_a: PathLike, path_b: PathLike, cosine_out: Optional[PathLike] = None
) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    """
    Mean absolute difference and cosine similarity from a single read of both years.

    Returns:
        ``(difference, cosine, profile)``; the cosine raster is also written to
        ``cosine_out`` when given.
    """
    a, b, profile = read_pair(path_a, path_b)
    diff = mean_absolute_difference(a, b, axis=0)
    cosine = cosine_similarity(a, b, axis=0)
    _log_missing(cosine)
    if cosine_out is not None:
        write_raster(cosine, cosine_out, profile)
    return diff, cosine, profile


__all__ = [
    "cosine_similarity",
    "split_stacked",
    "cosine_similarity_stacked",
    "mean_absolute_difference",
    "read_pair",
    "change_rasters",
    "difference_raster",
    "cosine_similarity_raster",
]
