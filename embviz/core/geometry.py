"""Rectangular study regions for embedding analysis.

A region is stored as four scalar WGS84 bounds. Helpers convert it to the
shapes expected by Earth Engine (polygon ring) and folium (lat/lon corner
pairs).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .exceptions import DataValidationError


@dataclass(frozen=True)
class Region:
    """Bounding rectangle in decimal degrees (lon/lat, EPSG:4326)."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self) -> None:
        validate_bounds(self.xmin, self.ymin, self.xmax, self.ymax)

    @classmethod
    def from_bounds(cls, bounds: Sequence[float]) -> "Region":
        """Build a region from ``(xmin, ymin, xmax, ymax)``."""
        if len(bounds) != 4:
            raise DataValidationError(
                f"Region needs 4 bounds (xmin, ymin, xmax, ymax), got {len(bounds)}"
            )
        xmin, ymin, xmax, ymax = (float(b) for b in bounds)
        return cls(xmin, ymin, xmax, ymax)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @property
    def center(self) -> Tuple[float, float]:
        """Center as ``(lon, lat)``."""
        return ((self.xmin + self.xmax) / 2.0, (self.ymin + self.ymax) / 2.0)

    @property
    def ring(self) -> List[List[float]]:
        return [
            [self.xmin, self.ymin],
            [self.xmin, self.ymax],
            [self.xmax, self.ymax],
            [self.xmax, self.ymin],
        ]

    def folium_bounds(self) -> List[List[float]]:
        # Folium expects [[lat_min, lon_min], [lat_max, lon_max]]
        return [[self.ymin, self.xmin], [self.ymax, self.xmax]]


def validate_bounds(xmin: float, ymin: float, xmax: float, ymax: float) -> None:
    """Check coordinate ordering and WGS84 ranges.

    Raises:
        DataValidationError: If the rectangle is empty, inverted or out of range.
    """
    if not (-180 <= xmin < xmax <= 180):
        raise DataValidationError(f"Invalid longitude bounds: {xmin}, {xmax}")
    if not (-90 <= ymin < ymax <= 90):
        raise DataValidationError(f"Invalid latitude bounds: {ymin}, {ymax}")


__all__ = ["Region", "validate_bounds"]
