"""
Pytest configuration and fixtures for embviz tests.

Provides small synthetic GeoTIFFs, a MagicMock stand-in for the ``ee`` module
and a mock Drive service, so tests run offline and never touch Earth Engine or
Google Drive.

Usage in tests:
- embedding_pair for two 64-band embedding years written to ``downloads/``.
- cluster_rasters for clusters_k{3,5,10}.tif written to ``downloads/``.
- mock_ee to replace ``ee`` in every module that calls it.
- test_config for an EmbeddingsConfig pointing at tmp directories.

Markers:
- @pytest.mark.integration: pipeline and CLI runs across several modules.

Dependencies: pytest, numpy, rasterio, matplotlib (Agg backend), unittest.mock.
"""

import logging
from pathlib import Path
from typing import Dict
from unittest.mock import MagicMock

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from embviz.core.config import DEFAULT_BBOX, EmbeddingsConfig
from embviz.core.geometry import Region
from embviz.ingestion import earth_engine
from embviz.io import exports
from embviz.modeling import clustering

# Pixel size of the synthetic rasters, roughly 10 m at the default region
PIXEL_DEG = 0.0001

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def test_bbox():
    """Default study area (Pokhara) as xmin, ymin, xmax, ymax."""
    return list(DEFAULT_BBOX)


@pytest.fixture
def region(test_bbox):
    return Region.from_bounds(test_bbox)


@pytest.fixture
def downloads_dir(tmp_path):
    d = tmp_path / "downloads"
    d.mkdir()
    return d


@pytest.fixture
def geotiff_writer(downloads_dir, test_bbox):
    """Factory writing a band-first array as an EPSG:4326 GeoTIFF in ``downloads/``."""
    def _write(name: str, array: np.ndarray, dtype: str = "float32", nodata=None) -> Path:
        data = np.asarray(array)
        if data.ndim == 2:
            data = data[np.newaxis, ...]
        path = downloads_dir / name
        profile = {
            "driver": "GTiff",
            "dtype": dtype,
            "count": data.shape[0],
            "height": data.shape[1],
            "width": data.shape[2],
            "crs": "EPSG:4326",
            "transform": from_origin(test_bbox[0], test_bbox[3], PIXEL_DEG, PIXEL_DEG),
        }
        if nodata is not None:
            profile["nodata"] = nodata
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(data.astype(dtype))
        return path
    return _write


@pytest.fixture
def embedding_arrays():
    """
    Two synthetic embedding years of shape (64, 4, 5).

    The later year is the earlier one scaled by 2 (no change in direction),
    except pixel (0, 0), which is reversed, and pixel (1, 1), which is a zero
    vector in the earlier year.
    """
    rng = np.random.default_rng(42)
    a = rng.normal(0.0, 0.1, size=(64, 4, 5)).astype("float32")
    a[:, 1, 1] = 0.0
    b = (2.0 * a).astype("float32")
    b[:, 0, 0] = -a[:, 0, 0]
    return a, b


@pytest.fixture
def embedding_pair(geotiff_writer, embedding_arrays) -> Dict[int, Path]:
    a, b = embedding_arrays
    return {
        2018: geotiff_writer("embeddings_2018.tif", a),
        2024: geotiff_writer("embeddings_2024.tif", b),
    }


@pytest.fixture
def cluster_rasters(geotiff_writer) -> Dict[int, Path]:
    rng = np.random.default_rng(7)
    return {
        k: geotiff_writer(f"clusters_k{k}.tif", rng.integers(0, k, size=(6, 8)), dtype="uint8")
        for k in (3, 5, 10)
    }


@pytest.fixture
def mock_ee(monkeypatch):
    """Replace ``ee`` with a MagicMock in every module that talks to Earth Engine."""
    fake = MagicMock(name="ee")
    fake.Number.return_value.add.return_value.getInfo.return_value = 3
    for module in (earth_engine, exports, clustering):
        monkeypatch.setattr(module, "ee", fake)
    return fake


@pytest.fixture
def drive_service():
    """Mock Drive v3 resource; configure ``files.return_value`` per test."""
    return MagicMock(name="drive_service")


@pytest.fixture
def test_config(tmp_path, test_bbox, downloads_dir):
    return EmbeddingsConfig(
        project="ee-test-project",
        bbox=test_bbox,
        download_dir=str(downloads_dir),
        output_dir=str(tmp_path / "outputs"),
        plot={"dpi": 50},
        export={"folder": "embviz-test"},
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's EE_PROJECT / EMBVIZ_CREDENTIALS out of the tests."""
    monkeypatch.delenv("EE_PROJECT", raising=False)
    monkeypatch.delenv("EMBVIZ_CREDENTIALS", raising=False)


@pytest.fixture(autouse=True)
def setup_logging():
    logging.getLogger("embviz").setLevel(logging.DEBUG)
    yield
    logging.getLogger("embviz").setLevel(logging.NOTSET)


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: pipeline and CLI runs across several modules")
