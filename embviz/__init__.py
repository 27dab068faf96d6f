"""
embviz: clustering and change detection on Google Satellite Embeddings.

The annual satellite embedding collection on Earth Engine assigns every 10 m
pixel a 64-value vector. embviz wraps a short workflow around it:
1. Clustering: sample the embedding mosaic, train k-means on Earth Engine,
   view the result on an interactive map.
2. Export: send cluster rasters and yearly embeddings to Google Drive.
3. Download & plot: fetch the exports and draw a multi-K cluster panel.
4. Change detection: per-pixel mean absolute difference and cosine
   similarity between two years.

Unified API
-----------
>>> from embviz import EmbeddingsPipeline, EmbeddingsConfig
>>> pipeline = EmbeddingsPipeline(EmbeddingsConfig.from_yaml('config.yaml'))
>>> pipeline.connect()
3
>>> pipeline.export_clusters([3, 5, 10])
>>> # ...once the exports have finished
>>> pipeline.download_clusters([3, 5, 10])
>>> pipeline.plot_clusters([3, 5, 10])

Local-only:
>>> from embviz import cosine_similarity
>>> cosine_similarity(emb_2018, emb_2024, axis=0)

Command line
------------
embviz check
embviz export-clusters -k 3 -k 5 -k 10 --wait
embviz change

Dependencies: earthengine-api, google-api-python-client, NumPy, rasterio,
matplotlib, folium, pydantic, PyYAML, click.
"""

import importlib

# Package metadata
__version__ = "0.1.0"
__license__ = "MIT"
__description__ = "Clustering and change detection on satellite embeddings."

__all__ = [
    'EmbeddingsPipeline', 'EmbeddingsConfig', 'Region',
    'cosine_similarity', 'mean_absolute_difference',
    'EmbVizError', 'ExportNotFoundError',
]

# Map attribute names to (module_path, symbol_name) for lazy resolution
_lazy_exports = {
    'EmbeddingsPipeline': ('embviz.core.pipeline', 'EmbeddingsPipeline'),
    'EmbeddingsConfig': ('embviz.core.config', 'EmbeddingsConfig'),
    'Region': ('embviz.core.geometry', 'Region'),
    'cosine_similarity': ('embviz.modeling.similarity', 'cosine_similarity'),
    'mean_absolute_difference': ('embviz.modeling.similarity', 'mean_absolute_difference'),
    'EmbVizError': ('embviz.core.exceptions', 'EmbVizError'),
    'ExportNotFoundError': ('embviz.core.exceptions', 'ExportNotFoundError'),
}


def __getattr__(name: str):
    """Lazily import attributes on first access to keep ``embviz --help`` fast."""
    target = _lazy_exports.get(name)
    if target is None:
        raise AttributeError(f"module 'embviz' has no attribute {name!r}")
    module_path, symbol = target
    module = importlib.import_module(module_path)
    return getattr(module, symbol)


def __dir__():
    return sorted(list(globals().keys()) + __all__)
