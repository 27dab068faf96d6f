"""Input/output: Earth Engine exports, Google Drive downloads and GeoTIFF files."""
