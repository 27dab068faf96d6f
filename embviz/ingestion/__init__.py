"""Earth Engine access: initialization and annual embedding mosaics."""
