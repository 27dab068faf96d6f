"""
Analysis on embeddings.

- clustering: remote k-means on Earth Engine.
- similarity: local, pixel-wise change metrics between two years.
"""
