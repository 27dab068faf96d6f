"""
Core configuration, errors and orchestration.

Holds the validated configuration, the exception hierarchy, the study region
type and the EmbeddingsPipeline that chains Earth Engine, Drive and local
plotting stages.
"""
