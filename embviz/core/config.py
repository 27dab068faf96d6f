import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, validator

from .exceptions import ConfigurationError, DataValidationError
from .geometry import Region
from ..visualization.styling import KELLY_COLORS

log = logging.getLogger(__name__)

EMBEDDINGS_COLLECTION = "GOOGLE/SATELLITE_EMBEDDING/V1/ANNUAL"

# Pokhara, Nepal
DEFAULT_BBOX = [83.919067, 28.190059, 83.977776, 28.235137]

# one palette colour per cluster class
MIN_CLUSTERS = 2
MAX_CLUSTERS = len(KELLY_COLORS)


class ClusteringConfig(BaseModel):
    """Remote k-means settings."""
    n_samples: int = 1000
    seed: int = 100
    cluster_values: List[int] = Field(default_factory=lambda: [3, 5, 10])
    map_clusters: int = 5

    class Config:
        extra = "forbid"

    @validator('cluster_values')
    def validate_cluster_values(cls, v):
        if not v:
            raise ValueError('cluster_values must not be empty')
        try:
            return normalize_cluster_values(v)
        except DataValidationError as e:
            raise ValueError(str(e)) from e

    @validator('map_clusters')
    def validate_map_clusters(cls, v):
        try:
            return normalize_cluster_values([v])[0]
        except DataValidationError as e:
            raise ValueError(str(e)) from e


def normalize_cluster_values(values: Sequence[int]) -> List[int]:
    """
    Drop repeated cluster counts (first occurrence wins) and check their range.

    Each K gets one export task and one colour per class, so K must lie in
    ``[2, len(KELLY_COLORS)]``.

    Raises:
        DataValidationError: If any K is out of range.
    """
    ks = list(dict.fromkeys(int(k) for k in values))
    bad = [k for k in ks if not MIN_CLUSTERS <= k <= MAX_CLUSTERS]
    if bad:
        raise DataValidationError(
            f"cluster counts must be between {MIN_CLUSTERS} and {MAX_CLUSTERS}, got {bad}"
        )
    return ks


class ExportConfig(BaseModel):
    """Earth Engine to Google Drive export settings."""
    folder: str = "earthengine-exports"
    max_pixels: float = 1e13
    file_format: str = "GeoTIFF"
    poll_seconds: float = 30.0

    class Config:
        extra = "forbid"


class PlotConfig(BaseModel):
    dpi: int = 600
    width: float = 7.5  # inches
    height: float = 6.0
    zoom: int = 13
    satellite_base: bool = True

    class Config:
        extra = "forbid"


class EmbeddingsConfig(BaseModel):
    """
    Main configuration for the embeddings clustering / change detection workflow.

    Loads from config.yaml with defaults for the study region, years, clustering
    parameters, export target and plot styling. Validates required fields and types
    before any Earth Engine call is made.
    """
    # Earth Engine
    project: str = "ee-your-project"
    collection: str = EMBEDDINGS_COLLECTION
    bbox: List[float] = Field(default_factory=lambda: list(DEFAULT_BBOX))
    year: int = 2024
    change_years: List[int] = Field(default_factory=lambda: [2018, 2024])
    scale: int = 10

    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    plot: PlotConfig = Field(default_factory=PlotConfig)

    # Local paths
    download_dir: str = "./downloads"
    output_dir: str = "./outputs"
    credentials_file: Optional[str] = None

    log_level: str = "INFO"

    class Config:
        extra = "forbid"

    @validator('bbox')
    def validate_bbox(cls, v):
        try:
            Region.from_bounds(v)
        except DataValidationError as e:
            raise ValueError(str(e)) from e
        return v

    @validator('change_years')
    def validate_change_years(cls, v):
        if len(v) != 2 or v[0] >= v[1]:
            raise ValueError('change_years must be two ascending years, e.g. [2018, 2024]')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        level = str(v).upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'unknown log level {v!r}')
        return level

    @property
    def region(self) -> Region:
        return Region.from_bounds(self.bbox)

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> 'EmbeddingsConfig':
        """
        Load configuration from YAML file, then apply environment overrides.

        Raises:
            ConfigurationError: Unreadable YAML or invalid field values.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            log.warning(f"Config file {config_path} not found. Using defaults.")
            return cls(**_env_overrides({}))

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")

        try:
            config = cls(**_env_overrides(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e
        log.info(f"Configuration loaded from {config_path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return self.dict()

    def save(self, path: Union[str, Path]):
        """Save config to YAML."""
        path = Path(path)
        path.parent.mkdir(exist_ok=True, parents=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        log.info(f"Configuration saved to {path}")


def _env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    for key, env_var in [('project', 'EE_PROJECT'), ('credentials_file', 'EMBVIZ_CREDENTIALS')]:
        if os.environ.get(env_var):
            data[key] = os.environ[env_var]
    return data
