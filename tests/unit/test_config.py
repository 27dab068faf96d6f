import pytest

from embviz.core.config import EMBEDDINGS_COLLECTION, MAX_CLUSTERS, ClusteringConfig, EmbeddingsConfig
from embviz.core.exceptions import ConfigurationError


def test_defaults():
    config = EmbeddingsConfig()
    assert config.collection == EMBEDDINGS_COLLECTION
    assert config.year == 2024
    assert config.change_years == [2018, 2024]
    assert config.scale == 10
    assert config.clustering.cluster_values == [3, 5, 10]
    assert config.clustering.n_samples == 1000
    assert config.clustering.seed == 100
    assert config.export.folder == "earthengine-exports"
    assert config.export.max_pixels == 1e13
    assert config.plot.dpi == 600
    assert (config.plot.width, config.plot.height) == (7.5, 6.0)
    assert config.region.center[0] == pytest.approx((83.919067 + 83.977776) / 2)


def test_yaml_round_trip(tmp_path, test_config):
    path = tmp_path / "cfg" / "config.yaml"
    test_config.save(path)
    loaded = EmbeddingsConfig.from_yaml(path)
    assert loaded.to_dict() == test_config.to_dict()


def test_missing_file_uses_defaults(tmp_path):
    config = EmbeddingsConfig.from_yaml(tmp_path / "absent.yaml")
    assert config.project == "ee-your-project"


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("project: from-yaml\nyear: 2020\n", encoding="utf-8")
    monkeypatch.setenv("EE_PROJECT", "from-env")
    monkeypatch.setenv("EMBVIZ_CREDENTIALS", "/secrets/sa.json")
    config = EmbeddingsConfig.from_yaml(path)
    assert config.project == "from-env"
    assert config.credentials_file == "/secrets/sa.json"
    assert config.year == 2020


@pytest.mark.parametrize(
    "yaml_text",
    [
        "bbox: [84.0, 28.0, 83.0, 29.0]\n",
        "bbox: [84.0, 28.0, 85.0]\n",
        "change_years: [2024, 2018]\n",
        "change_years: [2018, 2020, 2024]\n",
        "clustering:\n  cluster_values: [1, 5]\n",
        "clustering:\n  cluster_values: [3, 22]\n",
        "clustering:\n  cluster_values: []\n",
        "clustering:\n  map_clusters: 22\n",
        "unknown_key: 1\n",
        "log_level: chatty\n",
    ],
)
def test_invalid_values_raise_configuration_error(tmp_path, yaml_text):
    path = tmp_path / "config.yaml"
    path.write_text(yaml_text, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        EmbeddingsConfig.from_yaml(path)


def test_malformed_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("bbox: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        EmbeddingsConfig.from_yaml(path)


def test_log_level_normalized():
    assert EmbeddingsConfig(log_level="debug").log_level == "DEBUG"


def test_direct_construction_validates():
    # pydantic's ValidationError is a ValueError
    with pytest.raises(ValueError):
        EmbeddingsConfig(change_years=[2024, 2024])


def test_repeated_cluster_values_are_dropped():
    assert ClusteringConfig(cluster_values=[5, 5, 3]).cluster_values == [5, 3]


def test_cluster_values_bounded_by_palette():
    assert MAX_CLUSTERS == 21
    assert ClusteringConfig(cluster_values=[2, 21]).cluster_values == [2, 21]
