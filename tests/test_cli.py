import logging

import pytest
import yaml
from click.testing import CliRunner

from embviz.cli.cli import cli

pytestmark = pytest.mark.integration

COMMANDS = [
    "check",
    "map",
    "export-clusters",
    "download-clusters",
    "plot-clusters",
    "export-embeddings",
    "download-embeddings",
    "change",
]


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path, test_config):
    path = tmp_path / "config.yaml"
    test_config.save(path)
    return path


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in COMMANDS:
        assert command in result.output


def test_change_command(config_file, embedding_pair, test_config):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "change"])
    assert result.exit_code == 0, result.output
    assert "Change detection completed successfully!" in result.output
    assert "cosine_2018_2024.tif" in result.output


def test_plot_clusters_missing_k_aborts(config_file, cluster_rasters):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "plot-clusters", "-k", "3", "-k", "7"])
    assert result.exit_code != 0
    assert "could not find exported file for K=7 in Drive folder." in result.output


def test_check_command(config_file, mock_ee):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "check"])
    assert result.exit_code == 0, result.output
    assert "1 + 2 = 3" in result.output


def test_invalid_config_aborts(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"bbox": [84.0, 28.0, 83.0, 29.0]}), encoding="utf-8")
    result = CliRunner().invoke(cli, ["-c", str(path), "change"])
    assert result.exit_code != 0
    assert "Invalid configuration" in result.output
