from unittest.mock import MagicMock

import pytest

from embviz.core.exceptions import DataValidationError, VisualizationError
from embviz.modeling import clustering
from embviz.visualization.styling import KELLY_COLORS, discrete_cmap, kelly_palette


def test_sample_training(mock_ee, region):
    image = MagicMock()
    training = clustering.sample_training(image, region, scale=10, num_pixels=1000, seed=100)

    image.sample.assert_called_once_with(
        region=mock_ee.Geometry.Polygon.return_value,
        scale=10,
        numPixels=1000,
        seed=100,
        geometries=False,
    )
    assert training is image.sample.return_value


def test_sample_training_needs_pixels(mock_ee, region):
    with pytest.raises(DataValidationError):
        clustering.sample_training(MagicMock(), region, num_pixels=0)


def test_get_clusters(mock_ee):
    image, training = MagicMock(), MagicMock()
    result = clustering.get_clusters(image, training, 5)

    mock_ee.Clusterer.wekaKMeans.assert_called_once_with(nClusters=5)
    clusterer = mock_ee.Clusterer.wekaKMeans.return_value
    clusterer.train.assert_called_once_with(training)
    image.cluster.assert_called_once_with(clusterer.train.return_value)
    assert result is image.cluster.return_value


@pytest.mark.parametrize("k", [0, 1])
def test_get_clusters_rejects_small_k(mock_ee, k):
    with pytest.raises(DataValidationError):
        clustering.get_clusters(MagicMock(), MagicMock(), k)
    mock_ee.Clusterer.wekaKMeans.assert_not_called()


def test_cluster_vis_params():
    assert clustering.cluster_vis_params(3) == {
        "min": 0,
        "max": 2,
        "palette": ["F3C300", "875692", "F38400"],
    }


def test_kelly_palette_limits():
    assert kelly_palette(len(KELLY_COLORS)) == KELLY_COLORS
    with pytest.raises(VisualizationError, match="cannot style 22 clusters"):
        kelly_palette(22)
    with pytest.raises(VisualizationError):
        kelly_palette(0)


def test_discrete_cmap_one_colour_per_class():
    cmap, norm = discrete_cmap(5)
    assert cmap.N == 5
    assert [int(norm(i)) for i in range(5)] == [0, 1, 2, 3, 4]
