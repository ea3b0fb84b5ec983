import math
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from unittest.mock import MagicMock, patch
from loaders.osm import OSMLoader, LandCoverData, shannon_heterogeneity


@pytest.fixture
def mock_loader(tmp_path):
    cache_path = str(tmp_path / "test_osm.db")
    return OSMLoader(cache_path=cache_path, session=MagicMock(), min_interval=0)


def _elements(*covers):
    return [{"type": "way", "tags": {key: value}} for key, value in covers]


def test_fetch_raw_success(mock_loader):
    """Verify raw fetching logic."""
    mock_response = MagicMock()
    mock_response.json.return_value = {"elements": [{"id": 1}]}
    mock_loader.session.post.return_value = mock_response

    data = mock_loader.fetch_raw(37.0, -122.0)
    assert len(data["elements"]) == 1
    mock_loader.session.post.assert_called_once()
    query = mock_loader.session.post.call_args[1]["data"]["data"]
    assert "around:500,37.0,-122.0" in query


def test_caching(mock_loader):
    """Verify caching prevents double requests."""
    mock_response = MagicMock()
    mock_response.json.return_value = {"elements": []}
    mock_loader.session.post.return_value = mock_response

    mock_loader.fetch_raw(37.0, -122.0)
    mock_loader.fetch_raw(37.0, -122.0)

    assert mock_loader.session.post.call_count == 1


def test_fetch_land_cover(mock_loader):
    """Verify density and heterogeneity from mapped cover classes."""
    elements = _elements(
        ("landuse", "forest"), ("natural", "Forest"), ("natural", "meadow"), ("landuse", "residential"),
    ) + [{"type": "way", "tags": {"highway": "primary"}}]

    with patch.object(mock_loader, "fetch_raw", return_value={"elements": elements}):
        result = mock_loader.fetch_land_cover(37.0, -122.0)

    assert isinstance(result, LandCoverData)
    assert result.element_count == 4
    assert result.class_counts == {"forest": 2, "meadow": 1, "residential": 1}
    assert result.land_cover_density == 0.75
    assert result.habitat_heterogeneity == pytest.approx(0.5)


def test_fetch_land_cover_nothing_mapped(mock_loader):
    with patch.object(mock_loader, "fetch_raw", return_value={"elements": []}):
        assert mock_loader.fetch_land_cover(37.0, -122.0) is None


@pytest.mark.parametrize("counts,expected", [
    ([], 0.0),
    ([5], 0.0),
    ([1, 1], math.log(2) / math.log(8)),
    ([1] * 8, 1.0),
    ([1] * 20, 1.0),
])
def test_shannon_heterogeneity(counts, expected):
    assert shannon_heterogeneity(counts) == pytest.approx(expected)


def test_concurrent_fetches_share_one_post(mock_loader):
    def slow_post(url, **kwargs):
        time.sleep(0.1)
        response = MagicMock()
        response.json.return_value = {"elements": _elements(("landuse", "forest"))}
        return response

    mock_loader.session.post.side_effect = slow_post
    with ThreadPoolExecutor(max_workers=3) as pool:
        results = list(pool.map(lambda _: mock_loader.fetch_land_cover(37.0, -122.0), range(3)))

    assert all(r.land_cover_density == 1.0 for r in results)
    assert mock_loader.session.post.call_count == 1
