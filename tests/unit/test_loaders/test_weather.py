from datetime import date
from unittest.mock import MagicMock

import pytest
from loaders.weather import WeatherLoader


@pytest.fixture
def mock_loader():
    return WeatherLoader(session=MagicMock(), today=lambda: date(2024, 6, 15), min_interval=0)


def _daily(**series):
    response = MagicMock()
    response.json.return_value = {"daily": series}
    return response


def test_precipitation_window(mock_loader):
    """The window ends at the archive lag and spans a year."""
    mock_loader.session.get.return_value = _daily(precipitation_sum=[1.0, None, 2.5])

    values = mock_loader.get_daily_precipitation(40.7, -74.0)
    assert values == [1.0, 2.5]

    _, kwargs = mock_loader.session.get.call_args
    params = kwargs["params"]
    assert params["start_date"] == "2023-06-12"
    assert params["end_date"] == "2024-06-10"
    assert params["daily"] == "precipitation_sum"
    assert params["latitude"] == 40.7


def test_precipitation_empty(mock_loader):
    mock_loader.session.get.return_value = _daily()
    assert mock_loader.get_daily_precipitation(40.7, -74.0) == []


def test_vegetation_index(mock_loader):
    mock_loader.session.get.return_value = _daily(
        precipitation_sum=[4.0] * 90,
        temperature_2m_mean=[22.0] * 90,
    )
    # 360 mm of a 400 mm ceiling at the optimal temperature
    assert mock_loader.get_vegetation_index(40.7, -74.0) == pytest.approx(0.9 * 0.7 + 0.3)

    _, kwargs = mock_loader.session.get.call_args
    assert kwargs["params"]["start_date"] == "2024-03-13"


def test_vegetation_index_cold_and_dry(mock_loader):
    mock_loader.session.get.return_value = _daily(
        precipitation_sum=[0.0] * 90,
        temperature_2m_mean=[-20.0] * 90,
    )
    assert mock_loader.get_vegetation_index(40.7, -74.0) == 0.0


def test_vegetation_index_missing(mock_loader):
    mock_loader.session.get.return_value = _daily(precipitation_sum=[1.0], temperature_2m_mean=[None])
    assert mock_loader.get_vegetation_index(40.7, -74.0) is None
