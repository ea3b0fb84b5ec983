import pytest
from core.config import EngineSettings, validate_grid_size
from core.errors import InvalidInput


def test_defaults():
    settings = EngineSettings()
    assert settings.grid_size == 4
    assert settings.max_concurrency == 8
    assert settings.provider_timeout == 10.0
    assert settings.use_real_data is False


@pytest.mark.parametrize("n,side", [(1, 1), (4, 2), (9, 3), (16, 4), (100, 10)])
def test_validate_grid_size(n, side):
    assert validate_grid_size(n) == side


@pytest.mark.parametrize("kwargs", [
    {"grid_size": 6},
    {"max_concurrency": 0},
    {"provider_timeout": 0},
    {"osm_radius_m": -1},
])
def test_invalid_settings(kwargs):
    with pytest.raises(InvalidInput):
        EngineSettings(**kwargs)


def test_from_env(monkeypatch):
    monkeypatch.setenv("REFLOURISH_GRID_SIZE", "9")
    monkeypatch.setenv("REFLOURISH_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("REFLOURISH_PROVIDER_TIMEOUT", "2.5")
    monkeypatch.setenv("REFLOURISH_USE_REAL_DATA", "Yes")
    monkeypatch.setenv("REFLOURISH_HISTORY_DB", "/tmp/h.db")
    settings = EngineSettings.from_env()

    assert settings.grid_size == 9
    assert settings.max_concurrency == 3
    assert settings.provider_timeout == 2.5
    assert settings.use_real_data is True
    assert settings.history_db_path == "/tmp/h.db"
    assert settings.osm_cache_path == "osm_cache.db"


def test_from_env_keeps_base(monkeypatch):
    for name in ("GRID_SIZE", "MAX_GRID_SIZE", "MAX_CONCURRENCY", "PROVIDER_TIMEOUT", "USE_REAL_DATA",
                 "HISTORY_DB", "OSM_CACHE", "OSM_RADIUS_M"):
        monkeypatch.delenv(f"REFLOURISH_{name}", raising=False)
    base = EngineSettings(grid_size=16)
    assert EngineSettings.from_env(base) == base


@pytest.mark.parametrize("name,value", [
    ("REFLOURISH_GRID_SIZE", "four"),
    ("REFLOURISH_GRID_SIZE", "5"),
    ("REFLOURISH_PROVIDER_TIMEOUT", "soon"),
])
def test_from_env_rejects_bad_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(InvalidInput):
        EngineSettings.from_env()


def test_max_grid_size(monkeypatch):
    assert EngineSettings().max_grid_size == 100
    assert validate_grid_size(100, 100) == 10
    with pytest.raises(InvalidInput):
        validate_grid_size(121, 100)
    with pytest.raises(InvalidInput):
        EngineSettings(grid_size=16, max_grid_size=9)
    with pytest.raises(InvalidInput):
        EngineSettings(max_grid_size=0)

    monkeypatch.setenv("REFLOURISH_MAX_GRID_SIZE", "25")
    assert EngineSettings.from_env().max_grid_size == 25
