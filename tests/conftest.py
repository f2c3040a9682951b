"""Shared pytest fixtures for the Coastal Places test suite."""

from __future__ import annotations

import pytest
from pyproj import Transformer

from coastal_places.geometry.operators import GeometryOperators

# ---------------------------------------------------------------------------
# Geometry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def operators() -> GeometryOperators:
    """Geometry operators with union available."""
    return GeometryOperators()


@pytest.fixture()
def no_union_operators() -> GeometryOperators:
    """Geometry operators reporting that union is unavailable."""
    return GeometryOperators(supports_union=False)


@pytest.fixture()
def to_mercator() -> Transformer:
    """WGS 84 (lon, lat) -> Web Mercator transformer."""
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


# ---------------------------------------------------------------------------
# Environment fixtures
# ---------------------------------------------------------------------------

_CONFIG_ENV_KEYS = (
    "ARCGIS_API_KEY",
    "ACCESS_POINTS_URL",
    "COASTAL_BUFFERS_URL",
    "CITIES_URL",
    "PLACES_API_URL",
    "REGION_COUNTIES",
    "CORRELATION_STRATEGY",
    "UNION_CHUNK_COUNT",
    "PLACE_EXTENT_LIMIT",
    "PLACES_CATEGORY_IDS",
    "PLACES_ICON_FORMAT",
    "CENTER_ZOOM",
    "DETAIL_FETCH_CONCURRENCY",
    "HTTP_TIMEOUT_S",
    "CLEAR_ON_OVERSIZE",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every configuration variable from the environment."""
    for key in _CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
