"""Shared constants — single source of truth.

Centralises the feature service URLs, region definition filters,
attribute names and enrichment limits used by the sources, the
correlation pipeline and the enrichment coordinator.
"""

from __future__ import annotations

from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Feature services
# ---------------------------------------------------------------------------

ACCESS_POINTS_URL: str = (
    "https://services9.arcgis.com/wwVnNW92ZHUIr0V0/arcgis/rest/services/"
    "AccessPoints/FeatureServer/0"
)
"""Coastal Commission public beach access points."""

COASTAL_BUFFERS_URL: str = (
    "https://services3.arcgis.com/uknczv4rpevve42E/arcgis/rest/services/"
    "California_County_Boundaries_and_Identifiers_with_Coastal_Buffers/FeatureServer/1"
)
"""County boundaries with offshore coastal buffer polygons."""

CITIES_URL: str = (
    "https://services3.arcgis.com/uknczv4rpevve42E/arcgis/rest/services/"
    "California_Cities_and_Identifiers_Blue_Version_view/FeatureServer/2"
)
"""City boundary polygons."""

PLACES_API_URL: str = "https://places-api.arcgis.com/arcgis/rest/services/places-service/v1"
"""ArcGIS Places service root."""

# ---------------------------------------------------------------------------
# Region definition
# ---------------------------------------------------------------------------

DEFAULT_REGION_COUNTIES: tuple[str, ...] = (
    "Santa Barbara",
    "Ventura",
    "Los Angeles",
    "Orange",
    "San Diego",
    "San Luis Obispo",
    "Imperial",
)

ACCESS_POINT_COUNTY_FIELD = "COUNTY"
CDTFA_COUNTY_FIELD = "CDTFA_COUNTY"
OFFSHORE_FIELD = "OFFSHORE"

CITY_NAME_FIELD = "CDTFA_CITY"
"""Attribute holding the city name used as the deduplication key."""

# ---------------------------------------------------------------------------
# Source names (used in logs and SourceUnavailable errors)
# ---------------------------------------------------------------------------

ACCESS_POINTS = "access_points"
COASTAL_BUFFERS = "coastal_buffers"
CITIES = "cities"

# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

DEFAULT_UNION_CHUNK_COUNT = 8
"""Union input is split into chunks of ``ceil(n / DEFAULT_UNION_CHUNK_COUNT)``."""

# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------

PLACE_EXTENT_LIMIT = 20_000.0
"""Extent width/height (city spatial reference units) at or above which no places query is issued."""

PARKS_CATEGORY_ID = "4d4b7105d754a06377d81259"
"""Places category for outdoors and recreation (parks)."""

DEFAULT_ICON_FORMAT = "png"
VALID_ICON_FORMATS: frozenset[str] = frozenset({"png", "svg", "cim"})

DEFAULT_CENTER_ZOOM = 12

OVERSIZE_WARNING = "City is too large for place query."
NO_COASTAL_CITIES = "No coastal cities found."
UNKNOWN_ERROR = "Unknown error"


# ---------------------------------------------------------------------------
# Definition expressions
# ---------------------------------------------------------------------------


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_in_clause(field: str, values: Iterable[str]) -> str:
    """Build a SQL-92 ``field IN ('a', 'b')`` clause with quotes escaped."""
    quoted = ", ".join(_quote(v) for v in values)
    return f"{field} IN ({quoted})"


def access_points_filter(counties: Iterable[str]) -> str:
    """Definition expression for the access points layer (bare county names)."""
    return build_in_clause(ACCESS_POINT_COUNTY_FIELD, counties)


def coastal_buffers_filter(counties: Iterable[str]) -> str:
    """Definition expression for the buffer layer (offshore rows of ``<name> County``)."""
    clause = build_in_clause(CDTFA_COUNTY_FIELD, (f"{c} County" for c in counties))
    return f"{OFFSHORE_FIELD} IS NOT NULL AND {clause}"


def cities_filter(counties: Iterable[str]) -> str:
    """Definition expression for the city boundaries layer."""
    return build_in_clause(CDTFA_COUNTY_FIELD, (f"{c} County" for c in counties))
