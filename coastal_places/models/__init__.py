"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- Geometry / SpatialReference / Extent: spatially referenced shapes
- Feature / FeatureBatch / QueryFilter: feature source results and filters
- City / CorrelatedCitySet: the deduplicated coastal city registry
- PlaceQuery / PlaceSummary / PlaceDetail / EnrichedPlace: enrichment records
- CitySelected / SessionState / SessionOutcome: selection sessions
"""

from coastal_places.models.city import City, CorrelatedCitySet
from coastal_places.models.feature import Feature, FeatureBatch, QueryFilter
from coastal_places.models.geometry import (
    WEB_MERCATOR,
    WGS84,
    Extent,
    Geometry,
    ModelValidationError,
    SpatialReference,
)
from coastal_places.models.places import EnrichedPlace, PlaceDetail, PlaceQuery, PlaceSummary
from coastal_places.models.selection import CitySelected, SessionOutcome, SessionState

__all__ = [
    "WEB_MERCATOR",
    "WGS84",
    "City",
    "CitySelected",
    "CorrelatedCitySet",
    "EnrichedPlace",
    "Extent",
    "Feature",
    "FeatureBatch",
    "Geometry",
    "ModelValidationError",
    "PlaceDetail",
    "PlaceQuery",
    "PlaceSummary",
    "QueryFilter",
    "SessionOutcome",
    "SessionState",
    "SpatialReference",
]
