"""Places service adapters.

- PlacesService: Abstract base class (within-extent query + detail fetch)
- ArcGISPlacesService: ArcGIS Places REST API (httpx.AsyncClient)
"""

from coastal_places.places.arcgis import ArcGISPlacesService
from coastal_places.places.base import PlaceDetailFailed, PlacesQueryFailed, PlacesService

__all__ = [
    "ArcGISPlacesService",
    "PlaceDetailFailed",
    "PlacesQueryFailed",
    "PlacesService",
]
