"""Feature source adapters.

- FeatureSource: Abstract base class defining the query interface
- ArcGISFeatureSource: ArcGIS REST feature layer (httpx.AsyncClient)
"""

from coastal_places.sources.arcgis import ArcGISFeatureSource
from coastal_places.sources.base import FeatureSource, SourceUnavailable

__all__ = [
    "ArcGISFeatureSource",
    "FeatureSource",
    "SourceUnavailable",
]
