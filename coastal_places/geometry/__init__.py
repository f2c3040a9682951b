"""Geometry operators and Esri JSON conversion."""

from coastal_places.geometry.esri_json import from_esri, to_esri
from coastal_places.geometry.operators import GeometryOperators

__all__ = [
    "GeometryOperators",
    "from_esri",
    "to_esri",
]
