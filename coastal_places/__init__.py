"""Coastal Places.

Locates coastal cities in a configured region by correlating beach
access points, coastal buffer polygons and city boundaries, then
enriches a selected city with nearby parks from the ArcGIS Places
service.
"""

__version__ = "0.1.0"
