"""Typed models for the places enrichment step.

- ``PlaceQuery``: category filter + validated extent + icon format
- ``PlaceSummary``: one result of the within-extent query
- ``PlaceDetail``: the fields fetched per place id
- ``EnrichedPlace``: the record handed to the presentation sink

``EnrichedPlace`` is a pydantic model so that sinks can serialise it
with ``model_dump()``/``model_dump_json()``; the intermediate models
are frozen dataclasses parsed from the service JSON with ``from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry import Point

from coastal_places.core.constants import VALID_ICON_FORMATS
from coastal_places.models.geometry import WGS84, Extent, Geometry, ModelValidationError


@dataclass(frozen=True, slots=True)
class PlaceQuery:
    """Parameters of one within-extent places query.

    Attributes:
        category_ids: Places category identifiers to match.
        extent: Search extent (any spatial reference; adapters reproject).
        icon_format: Icon format to return (``png``, ``svg`` or ``cim``).
    """

    category_ids: tuple[str, ...]
    extent: Extent
    icon_format: str = "png"

    def __post_init__(self) -> None:
        if not self.category_ids:
            raise ModelValidationError("PlaceQuery", "category_ids", self.category_ids, "must not be empty")
        if self.icon_format not in VALID_ICON_FORMATS:
            raise ModelValidationError(
                "PlaceQuery",
                "icon_format",
                self.icon_format,
                f"must be one of {', '.join(sorted(VALID_ICON_FORMATS))}",
            )


@dataclass(frozen=True, slots=True)
class PlaceSummary:
    """A place returned by the within-extent query.

    Attributes:
        place_id: Places service identifier.
        location: Point location in WGS 84.
        icon_url: Icon URL (empty if the service returned none).
        category_label: Label of the first category (empty if none).
        name: Name from the summary, used when the detail has none.
    """

    place_id: str
    location: Geometry
    icon_url: str = ""
    category_label: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlaceSummary:
        """Parse a ``results[]`` entry of the within-extent response.

        Raises:
            ModelValidationError: If *data* is not an object or ``placeId``
                or ``location`` is missing.
        """
        if not isinstance(data, dict):
            raise ModelValidationError("PlaceSummary", "result", data, "must be an object")
        place_id = str(data.get("placeId") or "")
        if not place_id:
            raise ModelValidationError("PlaceSummary", "placeId", data.get("placeId"), "is required")

        location = data.get("location")
        if not isinstance(location, dict) or "x" not in location or "y" not in location:
            raise ModelValidationError("PlaceSummary", "location", location, "must have x and y")

        icon = data.get("icon")
        icon_url = str(icon.get("url") or "") if isinstance(icon, dict) else ""

        categories = data.get("categories") or []
        category_label = ""
        if isinstance(categories, list) and categories and isinstance(categories[0], dict):
            category_label = str(categories[0].get("label") or "")

        return cls(
            place_id=place_id,
            location=Geometry(
                shape=Point(float(location["x"]), float(location["y"])),
                spatial_reference=WGS84,
            ),
            icon_url=icon_url,
            category_label=category_label,
            name=str(data.get("name") or ""),
        )


@dataclass(frozen=True, slots=True)
class PlaceDetail:
    """Detail fields fetched for a single place."""

    place_id: str
    name: str
    street_address: str = ""

    @classmethod
    def from_response(cls, place_id: str, data: dict[str, Any]) -> PlaceDetail:
        """Parse a ``/places/{placeId}`` response body.

        Raises:
            ModelValidationError: If ``placeDetails`` is missing.
        """
        details = data.get("placeDetails")
        if not isinstance(details, dict):
            raise ModelValidationError("PlaceDetail", "placeDetails", details, "is required")
        address = details.get("address")
        street = ""
        if isinstance(address, dict):
            street = str(address.get("streetAddress") or "")
        return cls(
            place_id=str(details.get("placeId") or place_id),
            name=str(details.get("name") or ""),
            street_address=street,
        )


class EnrichedPlace(BaseModel):
    """Summary + detail merged into the record published to the sink.

    Attributes:
        place_id: Places service identifier.
        name: Display name.
        street_address: Street address, empty if unknown.
        category: Label of the first category.
        icon_url: Marker icon URL.
        x: Longitude (WGS 84).
        y: Latitude (WGS 84).
        wkid: Spatial reference of ``x``/``y``.
    """

    model_config = ConfigDict(frozen=True)

    place_id: str
    name: str = ""
    street_address: str = ""
    category: str = ""
    icon_url: str = ""
    x: float = 0.0
    y: float = 0.0
    wkid: int = Field(default=WGS84.wkid)

    @classmethod
    def merge(cls, summary: PlaceSummary, detail: PlaceDetail) -> EnrichedPlace:
        point = summary.location.shape
        return cls(
            place_id=summary.place_id,
            name=detail.name or summary.name,
            street_address=detail.street_address,
            category=summary.category_label,
            icon_url=summary.icon_url,
            x=float(point.x),
            y=float(point.y),
            wkid=summary.location.spatial_reference.wkid,
        )
