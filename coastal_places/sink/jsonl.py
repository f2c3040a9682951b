"""JSON-lines presentation sink.

Writes one JSON object per sink event to a text stream.  Used by the
command-line entry point so that another process (or a person with
``jq``) can follow the session::

    {"event": "cities", "count": 2, "cities": [{"name": "Malibu", ...}]}
    {"event": "clear"}
    {"event": "places", "count": 3, "places": [{"place_id": "...", ...}]}
    {"event": "center", "x": -119.2, "y": 34.3, "wkid": 4326, "zoom": 12}
    {"event": "notice", "level": "warning", "message": "..."}
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, TextIO

from pydantic import BaseModel, ConfigDict

from coastal_places.sink.base import PresentationSink

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coastal_places.models.city import City, CorrelatedCitySet
    from coastal_places.models.geometry import Geometry
    from coastal_places.models.places import EnrichedPlace


class CityRecord(BaseModel):
    """Plain city record handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    name: str
    wkid: int | None = None
    extent: tuple[float, float, float, float] | None = None

    @classmethod
    def from_city(cls, city: City) -> CityRecord:
        geometry = city.geometry
        if geometry is None or geometry.is_empty:
            return cls(name=city.name)
        return cls(
            name=city.name,
            wkid=geometry.spatial_reference.wkid,
            extent=geometry.extent.as_bounds(),
        )


class JsonLinesSink(PresentationSink):
    """Presentation sink writing JSON lines to *stream* (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    async def publish_cities(self, cities: CorrelatedCitySet) -> None:
        records = [CityRecord.from_city(city).model_dump(mode="json") for city in cities]
        self._write({"event": "cities", "count": len(records), "cities": records})

    async def clear_enrichment(self) -> None:
        self._write({"event": "clear"})

    async def publish_enrichment(self, places: Sequence[EnrichedPlace]) -> None:
        records = [place.model_dump(mode="json") for place in places]
        self._write({"event": "places", "count": len(records), "places": records})

    async def center_on(self, geometry: Geometry, zoom: int) -> None:
        center = geometry.shape.centroid
        self._write(
            {
                "event": "center",
                "x": center.x,
                "y": center.y,
                "wkid": geometry.spatial_reference.wkid,
                "zoom": zoom,
            }
        )

    async def notify(self, level: str, message: str) -> None:
        self._write({"event": "notice", "level": level, "message": message})

    def _write(self, payload: dict[str, Any]) -> None:
        self._stream.write(json.dumps(payload) + "\n")
        self._stream.flush()
