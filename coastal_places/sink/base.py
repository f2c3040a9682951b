"""PresentationSink abstract base class.

The presentation layer (map, list, CLI output) is external to the
pipeline.  It receives plain records through this interface and emits
one ``CitySelected`` message per user action.

Call pattern:
    1. ``publish_cities(cities)``         — once, after startup.
    2. ``clear_enrichment()``             — per session, before the query.
    3. ``publish_enrichment(places)``     — per session, at Ready.
    4. ``center_on(geometry, zoom)``      — per successful session.
    5. ``notify(level, message)``         — user-facing messages.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coastal_places.models.city import CorrelatedCitySet
    from coastal_places.models.geometry import Geometry
    from coastal_places.models.places import EnrichedPlace

logger = logging.getLogger(__name__)

INFO = "info"
WARNING = "warning"
ERROR = "error"


class PresentationSink(abc.ABC):
    """Abstract base class for presentation sinks."""

    @abc.abstractmethod
    async def publish_cities(self, cities: CorrelatedCitySet) -> None:
        """Display the correlated coastal cities."""

    @abc.abstractmethod
    async def clear_enrichment(self) -> None:
        """Remove every previously published enriched place."""

    @abc.abstractmethod
    async def publish_enrichment(self, places: Sequence[EnrichedPlace]) -> None:
        """Display the enriched places of one session, replacing nothing."""

    @abc.abstractmethod
    async def center_on(self, geometry: Geometry, zoom: int) -> None:
        """Move the view to *geometry* at *zoom*."""

    async def notify(self, level: str, message: str) -> None:
        """Show a user-facing message.  The default only logs it."""
        logger.log(logging.getLevelName(level.upper()), "Sink notice | %s", message)
