"""City deduplication.

Merges correlated city batches into one ``CorrelatedCitySet`` keyed by
city name.  Batches are consumed in argument order and the first
occurrence of a name wins, so callers pass buffer-correlated cities
before access-point-correlated cities.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coastal_places.models.city import City, CorrelatedCitySet

if TYPE_CHECKING:
    from collections.abc import Iterable

    from coastal_places.models.feature import Feature

logger = logging.getLogger(__name__)


def dedupe(*batches: Iterable[Feature]) -> CorrelatedCitySet:
    """Build the city set from *batches*, first occurrence wins.

    Features without a city name are dropped.  The returned set is not
    frozen; the startup pipeline freezes it once all batches are merged.
    """
    cities = CorrelatedCitySet()
    unnamed = 0
    duplicates = 0
    for batch in batches:
        for feature in batch:
            city = City.from_feature(feature)
            if city is None:
                unnamed += 1
                continue
            if not cities.add(city):
                duplicates += 1

    logger.debug(
        "Cities deduplicated | unique=%d | duplicates=%d | unnamed=%d",
        len(cities),
        duplicates,
        unnamed,
    )
    return cities
