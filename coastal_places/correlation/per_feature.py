"""Per-feature correlation fallback.

Issues one spatial query against the city source per coastal geometry
and unions the *results* (deduplicated by feature id).  Semantically
equivalent to the union strategies but O(n) in query count, so the
factory only selects it when the union operator is unavailable or it is
requested explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from coastal_places.core.exceptions import InvalidGeometryOperand
from coastal_places.correlation.base import (
    CorrelationResult,
    CorrelationStrategy,
    empty_result,
    record_warning,
)
from coastal_places.models.feature import Feature, FeatureBatch, QueryFilter

if TYPE_CHECKING:
    from coastal_places.models.geometry import Geometry
    from coastal_places.sources.base import FeatureSource

logger = logging.getLogger(__name__)

#: Max spatial queries in flight at once.
DEFAULT_QUERY_CONCURRENCY = 8


class PerFeatureStrategy(CorrelationStrategy):
    """One spatial query per coastal geometry; union of the matches."""

    name = "per_feature"

    async def correlate(
        self,
        coastal: FeatureBatch,
        cities: FeatureBatch,
        city_source: FeatureSource,
    ) -> CorrelationResult:
        warnings: list[str] = []
        target = city_source.spatial_reference or cities.effective_spatial_reference
        if target is None:
            return empty_result(cities, coastal, warnings)

        projected = self.reproject(coastal, target, warnings)
        usable = [g for g in (self.operators.repair(g) for g in projected) if g is not None]
        if not usable:
            record_warning(warnings, "No usable coastal geometry | source=%s", coastal.source)
            return empty_result(cities, coastal, warnings)

        semaphore = asyncio.Semaphore(DEFAULT_QUERY_CONCURRENCY)

        async def _query(geometry: Geometry) -> FeatureBatch | None:
            async with semaphore:
                try:
                    return await city_source.query(QueryFilter(geometry=geometry))
                except InvalidGeometryOperand as exc:
                    record_warning(
                        warnings,
                        "Skipped spatial query | type=%s | reason=%s",
                        geometry.geom_type,
                        exc,
                    )
                    return None

        batches = await asyncio.gather(*(_query(g) for g in usable))

        seen: dict[int | str, Feature] = {}
        for batch in batches:
            if batch is None:
                continue
            for feature in batch:
                seen.setdefault(feature.id, feature)

        logger.info(
            "Correlated | strategy=%s | source=%s | queries=%d | cities=%d",
            self.name,
            coastal.source,
            len(usable),
            len(seen),
        )
        return CorrelationResult(
            cities=FeatureBatch(tuple(seen.values()), target, source=cities.source),
            warnings=warnings,
            input_count=len(coastal),
            usable_count=len(usable),
            query_count=len(usable),
        )
