"""CorrelationStrategy abstract base class.

A correlation strategy decides which city features count as coastal
with respect to one batch of coastal features (access points or
buffers).  Strategies are interchangeable; the startup pipeline selects
one by name through the strategy factory.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from coastal_places.core.constants import DEFAULT_UNION_CHUNK_COUNT
from coastal_places.core.exceptions import InvalidGeometryOperand, ValidationError
from coastal_places.models.feature import Feature, FeatureBatch

if TYPE_CHECKING:
    from coastal_places.geometry.operators import GeometryOperators
    from coastal_places.models.geometry import Geometry, SpatialReference
    from coastal_places.sources.base import FeatureSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CorrelationResult:
    """Output of one correlation run.

    Attributes:
        cities: City features found to be coastal, in city-batch order.
        warnings: Recorded warnings (dropped geometries, fallbacks).
        input_count: Number of coastal features supplied.
        usable_count: Coastal geometries that survived reprojection.
        query_count: Feature source queries issued by the strategy.
    """

    cities: FeatureBatch
    warnings: list[str] = field(default_factory=list)
    input_count: int = 0
    usable_count: int = 0
    query_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.cities


class CorrelationStrategy(abc.ABC):
    """Abstract base class for correlation strategies.

    Args:
        operators: Geometry operators used for projection and predicates.
        chunk_count: Number of chunks the union input is split into.
    """

    #: Registry name, set by concrete strategies.
    name: str = ""

    def __init__(
        self,
        operators: GeometryOperators,
        *,
        chunk_count: int = DEFAULT_UNION_CHUNK_COUNT,
    ) -> None:
        self._operators = operators
        self._chunk_count = chunk_count

    @property
    def operators(self) -> GeometryOperators:
        return self._operators

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    @abc.abstractmethod
    async def correlate(
        self,
        coastal: FeatureBatch,
        cities: FeatureBatch,
        city_source: FeatureSource,
    ) -> CorrelationResult:
        """Return the cities that intersect the *coastal* features.

        Args:
            coastal: Access point or buffer features, any spatial reference.
            cities: Every city feature in the region.
            city_source: Source of *cities*, for strategies that query.

        Raises:
            SourceUnavailable: If a strategy query fails.
        """

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def reproject(
        self,
        coastal: FeatureBatch,
        target: SpatialReference,
        warnings: list[str],
    ) -> list[Geometry]:
        """Project coastal geometries into *target*, dropping failures."""
        projected: list[Geometry] = []
        for feature in coastal:
            geometry = self._operators.project(feature.geometry, target)
            if geometry is None:
                record_warning(
                    warnings,
                    "Dropped geometry | source=%s | id=%s | reason=%s",
                    coastal.source,
                    feature.id,
                    "missing" if feature.geometry is None else "projection failed",
                )
                continue
            projected.append(geometry)
        return projected

    def select_intersecting(
        self,
        cities: FeatureBatch,
        unioned: Geometry,
        warnings: list[str],
    ) -> list[Feature]:
        """City features whose geometry intersects *unioned*."""
        self._operators.prepare(unioned)
        matched: list[Feature] = []
        for city in cities:
            try:
                if self._operators.intersects(city.geometry, unioned):
                    matched.append(city)
            except InvalidGeometryOperand as exc:
                record_warning(warnings, "Skipped city | id=%s | reason=%s", city.id, exc)
        return matched


def empty_result(cities: FeatureBatch, coastal: FeatureBatch, warnings: list[str]) -> CorrelationResult:
    """A legitimate empty correlation (no usable coastal geometry or no cities)."""
    return CorrelationResult(
        cities=FeatureBatch(spatial_reference=cities.spatial_reference, source=cities.source),
        warnings=warnings,
        input_count=len(coastal),
    )


def record_warning(warnings: list[str], template: str, *args: object) -> None:
    """Log a warning and record it on the result."""
    logger.warning(template, *args)
    warnings.append(template % args)


# ---------------------------------------------------------------------------
# Strategy exceptions
# ---------------------------------------------------------------------------


class StrategyError(ValidationError):
    """Unknown or misconfigured correlation strategy."""

    default_stage = "correlation"
    default_code = "CORRELATION_STRATEGY_INVALID"
