"""Union-based correlation strategies.

Both strategies reduce the coastal geometries to one shape with a
chunked union, so the number of spatial queries is O(1) regardless of
how many access points or buffers the region holds.

Chunked union:
    With ``n`` input geometries the input is split into chunks of
    ``ceil(n / chunk_count)``.  The accumulator starts at the first
    usable geometry and each chunk is folded in with a single
    ``union(acc, *chunk)`` call, which bounds the argument list of any
    one operator invocation.  Empty or degenerate members are filtered
    out of a chunk before it is unioned.  If a chunk as a whole is
    rejected, its members are folded in one at a time and the offending
    ones are skipped.

Strategies:
    - ``union_intersects``: test every city locally with ``intersects``.
    - ``union_query``: issue one spatial query against the city source
      with the unioned geometry as filter.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

from coastal_places.core.constants import DEFAULT_UNION_CHUNK_COUNT
from coastal_places.core.exceptions import InvalidGeometryOperand
from coastal_places.correlation.base import (
    CorrelationResult,
    CorrelationStrategy,
    empty_result,
    record_warning,
)
from coastal_places.models.feature import FeatureBatch, QueryFilter

if TYPE_CHECKING:
    from coastal_places.geometry.operators import GeometryOperators
    from coastal_places.models.geometry import Geometry
    from coastal_places.sources.base import FeatureSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Chunked union
# ---------------------------------------------------------------------------


def chunk_size(n: int, chunk_count: int = DEFAULT_UNION_CHUNK_COUNT) -> int:
    """``ceil(n / chunk_count)``, never less than 1."""
    if chunk_count < 1:
        msg = f"chunk_count must be >= 1, got {chunk_count}"
        raise ValueError(msg)
    return max(1, math.ceil(n / chunk_count))


def chunked_union(
    geometries: Sequence[Geometry | None],
    operators: GeometryOperators,
    *,
    chunk_count: int = DEFAULT_UNION_CHUNK_COUNT,
    warnings: list[str] | None = None,
) -> Geometry | None:
    """Reduce *geometries* to one geometry by iterative chunked union.

    Args:
        geometries: Input geometries, all in one spatial reference.
            ``None``, empty and unrepairable members are skipped.
        operators: Geometry operators providing ``union``.
        chunk_count: Number of chunks the input is split into.
        warnings: Optional list receiving a message per skipped member.

    Returns:
        The unioned geometry, or ``None`` when no member is usable.
    """
    if warnings is None:
        warnings = []
    size = chunk_size(len(geometries), chunk_count)

    acc: Geometry | None = None
    for start in range(0, len(geometries), size):
        chunk = _usable(geometries[start : start + size], operators, start, warnings)
        if acc is None:
            if not chunk:
                continue
            acc, chunk = chunk[0], chunk[1:]
        if chunk:
            acc = _fold_chunk(acc, chunk, operators, warnings)
    return acc


def _usable(
    chunk: Sequence[Geometry | None],
    operators: GeometryOperators,
    offset: int,
    warnings: list[str],
) -> list[Geometry]:
    usable: list[Geometry] = []
    for index, geometry in enumerate(chunk, start=offset):
        repaired = operators.repair(geometry)
        if repaired is None:
            record_warning(warnings, "Skipped union operand | index=%d | reason=empty", index)
            continue
        usable.append(repaired)
    return usable


def _fold_chunk(
    acc: Geometry,
    chunk: list[Geometry],
    operators: GeometryOperators,
    warnings: list[str],
) -> Geometry:
    try:
        return operators.union(acc, *chunk)
    except InvalidGeometryOperand as exc:
        logger.warning(
            "Chunk union rejected, folding members individually | size=%d | error=%s",
            len(chunk),
            exc,
        )

    for geometry in chunk:
        try:
            acc = operators.union(acc, geometry)
        except InvalidGeometryOperand as exc:
            record_warning(warnings, "Skipped union operand | type=%s | reason=%s", geometry.geom_type, exc)
    return acc


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class UnionIntersectsStrategy(CorrelationStrategy):
    """Union the coastal geometries, then test each city locally."""

    name = "union_intersects"

    async def correlate(
        self,
        coastal: FeatureBatch,
        cities: FeatureBatch,
        city_source: FeatureSource,  # noqa: ARG002
    ) -> CorrelationResult:
        warnings: list[str] = []
        target = cities.effective_spatial_reference
        if target is None:
            return empty_result(cities, coastal, warnings)

        projected = self.reproject(coastal, target, warnings)
        unioned = chunked_union(
            projected, self.operators, chunk_count=self.chunk_count, warnings=warnings
        )
        if unioned is None:
            record_warning(warnings, "No usable coastal geometry | source=%s", coastal.source)
            return empty_result(cities, coastal, warnings)

        matched = self.select_intersecting(cities, unioned, warnings)
        logger.info(
            "Correlated | strategy=%s | source=%s | inputs=%d | usable=%d | cities=%d/%d",
            self.name,
            coastal.source,
            len(coastal),
            len(projected),
            len(matched),
            len(cities),
        )
        return CorrelationResult(
            cities=FeatureBatch(tuple(matched), target, source=cities.source),
            warnings=warnings,
            input_count=len(coastal),
            usable_count=len(projected),
        )


class UnionQueryStrategy(CorrelationStrategy):
    """Union the coastal geometries, then issue one spatial query.

    Falls back to local ``intersects`` when the unioned geometry cannot
    be expressed as a single service filter (e.g. a mixed geometry
    collection).
    """

    name = "union_query"

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
        unioned = chunked_union(
            projected, self.operators, chunk_count=self.chunk_count, warnings=warnings
        )
        if unioned is None:
            record_warning(warnings, "No usable coastal geometry | source=%s", coastal.source)
            return empty_result(cities, coastal, warnings)

        try:
            matched_batch = await city_source.query(QueryFilter(geometry=unioned))
        except InvalidGeometryOperand as exc:
            record_warning(
                warnings,
                "Spatial filter unsupported, testing locally | source=%s | reason=%s",
                coastal.source,
                exc,
            )
            matched = self.select_intersecting(cities, unioned, warnings)
            return CorrelationResult(
                cities=FeatureBatch(tuple(matched), target, source=cities.source),
                warnings=warnings,
                input_count=len(coastal),
                usable_count=len(projected),
            )

        logger.info(
            "Correlated | strategy=%s | source=%s | inputs=%d | usable=%d | cities=%d",
            self.name,
            coastal.source,
            len(coastal),
            len(projected),
            len(matched_batch),
        )
        return CorrelationResult(
            cities=matched_batch,
            warnings=warnings,
            input_count=len(coastal),
            usable_count=len(projected),
            query_count=1,
        )
