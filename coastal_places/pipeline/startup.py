"""Startup pipeline: load sources, correlate, deduplicate, publish.

Stages
------
1. **Barrier** — load the three feature sources and initialise the
   geometry operators concurrently.  Any failure aborts startup and
   cancels the remaining loads.
2. **Query** — fetch access points, coastal buffers and cities
   concurrently (same abort rule).
3. **Correlate** — run the configured strategy for the buffers, then
   for the access points.
4. **Deduplicate** — merge buffer cities before access-point cities,
   freeze the result.
5. **Publish** — hand the city set to the sink; an empty set is
   reported as "No coastal cities found." rather than an error.

``SourceUnavailable`` propagates to the caller; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from coastal_places.core.constants import NO_COASTAL_CITIES
from coastal_places.pipeline.dedupe import dedupe
from coastal_places.sink.base import WARNING

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from coastal_places.correlation.base import CorrelationResult, CorrelationStrategy
    from coastal_places.geometry.operators import GeometryOperators
    from coastal_places.models.city import CorrelatedCitySet
    from coastal_places.sink.base import PresentationSink
    from coastal_places.sources.base import FeatureSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartupSources:
    """The three logical feature sources."""

    access_points: FeatureSource
    coastal_buffers: FeatureSource
    cities: FeatureSource


@dataclass(frozen=True, slots=True)
class StartupResult:
    """Output of ``bootstrap``.

    Attributes:
        cities: Frozen, deduplicated coastal city set.
        buffer_result: Correlation result for the coastal buffers.
        access_point_result: Correlation result for the access points.
        elapsed_s: Wall-clock startup duration in seconds.
    """

    cities: CorrelatedCitySet
    buffer_result: CorrelationResult
    access_point_result: CorrelationResult
    elapsed_s: float = 0.0

    @property
    def warnings(self) -> list[str]:
        return [*self.buffer_result.warnings, *self.access_point_result.warnings]


async def join_all(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await every awaitable concurrently; on the first failure cancel the rest.

    Raises:
        The first exception raised by any awaitable.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def bootstrap(
    sources: StartupSources,
    operators: GeometryOperators,
    strategy: CorrelationStrategy,
    sink: PresentationSink,
) -> StartupResult:
    """Build and publish the correlated coastal city set.

    Raises:
        SourceUnavailable: If any source fails to load or answer a query.
        GeometryOperatorUnavailable: If the geometry operators cannot load.
    """
    started = time.monotonic()
    logger.info("Startup started | strategy=%s", strategy.name)

    await join_all(
        sources.access_points.load(),
        sources.coastal_buffers.load(),
        sources.cities.load(),
        operators.load(),
    )
    logger.info("Startup barrier passed | sources=3 | operators=loaded")

    access_batch, buffer_batch, city_batch = await join_all(
        sources.access_points.query(),
        sources.coastal_buffers.query(),
        sources.cities.query(),
    )
    logger.info(
        "Sources queried | access_points=%d | coastal_buffers=%d | cities=%d",
        len(access_batch),
        len(buffer_batch),
        len(city_batch),
    )

    buffer_result = await strategy.correlate(buffer_batch, city_batch, sources.cities)
    access_point_result = await strategy.correlate(access_batch, city_batch, sources.cities)

    cities = dedupe(buffer_result.cities, access_point_result.cities).freeze()

    await sink.publish_cities(cities)
    if not cities:
        logger.warning("No coastal cities found | strategy=%s", strategy.name)
        await sink.notify(WARNING, NO_COASTAL_CITIES)

    elapsed = time.monotonic() - started
    logger.info(
        "Startup completed | coastal_cities=%d | from_buffers=%d | from_access_points=%d "
        "| warnings=%d | elapsed=%.2fs",
        len(cities),
        len(buffer_result.cities),
        len(access_point_result.cities),
        len(buffer_result.warnings) + len(access_point_result.warnings),
        elapsed,
    )
    return StartupResult(
        cities=cities,
        buffer_result=buffer_result,
        access_point_result=access_point_result,
        elapsed_s=elapsed,
    )
