"""Tests for the startup pipeline (barrier, correlation, publish)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from coastal_places.core.exceptions import GeometryOperatorUnavailable
from coastal_places.correlation.union import UnionIntersectsStrategy
from coastal_places.geometry.operators import GeometryOperators
from coastal_places.models.feature import Feature
from coastal_places.pipeline.startup import StartupSources, bootstrap, join_all
from coastal_places.sources.base import SourceUnavailable
from tests.unit.fakes import FakeFeatureSource, RecordingSink, batch, city_feature, square


def _sources(**overrides: FakeFeatureSource) -> StartupSources:
    cities = batch(
        city_feature(1, "Malibu", square(0, 0, 100)),
        city_feature(2, "Oxnard", square(200, 0, 100)),
        city_feature(3, "Ojai", square(0, 500, 100)),
        source="cities",
    )
    defaults = {
        "access_points": FakeFeatureSource(
            "access_points",
            batch(Feature(id=1, geometry=square(210, 10, 1)), Feature(id=2, geometry=square(10, 10, 1))),
        ),
        "coastal_buffers": FakeFeatureSource(
            "coastal_buffers", batch(Feature(id=1, geometry=square(-50, -50, 70)))
        ),
        "cities": FakeFeatureSource("cities", cities),
    }
    defaults.update(overrides)
    return StartupSources(**defaults)


class TestBootstrap:
    @pytest.mark.asyncio
    async def test_publishes_deduplicated_cities(self, operators: GeometryOperators) -> None:
        sink = RecordingSink()
        result = await bootstrap(_sources(), operators, UnionIntersectsStrategy(operators), sink)

        # Buffer-correlated Malibu first, then access-point-correlated Oxnard
        assert result.cities.names() == ["Malibu", "Oxnard"]
        assert result.cities.frozen
        assert sink.events == [("publish_cities", ["Malibu", "Oxnard"])]
        assert len(result.buffer_result.cities) == 1
        assert len(result.access_point_result.cities) == 2

    @pytest.mark.asyncio
    async def test_loads_everything_before_querying(self, operators: GeometryOperators) -> None:
        sources = _sources()
        await bootstrap(sources, operators, UnionIntersectsStrategy(operators), RecordingSink())
        assert operators.loaded
        for source in (sources.access_points, sources.coastal_buffers, sources.cities):
            assert isinstance(source, FakeFeatureSource)
            assert source.loaded
            assert source.queries == [None]

    @pytest.mark.asyncio
    async def test_empty_result_notifies(self, operators: GeometryOperators) -> None:
        sources = _sources(
            access_points=FakeFeatureSource("access_points", batch()),
            coastal_buffers=FakeFeatureSource("coastal_buffers", batch(Feature(id=1))),
        )
        sink = RecordingSink()
        result = await bootstrap(sources, operators, UnionIntersectsStrategy(operators), sink)
        assert len(result.cities) == 0
        assert sink.events == [
            ("publish_cities", []),
            ("notify", ("warning", "No coastal cities found.")),
        ]
        assert result.warnings

    @pytest.mark.asyncio
    async def test_load_failure_aborts(self, operators: GeometryOperators) -> None:
        slow = FakeFeatureSource("coastal_buffers", batch(), load_delay=10)
        sources = _sources(
            cities=FakeFeatureSource("cities", batch(), load_error=SourceUnavailable("cities", "HTTP 503")),
            coastal_buffers=slow,
        )
        sink = RecordingSink()
        with pytest.raises(SourceUnavailable, match="cities"):
            await bootstrap(sources, operators, UnionIntersectsStrategy(operators), sink)
        assert slow.load_cancelled
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_query_failure_aborts(self, operators: GeometryOperators) -> None:
        sources = _sources(
            access_points=FakeFeatureSource(
                "access_points", batch(), query_error=SourceUnavailable("access_points", "timeout")
            ),
        )
        sink = RecordingSink()
        with pytest.raises(SourceUnavailable):
            await bootstrap(sources, operators, UnionIntersectsStrategy(operators), sink)
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_operator_failure_aborts(self) -> None:
        operators = GeometryOperators()
        operators.load = AsyncMock(side_effect=GeometryOperatorUnavailable("no PROJ"))  # type: ignore[method-assign]
        with pytest.raises(GeometryOperatorUnavailable):
            await bootstrap(_sources(), operators, UnionIntersectsStrategy(operators), RecordingSink())


class TestJoinAll:
    @pytest.mark.asyncio
    async def test_returns_results_in_order(self) -> None:
        async def value(v: int, delay: float) -> int:
            await asyncio.sleep(delay)
            return v

        assert await join_all(value(1, 0.02), value(2, 0), value(3, 0.01)) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_cancels_remaining_on_failure(self) -> None:
        cancelled = asyncio.Event()

        async def slow() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def boom() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await join_all(slow(), boom())
        assert cancelled.is_set()
