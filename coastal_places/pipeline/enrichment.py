"""Enrichment coordinator: per-selection places lookup state machine.

Each ``CitySelected`` message opens a session that walks::

    Idle -> Validating -> Querying -> Fetching -> Ready
                 \\            \\           \\
                  +------------+-----------+--> Error -> Idle

- **Validating** — the city's extent must be strictly smaller than the
  limit in both dimensions; an oversize city yields a warning and the
  session returns to Idle without querying.
- **Querying** — prior enrichment is cleared, then one within-extent
  places query is issued.  ``PlacesQueryFailed`` ends the session in
  Error with its most specific message.
- **Fetching** — one detail fetch per summary, concurrently.  A failed
  fetch drops only that place.
- **Ready** — the enriched places are published and the view centred on
  the city.

Sessions are numbered by a generation counter.  A selection that may
change the layer takes ownership of it; only the owning generation may
clear or publish, and sink mutations are serialised by a lock, so a
stale session can never overwrite a newer one.  An oversize selection
leaves the layer alone (unless ``clear_on_oversize``) and therefore does
not supersede the session in flight.  ``run()`` additionally cancels a
superseded in-flight session.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from coastal_places.core.constants import (
    DEFAULT_CENTER_ZOOM,
    DEFAULT_ICON_FORMAT,
    OVERSIZE_WARNING,
    PARKS_CATEGORY_ID,
    PLACE_EXTENT_LIMIT,
)
from coastal_places.core.exceptions import PipelineError
from coastal_places.models.geometry import Extent, ModelValidationError
from coastal_places.models.places import EnrichedPlace, PlaceQuery
from coastal_places.models.selection import SessionOutcome, SessionState
from coastal_places.places.base import PlacesQueryFailed
from coastal_places.sink.base import ERROR, WARNING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coastal_places.core.config import AppConfig
    from coastal_places.models.city import City, CorrelatedCitySet
    from coastal_places.models.places import PlaceDetail, PlaceSummary
    from coastal_places.models.selection import CitySelected
    from coastal_places.places.base import PlacesService
    from coastal_places.sink.base import PresentationSink

logger = logging.getLogger(__name__)


class EnrichmentCoordinator:
    """Runs enrichment sessions against a read-only city registry.

    Args:
        cities: Frozen coastal city set built at startup.
        places: Places service adapter.
        sink: Presentation sink receiving clear/publish/center calls.
        extent_limit: Width/height limit for a places query extent.
        category_ids: Places categories to query.
        icon_format: Icon format requested from the places service.
        center_zoom: Zoom level passed to ``center_on``.
        detail_fetch_concurrency: Max concurrent detail fetches
            (``0`` means unbounded).
        clear_on_oversize: Also clear prior enrichment when a selection
            is rejected as too large.
    """

    def __init__(
        self,
        cities: CorrelatedCitySet,
        places: PlacesService,
        sink: PresentationSink,
        *,
        extent_limit: float = PLACE_EXTENT_LIMIT,
        category_ids: Sequence[str] = (PARKS_CATEGORY_ID,),
        icon_format: str = DEFAULT_ICON_FORMAT,
        center_zoom: int = DEFAULT_CENTER_ZOOM,
        detail_fetch_concurrency: int = 0,
        clear_on_oversize: bool = False,
    ) -> None:
        self._cities = cities
        self._places = places
        self._sink = sink
        self._extent_limit = extent_limit
        self._category_ids = tuple(category_ids)
        self._icon_format = icon_format
        self._center_zoom = center_zoom
        self._clear_on_oversize = clear_on_oversize
        self._detail_semaphore = (
            asyncio.Semaphore(detail_fetch_concurrency) if detail_fetch_concurrency > 0 else None
        )
        self._sink_lock = asyncio.Lock()
        self._generation = 0
        self._owner = 0
        self._state = SessionState.IDLE

    @classmethod
    def from_config(
        cls,
        cities: CorrelatedCitySet,
        places: PlacesService,
        sink: PresentationSink,
        config: AppConfig,
    ) -> EnrichmentCoordinator:
        return cls(
            cities,
            places,
            sink,
            extent_limit=config.place_extent_limit,
            category_ids=config.places_category_ids,
            icon_format=config.places_icon_format,
            center_zoom=config.center_zoom,
            detail_fetch_concurrency=config.detail_fetch_concurrency,
            clear_on_oversize=config.clear_on_oversize,
        )

    @property
    def state(self) -> SessionState:
        """State of the session that owns the enrichment layer."""
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def select(self, name: str) -> SessionOutcome:
        """Run one enrichment session for the city called *name*.

        Unknown or empty names are a no-op: the returned outcome is
        ``ignored`` and no generation is consumed.
        """
        city, outcome = self._open(name)
        if city is None:
            return outcome
        await self._run_session(city, outcome)
        return outcome

    async def run(self, queue: asyncio.Queue[CitySelected | None]) -> list[SessionOutcome]:
        """Consume selections from *queue* until a ``None`` sentinel.

        A selection that takes over the layer cancels the in-flight
        session; an oversize one does not.  Returns
        every outcome in arrival order once the last session settles.

        Raises:
            Exception: The first unexpected error raised by a session.
        """
        outcomes: list[SessionOutcome] = []
        sessions: list[tuple[SessionOutcome, asyncio.Task[None]]] = []
        current: asyncio.Task[None] | None = None

        while True:
            message = await queue.get()
            if message is None:
                break
            city, outcome = self._open(message.name)
            outcomes.append(outcome)
            if city is None:
                continue
            task = asyncio.create_task(self._run_session(city, outcome))
            if self._owns_layer(outcome):
                if current is not None and not current.done():
                    logger.info("Session superseded | by=%s | generation=%d", city.name, outcome.generation)
                    current.cancel()
                current = task
            sessions.append((outcome, task))

        results = await asyncio.gather(*(task for _, task in sessions), return_exceptions=True)
        for (outcome, _), result in zip(sessions, results, strict=True):
            if isinstance(result, asyncio.CancelledError):
                # cancelled before its first step
                if not outcome.superseded:
                    self._abandon(outcome)
            elif isinstance(result, Exception):
                raise result
        return outcomes

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _open(self, name: str) -> tuple[City | None, SessionOutcome]:
        city = self._cities.get(name) if name else None
        if city is None:
            logger.debug("Selection ignored | name=%r", name)
            return None, SessionOutcome(city_name=name)
        self._generation += 1
        if self._supersedes(city):
            self._owner = self._generation
        return city, SessionOutcome(city_name=name, generation=self._generation)

    def _supersedes(self, city: City) -> bool:
        """Whether selecting *city* takes over the enrichment layer."""
        geometry = city.geometry
        if self._clear_on_oversize or geometry is None or geometry.is_empty:
            return True
        return Extent.from_geometry(geometry).fits_within(self._extent_limit)

    def _owns_layer(self, outcome: SessionOutcome) -> bool:
        return outcome.generation == self._owner

    def _is_latest(self, outcome: SessionOutcome) -> bool:
        return outcome.generation == self._generation

    def _enter(self, outcome: SessionOutcome, state: SessionState) -> None:
        outcome.transitions.append(state)
        if self._owns_layer(outcome):
            self._state = state
        logger.debug(
            "Session transition | city=%s | generation=%d | state=%s",
            outcome.city_name,
            outcome.generation,
            state.value,
        )

    def _abandon(self, outcome: SessionOutcome) -> None:
        outcome.superseded = True
        if outcome.state is not SessionState.IDLE:
            self._enter(outcome, SessionState.IDLE)

    async def _run_session(self, city: City, outcome: SessionOutcome) -> None:
        try:
            await self._session(city, outcome)
        except asyncio.CancelledError:
            self._abandon(outcome)
            raise

    async def _session(self, city: City, outcome: SessionOutcome) -> None:
        self._enter(outcome, SessionState.VALIDATING)

        try:
            if city.geometry is None:
                raise ModelValidationError("City", "geometry", None, "city has no geometry")
            extent = Extent.from_geometry(city.geometry)
            query = PlaceQuery(
                category_ids=self._category_ids,
                extent=extent,
                icon_format=self._icon_format,
            )
        except ModelValidationError as exc:
            await self._fail(outcome, exc, str(exc))
            return

        if not extent.fits_within(self._extent_limit):
            await self._reject_oversize(outcome, extent)
            return

        async with self._sink_lock:
            if not self._owns_layer(outcome):
                self._abandon(outcome)
                return
            await self._sink.clear_enrichment()

        self._enter(outcome, SessionState.QUERYING)
        try:
            summaries = await self._places.query_places_within_extent(query)
        except PlacesQueryFailed as exc:
            await self._fail(outcome, exc, exc.display_message)
            return

        self._enter(outcome, SessionState.FETCHING)
        places = await self._fetch_details(summaries, outcome)

        async with self._sink_lock:
            if not self._owns_layer(outcome):
                self._abandon(outcome)
                return
            self._enter(outcome, SessionState.READY)
            outcome.places = places
            await self._sink.publish_enrichment(places)
            await self._sink.center_on(city.geometry, self._center_zoom)
            outcome.applied = True

        logger.info(
            "Session ready | city=%s | generation=%d | places=%d | failed=%d",
            city.name,
            outcome.generation,
            len(places),
            len(outcome.failed_place_ids),
        )

    async def _reject_oversize(self, outcome: SessionOutcome, extent: Extent) -> None:
        outcome.warning = OVERSIZE_WARNING
        logger.warning(
            "City too large for place query | city=%s | width=%.0f | height=%.0f | limit=%.0f",
            outcome.city_name,
            extent.width,
            extent.height,
            self._extent_limit,
        )
        if self._clear_on_oversize and self._owns_layer(outcome):
            async with self._sink_lock:
                await self._sink.clear_enrichment()
        if self._is_latest(outcome):
            await self._sink.notify(WARNING, OVERSIZE_WARNING)
        self._enter(outcome, SessionState.IDLE)

    async def _fail(self, outcome: SessionOutcome, exc: PipelineError, message: str) -> None:
        self._enter(outcome, SessionState.ERROR)
        exc.correlation_id = f"{outcome.city_name}#{outcome.generation}"
        outcome.error = exc.to_error_dict()
        logger.error(
            "Session failed | city=%s | generation=%d | code=%s | error=%s",
            outcome.city_name,
            outcome.generation,
            exc.code,
            message,
        )
        if self._owns_layer(outcome):
            await self._sink.notify(ERROR, message)
        self._enter(outcome, SessionState.IDLE)

    # ------------------------------------------------------------------
    # Detail fan-out
    # ------------------------------------------------------------------

    async def _fetch_details(
        self,
        summaries: Sequence[PlaceSummary],
        outcome: SessionOutcome,
    ) -> list[EnrichedPlace]:
        results = await asyncio.gather(
            *(self._fetch_one(summary.place_id) for summary in summaries),
            return_exceptions=True,
        )

        places: list[EnrichedPlace] = []
        for summary, result in zip(summaries, results, strict=True):
            if isinstance(result, PipelineError):
                outcome.failed_place_ids.append(summary.place_id)
                logger.warning(
                    "Place dropped | city=%s | place_id=%s | error=%s",
                    outcome.city_name,
                    summary.place_id,
                    result,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            places.append(EnrichedPlace.merge(summary, result))
        return places

    async def _fetch_one(self, place_id: str) -> PlaceDetail:
        if self._detail_semaphore is None:
            return await self._places.fetch_place(place_id)
        async with self._detail_semaphore:
            return await self._places.fetch_place(place_id)
