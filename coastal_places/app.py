"""Command-line entry point — Coastal Places.

Wiring layer only: configuration, HTTP client, sources, strategy, sink
and coordinator are built here; all behaviour lives in the package.

Usage::

    coastal-places --select Malibu --select Ventura
    printf 'Malibu\\nVentura\\n' | coastal-places

With ``--select`` the sessions run one after another.  Names read from
stdin are queued as they arrive and a newer name supersedes a session
that is still in flight.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import TYPE_CHECKING

import httpx

from coastal_places import __version__
from coastal_places.core.config import AppConfig, ConfigValidationError
from coastal_places.core.constants import ACCESS_POINTS, CITIES, COASTAL_BUFFERS
from coastal_places.core.exceptions import GeometryOperatorUnavailable
from coastal_places.correlation.factory import get_strategy
from coastal_places.geometry.operators import GeometryOperators
from coastal_places.models.selection import CitySelected
from coastal_places.pipeline.enrichment import EnrichmentCoordinator
from coastal_places.pipeline.startup import StartupSources, bootstrap
from coastal_places.places.arcgis import ArcGISPlacesService
from coastal_places.sink.jsonl import JsonLinesSink
from coastal_places.sources.arcgis import ArcGISFeatureSource
from coastal_places.sources.base import SourceUnavailable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coastal_places.sink.base import PresentationSink

logger = logging.getLogger("coastal_places.app")

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_STARTUP = 2
EXIT_INTERRUPTED = 130

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a root stderr handler at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coastal-places",
        description="Correlate coastal cities and look up parks for selected cities.",
    )
    parser.add_argument(
        "--select",
        action="append",
        default=[],
        metavar="NAME",
        help="City to enrich (repeatable). Without it, names are read from stdin.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_sources(config: AppConfig, client: httpx.AsyncClient) -> StartupSources:
    """Create the three ArcGIS feature sources for the configured region."""
    return StartupSources(
        access_points=ArcGISFeatureSource(
            ACCESS_POINTS,
            config.access_points_url,
            client=client,
            definition_expression=config.access_points_where,
            api_key=config.api_key,
        ),
        coastal_buffers=ArcGISFeatureSource(
            COASTAL_BUFFERS,
            config.coastal_buffers_url,
            client=client,
            definition_expression=config.coastal_buffers_where,
            api_key=config.api_key,
        ),
        cities=ArcGISFeatureSource(
            CITIES,
            config.cities_url,
            client=client,
            definition_expression=config.cities_where,
            api_key=config.api_key,
        ),
    )


async def run_app(
    config: AppConfig,
    names: Sequence[str] = (),
    *,
    sink: PresentationSink | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Start up, then run one session per selected name.

    Returns:
        Process exit code.
    """
    sink = sink or JsonLinesSink()
    operators = GeometryOperators()

    async with httpx.AsyncClient(timeout=config.http_timeout_s, transport=transport) as client:
        try:
            strategy = get_strategy(
                config.correlation_strategy,
                operators,
                chunk_count=config.union_chunk_count,
            )
            startup = await bootstrap(build_sources(config, client), operators, strategy, sink)
        except (SourceUnavailable, GeometryOperatorUnavailable) as exc:
            logger.error("Startup failed | code=%s | error=%s", exc.code, exc)
            return EXIT_STARTUP

        places = ArcGISPlacesService(
            client=client,
            base_url=config.places_api_url,
            api_key=config.api_key,
            operators=operators,
        )
        coordinator = EnrichmentCoordinator.from_config(startup.cities, places, sink, config)

        if names:
            for name in names:
                await coordinator.select(name)
        else:
            queue: asyncio.Queue[CitySelected | None] = asyncio.Queue()
            reader = asyncio.create_task(_read_selections(queue))
            await coordinator.run(queue)
            await reader

    return EXIT_OK


async def _read_selections(queue: asyncio.Queue[CitySelected | None]) -> None:
    """Queue one ``CitySelected`` per stdin line, then the ``None`` sentinel."""
    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            await queue.put(CitySelected(name=line.rstrip("\r\n")))
    finally:
        await queue.put(None)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = AppConfig.from_env()
    except (ConfigValidationError, ValueError) as exc:
        logger.error("Invalid configuration | error=%s", exc)
        return EXIT_CONFIG

    try:
        return asyncio.run(run_app(config, args.select))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
