"""Startup and enrichment pipeline.

- dedupe: Merge correlated city batches, first occurrence wins
- bootstrap: Join-all startup barrier, correlation and publish
- EnrichmentCoordinator: Per-selection places lookup state machine
"""

from coastal_places.pipeline.dedupe import dedupe
from coastal_places.pipeline.enrichment import EnrichmentCoordinator
from coastal_places.pipeline.startup import StartupResult, StartupSources, bootstrap, join_all

__all__ = [
    "EnrichmentCoordinator",
    "StartupResult",
    "StartupSources",
    "bootstrap",
    "dedupe",
    "join_all",
]
