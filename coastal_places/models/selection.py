"""Selection messages and enrichment session outcomes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coastal_places.models.places import EnrichedPlace


@dataclass(frozen=True, slots=True)
class CitySelected:
    """Selection event emitted by the presentation layer."""

    name: str


class SessionState(enum.Enum):
    """Lifecycle state of an enrichment session.

    Values:
        IDLE:       No session in progress.
        VALIDATING: Checking the selected city's extent.
        QUERYING:   Places query in flight.
        FETCHING:   Per-place detail fetches in flight.
        READY:      Enriched places published.
        ERROR:      Places query failed; returns to IDLE.
    """

    IDLE = "idle"
    VALIDATING = "validating"
    QUERYING = "querying"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"


@dataclass(slots=True)
class SessionOutcome:
    """Result of one selection session.

    Attributes:
        city_name: Selected name as received.
        generation: Session generation number (0 when ignored).
        transitions: States visited, in order, starting at ``IDLE``.
        places: Enriched places built at ``READY``.
        failed_place_ids: Places dropped because their detail fetch failed.
        warning: Non-fatal warning (e.g. oversize city).
        error: ``to_error_dict()`` of a session-level error.
        applied: Whether the outcome was published to the sink.
        superseded: Whether a newer selection overtook this session.
    """

    city_name: str
    generation: int = 0
    transitions: list[SessionState] = field(default_factory=lambda: [SessionState.IDLE])
    places: list[EnrichedPlace] = field(default_factory=list)
    failed_place_ids: list[str] = field(default_factory=list)
    warning: str = ""
    error: dict[str, object] | None = None
    applied: bool = False
    superseded: bool = False

    @property
    def state(self) -> SessionState:
        """Final state reached."""
        return self.transitions[-1]

    @property
    def ignored(self) -> bool:
        """Whether the selection was a no-op (unknown or empty name)."""
        return self.generation == 0
