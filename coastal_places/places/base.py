"""PlacesService abstract base class and enrichment errors.

The enrichment coordinator talks to the places service only through
this interface:

    1. ``query_places_within_extent(query)`` — summaries inside an extent.
    2. ``fetch_place(place_id)``             — detail fields for one place.

``PlacesQueryFailed`` is a tagged union over the error payload shapes
the service produces: a list of detail messages, a single message, or
nothing usable.  ``from_payload`` resolves a raw payload explicitly so
callers never inspect its structure themselves.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from typing import TYPE_CHECKING

from coastal_places.core.constants import UNKNOWN_ERROR
from coastal_places.core.exceptions import TransientError

if TYPE_CHECKING:
    from coastal_places.models.places import PlaceDetail, PlaceQuery, PlaceSummary


class PlacesService(abc.ABC):
    """Abstract base class for places service adapters."""

    @abc.abstractmethod
    async def query_places_within_extent(self, query: PlaceQuery) -> list[PlaceSummary]:
        """Return the places inside ``query.extent`` matching its categories.

        Raises:
            PlacesQueryFailed: On any service or transport failure.
        """

    @abc.abstractmethod
    async def fetch_place(self, place_id: str) -> PlaceDetail:
        """Return the detail fields of one place.

        Raises:
            PlaceDetailFailed: On any service, transport or payload failure.
        """


# ---------------------------------------------------------------------------
# Places exceptions
# ---------------------------------------------------------------------------

MESSAGES = "messages"
MESSAGE = "message"
UNKNOWN = "unknown"


class PlacesQueryFailed(TransientError):
    """The within-extent places query failed.

    Exactly one shape applies, reported by ``kind``:

    - ``"messages"``: ``messages`` holds one or more detail messages.
    - ``"message"``: ``detail`` holds a single message.
    - ``"unknown"``: nothing usable was available.

    ``display_message`` is the most specific text: the first detail
    message, the single message, or ``"Unknown error"``.
    """

    default_stage = "enrichment"
    default_code = "PLACES_QUERY_FAILED"

    def __init__(
        self,
        *,
        messages: Sequence[str] | None = None,
        message: str | None = None,
    ) -> None:
        cleaned = tuple(m for m in (messages or ()) if m)
        if cleaned:
            self.kind = MESSAGES
            self.messages: tuple[str, ...] = cleaned
            self.detail = ""
        elif message:
            self.kind = MESSAGE
            self.messages = ()
            self.detail = message
        else:
            self.kind = UNKNOWN
            self.messages = ()
            self.detail = ""
        super().__init__(self.display_message)

    @property
    def display_message(self) -> str:
        if self.kind == MESSAGES:
            return self.messages[0]
        if self.kind == MESSAGE:
            return self.detail
        return UNKNOWN_ERROR

    @classmethod
    def from_payload(cls, payload: object) -> PlacesQueryFailed:
        """Resolve a raw error payload into the tagged error.

        Accepted shapes:
            - ``{"error": {...}}`` (unwrapped, then resolved)
            - ``{"details": ["...", ...], "message": "..."}`` — details win
            - ``{"message": "..."}``
            - ``["...", ...]``
            - ``"..."``

        Anything else resolves to the ``unknown`` kind.
        """
        if isinstance(payload, dict):
            inner = payload.get("error")
            if isinstance(inner, dict):
                return cls.from_payload(inner)
            details = payload.get("details")
            if isinstance(details, list):
                messages = [d for d in details if isinstance(d, str) and d]
                if messages:
                    return cls(messages=messages)
            message = payload.get("message")
            if isinstance(message, list):
                return cls.from_payload(message)
            if isinstance(message, str) and message:
                return cls(message=message)
            return cls()

        if isinstance(payload, list | tuple):
            return cls(messages=[m for m in payload if isinstance(m, str) and m])

        if isinstance(payload, str) and payload:
            return cls(message=payload)

        return cls()


class PlaceDetailFailed(TransientError):
    """A single place detail fetch failed; the place is dropped.

    Attributes:
        place_id: Identifier of the place whose fetch failed.
    """

    default_stage = "enrichment"
    default_code = "PLACE_DETAIL_FAILED"

    def __init__(self, place_id: str, message: str) -> None:
        self.place_id = place_id
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.place_id}] {self.message}"
