"""FeatureSource abstract base class.

Defines the contract every feature source adapter implements.  The
startup pipeline and the correlation strategies interact exclusively
with this interface.

Lifecycle:
    1. ``load()``          — fetch layer metadata; fails fast if the
                             service is unreachable.
    2. ``query(filter)``   — return a ``FeatureBatch`` matching the
                             layer's definition expression and the
                             optional spatial/attribute filter.

Both operations are coroutines.  Any network or service fault is
raised as ``SourceUnavailable``; for the three mandatory sources it is
fatal to startup and must not be retried silently.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from coastal_places.core.exceptions import TransientError

if TYPE_CHECKING:
    from coastal_places.models.feature import FeatureBatch, QueryFilter
    from coastal_places.models.geometry import SpatialReference


class FeatureSource(abc.ABC):
    """Abstract base class for feature source adapters.

    Example usage::

        source = ArcGISFeatureSource("cities", url, client=client)
        await source.load()
        batch = await source.query()
        coastal = await source.query(QueryFilter(geometry=unioned))
    """

    def __init__(self, name: str, *, definition_expression: str = "") -> None:
        self._name = name
        self._definition_expression = definition_expression

    @property
    def name(self) -> str:
        """Logical source name (``access_points``, ``coastal_buffers``, ``cities``)."""
        return self._name

    @property
    def definition_expression(self) -> str:
        """Where clause applied to every query (the region filter)."""
        return self._definition_expression

    @property
    def spatial_reference(self) -> SpatialReference | None:
        """Native spatial reference, known after ``load()`` (``None`` if unknown)."""
        return None

    # ------------------------------------------------------------------
    # Abstract methods: every adapter must implement these
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def load(self) -> None:
        """Load layer metadata.

        Raises:
            SourceUnavailable: If the layer cannot be reached or described.
        """

    @abc.abstractmethod
    async def query(self, query_filter: QueryFilter | None = None) -> FeatureBatch:
        """Query features.

        Args:
            query_filter: Optional spatial and attribute filter.  ``None``
                returns every feature matching the definition expression
                with all attributes and geometry.

        Returns:
            A ``FeatureBatch`` in service order.

        Raises:
            SourceUnavailable: On network or service errors.
            InvalidGeometryOperand: If the spatial filter geometry cannot
                be expressed to the service.
        """


# ---------------------------------------------------------------------------
# Source exceptions
# ---------------------------------------------------------------------------


class SourceUnavailable(TransientError):
    """A feature source failed to load or answer a query.

    Attributes:
        source: Name of the source that failed.
    """

    default_stage = "feature_source"
    default_code = "SOURCE_UNAVAILABLE"

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.source}] {self.message}"
