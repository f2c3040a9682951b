"""Spatial correlation strategies.

Implements the interchangeable strategy pattern:
- UnionIntersectsStrategy: chunked union + local intersects (default)
- UnionQueryStrategy: chunked union + one spatial query
- PerFeatureStrategy: one spatial query per coastal geometry (fallback)

The active strategy is selected via configuration.
"""

from coastal_places.correlation.base import CorrelationResult, CorrelationStrategy, StrategyError
from coastal_places.correlation.factory import (
    PER_FEATURE,
    UNION_INTERSECTS,
    UNION_QUERY,
    get_strategy,
    list_strategies,
    register_strategy,
)
from coastal_places.correlation.union import chunk_size, chunked_union

__all__ = [
    "PER_FEATURE",
    "UNION_INTERSECTS",
    "UNION_QUERY",
    "CorrelationResult",
    "CorrelationStrategy",
    "StrategyError",
    "chunk_size",
    "chunked_union",
    "get_strategy",
    "list_strategies",
    "register_strategy",
]
