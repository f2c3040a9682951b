"""Strategy factory — selects the correlation strategy by name.

The factory maintains a registry of known strategies.  New strategies
are registered with ``register_strategy``.

Usage::

    from coastal_places.correlation.factory import get_strategy

    strategy = get_strategy("union_intersects", operators)
    result = await strategy.correlate(buffers, cities, city_source)

The strategy name is read from the ``CORRELATION_STRATEGY`` environment
variable via ``AppConfig.correlation_strategy``.  When the geometry
operators report that union is unavailable, the per-feature fallback is
returned regardless of the requested name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coastal_places.core.constants import DEFAULT_UNION_CHUNK_COUNT
from coastal_places.correlation.base import CorrelationStrategy, StrategyError

if TYPE_CHECKING:
    from collections.abc import Callable

    from coastal_places.geometry.operators import GeometryOperators

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Strategy name constants
# ---------------------------------------------------------------------------

UNION_INTERSECTS = "union_intersects"
UNION_QUERY = "union_query"
PER_FEATURE = "per_feature"

# ---------------------------------------------------------------------------
# Lazy-import strategy registry
# ---------------------------------------------------------------------------

_STRATEGY_REGISTRY: dict[str, Callable[[], type[CorrelationStrategy]]] = {}


def _register_builtin_strategies() -> None:
    """Register the built-in strategies (called once, lazily)."""

    def _union_intersects() -> type[CorrelationStrategy]:
        from coastal_places.correlation.union import UnionIntersectsStrategy

        return UnionIntersectsStrategy

    def _union_query() -> type[CorrelationStrategy]:
        from coastal_places.correlation.union import UnionQueryStrategy

        return UnionQueryStrategy

    def _per_feature() -> type[CorrelationStrategy]:
        from coastal_places.correlation.per_feature import PerFeatureStrategy

        return PerFeatureStrategy

    _STRATEGY_REGISTRY[UNION_INTERSECTS] = _union_intersects
    _STRATEGY_REGISTRY[UNION_QUERY] = _union_query
    _STRATEGY_REGISTRY[PER_FEATURE] = _per_feature


def _ensure_registry() -> None:
    """Initialise the strategy registry once (idempotent)."""
    if not _STRATEGY_REGISTRY:
        _register_builtin_strategies()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_strategy(
    name: str,
    loader: Callable[[], type[CorrelationStrategy]],
) -> None:
    """Register a custom correlation strategy.

    Args:
        name: Strategy name.
        loader: A zero-argument callable that returns the strategy class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Strategy name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _STRATEGY_REGISTRY[name] = loader
    logger.debug("Registered correlation strategy: %s", name)


def get_strategy(
    name: str,
    operators: GeometryOperators,
    *,
    chunk_count: int = DEFAULT_UNION_CHUNK_COUNT,
) -> CorrelationStrategy:
    """Create and return a correlation strategy instance.

    Args:
        name: Strategy identifier (e.g. ``"union_intersects"``).
        operators: Geometry operators handed to the strategy.
        chunk_count: Union chunk count handed to the strategy.

    Returns:
        A configured ``CorrelationStrategy``.

    Raises:
        StrategyError: If the named strategy is not registered.
    """
    _ensure_registry()

    loader = _STRATEGY_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_STRATEGY_REGISTRY))
        msg = f"Unknown correlation strategy: {name!r}. Available: {available}"
        raise StrategyError(msg)

    if not operators.supports_union and name != PER_FEATURE:
        logger.warning(
            "Union operator unavailable, falling back | requested=%s | using=%s",
            name,
            PER_FEATURE,
        )
        loader = _STRATEGY_REGISTRY[PER_FEATURE]

    strategy_cls = loader()
    logger.info("Creating correlation strategy: %s", strategy_cls.name or name)
    return strategy_cls(operators, chunk_count=chunk_count)


def list_strategies() -> list[str]:
    """Return the names of all registered strategies."""
    _ensure_registry()
    return sorted(_STRATEGY_REGISTRY)
