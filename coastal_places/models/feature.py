"""Feature and FeatureBatch models.

A Feature is the atomic unit returned by a feature source query: an
optional geometry plus an attribute mapping.  A FeatureBatch is the
ordered sequence returned by one query, together with the spatial
reference the service reported for it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from coastal_places.models.geometry import Geometry, SpatialReference

#: Spatial relationship accepted by ``QueryFilter``.
INTERSECTS = "intersects"


@dataclass(frozen=True, slots=True)
class Feature:
    """A single feature from a feature source.

    Attributes:
        id: Object id (or positional index when the service has none).
        geometry: Spatially referenced geometry; ``None`` when absent.
        attributes: Read-only attribute mapping.
    """

    id: int | str
    geometry: Geometry | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def with_geometry(self, geometry: Geometry | None) -> Feature:
        """Return a copy of this feature carrying *geometry*."""
        return Feature(id=self.id, geometry=geometry, attributes=self.attributes)


@dataclass(frozen=True, slots=True)
class FeatureBatch:
    """Ordered, immutable sequence of features from one query.

    Attributes:
        features: The features in service order.
        spatial_reference: Spatial reference reported by the service,
            or ``None`` if unknown.
        source: Name of the source that produced the batch.
    """

    features: tuple[Feature, ...] = ()
    spatial_reference: SpatialReference | None = None
    source: str = ""

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)

    def __bool__(self) -> bool:
        return bool(self.features)

    @property
    def effective_spatial_reference(self) -> SpatialReference | None:
        """Batch spatial reference, falling back to the first feature geometry's."""
        if self.spatial_reference is not None:
            return self.spatial_reference
        for feature in self.features:
            if feature.geometry is not None:
                return feature.geometry.spatial_reference
        return None


@dataclass(frozen=True, slots=True)
class QueryFilter:
    """Optional spatial/attribute filter for a feature source query.

    Attributes:
        geometry: Spatial filter geometry, or ``None`` for no spatial filter.
        spatial_relationship: Only ``"intersects"`` is supported.
        attribute_filter: SQL where clause combined with the layer's
            definition expression.
        return_geometry: Whether geometries are requested.
        out_fields: Attribute names to return (``("*",)`` for all).
    """

    geometry: Geometry | None = None
    spatial_relationship: str = INTERSECTS
    attribute_filter: str = ""
    return_geometry: bool = True
    out_fields: tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.spatial_relationship != INTERSECTS:
            msg = f"Unsupported spatial relationship: {self.spatial_relationship!r}"
            raise ValueError(msg)
