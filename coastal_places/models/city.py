"""City model and the correlated city registry.

``CorrelatedCitySet`` is the read-only registry built once at startup
and handed to the enrichment coordinator.  Membership only grows while
it is being built; once ``freeze()`` has been called it rejects further
insertions.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from coastal_places.core.constants import CITY_NAME_FIELD

if TYPE_CHECKING:
    from coastal_places.models.feature import Feature
    from coastal_places.models.geometry import Geometry


def city_name_of(feature: Feature) -> str:
    """Return the trimmed city name attribute, or ``""`` when missing."""
    raw = feature.attribute(CITY_NAME_FIELD)
    if raw is None:
        return ""
    return str(raw).strip()


@dataclass(frozen=True, slots=True)
class City:
    """A coastal city: a named feature with a polygon geometry."""

    name: str
    feature: Feature

    @property
    def geometry(self) -> Geometry | None:
        return self.feature.geometry

    @property
    def attributes(self) -> dict[str, object]:
        return dict(self.feature.attributes)

    @classmethod
    def from_feature(cls, feature: Feature) -> City | None:
        """Build a City, or ``None`` when the feature has no usable name."""
        name = city_name_of(feature)
        if not name:
            return None
        return cls(name=name, feature=feature)


class CorrelatedCitySet:
    """Cities keyed by name, first insertion wins.

    Iteration follows insertion order.
    """

    def __init__(self) -> None:
        self._cities: dict[str, City] = {}
        self._frozen = False

    def add(self, city: City) -> bool:
        """Insert *city* unless its name is already present.

        Returns:
            ``True`` if inserted, ``False`` if the name was already taken.

        Raises:
            RuntimeError: If the set has been frozen.
        """
        if self._frozen:
            msg = "CorrelatedCitySet is frozen; cities cannot be added after startup"
            raise RuntimeError(msg)
        if city.name in self._cities:
            return False
        self._cities[city.name] = city
        return True

    def freeze(self) -> CorrelatedCitySet:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> City | None:
        return self._cities.get(name)

    def names(self) -> list[str]:
        return list(self._cities)

    def __contains__(self, name: object) -> bool:
        return name in self._cities

    def __iter__(self) -> Iterator[City]:
        return iter(self._cities.values())

    def __len__(self) -> int:
        return len(self._cities)

    def __repr__(self) -> str:
        return f"CorrelatedCitySet({len(self)} cities)"
