"""Spatially referenced geometry and extent models.

Wraps a shapely geometry together with the spatial reference it is
expressed in, so that every operator can check operand compatibility
before comparing shapes.

Design notes:
- All models are frozen dataclasses for immutability.
- ``Extent`` is used purely as a size gate for the places query; its
  units are those of the geometry's spatial reference (metres for Web
  Mercator city layers).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from coastal_places.core.exceptions import PipelineError

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, PipelineError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        PipelineError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Spatial reference
# ---------------------------------------------------------------------------

#: Esri well-known IDs that are aliases of an EPSG code.
_ESRI_WKID_ALIASES: dict[int, int] = {
    102100: 3857,
    102113: 3857,
}

WGS84_WKID = 4326
WEB_MERCATOR_WKID = 3857


@dataclass(frozen=True, slots=True)
class SpatialReference:
    """Coordinate system tag, identified by its well-known ID.

    Esri aliases (``102100``) compare equal to their EPSG code (``3857``).
    """

    wkid: int

    def __post_init__(self) -> None:
        if self.wkid <= 0:
            raise ModelValidationError("SpatialReference", "wkid", self.wkid, "must be > 0")

    @property
    def epsg(self) -> int:
        """EPSG code with Esri aliases resolved."""
        return _ESRI_WKID_ALIASES.get(self.wkid, self.wkid)

    @property
    def crs_code(self) -> str:
        """``"EPSG:<code>"`` string accepted by pyproj."""
        return f"EPSG:{self.epsg}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpatialReference):
            return NotImplemented
        return self.epsg == other.epsg

    def __hash__(self) -> int:
        return hash(self.epsg)

    def to_dict(self) -> dict[str, int]:
        return {"wkid": self.wkid}

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> SpatialReference | None:
        """Parse an Esri ``spatialReference`` object (``latestWkid`` preferred)."""
        if not isinstance(data, dict) or not data:
            return None
        raw = data.get("latestWkid") or data.get("wkid")
        if raw is None:
            return None
        return cls(int(raw))  # type: ignore[arg-type]


WGS84 = SpatialReference(WGS84_WKID)
WEB_MERCATOR = SpatialReference(WEB_MERCATOR_WKID)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Geometry:
    """A shapely shape tagged with the spatial reference it is expressed in.

    Attributes:
        shape: The underlying shapely geometry.
        spatial_reference: Coordinate system of ``shape``.
    """

    shape: BaseGeometry
    spatial_reference: SpatialReference

    @property
    def geom_type(self) -> str:
        return self.shape.geom_type

    @property
    def is_empty(self) -> bool:
        return bool(self.shape.is_empty)

    @property
    def extent(self) -> Extent:
        """Axis-aligned bounding box of the shape."""
        return Extent.from_geometry(self)

    def with_shape(self, shape: BaseGeometry) -> Geometry:
        """Return a copy carrying *shape* in the same spatial reference."""
        return Geometry(shape=shape, spatial_reference=self.spatial_reference)


# ---------------------------------------------------------------------------
# Extent
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Extent:
    """Axis-aligned bounding box in a spatial reference.

    Attributes:
        xmin: Minimum x coordinate.
        ymin: Minimum y coordinate.
        xmax: Maximum x coordinate.
        ymax: Maximum y coordinate.
        spatial_reference: Coordinate system of the bounds.
    """

    xmin: float
    ymin: float
    xmax: float
    ymax: float
    spatial_reference: SpatialReference

    def __post_init__(self) -> None:
        if self.xmax < self.xmin:
            raise ModelValidationError("Extent", "xmax", self.xmax, f"must be >= xmin ({self.xmin})")
        if self.ymax < self.ymin:
            raise ModelValidationError("Extent", "ymax", self.ymax, f"must be >= ymin ({self.ymin})")

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def fits_within(self, limit: float) -> bool:
        """Whether both sides are strictly below *limit*."""
        return self.width < limit and self.height < limit

    def as_bounds(self) -> tuple[float, float, float, float]:
        """``(xmin, ymin, xmax, ymax)``"""
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    @classmethod
    def from_geometry(cls, geometry: Geometry) -> Extent:
        """Compute the extent of a non-empty geometry.

        Raises:
            ModelValidationError: If the geometry is empty.
        """
        if geometry.is_empty:
            raise ModelValidationError("Extent", "geometry", geometry.geom_type, "is empty")
        xmin, ymin, xmax, ymax = geometry.shape.bounds
        return cls(
            xmin=float(xmin),
            ymin=float(ymin),
            xmax=float(xmax),
            ymax=float(ymax),
            spatial_reference=geometry.spatial_reference,
        )
