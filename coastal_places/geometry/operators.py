"""Geometry operator adapter (shapely + pyproj).

Exposes the three primitives the correlation pipeline consumes —
``project``, ``union`` and ``intersects`` — with explicit operand
checks.  ``project`` follows a nullable-return contract: a geometry
that cannot be reprojected yields ``None`` and the caller drops it.
``union`` and ``intersects`` raise ``InvalidGeometryOperand`` for
unusable operands so that callers can skip the offending geometry.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import TYPE_CHECKING

import shapely
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError
from shapely.errors import GEOSException
from shapely.ops import transform as shapely_transform
from shapely.validation import make_valid

from coastal_places.core.exceptions import GeometryOperatorUnavailable, InvalidGeometryOperand
from coastal_places.models.geometry import Geometry

if TYPE_CHECKING:
    from coastal_places.models.geometry import SpatialReference

logger = logging.getLogger(__name__)


@lru_cache(maxsize=32)
def _transformer(source_epsg: int, target_epsg: int) -> Transformer:
    return Transformer.from_crs(
        f"EPSG:{source_epsg}",
        f"EPSG:{target_epsg}",
        always_xy=True,
    )


def _is_finite(bounds: tuple[float, ...]) -> bool:
    return all(math.isfinite(v) for v in bounds)


class GeometryOperators:
    """Project / union / intersects over spatially referenced geometries.

    Args:
        supports_union: Whether the union operator may be used.  When
            ``False`` the strategy factory falls back to per-feature
            correlation.
    """

    def __init__(self, *, supports_union: bool = True) -> None:
        self._supports_union = supports_union
        self._loaded = False

    @property
    def supports_union(self) -> bool:
        return self._supports_union

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Verify the PROJ database is usable.

        Raises:
            GeometryOperatorUnavailable: If EPSG:4326 cannot be resolved.
        """
        try:
            CRS.from_epsg(4326)
        except CRSError as exc:
            msg = f"PROJ database unavailable: {exc}"
            raise GeometryOperatorUnavailable(msg) from exc
        self._loaded = True
        logger.debug("Geometry operators loaded | supports_union=%s", self._supports_union)

    # ------------------------------------------------------------------
    # project
    # ------------------------------------------------------------------

    def project(
        self,
        geometry: Geometry | None,
        target: SpatialReference,
    ) -> Geometry | None:
        """Reproject *geometry* into *target*.

        Returns:
            The reprojected geometry, the input unchanged when the
            spatial references already match, or ``None`` when the
            geometry is absent, empty, or cannot be transformed.
        """
        if geometry is None or geometry.is_empty:
            return None
        if geometry.spatial_reference == target:
            return geometry

        source = geometry.spatial_reference
        try:
            transformer = _transformer(source.epsg, target.epsg)
            projected = shapely_transform(transformer.transform, geometry.shape)
        except (CRSError, ProjError, GEOSException, ValueError) as exc:
            logger.debug(
                "Projection failed | from=%s | to=%s | error=%s",
                source.crs_code,
                target.crs_code,
                exc,
            )
            return None

        if projected.is_empty or not _is_finite(projected.bounds):
            return None
        return Geometry(shape=projected, spatial_reference=target)

    # ------------------------------------------------------------------
    # union
    # ------------------------------------------------------------------

    def union(self, *geometries: Geometry) -> Geometry:
        """Union all operands into one geometry.

        Raises:
            InvalidGeometryOperand: If there are no operands, any operand
                is empty, spatial references differ, or GEOS rejects the
                input.
        """
        if not self._supports_union:
            raise InvalidGeometryOperand("union", "union operator is not available")
        if not geometries:
            raise InvalidGeometryOperand("union", "at least one operand is required")

        reference = geometries[0].spatial_reference
        for geometry in geometries:
            if geometry.is_empty:
                raise InvalidGeometryOperand("union", "empty operand")
            if geometry.spatial_reference != reference:
                msg = (
                    f"spatial reference mismatch: {geometry.spatial_reference.crs_code} "
                    f"!= {reference.crs_code}"
                )
                raise InvalidGeometryOperand("union", msg)

        try:
            merged = shapely.union_all([g.shape for g in geometries])
        except GEOSException as exc:
            raise InvalidGeometryOperand("union", str(exc)) from exc

        return geometries[0].with_shape(merged)

    # ------------------------------------------------------------------
    # intersects
    # ------------------------------------------------------------------

    def intersects(self, a: Geometry | None, b: Geometry | None) -> bool:
        """Whether *a* and *b* share any point.

        Raises:
            InvalidGeometryOperand: If an operand is missing or empty, or
                the spatial references differ.
        """
        if a is None or b is None:
            raise InvalidGeometryOperand("intersects", "missing operand")
        if a.is_empty or b.is_empty:
            raise InvalidGeometryOperand("intersects", "empty operand")
        if a.spatial_reference != b.spatial_reference:
            msg = (
                f"spatial reference mismatch: {a.spatial_reference.crs_code} "
                f"!= {b.spatial_reference.crs_code}"
            )
            raise InvalidGeometryOperand("intersects", msg)
        try:
            return bool(a.shape.intersects(b.shape))
        except GEOSException as exc:
            raise InvalidGeometryOperand("intersects", str(exc)) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def repair(self, geometry: Geometry | None) -> Geometry | None:
        """Return a usable version of *geometry*, or ``None``.

        Invalid shapes are passed through ``make_valid()``; shapes that
        are empty (before or after repair) are unusable.
        """
        if geometry is None or geometry.is_empty:
            return None
        shape = geometry.shape
        if not shape.is_valid:
            shape = make_valid(shape)
            if shape.is_empty:
                return None
            logger.debug("Geometry repaired | type=%s", shape.geom_type)
            return geometry.with_shape(shape)
        return geometry

    def is_usable(self, geometry: Geometry | None) -> bool:
        return self.repair(geometry) is not None

    def prepare(self, geometry: Geometry) -> Geometry:
        """Build the GEOS spatial index for repeated predicate tests."""
        shapely.prepare(geometry.shape)
        return geometry
