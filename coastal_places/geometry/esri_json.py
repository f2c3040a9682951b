"""Esri JSON geometry conversion.

Feature services speak Esri JSON (``{"x", "y"}``, ``{"points"}``,
``{"paths"}``, ``{"rings"}``); the pipeline works on shapely shapes.
This module converts in both directions.

Polygon rings follow the Esri convention: clockwise rings are outer
shells, counter-clockwise rings are holes.  Each hole is attached to the
shell that contains it; a hole with no containing shell is promoted to a
shell of its own.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from shapely.geometry import (
    LinearRing,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from coastal_places.core.exceptions import InvalidGeometryOperand
from coastal_places.models.geometry import Geometry, SpatialReference

ESRI_POINT = "esriGeometryPoint"
ESRI_MULTIPOINT = "esriGeometryMultipoint"
ESRI_POLYLINE = "esriGeometryPolyline"
ESRI_POLYGON = "esriGeometryPolygon"

_MIN_RING_COORDS = 3
_MIN_PATH_COORDS = 2

Coords = Sequence[Sequence[float]]


# ---------------------------------------------------------------------------
# Esri JSON -> shapely
# ---------------------------------------------------------------------------


def from_esri(
    data: dict[str, Any] | None,
    default_sr: SpatialReference | None = None,
) -> Geometry | None:
    """Convert an Esri JSON geometry into a ``Geometry``.

    The geometry's own ``spatialReference`` wins over *default_sr*.

    Returns:
        The converted geometry, or ``None`` when the input is missing,
        empty, of an unknown shape, or has no spatial reference at all.
    """
    if not data:
        return None
    sr = SpatialReference.from_dict(data.get("spatialReference")) or default_sr
    if sr is None:
        return None
    shape = to_shape(data)
    if shape is None or shape.is_empty:
        return None
    return Geometry(shape=shape, spatial_reference=sr)


def to_shape(data: dict[str, Any]) -> BaseGeometry | None:
    """Convert the coordinate part of an Esri JSON geometry to shapely."""
    if "x" in data:
        # Empty points come back as null or "NaN"
        try:
            x, y = float(data["x"]), float(data["y"])
        except (KeyError, TypeError, ValueError):
            return None
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return Point(x, y)

    if "points" in data:
        points = [_xy(p) for p in data.get("points") or []]
        return MultiPoint(points) if points else None

    if "paths" in data:
        paths = [[_xy(c) for c in path] for path in data.get("paths") or []]
        lines = [LineString(p) for p in paths if len(p) >= _MIN_PATH_COORDS]
        if not lines:
            return None
        return lines[0] if len(lines) == 1 else MultiLineString(lines)

    if "rings" in data:
        return _rings_to_polygon(data.get("rings") or [])

    return None


def _xy(coord: Sequence[float]) -> tuple[float, float]:
    return (float(coord[0]), float(coord[1]))


def _rings_to_polygon(rings: Sequence[Coords]) -> Polygon | MultiPolygon | None:
    """Assemble Esri rings into a (multi)polygon."""
    linear_rings: list[LinearRing] = []
    for ring in rings:
        coords = [_xy(c) for c in ring]
        if len(coords) < _MIN_RING_COORDS:
            continue
        linear_rings.append(LinearRing(coords))

    if not linear_rings:
        return None

    shells = [r for r in linear_rings if not r.is_ccw]
    holes = [r for r in linear_rings if r.is_ccw]
    if not shells:
        # Unoriented data: every ring is a shell.
        shells, holes = holes, []

    shell_polys = [Polygon(shell) for shell in shells]
    shell_holes: list[list[LinearRing]] = [[] for _ in shells]
    for hole in holes:
        inner_point = Polygon(hole).representative_point()
        for index, shell_poly in enumerate(shell_polys):
            if shell_poly.contains(inner_point):
                shell_holes[index].append(hole)
                break
        else:
            shells.append(hole)
            shell_polys.append(Polygon(hole))
            shell_holes.append([])

    polygons = [
        Polygon(shell, holes=inner) for shell, inner in zip(shells, shell_holes, strict=True)
    ]
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


# ---------------------------------------------------------------------------
# shapely -> Esri JSON
# ---------------------------------------------------------------------------


def to_esri(geometry: Geometry) -> tuple[str, dict[str, Any]]:
    """Convert a ``Geometry`` to ``(geometryType, esri_json)``.

    Raises:
        InvalidGeometryOperand: For empty geometries and geometry
            collections, which have no single Esri geometry type.
    """
    shape = geometry.shape
    if shape.is_empty:
        raise InvalidGeometryOperand("to_esri", "empty geometry")

    sr = geometry.spatial_reference.to_dict()

    if isinstance(shape, Point):
        return ESRI_POINT, {"x": shape.x, "y": shape.y, "spatialReference": sr}

    if isinstance(shape, MultiPoint):
        points = [[p.x, p.y] for p in shape.geoms]
        return ESRI_MULTIPOINT, {"points": points, "spatialReference": sr}

    if isinstance(shape, LineString):
        return ESRI_POLYLINE, {"paths": [_coords(shape.coords)], "spatialReference": sr}

    if isinstance(shape, MultiLineString):
        paths = [_coords(line.coords) for line in shape.geoms]
        return ESRI_POLYLINE, {"paths": paths, "spatialReference": sr}

    if isinstance(shape, Polygon):
        return ESRI_POLYGON, {"rings": _polygon_rings(shape), "spatialReference": sr}

    if isinstance(shape, MultiPolygon):
        rings: list[list[list[float]]] = []
        for poly in shape.geoms:
            rings.extend(_polygon_rings(poly))
        return ESRI_POLYGON, {"rings": rings, "spatialReference": sr}

    msg = f"{shape.geom_type} has no Esri geometry type"
    raise InvalidGeometryOperand("to_esri", msg)


def _coords(coords: Coords) -> list[list[float]]:
    return [[float(c[0]), float(c[1])] for c in coords]


def _polygon_rings(poly: Polygon) -> list[list[list[float]]]:
    # sign=-1.0: clockwise shell, counter-clockwise holes
    oriented = orient(poly, sign=-1.0)
    rings = [_coords(oriented.exterior.coords)]
    rings.extend(_coords(interior.coords) for interior in oriented.interiors)
    return rings
