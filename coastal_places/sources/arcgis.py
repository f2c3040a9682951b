"""ArcGIS feature service adapter (REST ``/query``).

Concrete ``FeatureSource`` over an ArcGIS Online / Enterprise feature
layer using ``httpx.AsyncClient``.  Every query is a form-encoded POST
so that large spatial filters (unioned coastlines) are not limited by
URL length.

Paging:
    Layers cap each response at ``maxRecordCount``.  While the response
    sets ``exceededTransferLimit`` the adapter requests the next page
    with ``resultOffset``, up to ``max_pages`` pages.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from coastal_places.geometry.esri_json import from_esri, to_esri
from coastal_places.models.feature import Feature, FeatureBatch, QueryFilter
from coastal_places.models.geometry import SpatialReference
from coastal_places.sources.base import FeatureSource, SourceUnavailable

if TYPE_CHECKING:
    from coastal_places.models.geometry import Geometry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_MAX_PAGES = 50
_SPATIAL_REL_INTERSECTS = "esriSpatialRelIntersects"
_FALLBACK_OID_FIELDS = ("OBJECTID", "FID", "ObjectId")


class ArcGISFeatureSource(FeatureSource):
    """Feature layer adapter for the ArcGIS REST API.

    Args:
        name: Logical source name used in logs and errors.
        url: Layer URL (``.../FeatureServer/<layerId>``).
        client: Shared ``httpx.AsyncClient``.
        definition_expression: Region filter applied to every query.
        api_key: Token appended to every request when non-empty.
        max_pages: Upper bound on ``resultOffset`` pages per query.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        client: httpx.AsyncClient,
        definition_expression: str = "",
        api_key: str = "",
        max_pages: int = _DEFAULT_MAX_PAGES,
    ) -> None:
        super().__init__(name, definition_expression=definition_expression)
        self._url = url.rstrip("/")
        self._client = client
        self._api_key = api_key
        self._max_pages = max_pages
        self._layer_name = ""
        self._max_record_count = 0
        self._object_id_field = ""
        self._spatial_reference: SpatialReference | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def spatial_reference(self) -> SpatialReference | None:
        return self._spatial_reference

    @property
    def max_record_count(self) -> int:
        return self._max_record_count

    # ------------------------------------------------------------------
    # load
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Read layer metadata (name, record cap, object id field, spatial reference)."""
        body = await self._request("GET", self._url, {"f": "json"})

        self._layer_name = str(body.get("name") or "")
        self._max_record_count = int(body.get("maxRecordCount") or 0)
        self._object_id_field = str(body.get("objectIdField") or "")
        extent = body.get("extent") if isinstance(body.get("extent"), dict) else {}
        self._spatial_reference = SpatialReference.from_dict(
            extent.get("spatialReference") or body.get("spatialReference")
        )

        logger.info(
            "Feature source loaded | source=%s | layer=%s | max_records=%d | sr=%s",
            self.name,
            self._layer_name,
            self._max_record_count,
            self._spatial_reference.crs_code if self._spatial_reference else "unknown",
        )

    # ------------------------------------------------------------------
    # query
    # ------------------------------------------------------------------

    async def query(self, query_filter: QueryFilter | None = None) -> FeatureBatch:
        query_filter = query_filter or QueryFilter()
        params = self._build_params(query_filter)

        features: list[Feature] = []
        batch_sr: SpatialReference | None = None
        for page in range(self._max_pages):
            if page:
                params["resultOffset"] = str(len(features))
            body = await self._request("POST", f"{self._url}/query", params)

            batch_sr = batch_sr or SpatialReference.from_dict(body.get("spatialReference"))
            oid_field = str(body.get("objectIdFieldName") or self._object_id_field)
            raw_features = body.get("features") or []
            if not isinstance(raw_features, list):
                msg = f"query returned malformed features ({type(raw_features).__name__})"
                raise SourceUnavailable(self.name, msg)
            for item in raw_features:
                if not isinstance(item, dict):
                    logger.warning(
                        "Skipped malformed feature | source=%s | page=%d | type=%s",
                        self.name,
                        page,
                        type(item).__name__,
                    )
                    continue
                features.append(
                    _to_feature(item, batch_sr or self._spatial_reference, oid_field, len(features))
                )

            logger.debug(
                "Feature page | source=%s | page=%d | count=%d | total=%d",
                self.name,
                page,
                len(raw_features),
                len(features),
            )
            if not body.get("exceededTransferLimit") or not raw_features:
                break
        else:
            logger.warning(
                "Feature query truncated | source=%s | max_pages=%d | total=%d",
                self.name,
                self._max_pages,
                len(features),
            )

        return FeatureBatch(
            features=tuple(features),
            spatial_reference=batch_sr or self._spatial_reference,
            source=self.name,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_params(self, query_filter: QueryFilter) -> dict[str, str]:
        params: dict[str, str] = {
            "f": "json",
            "where": self._where(query_filter.attribute_filter),
            "outFields": ",".join(query_filter.out_fields) or "*",
            "returnGeometry": "true" if query_filter.return_geometry else "false",
        }
        if query_filter.geometry is not None:
            params.update(_spatial_params(query_filter.geometry))
        return params

    def _where(self, attribute_filter: str) -> str:
        clauses = [c for c in (self.definition_expression, attribute_filter) if c]
        if not clauses:
            return "1=1"
        if len(clauses) == 1:
            return clauses[0]
        return " AND ".join(f"({c})" for c in clauses)

    async def _request(self, method: str, url: str, params: dict[str, str]) -> dict[str, Any]:
        """Issue one request and return the decoded JSON body.

        Raises:
            SourceUnavailable: On transport errors, HTTP errors, non-JSON
                bodies, or an ArcGIS ``{"error": ...}`` payload.
        """
        if self._api_key:
            params = {**params, "token": self._api_key}
        try:
            if method == "GET":
                response = await self._client.get(url, params=params)
            else:
                response = await self._client.post(url, data=params)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise SourceUnavailable(self.name, msg) from exc
        except ValueError as exc:
            msg = f"{method} {url} returned a non-JSON body"
            raise SourceUnavailable(self.name, msg) from exc

        if not isinstance(body, dict):
            msg = f"{method} {url} returned {type(body).__name__}, expected an object"
            raise SourceUnavailable(self.name, msg)
        if "error" in body:
            raise SourceUnavailable(self.name, _error_message(body["error"]))
        return body


def _spatial_params(geometry: Geometry) -> dict[str, str]:
    geometry_type, esri_geometry = to_esri(geometry)
    return {
        "geometry": json.dumps(esri_geometry),
        "geometryType": geometry_type,
        "inSR": str(geometry.spatial_reference.wkid),
        "spatialRel": _SPATIAL_REL_INTERSECTS,
    }


def _to_feature(
    item: dict[str, Any],
    sr: SpatialReference | None,
    oid_field: str,
    index: int,
) -> Feature:
    attributes = item.get("attributes")
    if not isinstance(attributes, dict):
        attributes = {}
    geometry = item.get("geometry")
    return Feature(
        id=_feature_id(attributes, oid_field, index),
        geometry=from_esri(geometry, sr) if isinstance(geometry, dict) else None,
        attributes=attributes,
    )


def _feature_id(attributes: dict[str, Any], oid_field: str, index: int) -> int | str:
    for field_name in (oid_field, *_FALLBACK_OID_FIELDS):
        if field_name and attributes.get(field_name) is not None:
            value = attributes[field_name]
            return value if isinstance(value, int) else str(value)
    return index


def _error_message(error: object) -> str:
    """Flatten an ArcGIS REST error object into one line."""
    if not isinstance(error, dict):
        return str(error)
    message = str(error.get("message") or "Unknown service error")
    code = error.get("code")
    details = [str(d) for d in error.get("details") or [] if d]
    text = f"{code}: {message}" if code else message
    if details:
        text = f"{text} ({'; '.join(details)})"
    return text
