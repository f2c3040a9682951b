"""ArcGIS Places service adapter.

Concrete ``PlacesService`` over the ArcGIS Places REST API using
``httpx.AsyncClient``:

- ``GET /places/within-extent`` — summaries inside a WGS 84 box,
  following ``pagination.nextUrl`` up to ``max_pages`` pages.
- ``GET /places/{placeId}?requestedFields=all`` — detail for one place.

The service only accepts WGS 84 extents, so extents in other spatial
references (e.g. Web Mercator city layers) are projected first.
Authentication uses the ``X-Esri-Authorization`` bearer header.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from shapely.geometry import box

from coastal_places.core.constants import PLACES_API_URL
from coastal_places.geometry.operators import GeometryOperators
from coastal_places.models.geometry import WGS84, Extent, Geometry, ModelValidationError
from coastal_places.models.places import PlaceDetail, PlaceQuery, PlaceSummary
from coastal_places.places.base import PlaceDetailFailed, PlacesQueryFailed, PlacesService

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_PAGE_SIZE = 20
_DEFAULT_MAX_PAGES = 5


class ArcGISPlacesService(PlacesService):
    """Places adapter for the ArcGIS Places REST API.

    Args:
        client: Shared ``httpx.AsyncClient``.
        base_url: Service root (``.../places-service/v1``).
        api_key: ArcGIS API key sent as a bearer token.
        operators: Geometry operators used to project extents to WGS 84.
        page_size: Results per page (service maximum is 20).
        max_pages: Upper bound on pages followed per query.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str = PLACES_API_URL,
        api_key: str = "",
        operators: GeometryOperators | None = None,
        page_size: int = _DEFAULT_PAGE_SIZE,
        max_pages: int = _DEFAULT_MAX_PAGES,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._operators = operators or GeometryOperators()
        self._page_size = page_size
        self._max_pages = max_pages

    # ------------------------------------------------------------------
    # within-extent query
    # ------------------------------------------------------------------

    async def query_places_within_extent(self, query: PlaceQuery) -> list[PlaceSummary]:
        xmin, ymin, xmax, ymax = self._wgs84_bounds(query.extent)
        url = f"{self._base_url}/places/within-extent"
        params: dict[str, str] | None = {
            "xmin": repr(xmin),
            "ymin": repr(ymin),
            "xmax": repr(xmax),
            "ymax": repr(ymax),
            "categoryIds": ",".join(query.category_ids),
            "icon": query.icon_format,
            "pageSize": str(self._page_size),
            "f": "json",
        }

        summaries: list[PlaceSummary] = []
        for page in range(self._max_pages):
            body = await self._get_query_page(url, params)
            results = body.get("results") or []
            if not isinstance(results, list):
                msg = f"Places service returned malformed results ({type(results).__name__})"
                raise PlacesQueryFailed(message=msg)
            for item in results:
                if not isinstance(item, dict):
                    logger.warning(
                        "Skipped malformed place summary | page=%d | error=%s",
                        page,
                        f"expected an object, got {type(item).__name__}",
                    )
                    continue
                try:
                    summaries.append(PlaceSummary.from_dict(item))
                except (ModelValidationError, AttributeError, TypeError, ValueError) as exc:
                    logger.warning("Skipped malformed place summary | page=%d | error=%s", page, exc)

            pagination = body.get("pagination")
            next_url = pagination.get("nextUrl") if isinstance(pagination, dict) else None
            if not next_url:
                break
            # nextUrl carries the full query string
            url, params = str(next_url), None

        logger.info(
            "Places query | extent=[%.5f, %.5f, %.5f, %.5f] | categories=%s | results=%d",
            xmin,
            ymin,
            xmax,
            ymax,
            ",".join(query.category_ids),
            len(summaries),
        )
        return summaries

    async def _get_query_page(self, url: str, params: dict[str, str] | None) -> dict[str, Any]:
        try:
            response = await self._client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            raise PlacesQueryFailed(message=f"Places request failed: {exc}") from exc

        body = _json_or_none(response)
        if response.is_error:
            if body is not None:
                raise PlacesQueryFailed.from_payload(body)
            raise PlacesQueryFailed(message=f"Places service returned HTTP {response.status_code}")
        if not isinstance(body, dict):
            raise PlacesQueryFailed(message="Places service returned a non-JSON body")
        if "error" in body:
            raise PlacesQueryFailed.from_payload(body)
        return body

    # ------------------------------------------------------------------
    # place detail
    # ------------------------------------------------------------------

    async def fetch_place(self, place_id: str) -> PlaceDetail:
        url = f"{self._base_url}/places/{quote(place_id, safe='')}"
        params = {"requestedFields": "all", "f": "json"}
        try:
            response = await self._client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            raise PlaceDetailFailed(place_id, f"Detail request failed: {exc}") from exc

        body = _json_or_none(response)
        if response.is_error or not isinstance(body, dict):
            raise PlaceDetailFailed(place_id, f"Detail request returned HTTP {response.status_code}")
        if "error" in body:
            raise PlaceDetailFailed(place_id, PlacesQueryFailed.from_payload(body).display_message)

        try:
            return PlaceDetail.from_response(place_id, body)
        except ModelValidationError as exc:
            raise PlaceDetailFailed(place_id, str(exc)) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"X-Esri-Authorization": f"Bearer {self._api_key}"}

    def _wgs84_bounds(self, extent: Extent) -> tuple[float, float, float, float]:
        """Project *extent* to WGS 84 and return its bounds.

        Raises:
            PlacesQueryFailed: If the extent cannot be projected.
        """
        if extent.spatial_reference == WGS84:
            return extent.as_bounds()
        outline = Geometry(shape=box(*extent.as_bounds()), spatial_reference=extent.spatial_reference)
        projected = self._operators.project(outline, WGS84)
        if projected is None:
            msg = f"Cannot project extent from {extent.spatial_reference.crs_code} to WGS 84"
            raise PlacesQueryFailed(message=msg)
        return projected.extent.as_bounds()


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
