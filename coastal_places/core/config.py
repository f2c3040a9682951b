"""Application configuration loaded from environment variables.

All configuration values have sensible defaults targeting the Southern
and Central California coast.  Environment variables (or a ``.env`` file
exported by the shell) are the source of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range.  This catches bad configuration at
    startup instead of in the middle of an interactive session.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from coastal_places.core import constants
from coastal_places.core.exceptions import PipelineError

_MAX_ZOOM = 23


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application configuration.

    Loaded once at startup and threaded through the sources, the
    correlation strategy and the enrichment coordinator.

    Attributes:
        api_key: ArcGIS location platform API key (empty for public layers only).
        access_points_url: Beach access points feature layer URL.
        coastal_buffers_url: Coastal buffer polygons feature layer URL.
        cities_url: City boundary polygons feature layer URL.
        places_api_url: ArcGIS Places service root URL.
        region_counties: County names defining the target region.
        correlation_strategy: ``union_intersects``, ``union_query`` or ``per_feature``.
        union_chunk_count: Number of chunks the union input is split into.
        place_extent_limit: Extent width/height limit for a places query.
        places_category_ids: Places category filter.
        places_icon_format: Icon format requested from the places service.
        center_zoom: Zoom level passed with ``center_on``.
        detail_fetch_concurrency: Max concurrent detail fetches (0 = unbounded).
        http_timeout_s: Timeout for every HTTP request in seconds.
        clear_on_oversize: Clear stale enrichment when a selection is too large.
    """

    api_key: str = ""
    access_points_url: str = constants.ACCESS_POINTS_URL
    coastal_buffers_url: str = constants.COASTAL_BUFFERS_URL
    cities_url: str = constants.CITIES_URL
    places_api_url: str = constants.PLACES_API_URL
    region_counties: tuple[str, ...] = constants.DEFAULT_REGION_COUNTIES
    correlation_strategy: str = "union_intersects"
    union_chunk_count: int = constants.DEFAULT_UNION_CHUNK_COUNT
    place_extent_limit: float = constants.PLACE_EXTENT_LIMIT
    places_category_ids: tuple[str, ...] = (constants.PARKS_CATEGORY_ID,)
    places_icon_format: str = constants.DEFAULT_ICON_FORMAT
    center_zoom: int = constants.DEFAULT_CENTER_ZOOM
    detail_fetch_concurrency: int = 0
    http_timeout_s: float = 30.0
    clear_on_oversize: bool = False

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``UNION_CHUNK_COUNT=abc``).
        """
        config = cls(
            api_key=os.getenv("ARCGIS_API_KEY", ""),
            access_points_url=os.getenv("ACCESS_POINTS_URL", constants.ACCESS_POINTS_URL),
            coastal_buffers_url=os.getenv("COASTAL_BUFFERS_URL", constants.COASTAL_BUFFERS_URL),
            cities_url=os.getenv("CITIES_URL", constants.CITIES_URL),
            places_api_url=os.getenv("PLACES_API_URL", constants.PLACES_API_URL),
            region_counties=_split_list(
                os.getenv("REGION_COUNTIES"), constants.DEFAULT_REGION_COUNTIES
            ),
            correlation_strategy=os.getenv("CORRELATION_STRATEGY", "union_intersects"),
            union_chunk_count=int(
                os.getenv("UNION_CHUNK_COUNT", str(constants.DEFAULT_UNION_CHUNK_COUNT))
            ),
            place_extent_limit=float(
                os.getenv("PLACE_EXTENT_LIMIT", str(constants.PLACE_EXTENT_LIMIT))
            ),
            places_category_ids=_split_list(
                os.getenv("PLACES_CATEGORY_IDS"), (constants.PARKS_CATEGORY_ID,)
            ),
            places_icon_format=os.getenv("PLACES_ICON_FORMAT", constants.DEFAULT_ICON_FORMAT),
            center_zoom=int(os.getenv("CENTER_ZOOM", str(constants.DEFAULT_CENTER_ZOOM))),
            detail_fetch_concurrency=int(os.getenv("DETAIL_FETCH_CONCURRENCY", "0")),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "30")),
            clear_on_oversize=_parse_bool(os.getenv("CLEAR_ON_OVERSIZE", "false")),
        )
        _validate(config)
        return config

    @property
    def access_points_where(self) -> str:
        """Definition expression for the access points layer."""
        return constants.access_points_filter(self.region_counties)

    @property
    def coastal_buffers_where(self) -> str:
        """Definition expression for the coastal buffer layer."""
        return constants.coastal_buffers_filter(self.region_counties)

    @property
    def cities_where(self) -> str:
        """Definition expression for the city boundaries layer."""
        return constants.cities_filter(self.region_counties)


def _split_list(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    """Split a comma-separated env value, falling back to *default* when unset."""
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _validate(config: AppConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    for key, url in (
        ("ACCESS_POINTS_URL", config.access_points_url),
        ("COASTAL_BUFFERS_URL", config.coastal_buffers_url),
        ("CITIES_URL", config.cities_url),
        ("PLACES_API_URL", config.places_api_url),
    ):
        if not url:
            raise ConfigValidationError(key, url, "must not be empty")

    if not config.region_counties:
        raise ConfigValidationError(
            "REGION_COUNTIES",
            config.region_counties,
            "must name at least one county",
        )

    from coastal_places.correlation.factory import list_strategies

    strategies = list_strategies()
    if config.correlation_strategy not in strategies:
        raise ConfigValidationError(
            "CORRELATION_STRATEGY",
            config.correlation_strategy,
            f"must be one of {', '.join(strategies)}",
        )

    if config.union_chunk_count < 1:
        raise ConfigValidationError(
            "UNION_CHUNK_COUNT",
            config.union_chunk_count,
            "must be >= 1",
        )

    if config.place_extent_limit <= 0:
        raise ConfigValidationError(
            "PLACE_EXTENT_LIMIT",
            config.place_extent_limit,
            "must be > 0 (spatial reference units)",
        )

    if not config.places_category_ids:
        raise ConfigValidationError(
            "PLACES_CATEGORY_IDS",
            config.places_category_ids,
            "must name at least one category",
        )

    if config.places_icon_format not in constants.VALID_ICON_FORMATS:
        raise ConfigValidationError(
            "PLACES_ICON_FORMAT",
            config.places_icon_format,
            f"must be one of {', '.join(sorted(constants.VALID_ICON_FORMATS))}",
        )

    if not 0 <= config.center_zoom <= _MAX_ZOOM:
        raise ConfigValidationError(
            "CENTER_ZOOM",
            config.center_zoom,
            f"must be between 0 and {_MAX_ZOOM}",
        )

    if config.detail_fetch_concurrency < 0:
        raise ConfigValidationError(
            "DETAIL_FETCH_CONCURRENCY",
            config.detail_fetch_concurrency,
            "must be >= 0 (0 means unbounded)",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )
