"""Tests for the command-line entry point and the end-to-end wiring."""

from __future__ import annotations

import io
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from coastal_places import app
from coastal_places.core.config import AppConfig
from coastal_places.core.constants import PARKS_CATEGORY_ID
from tests.unit.fakes import RecordingSink

# ---------------------------------------------------------------------------
# Fake ArcGIS backend
# ---------------------------------------------------------------------------

MERCATOR = {"wkid": 102100, "latestWkid": 3857}


def _box(xmin: float, ymin: float, xmax: float, ymax: float) -> dict[str, Any]:
    return {"rings": [[[xmin, ymin], [xmin, ymax], [xmax, ymax], [xmax, ymin], [xmin, ymin]]]}


def _city(oid: int, name: str, rings: dict[str, Any]) -> dict[str, Any]:
    return {"attributes": {"OBJECTID": oid, "CDTFA_CITY": name}, "geometry": rings}


LAYER_FEATURES: dict[str, list[dict[str, Any]]] = {
    "AccessPoints": [{"attributes": {"OBJECTID": 1}, "geometry": {"x": 2500.0, "y": 1500.0}}],
    "Buffers": [{"attributes": {"OBJECTID": 1}, "geometry": _box(100_000, -5_000, 120_000, 1_000)}],
    "Cities": [
        _city(1, "Ventura", _box(0, 0, 5_000, 3_000)),
        _city(2, "Malibu", _box(100_000, 0, 108_000, 2_000)),
        _city(3, "Ojai", _box(0, 500_000, 4_000, 504_000)),
    ],
}

PLACES_RESULTS = {
    "results": [
        {
            "placeId": "p1",
            "location": {"x": -119.29, "y": 34.27},
            "categories": [{"categoryId": PARKS_CATEGORY_ID, "label": "Park"}],
            "icon": {"url": "https://static.test/p1.png"},
            "name": "Surfers Point",
        }
    ]
}


def arcgis_backend(request: httpx.Request) -> httpx.Response:
    """Route feature layer and places requests to canned responses."""
    path = request.url.path
    if request.url.host == "places.test":
        if path.endswith("/within-extent"):
            return httpx.Response(200, json=PLACES_RESULTS)
        return httpx.Response(200, json={"placeDetails": {"placeId": "p1", "name": "Surfers Point"}})

    layer = path.split("/")[1]
    if path.endswith("/query"):
        return httpx.Response(200, json={"spatialReference": MERCATOR, "features": LAYER_FEATURES[layer]})
    return httpx.Response(200, json={"name": layer, "extent": {"spatialReference": MERCATOR}})


def _config(**overrides: Any) -> AppConfig:
    values: dict[str, Any] = {
        "access_points_url": "https://features.test/AccessPoints/FeatureServer/0",
        "coastal_buffers_url": "https://features.test/Buffers/FeatureServer/1",
        "cities_url": "https://features.test/Cities/FeatureServer/2",
        "places_api_url": "https://places.test/v1",
    }
    values.update(overrides)
    return AppConfig(**values)


# ---------------------------------------------------------------------------
# Parser and logging
# ---------------------------------------------------------------------------


class TestParser:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        args = app.build_parser().parse_args([])
        assert args.select == []
        assert args.log_level == "INFO"

    def test_repeated_select(self) -> None:
        args = app.build_parser().parse_args(["--select", "Malibu", "--select", "Ventura"])
        assert args.select == ["Malibu", "Ventura"]

    def test_log_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert app.build_parser().parse_args([]).log_level == "DEBUG"

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as excinfo:
            app.build_parser().parse_args(["--version"])
        assert excinfo.value.code == 0
        assert "coastal-places" in capsys.readouterr().out


class TestConfigureLogging:
    @patch("coastal_places.app.logging.basicConfig")
    def test_installs_root_handler(self, basic_config: MagicMock) -> None:
        app.configure_logging("debug")
        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == "DEBUG"
        assert kwargs["force"] is True


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


@pytest.fixture()
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda level: None)


@pytest.mark.usefixtures("quiet_logging")
class TestMain:
    def test_invalid_config_exits_1(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("UNION_CHUNK_COUNT", "0")
        assert app.main([]) == app.EXIT_CONFIG

    def test_unparseable_config_exits_1(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("CENTER_ZOOM", "twelve")
        assert app.main([]) == app.EXIT_CONFIG

    def test_passes_selected_names(self, clean_env: pytest.MonkeyPatch) -> None:
        with patch("coastal_places.app.run_app", new=AsyncMock(return_value=app.EXIT_OK)) as run_app:
            assert app.main(["--select", "Malibu"]) == app.EXIT_OK
        config, names = run_app.call_args.args
        assert isinstance(config, AppConfig)
        assert names == ["Malibu"]

    def test_keyboard_interrupt_exits_130(self, clean_env: pytest.MonkeyPatch) -> None:
        with (
            patch("coastal_places.app.run_app", new=MagicMock()),
            patch("coastal_places.app.asyncio.run", side_effect=KeyboardInterrupt),
        ):
            assert app.main([]) == app.EXIT_INTERRUPTED


# ---------------------------------------------------------------------------
# run_app()
# ---------------------------------------------------------------------------


class TestRunApp:
    @pytest.mark.asyncio
    async def test_startup_failure_exits_2(self) -> None:
        sink = RecordingSink()
        code = await app.run_app(
            _config(),
            ["Ventura"],
            sink=sink,
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        assert code == app.EXIT_STARTUP
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_malformed_features_exit_2(self) -> None:
        def backend(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/query"):
                return httpx.Response(200, json={"features": {"1": "Malibu"}})
            return arcgis_backend(request)

        sink = RecordingSink()
        code = await app.run_app(_config(), ["Ventura"], sink=sink, transport=httpx.MockTransport(backend))
        assert code == app.EXIT_STARTUP
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_selected_names_end_to_end(self) -> None:
        sink = RecordingSink()

        code = await app.run_app(
            _config(),
            ["Ventura", "Atlantis"],
            sink=sink,
            transport=httpx.MockTransport(arcgis_backend),
        )

        assert code == app.EXIT_OK
        assert sink.events == [
            ("publish_cities", ["Malibu", "Ventura"]),
            ("clear_enrichment", None),
            ("publish_enrichment", ["p1"]),
            ("center_on", 12),
        ]

    @pytest.mark.asyncio
    async def test_oversize_city_end_to_end(self) -> None:
        sink = RecordingSink()
        await app.run_app(
            _config(place_extent_limit=6_000.0),
            ["Malibu"],
            sink=sink,
            transport=httpx.MockTransport(arcgis_backend),
        )
        assert sink.names() == ["publish_cities", "notify"]

    @pytest.mark.asyncio
    async def test_reads_names_from_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("Ventura\n\nAtlantis\n"))
        sink = RecordingSink()

        code = await app.run_app(_config(), sink=sink, transport=httpx.MockTransport(arcgis_backend))

        assert code == app.EXIT_OK
        assert sink.payloads("publish_enrichment") == [["p1"]]
