"""Tests for the domain models.

Covers spatial references, geometries and extents, features and
batches, the correlated city set, the places models and the session
outcome record.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from shapely.geometry import Point

from coastal_places.models import (
    WEB_MERCATOR,
    WGS84,
    City,
    CorrelatedCitySet,
    EnrichedPlace,
    Extent,
    Feature,
    FeatureBatch,
    Geometry,
    ModelValidationError,
    PlaceDetail,
    PlaceQuery,
    PlaceSummary,
    QueryFilter,
    SessionOutcome,
    SessionState,
    SpatialReference,
)
from tests.unit.fakes import city_feature, square


class TestSpatialReference:
    def test_esri_alias_equals_epsg(self) -> None:
        assert SpatialReference(102100) == WEB_MERCATOR
        assert hash(SpatialReference(102100)) == hash(WEB_MERCATOR)
        assert SpatialReference(102100).crs_code == "EPSG:3857"

    def test_from_dict_prefers_latest_wkid(self) -> None:
        sr = SpatialReference.from_dict({"wkid": 102100, "latestWkid": 3857})
        assert sr is not None
        assert sr.wkid == 3857

    def test_from_dict_missing(self) -> None:
        assert SpatialReference.from_dict(None) is None
        assert SpatialReference.from_dict({"wkt": "..."}) is None

    def test_rejects_non_positive_wkid(self) -> None:
        with pytest.raises(ModelValidationError):
            SpatialReference(0)


class TestExtent:
    def test_from_geometry(self) -> None:
        extent = Extent.from_geometry(square(100, 200, 50))
        assert extent.as_bounds() == (100.0, 200.0, 150.0, 250.0)
        assert extent.width == 50
        assert extent.height == 50
        assert extent.spatial_reference == WEB_MERCATOR

    def test_fits_within_is_strict(self) -> None:
        assert Extent(0, 0, 19_999, 19_999, WEB_MERCATOR).fits_within(20_000)
        assert not Extent(0, 0, 20_000, 10, WEB_MERCATOR).fits_within(20_000)
        assert not Extent(0, 0, 10, 20_000, WEB_MERCATOR).fits_within(20_000)

    def test_rejects_inverted_bounds(self) -> None:
        with pytest.raises(ModelValidationError):
            Extent(10, 0, 0, 10, WEB_MERCATOR)

    def test_empty_geometry_has_no_extent(self) -> None:
        empty = Geometry(shape=Point(), spatial_reference=WGS84)
        with pytest.raises(ModelValidationError):
            Extent.from_geometry(empty)


class TestFeature:
    def test_attributes_are_read_only(self) -> None:
        feature = Feature(id=1, attributes={"A": 1})
        with pytest.raises(TypeError):
            feature.attributes["A"] = 2  # type: ignore[index]

    def test_source_mapping_is_copied(self) -> None:
        source = {"A": 1}
        feature = Feature(id=1, attributes=source)
        source["A"] = 2
        assert feature.attribute("A") == 1

    def test_with_geometry_keeps_attributes(self) -> None:
        feature = Feature(id=1, attributes={"A": 1})
        moved = feature.with_geometry(square(0, 0, 1))
        assert moved.geometry is not None
        assert moved.attribute("A") == 1
        assert feature.geometry is None


class TestFeatureBatch:
    def test_preserves_order(self) -> None:
        features = tuple(Feature(id=i) for i in (3, 1, 2))
        batch = FeatureBatch(features)
        assert [f.id for f in batch] == [3, 1, 2]
        assert len(batch) == 3

    def test_empty_batch_is_falsy(self) -> None:
        assert not FeatureBatch()

    def test_effective_spatial_reference_falls_back_to_geometry(self) -> None:
        batch = FeatureBatch((Feature(id=1), Feature(id=2, geometry=square(0, 0, 1, WGS84))))
        assert batch.effective_spatial_reference == WGS84


class TestQueryFilter:
    def test_defaults(self) -> None:
        qf = QueryFilter()
        assert qf.spatial_relationship == "intersects"
        assert qf.out_fields == ("*",)
        assert qf.return_geometry is True

    def test_only_intersects_supported(self) -> None:
        with pytest.raises(ValueError, match="Unsupported spatial relationship"):
            QueryFilter(spatial_relationship="contains")


class TestCorrelatedCitySet:
    def _city(self, name: str, fid: int = 1) -> City:
        city = City.from_feature(city_feature(fid, name, square(0, 0, 10)))
        assert city is not None
        return city

    def test_first_insertion_wins(self) -> None:
        cities = CorrelatedCitySet()
        assert cities.add(self._city("Malibu", 1)) is True
        assert cities.add(self._city("Malibu", 2)) is False
        assert len(cities) == 1
        city = cities.get("Malibu")
        assert city is not None
        assert city.feature.id == 1

    def test_lookup_is_exact(self) -> None:
        cities = CorrelatedCitySet()
        cities.add(self._city("Malibu"))
        assert "Malibu" in cities
        assert cities.get("malibu") is None
        assert cities.get("Malibu ") is None

    def test_frozen_rejects_insertions(self) -> None:
        cities = CorrelatedCitySet().freeze()
        assert cities.frozen
        with pytest.raises(RuntimeError):
            cities.add(self._city("Oxnard"))

    def test_iteration_follows_insertion_order(self) -> None:
        cities = CorrelatedCitySet()
        for index, name in enumerate(["Ventura", "Oxnard", "Malibu"]):
            cities.add(self._city(name, index))
        assert cities.names() == ["Ventura", "Oxnard", "Malibu"]
        assert [c.name for c in cities] == ["Ventura", "Oxnard", "Malibu"]

    def test_city_requires_name(self) -> None:
        assert City.from_feature(city_feature(1, None, None)) is None
        assert City.from_feature(city_feature(1, "   ", None)) is None

    def test_city_name_is_trimmed(self) -> None:
        city = City.from_feature(city_feature(1, " Malibu ", None))
        assert city is not None
        assert city.name == "Malibu"


class TestPlaceQuery:
    def test_requires_categories(self) -> None:
        extent = Extent(0, 0, 1, 1, WEB_MERCATOR)
        with pytest.raises(ModelValidationError):
            PlaceQuery(category_ids=(), extent=extent)

    def test_rejects_unknown_icon_format(self) -> None:
        extent = Extent(0, 0, 1, 1, WEB_MERCATOR)
        with pytest.raises(ModelValidationError):
            PlaceQuery(category_ids=("x",), extent=extent, icon_format="gif")


class TestPlaceSummary:
    def test_from_dict(self) -> None:
        summary = PlaceSummary.from_dict(
            {
                "placeId": "abc",
                "location": {"x": -119.29, "y": 34.28},
                "categories": [{"categoryId": "4d4b", "label": "Park"}, {"label": "Beach"}],
                "name": "Surfers Point",
                "icon": {"url": "https://static/icon.png"},
            }
        )
        assert summary.place_id == "abc"
        assert summary.category_label == "Park"
        assert summary.icon_url == "https://static/icon.png"
        assert summary.location.spatial_reference == WGS84
        assert summary.location.shape.x == pytest.approx(-119.29)

    def test_missing_optional_fields(self) -> None:
        summary = PlaceSummary.from_dict({"placeId": "abc", "location": {"x": 0, "y": 0}})
        assert summary.category_label == ""
        assert summary.icon_url == ""

    @pytest.mark.parametrize(
        "data",
        [
            {"location": {"x": 0, "y": 0}},
            {"placeId": "abc"},
            {"placeId": "abc", "location": {"x": 0}},
        ],
    )
    def test_missing_required_fields(self, data: dict[str, object]) -> None:
        with pytest.raises(ModelValidationError):
            PlaceSummary.from_dict(data)


class TestPlaceDetail:
    def test_from_response(self) -> None:
        detail = PlaceDetail.from_response(
            "abc",
            {"placeDetails": {"placeId": "abc", "name": "Surfers Point", "address": {"streetAddress": "1 Shore Dr"}}},
        )
        assert detail.name == "Surfers Point"
        assert detail.street_address == "1 Shore Dr"

    def test_missing_address_is_empty(self) -> None:
        detail = PlaceDetail.from_response("abc", {"placeDetails": {"name": "Park"}})
        assert detail.street_address == ""
        assert detail.place_id == "abc"

    def test_missing_place_details(self) -> None:
        with pytest.raises(ModelValidationError):
            PlaceDetail.from_response("abc", {})


class TestEnrichedPlace:
    def _summary(self, name: str = "") -> PlaceSummary:
        return PlaceSummary(
            place_id="abc",
            location=Geometry(shape=Point(-119.0, 34.0), spatial_reference=WGS84),
            icon_url="https://static/icon.png",
            category_label="Park",
            name=name,
        )

    def test_merge(self) -> None:
        place = EnrichedPlace.merge(self._summary(), PlaceDetail("abc", "Surfers Point", "1 Shore Dr"))
        assert place.model_dump() == {
            "place_id": "abc",
            "name": "Surfers Point",
            "street_address": "1 Shore Dr",
            "category": "Park",
            "icon_url": "https://static/icon.png",
            "x": -119.0,
            "y": 34.0,
            "wkid": 4326,
        }

    def test_detail_name_falls_back_to_summary(self) -> None:
        place = EnrichedPlace.merge(self._summary("Summary Name"), PlaceDetail("abc", ""))
        assert place.name == "Summary Name"

    def test_is_frozen(self) -> None:
        place = EnrichedPlace(place_id="abc")
        with pytest.raises(ValidationError):
            place.name = "x"  # type: ignore[misc]


class TestSessionOutcome:
    def test_new_outcome_is_ignored_idle(self) -> None:
        outcome = SessionOutcome(city_name="Nowhere")
        assert outcome.state is SessionState.IDLE
        assert outcome.ignored

    def test_state_is_last_transition(self) -> None:
        outcome = SessionOutcome(city_name="Ventura", generation=1)
        outcome.transitions.extend([SessionState.VALIDATING, SessionState.QUERYING])
        assert outcome.state is SessionState.QUERYING
        assert not outcome.ignored
