"""
Tests for data models.
"""

import pytest

from transloader.exceptions import InvalidFilterError
from transloader.models import DatastreamDef, PropertyFilter, StationMetadata


class TestStationMetadata:
    """Test station metadata behaviour."""

    @pytest.fixture
    def previous(self):
        return StationMetadata(
            id="606830",
            latitude=51.08,
            longitude=-114.13,
            timezone_offset="-06:00",
            remote_thing_link="http://sta.example/v1.0/Things(1)",
            remote_location_link="http://sta.example/v1.0/Locations(2)",
            datastreams=[
                DatastreamDef(
                    "BP_Avg",
                    "Station Pressure",
                    remote_sensor_link="http://sta.example/v1.0/Sensors(3)",
                    remote_observed_property_link="http://sta.example/v1.0/ObservedProperties(4)",
                    remote_datastream_link="http://sta.example/v1.0/Datastreams(5)",
                ),
                DatastreamDef(
                    "Retired_Avg",
                    "Retired_Avg",
                    remote_datastream_link="http://sta.example/v1.0/Datastreams(6)",
                ),
            ],
        )

    def test_is_empty(self):
        assert StationMetadata(id="X").is_empty
        assert not StationMetadata(id="X", datastreams=[DatastreamDef("a", "a")]).is_empty

    def test_carry_forward_keeps_links(self, previous):
        """Test that a re-downloaded record keeps every known link."""
        fresh = StationMetadata(
            id="606830",
            datastreams=[
                DatastreamDef("BP_Avg", "Station Pressure"),
                DatastreamDef("AirTC_Avg", "Air Temperature"),
            ],
        )

        fresh.carry_forward(previous)

        assert fresh.remote_thing_link == previous.remote_thing_link
        assert fresh.remote_location_link == previous.remote_location_link
        bp = fresh.datastream("BP_Avg")
        assert bp.remote_sensor_link.endswith("Sensors(3)")
        assert bp.remote_datastream_link.endswith("Datastreams(5)")
        assert fresh.datastream("AirTC_Avg").remote_datastream_link is None
        assert fresh.datastream("Retired_Avg") is not None

    def test_carry_forward_keeps_hand_entered_fields(self, previous):
        fresh = StationMetadata(id="606830", name="From Header")
        fresh.carry_forward(previous)

        assert fresh.name == "From Header"
        assert fresh.latitude == 51.08
        assert fresh.timezone_offset == "-06:00"

    def test_from_dict_ignores_unknown_keys(self, previous):
        data = previous.to_dict()
        data["legacy"] = True
        data["datastreams"][0]["legacy"] = True

        assert StationMetadata.from_dict(data) == previous


class TestPropertyFilter:
    """Test allow/block filtering."""

    def test_no_filter_accepts_everything(self):
        assert PropertyFilter().select(["A", "B", "C"]) == {"A", "B", "C"}

    def test_allowed(self):
        assert PropertyFilter.from_lists(allowed=["A"]).select(["A", "B", "C"]) == {"A"}

    def test_blocked(self):
        assert PropertyFilter.from_lists(blocked=["A"]).select(["A", "B", "C"]) == {"B", "C"}

    def test_empty_allow_list_accepts_nothing(self):
        assert PropertyFilter.from_lists(allowed=[]).select(["A", "B"]) == set()

    def test_both_lists_rejected(self):
        with pytest.raises(InvalidFilterError):
            PropertyFilter.from_lists(allowed=["A"], blocked=["B"])
