"""Behavior tests for turning raw JSON structures into models."""

import json

import pytest

from thetrains.data_cache import (
    HEADER_FILE,
    NETWORK_FILE,
    TRIPS_FILE,
    DataCache,
    LoadReport,
    build_models,
    parse_network,
    parse_trips,
)


class TestParseNetwork:
    """Test loading nodes and links."""

    def test_links_by_index_or_object(self, raw_network):
        """Should resolve d3-style index and object endpoints to station ids."""
        raw_network["links"] = [
            {"source": 0, "target": 1, "line": "red"},
            {"source": {"id": "B"}, "target": "C", "line": "red"},
        ]

        network = parse_network(raw_network)

        assert [(l.source_station_id, l.target_station_id) for l in network.segments_for_line("red")] == [
            ("A", "B"),
            ("B", "C"),
        ]

    def test_link_to_unknown_station_is_dropped(self, raw_network):
        """Should drop the bad link, keep the rest and record the error."""
        raw_network["links"].append({"source": "C", "target": "Z", "line": "red"})
        report = LoadReport()

        network = parse_network(raw_network, report)

        assert len(network.segments_for_line("red")) == 2
        assert report.skipped_links == 1
        assert "Z" in report.errors[0]

    def test_bad_node_is_recorded(self, raw_network):
        """Should skip a node without coordinates."""
        raw_network["nodes"].append({"id": "D", "name": "Delta"})
        report = LoadReport()

        network = parse_network(raw_network, report)

        assert not network.has_station("D")
        assert not report.ok

    def test_link_indices_count_skipped_nodes(self, raw_network):
        """Should resolve node indices against the file order even when a node is skipped."""
        raw_network["nodes"] = [
            {"id": "A", "name": "Alpha", "x": 0, "y": 0},
            {"id": "X", "name": "Broken"},
            {"id": "C", "name": "Charlie", "x": 10, "y": 10},
            {"id": "D", "name": "Delta", "x": 20, "y": 10},
        ]
        raw_network["links"] = [
            {"source": 0, "target": 2, "line": "red"},
            {"source": 2, "target": 3, "line": "red"},
            {"source": 1, "target": 2, "line": "red"},
        ]
        report = LoadReport()

        network = parse_network(raw_network, report)

        assert [(l.source_station_id, l.target_station_id) for l in network.segments_for_line("red")] == [
            ("A", "C"),
            ("C", "D"),
        ]
        assert report.skipped_links == 1
        assert "X" in report.errors[-1]


class TestParseTrips:
    """Test loading trips."""

    def test_derives_span_from_stops(self, models):
        """Should take begin and end from the first and last stop."""
        _, schedule, _, _ = models
        trip = schedule.get("t1")

        assert (trip.begin, trip.end) == (0.0, 200.0)
        assert [s.key for s in trip.stops] == ["A|red", "B|red", "C|red"]

    def test_unknown_station_drops_only_that_trip(self, raw_network, raw_trips):
        """Should abort loading the bad trip and keep the others."""
        raw_trips["bad"] = {"line": "red", "stops": [{"stop": "A", "time": 0}, {"stop": "Z", "time": 10}]}
        report = LoadReport()
        network = parse_network(raw_network)

        schedule = parse_trips(raw_trips, network, report)

        assert schedule.get("bad") is None
        assert len(schedule) == 2
        assert report.skipped_trips == 1

    def test_non_monotonic_trip_is_rejected(self, raw_network, raw_trips):
        """Should reject a trip whose stop times go backwards."""
        raw_trips["back"] = {"line": "red", "stops": [{"stop": "A", "time": 10}, {"stop": "B", "time": 5}]}
        report = LoadReport()

        schedule = parse_trips(raw_trips, parse_network(raw_network), report)

        assert schedule.get("back") is None
        assert "non-monotonic" in report.errors[0]

    def test_null_stops_become_gaps(self, raw_network):
        """Should drop null stops and remember where the path must break."""
        raw = {
            "g": {
                "line": "red",
                "stops": [None, {"stop": "A", "time": 0}, None, {"stop": "C", "time": 200}, None],
            }
        }

        trip = parse_trips(raw, parse_network(raw_network)).get("g")

        assert [s.station_id for s in trip.stops] == ["A", "C"]
        assert trip.gap_before == frozenset({1})

    def test_accepts_list_of_trips(self, raw_network):
        """Should accept trips as a list carrying their own ids."""
        raw = [{"trip": "x", "line": "red", "stops": [{"stop": "A", "time": 0}]}]

        schedule = parse_trips(raw, parse_network(raw_network))

        assert schedule.get("x") is not None

    def test_non_mapping_trip_row_is_recorded(self, raw_network):
        """Should skip a list entry that is not an object instead of aborting the load."""
        raw = ["garbage", {"trip": "x", "line": "red", "stops": [{"stop": "A", "time": 0}]}]
        report = LoadReport()

        schedule = parse_trips(raw, parse_network(raw_network), report)

        assert [t.trip_id for t in schedule] == ["x"]
        assert report.skipped_trips == 1
        assert report.errors[0].startswith("trip 0")


class TestDataCache:
    """Test reading the JSON files from a data directory."""

    def test_load_all(self, tmp_path, raw_network, raw_trips, raw_header):
        """Should read the three data files into raw structures."""
        (tmp_path / NETWORK_FILE).write_text(json.dumps(raw_network), encoding="utf-8")
        (tmp_path / TRIPS_FILE).write_text(json.dumps(raw_trips), encoding="utf-8")
        (tmp_path / HEADER_FILE).write_text(json.dumps(raw_header), encoding="utf-8")
        cache = DataCache(tmp_path)

        cache.load_all()
        network, schedule, header, report = build_models(cache.raw_network, cache.raw_trips, cache.raw_header)

        assert len(network.stations) == 3
        assert len(schedule) == 2
        assert header.ordinate("C|red") == 20.0
        assert report.ok

    def test_missing_file_raises(self, tmp_path):
        """Should raise FileNotFoundError naming the missing file."""
        with pytest.raises(FileNotFoundError, match=NETWORK_FILE):
            DataCache(tmp_path).load_all()
