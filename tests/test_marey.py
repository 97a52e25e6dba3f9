"""Behavior tests for projecting trips onto the Marey diagram."""

import pytest

from conftest import make_trip
from thetrains.config import EngineConfig
from thetrains.marey import (
    BREAK,
    MareyPath,
    MareyProjector,
    StationHeader,
    anchor_y,
    project_trip,
    split_runs,
)
from thetrains.scales import LinearScale
from thetrains.schedule import Schedule


@pytest.fixture
def header(raw_header):
    return StationHeader(raw_header)


@pytest.fixture
def x_scale():
    return LinearScale(domain=(0, 20), range=(0, 200))


@pytest.fixture
def y_scale():
    return LinearScale(domain=(0, 400), range=(0, 400), clamp=True)


class TestLinearScale:
    """Test the linear scales used for both axes."""

    def test_maps_and_inverts(self):
        """Should map the domain onto the range and back."""
        scale = LinearScale(domain=(100, 200), range=(15, 115))

        assert scale(150) == pytest.approx(65)
        assert scale.invert(65) == pytest.approx(150)

    def test_clamps_when_requested(self):
        """Should keep out-of-domain times inside the drawing area."""
        scale = LinearScale(domain=(100, 200), range=(15, 115), clamp=True)

        assert scale(0) == 15
        assert scale.invert(1000) == 200

    def test_degenerate_domain(self):
        """Should not divide by zero for a single-valued domain."""
        assert LinearScale(domain=(5, 5), range=(0, 10))(5) == 0


class TestStationHeader:
    """Test the station header lookups."""

    def test_shared_ordinate_resolves_to_last_key(self):
        """Should pick the later key when two lines share an ordinate."""
        header = StationHeader({"X|red": [5], "X|orange": [5], "Y|red": [9]})

        assert header.key_at_ordinate(5) == "X|orange"
        assert header.key_at_ordinate(9) == "Y|red"
        assert header.key_at_ordinate(7) is None


class TestProjectTrip:
    """Test converting stop sequences into diagram points."""

    def test_absolute_projection(self, trip, header, x_scale, y_scale):
        """Should place each stop at its header ordinate and scheduled time."""
        points = project_trip(trip, header, x_scale, y_scale)

        assert points == [(0.0, 0.0), (100.0, 100.0), (200.0, 200.0)]

    def test_relative_projection_starts_at_origin(self, header, x_scale, y_scale):
        """Should shift a lined-up trip so it starts at (0, 0) whatever its start time."""
        trip = make_trip("t2", [("C", 300), ("B", 400)])

        points = project_trip(trip, header, x_scale, y_scale, relative=True)

        assert points[0] == pytest.approx((0.0, 0.0))
        assert points[1] == pytest.approx((-100.0, 100.0))

    def test_missing_header_entry_becomes_break(self, trip, raw_header, x_scale, y_scale):
        """Should emit a break for a stop without an ordinate and keep the rest of the trip."""
        del raw_header["B|red"]
        header = StationHeader(raw_header)

        points = project_trip(trip, header, x_scale, y_scale)

        assert points == [(0.0, 0.0), BREAK, (200.0, 200.0)]

    def test_relative_origin_skips_leading_break(self, raw_header, x_scale, y_scale):
        """Should use the first projectable stop as origin when the first stop is malformed."""
        del raw_header["A|red"]
        header = StationHeader(raw_header)
        trip = make_trip("t", [("A", 0), ("B", 100), ("C", 200)])

        points = project_trip(trip, header, x_scale, y_scale, relative=True)

        assert points[0] is BREAK
        assert points[1] == pytest.approx((0.0, 0.0))

    def test_gap_in_source_data_breaks_path(self, header, x_scale, y_scale):
        """Should lift the pen where the source data had a missing stop."""
        trip = make_trip("t", [("A", 0), ("B", 100), ("C", 200)])
        trip.gap_before = frozenset({2})

        points = project_trip(trip, header, x_scale, y_scale)

        assert points == [(0.0, 0.0), (100.0, 100.0), BREAK, (200.0, 200.0)]

    def test_projection_is_idempotent(self, trip, header, x_scale, y_scale):
        """Should return the same points when called twice with the same inputs."""
        first = project_trip(trip, header, x_scale, y_scale, relative=True)
        second = project_trip(trip, header, x_scale, y_scale, relative=True)

        assert first == second


class TestAnchor:
    """Test the memoized baseline of each trip."""

    def test_anchor_is_computed_once(self, trip, y_scale):
        """Should keep the first computed anchor across later scales."""
        first = anchor_y(trip, y_scale)
        later = anchor_y(trip, LinearScale(domain=(0, 400), range=(50, 90)))

        assert first == later == trip.orig_y


class TestSplitRuns:
    """Test splitting a point sequence at breaks."""

    def test_breaks_separate_strokes(self):
        """Should produce one stroke per contiguous run of points."""
        path = MareyPath("t", "red", 0.0, [(0, 0), (1, 1), BREAK, BREAK, (2, 2), BREAK])

        assert path.segments() == [[(0, 0), (1, 1)], [(2, 2)]]

    def test_no_points(self):
        """Should return no strokes for an empty sequence."""
        assert split_runs([]) == []


class TestMareyProjector:
    """Test full diagram renders on width changes."""

    @pytest.fixture
    def projector(self, models):
        network, schedule, header, _ = models
        return MareyProjector(header, schedule, network, EngineConfig())

    def test_render_builds_paths_for_every_trip(self, projector):
        """Should project every trip and size the scales from the layout."""
        frame = projector.render(1200)

        assert [p.trip_id for p in frame.paths] == ["t1", "t2"]
        assert frame.layout.width == 930
        assert frame.layout.height == 2900
        assert frame.x_scale.range == (0.0, 930)
        assert frame.y_scale(0) == 15

    def test_same_rounded_width_is_skipped(self, projector):
        """Should not re-render when the rounded width has not changed."""
        assert projector.render(1200) is not None
        assert projector.render(1200.3) is None
        assert projector.render(800) is not None

    def test_anchor_stays_fixed_across_resizes(self, projector):
        """Should keep each trip's baseline when the width changes."""
        first = {p.trip_id: p.anchor_y for p in projector.render(1200).paths}
        second = {p.trip_id: p.anchor_y for p in projector.render(640).paths}

        assert first == second

    def test_lined_up_paths_start_at_zero(self, projector):
        """Should start every lined-up path at y = 0."""
        frame = projector.render(1200)

        for path in frame.lined_up_paths:
            assert path.points[0][1] == pytest.approx(0.0)

    def test_station_at_pointer(self, projector):
        """Should find the station label under the pointer."""
        frame = projector.render(1200)

        assert projector.station_at(frame.x_scale(10)) == "B|red"

    def test_time_at_pointer(self, projector):
        """Should invert the time scale only inside the drawing area."""
        frame = projector.render(1200)

        assert projector.time_at(100, 15) == pytest.approx(0.0)
        assert projector.time_at(100, frame.layout.height) == pytest.approx(400.0)
        assert projector.time_at(-1, 100) is None

    def test_station_labels(self, projector):
        """Should produce one label per header entry with the station name."""
        frame = projector.render(1200)

        assert [(label.key, label.name) for label in frame.labels] == [
            ("A|red", "Alpha"),
            ("B|red", "Bravo"),
            ("C|red", "Charlie"),
        ]
        assert not any(label.is_end for label in frame.labels)


def test_schedule_fixture_shape(models):
    """Should load the shared fixture into two trips."""
    _, schedule, _, report = models

    assert isinstance(schedule, Schedule)
    assert len(schedule) == 2
    assert report.ok
