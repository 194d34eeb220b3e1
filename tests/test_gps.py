import json

import pytest

from wayfinder.errors import PositionError
from wayfinder.events import DestinationReached, NavigationError, WaypointReached
from wayfinder.geo import haversine_distance
from wayfinder.gps import GPSPlayback, GPSRecorder, PositionFeed, simulate_walk
from wayfinder.models import PositionSample, Route
from wayfinder.planner import RoutePlanner
from wayfinder.tracker import NavigationTracker, NavState

from conftest import SPACING, sample_at


@pytest.fixture
def route(line_graph, quiet_logger):
    return RoutePlanner(line_graph, logger=quiet_logger).plan("A", "E")


def test_feed_fans_out_to_watchers():
    feed = PositionFeed()
    seen_a, seen_b, errors = [], [], []
    watch_a = feed.watch(seen_a.append, errors.append)
    feed.watch(seen_b.append)

    feed.publish(sample_at(1))
    feed.clear_watch(watch_a)
    feed.publish(sample_at(2))
    feed.fail(PositionError(PositionError.TIMEOUT))

    assert seen_a == [sample_at(1)]
    assert seen_b == [sample_at(1), sample_at(2)]
    assert errors == []
    assert feed.consecutive_failures == 1
    assert feed.get_status() == "GPS: 1 consecutive failures"


def test_feed_status_reports_accuracy():
    feed = PositionFeed()
    feed.publish(sample_at(0, accuracy=4.2))
    assert feed.get_status() == "GPS OK, accuracy 4m"


def test_recorder_and_playback_reproduce_trace(tmp_path, clock):
    path = tmp_path / "trace.json"
    feed = PositionFeed()
    recorder = GPSRecorder(feed, str(path), clock=clock)

    feed.publish(sample_at(0))
    clock.advance(1.5)
    feed.fail(PositionError(PositionError.POSITION_UNAVAILABLE))
    clock.advance(1.5)
    feed.publish(sample_at(4))
    recorder.close()
    feed.publish(sample_at(8))
    recorder.save()

    data = json.loads(path.read_text())
    assert [entry["elapsed"] for entry in data["trace"]] == [0, 1.5, 3.0]
    assert data["trace"][1]["location"] is None
    assert data["trace"][1]["error"] == PositionError.POSITION_UNAVAILABLE

    playback = GPSPlayback(str(path))
    samples, errors = [], []
    playback.watch(samples.append, errors.append)
    played = playback.run(sleep=lambda seconds: None)

    assert played == 3
    assert samples == [sample_at(0), sample_at(4)]
    assert [e.code for e in errors] == [PositionError.POSITION_UNAVAILABLE]
    assert playback.is_finished()


def test_playback_null_location_defaults_to_unavailable():
    playback = GPSPlayback(trace=[{"elapsed": 0, "location": None}])
    errors = []
    playback.watch(lambda sample: None, errors.append)
    assert playback.step()
    assert not playback.step()
    assert errors[0].code == PositionError.POSITION_UNAVAILABLE
    assert playback.get_status() == "Playback: 1 failures (1/1)"


def test_playback_poll_interval_follows_trace_timing():
    trace = [{"elapsed": t, "location": sample_at(t).to_dict()} for t in (0, 2, 4, 30)]
    playback = GPSPlayback(trace=trace, speed=2.0)
    playback.step()
    assert playback.get_poll_interval() == pytest.approx(1.0)
    playback.step()
    playback.step()
    # 26 s gap is clamped
    assert playback.get_poll_interval() == 5.0


def test_playback_stops_when_nobody_watches():
    playback = GPSPlayback.from_samples([sample_at(m) for m in range(0, 40, 4)])
    seen = []

    def on_sample(sample):
        seen.append(sample)
        if len(seen) == 2:
            playback.clear_watch(watch_id)

    watch_id = playback.watch(on_sample)
    sleeps = []
    assert playback.run(sleep=sleeps.append) == 2
    assert len(sleeps) == 2
    assert not playback.is_finished()


def test_simulate_walk_spacing_and_destination(route):
    samples = simulate_walk(route, step=4, accuracy=2, interval=0.5, start_time=10)
    coords = [s.coords for s in samples]

    assert coords[0] == (0.0, 0.0)
    assert coords[-1] == (4 * SPACING, 0.0)
    assert all(haversine_distance(a, b) == pytest.approx(4, abs=0.01)
               for a, b in zip(coords, coords[1:-1]))
    assert [s.timestamp for s in samples[:3]] == [10, 10.5, 11.0]
    assert all(s.accuracy == 2 for s in samples)


def test_simulate_walk_with_offset(route):
    samples = simulate_walk(route, step=10, start_offset=5)
    assert haversine_distance((0.0, 0.0), samples[0].coords) == pytest.approx(5, abs=0.01)


def test_simulate_walk_empty_route():
    assert simulate_walk(Route.failure("no route")) == []


def test_simulated_playback_drives_tracker_to_arrival(route, line_graph, quiet_logger,
                                                      bus, collector, clock):
    planner = RoutePlanner(line_graph, logger=quiet_logger)
    tracker = NavigationTracker(bus=bus, logger=quiet_logger, clock=clock)
    playback = GPSPlayback.from_samples(simulate_walk(route), interval=3.0)

    tracker.start((0.0, 0.0), (4 * SPACING, 0.0), planner, feed=playback)
    playback.run(tracker, sleep=clock.advance)

    assert tracker.state == NavState.ARRIVED
    assert [e.waypoint.node_id for e in collector.of_type(WaypointReached)] == ["B", "C", "D"]
    assert len(collector.of_type(DestinationReached)) == 1
    assert collector.of_type(NavigationError) == []
    assert not playback.watching


def test_position_sample_round_trip():
    sample = PositionSample(latitude=-37.8, longitude=144.9, accuracy=5.0, timestamp=12.5)
    assert PositionSample.from_dict(sample.to_dict()) == sample
