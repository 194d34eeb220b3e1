import json

from wayfinder.events import (
    DestinationReached,
    NavigationError,
    OffRoute,
    RouteRecalculated,
    WaypointReached,
)
from wayfinder.models import Route
from wayfinder.planner import RoutePlanner
from wayfinder.session_log import SessionRecorder
from wayfinder.tracker import NavigationTracker

from conftest import SPACING, sample_at


def test_records_events_with_elapsed_time(bus, clock):
    recorder = SessionRecorder(bus, clock=clock)
    route = Route.failure("no route")

    clock.advance(2)
    bus.emit(NavigationError(code="TIMEOUT", message="GPS timeout"))
    clock.advance(1)
    bus.emit(OffRoute(current_position=sample_at(0, 30), original_route=route,
                      distance_from_route=30.0))

    events = recorder.data["events"]
    assert [e["event"] for e in events] == ["NavigationError", "OffRoute"]
    assert [e["elapsed"] for e in events] == [2, 3]
    assert events[0]["data"]["code"] == "TIMEOUT"


def test_summary_of_full_walk(line_graph, quiet_logger, bus, clock):
    recorder = SessionRecorder(bus, options={"arrival_threshold": 3}, clock=clock)
    planner = RoutePlanner(line_graph, logger=quiet_logger)
    tracker = NavigationTracker(bus=bus, logger=quiet_logger, clock=clock)

    result = tracker.start((0.0, 0.0), (4 * SPACING, 0.0), planner)
    recorder.set_route(result.route)
    for meters in range(0, 224, 4):
        clock.advance(1)
        tracker.on_position_sample(sample_at(meters))

    summary = recorder.summary()
    assert summary["outcome"] == "arrived"
    assert summary["waypoints_reached"] == 3
    assert summary["off_route"] == 0
    assert summary["events"]["DestinationReached"] == 1
    assert recorder.data["initial_route"]["nodes"] == ["A", "B", "C", "D", "E"]
    assert recorder.data["config"]["arrival_threshold"] == 3
    assert recorder.data["config"]["waypoint_threshold"] == 10


def test_summary_in_progress(bus, clock):
    recorder = SessionRecorder(bus, clock=clock)
    assert recorder.summary()["outcome"] == "in_progress"
    assert recorder.summary()["events"] == {}


def test_detach_stops_recording(bus, clock):
    recorder = SessionRecorder(bus, clock=clock)
    bus.emit(NavigationError(code="TIMEOUT", message="GPS timeout"))
    recorder.detach()
    bus.emit(NavigationError(code="TIMEOUT", message="GPS timeout"))
    assert len(recorder.data["events"]) == 1


def test_save_writes_valid_json_for_unreachable_routes(tmp_path, bus, clock):
    recorder = SessionRecorder(bus, clock=clock)
    unreachable = Route.failure("start or end node not found")
    recorder.set_route(unreachable)
    bus.emit(RouteRecalculated(route=unreachable))

    path = tmp_path / "session.json"
    recorder.save(str(path))

    data = json.loads(path.read_text())
    assert data["initial_route"]["distance_m"] is None
    assert data["events"][0]["data"]["route"]["distance"] is None
    assert data["summary"]["recalculations"] == 1
    assert data["version"] == 1
