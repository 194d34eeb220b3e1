"""Position feeds: recording, playback and simulated walks."""

import json
import time
from datetime import datetime
from typing import Callable, Optional

from .config import CONFIG
from .errors import PositionError
from .geo import haversine_distance, interpolate
from .models import PositionSample, Route


class PositionFeed:
    """Fan-out of position samples to watchers.

    Mirrors the watchPosition/clearWatch shape of device location APIs so the
    tracker can subscribe to a live source, a recording or a simulation alike.
    """

    def __init__(self):
        self._watchers: dict[int, tuple[Callable, Optional[Callable]]] = {}
        self._next_id = 1
        self.last_location: Optional[PositionSample] = None
        self.consecutive_failures = 0

    @property
    def watching(self) -> bool:
        return bool(self._watchers)

    def watch(self, on_sample: Callable, on_error: Optional[Callable] = None) -> int:
        watch_id = self._next_id
        self._next_id += 1
        self._watchers[watch_id] = (on_sample, on_error)
        return watch_id

    def clear_watch(self, watch_id: int):
        self._watchers.pop(watch_id, None)

    def publish(self, sample: PositionSample):
        self.last_location = sample
        self.consecutive_failures = 0
        for on_sample, _ in list(self._watchers.values()):
            on_sample(sample)

    def fail(self, error: PositionError):
        self.consecutive_failures += 1
        for _, on_error in list(self._watchers.values()):
            if on_error:
                on_error(error)

    def get_status(self) -> str:
        """Get GPS status string"""
        if self.consecutive_failures == 0:
            acc = f", accuracy {self.last_location.accuracy:.0f}m" if self.last_location and self.last_location.accuracy else ""
            return f"GPS OK{acc}"
        else:
            return f"GPS: {self.consecutive_failures} consecutive failures"


class GPSRecorder:
    """Records every sample and error passing through a feed"""

    def __init__(self, feed: PositionFeed, record_path: str,
                 clock: Callable[[], float] = time.monotonic):
        self.feed = feed
        self.record_path = record_path
        self.clock = clock
        self.trace: list[dict] = []
        self.start_time = clock()
        self._watch_id = feed.watch(self._on_sample, self._on_error)

    def _on_sample(self, sample: PositionSample):
        self.trace.append({
            "elapsed": self.clock() - self.start_time,
            "location": sample.to_dict(),
            "status": self.feed.get_status(),
        })

    def _on_error(self, error: PositionError):
        # Record failed fixes too, so playback reproduces them
        self.trace.append({
            "elapsed": self.clock() - self.start_time,
            "location": None,
            "error": error.code,
            "status": self.feed.get_status(),
        })

    def close(self):
        self.feed.clear_watch(self._watch_id)

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class GPSPlayback(PositionFeed):
    """Plays back a recorded GPS trace into its watchers"""

    def __init__(self, playback_path: Optional[str] = None, speed: float = 1.0,
                 trace: Optional[list[dict]] = None):
        super().__init__()
        self.playback_path = playback_path
        self.speed = speed
        self.index = 0

        if trace is not None:
            self.trace = trace
        else:
            with open(playback_path) as f:
                data = json.load(f)
                self.trace = data["trace"]
            print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    @classmethod
    def from_samples(cls, samples: list[PositionSample], interval: float = 1.0,
                     speed: float = 1.0) -> "GPSPlayback":
        trace = [{"elapsed": i * interval, "location": s.to_dict()}
                 for i, s in enumerate(samples)]
        return cls(speed=speed, trace=trace)

    def step(self) -> bool:
        """Deliver the next trace entry. Returns False once the trace is exhausted."""
        if self.index >= len(self.trace):
            return False

        entry = self.trace[self.index]
        self.index += 1

        if entry.get("location"):
            self.publish(PositionSample.from_dict(entry["location"]))
        else:
            self.fail(PositionError(entry.get("error") or PositionError.POSITION_UNAVAILABLE))
        return True

    def run(self, tracker=None, sleep: Callable[[float], None] = time.sleep) -> int:
        """Play the trace until it ends or nobody is watching. Returns entries played."""
        played = 0
        while self.watching and self.step():
            played += 1
            if tracker is not None:
                tracker.poll()
            if not self.is_finished():
                sleep(self.get_poll_interval())
        return played

    def get_poll_interval(self) -> float:
        """Get the interval to wait between polls based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return CONFIG["gps_poll_interval"] / self.speed

        # Calculate time delta between current and previous entry
        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        delta = curr_elapsed - prev_elapsed

        # Apply speed multiplier and clamp to reasonable range
        interval = delta / self.speed
        return max(0.0, min(interval, 5.0))

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        else:
            return f"Playback: {self.consecutive_failures} failures ({progress})"


def simulate_walk(route: Route, step: Optional[float] = None, start_offset: float = 0.0,
                  accuracy: Optional[float] = None, interval: float = 1.0,
                  start_time: float = 0.0) -> list[PositionSample]:
    """Samples spaced step meters apart along a route's waypoints.

    start_offset skips that many meters from the first waypoint. The last
    sample sits exactly on the destination.
    """
    step = step or CONFIG["simulation_step"]
    accuracy = CONFIG["simulation_accuracy"] if accuracy is None else accuracy
    coords = [w.coordinates for w in route.path]
    if not coords:
        return []

    points = []
    along = start_offset
    walked = 0.0
    for a, b in zip(coords, coords[1:]):
        length = haversine_distance(a, b)
        while along <= walked + length and length > 0:
            points.append(interpolate(a, b, (along - walked) / length))
            along += step
        walked += length
    if not points or points[-1] != coords[-1]:
        points.append(coords[-1])

    return [
        PositionSample(latitude=lat, longitude=lon, accuracy=accuracy,
                       timestamp=start_time + i * interval)
        for i, (lon, lat) in enumerate(points)
    ]
