"""Navigation session recording for field-test analysis."""

import json
import math
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Optional

from .config import CONFIG
from .events import EventBus, NavEvent
from .models import Route


def _finite(value):
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(v) for v in value]
    return value


class SessionRecorder:
    """Records every event of a navigation session for later inspection."""

    def __init__(self, bus: EventBus, options: Optional[dict] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.bus = bus
        self.clock = clock
        self.start_time = clock()
        self.data = {
            "version": 1,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "config": {**CONFIG, **(options or {})},
            "initial_route": None,
            "events": [],
        }
        bus.on_any(self.record)

    def set_route(self, route: Route):
        self.data["initial_route"] = {
            "distance_m": round(route.distance, 1) if route.success else None,
            "duration_min": route.duration,
            "nodes": route.node_ids,
        }

    def record(self, event: NavEvent):
        self.data["events"].append({
            "elapsed": round(self.clock() - self.start_time, 3),
            "event": type(event).__name__,
            "data": event.to_dict(),
        })

    def detach(self):
        self.bus.off_any(self.record)

    def summary(self) -> dict:
        """Event counts by type plus the final outcome"""
        counts = Counter(e["event"] for e in self.data["events"])
        outcome = "in_progress"
        for entry in reversed(self.data["events"]):
            if entry["event"] == "DestinationReached":
                outcome = "arrived"
                break
        return {
            "events": dict(counts),
            "waypoints_reached": counts.get("WaypointReached", 0),
            "off_route": counts.get("OffRoute", 0),
            "recalculations": counts.get("RouteRecalculated", 0),
            "errors": counts.get("NavigationError", 0),
            "outcome": outcome,
        }

    def save(self, path: str):
        """Write session log to JSON file."""
        with open(path, "w") as f:
            json.dump(_finite({**self.data, "summary": self.summary()}), f, indent=2)
