#!/usr/bin/env python3
"""
Wayfinder - Walking directions through a cemetery footpath network

Usage:
    python -m wayfinder FEATURES [--from LON,LAT] [--to LON,LAT] [options]

Without --from the walk starts at the node nearest the middle of the grounds;
without --to it ends at the node farthest from the start.

Options:
    --blocks FILE        Add access points for burial blocks listed in FILE
    --preview            Print turn-by-turn directions without walking
    --gpx FILE           Export the route to a GPX file
    --playback FILE      Navigate along a recorded GPS trace
    --speed FACTOR       Playback speed multiplier (default: 1.0)
    --simulate           Navigate along a simulated walk of the route
    --record FILE        Record the GPS trace used for navigation
    --session-log FILE   Save every navigation event to a JSON file
    --check FILE         Plan and validate routes to every target in FILE
    --report             Print graph statistics
    --log FILE           Log file path (default: wayfinder_TIMESTAMP.log)
    --quiet              Only print summaries
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from .app import Wayfinder, parse_coordinates
from .gps import GPSPlayback


def _location(value: str):
    # Block names are resolved once the graph is built
    try:
        return parse_coordinates(value)
    except ValueError:
        return value


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Wayfinder - Walking directions through a cemetery footpath network"
    )
    parser.add_argument("features", metavar="FEATURES",
                        help="Feature list (JSON array or GeoJSON FeatureCollection)")
    parser.add_argument("--from", dest="start", type=_location, metavar="LON,LAT",
                        help="Starting location")
    parser.add_argument("--to", dest="end", type=_location, metavar="LON,LAT",
                        help="Destination, as coordinates or a block name")
    parser.add_argument("--blocks", metavar="FILE",
                        help="Burial blocks to connect to the nearest hub")
    parser.add_argument("--preview", action="store_true",
                        help="Preview the calculated route without walking")
    parser.add_argument("--gpx", metavar="FILE",
                        help="Export route to GPX file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--simulate", action="store_true",
                        help="Walk the planned route with simulated GPS")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--session-log", metavar="FILE",
                        help="Save navigation events to JSON file")
    parser.add_argument("--check", metavar="FILE",
                        help="Validate routes from --from to each target in FILE")
    parser.add_argument("--report", action="store_true",
                        help="Print graph statistics")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: wayfinder_TIMESTAMP.log)")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress log output on stdout")
    parser.add_argument("--arrival", type=float, metavar="METERS",
                        help="Arrival radius in meters")
    parser.add_argument("--waypoint", type=float, metavar="METERS",
                        help="Waypoint radius in meters")
    parser.add_argument("--off-route", type=float, metavar="METERS",
                        help="Off-route distance in meters")
    args = parser.parse_args(argv)

    walking = args.playback or args.simulate
    if args.playback and args.simulate:
        parser.error("--playback and --simulate cannot be used together")
    if args.check and args.start is None:
        parser.error("--check requires --from")
    if args.playback and not Path(args.playback).exists():
        print(f"Playback file not found: {args.playback}")
        sys.exit(1)

    log_path = args.log
    if not log_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"wayfinder_{timestamp}.log"

    options = {}
    if args.arrival is not None:
        options["arrival_threshold"] = args.arrival
    if args.waypoint is not None:
        options["waypoint_threshold"] = args.waypoint
    if args.off_route is not None:
        options["off_route_threshold"] = args.off_route

    app = Wayfinder.from_files(args.features, args.blocks, log_path=log_path,
                               quiet=args.quiet, options=options)
    try:
        if (args.preview or args.gpx or walking) and (args.start is None or args.end is None):
            args.start, args.end = app.demo_endpoints(args.start, args.end)
            print(f"Demo walk from {args.start} to {args.end}")

        if args.report:
            app.report()

        if args.check:
            with open(args.check) as f:
                targets = json.load(f)
            report = app.check_routes(args.start, targets)
            if report["summary"]["failed"]:
                sys.exit(1)

        if args.preview or args.gpx:
            route = app.preview(args.start, args.end) if args.preview else app.plan(args.start, args.end)
            if not route.success:
                sys.exit(1)
            if args.gpx:
                app.export_gpx(route, args.gpx)

        if walking:
            feed = GPSPlayback(args.playback, args.speed) if args.playback else None
            if feed is None:
                feed = app.simulated_feed(args.start, args.end, speed=args.speed)
            summary = app.navigate(args.start, args.end, feed=feed,
                                   record_path=args.record,
                                   session_log_path=args.session_log)
            if summary["outcome"] != "arrived":
                sys.exit(1)
    finally:
        app.close()


if __name__ == "__main__":
    main()
