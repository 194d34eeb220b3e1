"""Configuration settings for Wayfinder."""

CONFIG = {
    # Proximity thresholds
    "arrival_threshold": 5,  # meters - destination reached within this radius
    "waypoint_threshold": 10,  # meters - advance to the next waypoint
    "off_route_threshold": 20,  # meters - perpendicular distance to the active segment
    "min_progress_distance": 2,  # meters - smaller moves are treated as GPS jitter
    # Timing
    "evaluation_interval": 0.5,  # seconds - minimum spacing between navigation ticks
    "position_timeout": 5,  # seconds - no sample for this long raises a TIMEOUT error
    "gps_poll_interval": 1,  # seconds - playback pacing when the trace has no timing
    # Walking model
    "walking_speed": 1.4,  # meters per second
    "near_instruction_distance": 20,  # meters - switch to "In Xm, head ..." phrasing
    "history_limit": 100,  # position samples kept for diagnostics
    # Graph building
    "hub_ids": ["central_hub", "phase2_hub", "phase3_hub", "bone_hub", "child_hub"],
    "default_hub": "central_hub",
    # Simulated walks
    "simulation_step": 4,  # meters between generated samples
    "simulation_accuracy": 3,  # meters reported on generated samples
}
