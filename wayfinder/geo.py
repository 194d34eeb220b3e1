"""Geographic utility functions.

All points are (lon, lat) pairs in degrees, the order used by GeoJSON.
"""

import math

from .models import Coordinates

EARTH_RADIUS = 6371000  # meters


def haversine_distance(p1: Coordinates, p2: Coordinates) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    lon1, lat1 = p1
    lon2, lat2 = p2

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS * c


def bearing_between(p1: Coordinates, p2: Coordinates) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    lon1, lat1 = p1
    lon2, lat2 = p2
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def point_to_segment_distance(point: Coordinates, seg_start: Coordinates,
                              seg_end: Coordinates) -> float:
    """Distance in meters from a point to the nearest point of a segment.

    The projection treats lon/lat as planar coordinates, which is accurate
    enough over the few hundred meters of a footpath segment. The parameter
    is clamped to [0, 1] so the foot of the perpendicular stays on the segment.
    """
    px, py = point
    x1, y1 = seg_start
    x2, y2 = seg_end

    dx = x2 - x1
    dy = y2 - y1
    if dx == 0 and dy == 0:
        return haversine_distance(point, seg_start)

    t = ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    projection = (x1 + t * dx, y1 + t * dy)

    return haversine_distance(point, projection)


def destination_point(origin: Coordinates, bearing: float, distance: float) -> Coordinates:
    """Point reached by travelling distance meters from origin on a bearing"""
    lon1, lat1 = origin
    delta = distance / EARTH_RADIUS
    theta = math.radians(bearing)
    phi1 = math.radians(lat1)
    lambda1 = math.radians(lon1)

    phi2 = math.asin(math.sin(phi1) * math.cos(delta) +
                     math.cos(phi1) * math.sin(delta) * math.cos(theta))
    lambda2 = lambda1 + math.atan2(math.sin(theta) * math.sin(delta) * math.cos(phi1),
                                   math.cos(delta) - math.sin(phi1) * math.sin(phi2))

    return (math.degrees(lambda2), math.degrees(phi2))


def interpolate(p1: Coordinates, p2: Coordinates, fraction: float) -> Coordinates:
    """Linear interpolation between two points (planar, like the projection above)"""
    return (p1[0] + (p2[0] - p1[0]) * fraction,
            p1[1] + (p2[1] - p1[1]) * fraction)


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to compass direction"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    index = round(bearing / 45) % 8
    return directions[index]


def relative_direction(from_bearing: float, to_bearing: float) -> str:
    """Get relative direction (left, right, straight, etc.)"""
    diff = (to_bearing - from_bearing + 360) % 360

    if diff < 30 or diff > 330:
        return "straight"
    elif 30 <= diff < 60:
        return "slight right"
    elif 60 <= diff < 120:
        return "right"
    elif 120 <= diff < 150:
        return "sharp right"
    elif 150 <= diff < 210:
        return "u-turn"
    elif 210 <= diff < 240:
        return "sharp left"
    elif 240 <= diff < 300:
        return "left"
    else:
        return "slight left"
