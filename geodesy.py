"""
Geodetiska beräkningar: distans, höjdökning och restid
"""

import math
from typing import Optional, Sequence

from config import (
    EARTH_RADIUS_M,
    METERS_PER_MILE,
    WALK_SPEED_MPH,
    DRIVE_SPEED_MPH,
)
from models import RouteResult, TravelMode, Waypoint


def distance(a: Waypoint, b: Waypoint) -> float:
    """
    Storcirkelavstånd mellan två punkter (Haversine formula)

    Args:
        a: Första punkten
        b: Andra punkten

    Returns:
        Distans i meter
    """
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def path_distance_miles(points: Sequence[Waypoint]) -> float:
    """
    Total distans längs en lista av punkter

    Args:
        points: Punkter i ordning

    Returns:
        Distans i miles, 0 för färre än två punkter
    """
    if len(points) < 2:
        return 0.0

    total_meters = 0.0
    for first, second in zip(points, points[1:]):
        total_meters += distance(first, second)

    return total_meters / METERS_PER_MILE


def segment_elevation_gain(a: Waypoint, b: Waypoint) -> float:
    """Höjdökning för ett enskilt segment, aldrig negativ"""
    return max(0.0, b.elevation_feet - a.elevation_feet)


def elevation_gain(points: Sequence[Waypoint]) -> float:
    """
    Beräkna total höjdökning

    Nedförsbackar minskar aldrig summan.

    Args:
        points: Punkter i ordning

    Returns:
        Total höjdökning i fot
    """
    if len(points) < 2:
        return 0.0

    return sum(segment_elevation_gain(first, second) for first, second in zip(points, points[1:]))


def travel_speed_mph(mode: Optional[TravelMode]) -> float:
    # Inget valt färdsätt räknas som promenad
    if mode == TravelMode.DRIVE:
        return DRIVE_SPEED_MPH
    return WALK_SPEED_MPH


def estimate_travel_minutes(distance_miles: float, mode: Optional[TravelMode]) -> int:
    """
    Uppskatta restid

    Args:
        distance_miles: Distans i miles
        mode: Färdsätt, None ger promenadhastighet

    Returns:
        Hela minuter (trunkerat)
    """
    if distance_miles == 0:
        return 0
    return int(distance_miles / travel_speed_mph(mode) * 60)


def manual_result(waypoints: Sequence[Waypoint], mode: Optional[TravelMode]) -> RouteResult:
    """Raka linjer mellan punkterna, allt beräknat från samma lista"""
    geometry = tuple(waypoints)
    distance_miles = path_distance_miles(geometry)
    return RouteResult(
        geometry=geometry,
        distance_miles=distance_miles,
        elevation_feet=elevation_gain(geometry),
        estimated_time_minutes=estimate_travel_minutes(distance_miles, mode),
        source="manual",
        waypoints=geometry,
    )
