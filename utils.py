"""
Hjälpfunktioner för ruttbyggaren
"""

import gpxpy
import gpxpy.gpx

from config import FEET_PER_METER
from models import RouteRecord


def create_gpx(route: RouteRecord) -> str:
    """
    Skapa GPX-fil från en sparad rutt

    Args:
        route: RouteRecord-objekt

    Returns:
        GPX som sträng
    """
    gpx = gpxpy.gpx.GPX()

    # Lägg till metadata
    gpx.creator = "Ruttbyggaren"
    gpx.description = f"{route.distance_miles:.2f} miles, {route.difficulty.value}"

    # Skapa track
    gpx_track = gpxpy.gpx.GPXTrack()
    gpx_track.name = route.name
    gpx_track.type = route.mode.value
    gpx.tracks.append(gpx_track)

    # Skapa segment
    gpx_segment = gpxpy.gpx.GPXTrackSegment()
    gpx_track.segments.append(gpx_segment)

    # Geometrin om den finns, annars de utplacerade punkterna
    points = route.geometry or route.waypoints
    for point in points:
        gpx_point = gpxpy.gpx.GPXTrackPoint(
            point.latitude,
            point.longitude,
            elevation=point.elevation_feet / FEET_PER_METER
        )
        gpx_segment.points.append(gpx_point)

    # Lägg till statistik som beskrivning
    gpx_track.description = (
        f"Höjdökning: {route.elevation_feet:.0f} ft, "
        f"Uppskattad tid: {format_time(route.estimated_time_minutes)}"
    )

    return gpx.to_xml()


def format_time(minutes: float) -> str:
    """
    Formatera tid från minuter till sträng

    Args:
        minutes: Antal minuter

    Returns:
        "H:MM" från en timme och uppåt, annars "M min"
    """
    hours = int(minutes // 60)
    mins = int(minutes % 60)

    if hours > 0:
        return f"{hours}:{mins:02d}"
    return f"{mins} min"
