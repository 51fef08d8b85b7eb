"""
Filtrering och statistik för sparade rutter
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from config import ELEVATION_RANGES, ELEVATION_RANGE_MAX
from models import Difficulty, RouteRecord, TravelMode


@dataclass(frozen=True)
class RouteStatistics:
    """Sammanställning av sparade rutter"""
    total_walk_miles: float = 0.0
    total_drive_miles: float = 0.0
    average_elevation_gain: float = 0.0
    route_count: int = 0


def elevation_range(elevation_feet: float) -> str:
    """
    Klassa höjdökning i intervall

    Returns:
        "Flat", "Low", "Medium" eller "High"
    """
    for name, upper in ELEVATION_RANGES:
        if elevation_feet < upper:
            return name
    return ELEVATION_RANGE_MAX


def filter_routes(
    routes: Iterable[RouteRecord],
    search: str = "",
    modes: Optional[Set[TravelMode]] = None,
    difficulties: Optional[Set[Difficulty]] = None,
    elevation_ranges: Optional[Set[str]] = None
) -> List[RouteRecord]:
    """
    Filtrera rutter på namn, färdsätt, svårighetsgrad och höjdintervall

    Tomma eller saknade urval begränsar inte.

    Args:
        routes: Rutter att filtrera
        search: Del av namnet, skiftlägesokänsligt
        modes: Tillåtna färdsätt
        difficulties: Tillåtna svårighetsgrader
        elevation_ranges: Tillåtna höjdintervall

    Returns:
        Rutter som matchar, i ursprunglig ordning
    """
    query = search.strip().lower()
    matches = []
    for route in routes:
        if query and query not in route.name.lower():
            continue
        if modes and route.mode not in modes:
            continue
        if difficulties and route.difficulty not in difficulties:
            continue
        if elevation_ranges and elevation_range(route.elevation_feet) not in elevation_ranges:
            continue
        matches.append(route)
    return matches


def route_statistics(routes: Iterable[RouteRecord]) -> RouteStatistics:
    routes = list(routes)
    if not routes:
        return RouteStatistics()

    elevations = [r.elevation_feet for r in routes]
    return RouteStatistics(
        total_walk_miles=sum(r.distance_miles for r in routes if r.mode == TravelMode.WALK),
        total_drive_miles=sum(r.distance_miles for r in routes if r.mode == TravelMode.DRIVE),
        average_elevation_gain=sum(elevations) / len(elevations),
        route_count=len(routes)
    )
