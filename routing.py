"""
Routing-gateway som väljer mellan tjänstens geometri och lokal beräkning
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from config import METERS_PER_MILE
from geodesy import distance, estimate_travel_minutes, manual_result, segment_elevation_gain
from models import RouteResult, TravelMode, Waypoint
from routing_providers import RoutingProvider

logger = logging.getLogger(__name__)


def incremental_fallback(
    waypoints: Sequence[Waypoint],
    previous: Optional[RouteResult],
    mode: Optional[TravelMode]
) -> RouteResult:
    """
    Förläng tidigare geometri med en rak linje till den senaste punkten

    Tidigare hämtad detaljgeometri behålls och distans/höjd adderas till
    de kända totalerna i stället för att räknas om från början. Det gäller
    bara när det tidigare resultatet beräknades för alla punkter utom den
    sista; annars räknas hela rutten om med raka linjer.

    Args:
        waypoints: Alla punkter, den nya sist
        previous: Geometri och värden innan punkten lades till
        mode: Färdsätt

    Returns:
        RouteResult
    """
    waypoints = tuple(waypoints)
    if len(waypoints) < 2 or previous is None or not previous.geometry:
        return manual_result(waypoints, mode)
    if tuple(previous.waypoints) != waypoints[:-1]:
        return manual_result(waypoints, mode)

    last_previous_point = waypoints[-2]
    new_point = waypoints[-1]

    segment_miles = distance(last_previous_point, new_point) / METERS_PER_MILE
    total_distance = previous.distance_miles + segment_miles
    total_elevation = previous.elevation_feet + segment_elevation_gain(last_previous_point, new_point)

    return RouteResult(
        geometry=tuple(previous.geometry) + (new_point,),
        distance_miles=total_distance,
        elevation_feet=total_elevation,
        estimated_time_minutes=estimate_travel_minutes(total_distance, mode),
        source="fallback",
        waypoints=waypoints
    )


class RoutingGateway:
    """Översätter ruttens punkter till ett routing-anrop och tolkar svaret"""

    def __init__(self, provider: Optional[RoutingProvider] = None):
        self.provider = provider

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    def route(
        self,
        waypoints: Sequence[Waypoint],
        mode: Optional[TravelMode],
        previous: Optional[RouteResult] = None
    ) -> RouteResult:
        """
        Beräkna geometri och värden för hela punktlistan

        Kastar aldrig: alla fel blir en lokal beräkning.

        Args:
            waypoints: Alla punkter i ordning
            mode: Färdsätt
            previous: Senaste kända resultat, används vid fel

        Returns:
            RouteResult
        """
        if not self.is_configured:
            return manual_result(waypoints, mode)

        try:
            result = self.provider.get_route(waypoints, mode)
        except Exception as e:
            logger.warning("Routing via %s misslyckades, använder rak linje: %s", self.provider.name, e)
            return incremental_fallback(waypoints, previous, mode)

        if not result.geometry:
            logger.warning("Routing via %s gav tom geometri, använder rak linje", self.provider.name)
            return incremental_fallback(waypoints, previous, mode)

        return replace(result, waypoints=tuple(waypoints))
