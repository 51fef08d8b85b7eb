"""
Routing-providers: OpenRouteService
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

import requests

from config import (
    ORS_BASE_URL,
    ORS_PROFILES,
    REQUEST_TIMEOUT,
    METERS_PER_MILE,
    FEET_PER_METER,
)
from geodesy import elevation_gain, estimate_travel_minutes
from models import RouteResult, TravelMode, Waypoint

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Tjänsten svarade med fel eller med ett svar som inte går att tolka"""
    pass


class RoutingProvider:
    """Basklass för routing-providers"""

    name = "base"

    def get_route(
        self,
        waypoints: Sequence[Waypoint],
        mode: Optional[TravelMode]
    ) -> RouteResult:
        raise NotImplementedError


def profile_for(mode: Optional[TravelMode]) -> str:
    """ORS-profil för ett färdsätt, promenad om inget är valt"""
    key = mode.value if mode is not None else TravelMode.WALK.value
    return ORS_PROFILES.get(key, ORS_PROFILES[TravelMode.WALK.value])


class OpenRouteServiceProvider(RoutingProvider):
    """OpenRouteService routing provider"""

    name = "ors"

    def __init__(
        self,
        api_key: str,
        base_url: str = ORS_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_request(self, waypoints: Sequence[Waypoint]) -> dict:
        """Koordinater skickas som [lon, lat] i ruttordning"""
        return {
            "coordinates": [[p.longitude, p.latitude] for p in waypoints],
            "elevation": True,
            "instructions": False
        }

    def get_route(
        self,
        waypoints: Sequence[Waypoint],
        mode: Optional[TravelMode]
    ) -> RouteResult:
        """
        Hämta rutt från OpenRouteService

        Args:
            waypoints: Alla punkter i ordning
            mode: Färdsätt

        Returns:
            RouteResult med tjänstens geometri

        Raises:
            RoutingError: felsvar eller oläsbart svar
            requests.RequestException: nätverksfel eller timeout
        """
        profile = profile_for(mode)
        url = f"{self.base_url}/v2/directions/{profile}/geojson"
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json"
        }

        response = self.session.post(
            url,
            json=self.build_request(waypoints),
            headers=headers,
            timeout=self.timeout
        )
        try:
            data = response.json()
        except ValueError as e:
            raise RoutingError(f"ORS svarade inte med JSON (HTTP {response.status_code})") from e

        if response.status_code != 200 or (isinstance(data, dict) and data.get("error")):
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else error
            raise RoutingError(f"ORS-fel (HTTP {response.status_code}): {message or 'okänt fel'}")

        return replace(self._parse_ors_response(data, mode), waypoints=tuple(waypoints))

    def _parse_ors_response(self, data: dict, mode: Optional[TravelMode]) -> RouteResult:
        """Parsa ORS-respons till RouteResult"""

        if not isinstance(data, dict) or not data.get("features"):
            raise RoutingError("ORS-svaret saknar features")

        feature = data["features"][0]
        geometry = feature.get("geometry") or {}
        properties = feature.get("properties") or {}
        summary = properties.get("summary")
        coordinates = geometry.get("coordinates")

        if summary is None or not coordinates:
            raise RoutingError("ORS-svaret saknar geometri eller sammanfattning")

        points = []
        for coord in coordinates:
            if len(coord) < 2:
                raise RoutingError(f"Ogiltig koordinat i ORS-svaret: {coord!r}")
            elevation_m = coord[2] if len(coord) > 2 else 0.0
            points.append(Waypoint(
                latitude=coord[1],
                longitude=coord[0],
                elevation_feet=elevation_m * FEET_PER_METER
            ))

        # Tjänstens totaldistans gäller, inte summan av de returnerade punkterna
        distance_miles = (summary.get("distance") or 0.0) / METERS_PER_MILE

        logger.debug("ORS returnerade %d punkter, %.2f miles", len(points), distance_miles)

        return RouteResult(
            geometry=tuple(points),
            distance_miles=distance_miles,
            elevation_feet=elevation_gain(points),
            estimated_time_minutes=estimate_travel_minutes(distance_miles, mode),
            source=self.name
        )
