"""
Koppling mellan ruttbyggaren och lagringen av färdiga rutter
"""

import itertools
import logging
import threading
from dataclasses import replace
from typing import Callable, List

from config import DIFFICULTY_ELEVATION_DIVISOR, HARD_THRESHOLD, MODERATE_THRESHOLD
from models import Difficulty, RouteDraft, RouteRecord, TravelMode

logger = logging.getLogger(__name__)

RoutesListener = Callable[[List[RouteRecord]], None]


def grade_difficulty(distance_miles: float, elevation_feet: float) -> Difficulty:
    """
    Svårighetsgrad från distans och höjdökning

    Args:
        distance_miles: Distans i miles
        elevation_feet: Höjdökning i fot

    Returns:
        Difficulty
    """
    score = distance_miles + elevation_feet / DIFFICULTY_ELEVATION_DIVISOR
    if score > HARD_THRESHOLD:
        return Difficulty.HARD
    if score > MODERATE_THRESHOLD:
        return Difficulty.MODERATE
    return Difficulty.EASY


def build_route_record(draft: RouteDraft, difficulty: Difficulty) -> RouteRecord:
    """Ny, osparad post (id 0) från ruttens nuvarande värden"""
    return RouteRecord(
        id=0,
        name=draft.route_name,
        distance_miles=draft.distance_miles,
        elevation_feet=draft.elevation_feet,
        difficulty=difficulty,
        mode=draft.mode or TravelMode.WALK,
        estimated_time_minutes=draft.estimated_time_minutes,
        waypoints=tuple(draft.waypoints),
        geometry=tuple(draft.geometry),
    )


class RouteStore:
    """Basklass för lagring av rutter"""

    def observe_all(self, listener: RoutesListener) -> Callable[[], None]:
        raise NotImplementedError

    def list_all(self) -> List[RouteRecord]:
        raise NotImplementedError

    def insert(self, route: RouteRecord) -> RouteRecord:
        raise NotImplementedError

    def delete(self, route: RouteRecord) -> None:
        raise NotImplementedError

    def clear_all(self) -> None:
        raise NotImplementedError


class InMemoryRouteStore(RouteStore):
    """
    Rutter i minnet, nyaste först

    Lyssnare anropas med hela listan direkt vid registrering och efter
    varje ändring.
    """

    def __init__(self):
        self._routes = {}
        self._ids = itertools.count(1)
        self._listeners = []
        self._lock = threading.Lock()

    def observe_all(self, listener: RoutesListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)
            routes = self._sorted()
        listener(routes)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def list_all(self) -> List[RouteRecord]:
        with self._lock:
            return self._sorted()

    def insert(self, route: RouteRecord) -> RouteRecord:
        with self._lock:
            # Befintligt id ersätts
            stored = route if route.id else replace(route, id=next(self._ids))
            self._routes[stored.id] = stored
        logger.info("Sparade rutt %d: %s", stored.id, stored.name)
        self._notify()
        return stored

    def delete(self, route: RouteRecord) -> None:
        with self._lock:
            removed = self._routes.pop(route.id, None)
        if removed is not None:
            self._notify()

    def clear_all(self) -> None:
        with self._lock:
            self._routes.clear()
        self._notify()

    def _sorted(self) -> List[RouteRecord]:
        return sorted(self._routes.values(), key=lambda r: r.id, reverse=True)

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
            routes = self._sorted()
        for listener in listeners:
            listener(routes)
