"""
Datamodeller för ruttbyggaren
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class TravelMode(str, Enum):
    """Färdsätt, styr routing-profil och hastighet"""
    WALK = "walk"
    DRIVE = "drive"


class MapLayer(str, Enum):
    STANDARD = "standard"
    SATELLITE = "satellite"


class Difficulty(str, Enum):
    EASY = "Easy"
    MODERATE = "Moderate"
    HARD = "Hard"


@dataclass(frozen=True)
class Waypoint:
    """Representerar en punkt på rutten"""
    latitude: float
    longitude: float
    elevation_feet: float = 0.0


@dataclass(frozen=True)
class RouteResult:
    """Geometri och härledda värden från samma källa"""
    geometry: Tuple[Waypoint, ...]
    distance_miles: float
    elevation_feet: float
    estimated_time_minutes: int
    source: str = "manual"  # "ors", "manual" eller "fallback"
    waypoints: Tuple[Waypoint, ...] = ()  # punkterna resultatet beräknades för


@dataclass(frozen=True)
class Snapshot:
    """Ögonblicksbild för ångra/gör om"""
    waypoints: Tuple[Waypoint, ...]
    geometry: Tuple[Waypoint, ...]
    distance_miles: float
    elevation_feet: float
    estimated_time_minutes: int


@dataclass(frozen=True)
class RouteDraft:
    """Läsbar bild av rutten som byggs"""
    route_name: str = ""
    mode: Optional[TravelMode] = None
    waypoints: Tuple[Waypoint, ...] = ()
    routed_waypoints: Tuple[Waypoint, ...] = ()  # punkterna geometrin beräknades för
    geometry: Tuple[Waypoint, ...] = ()
    distance_miles: float = 0.0
    elevation_feet: float = 0.0
    estimated_time_minutes: int = 0
    manual_mode: bool = False
    is_calculating: bool = False
    save_completed: bool = False
    awaiting_mode_selection: bool = True
    layer: MapLayer = MapLayer.STANDARD
    can_undo: bool = False
    can_redo: bool = False

    def snapshot(self) -> Snapshot:
        return Snapshot(
            waypoints=self.waypoints,
            geometry=self.geometry,
            distance_miles=self.distance_miles,
            elevation_feet=self.elevation_feet,
            estimated_time_minutes=self.estimated_time_minutes,
        )

    def result(self) -> RouteResult:
        """Nuvarande geometri och värden som RouteResult"""
        return RouteResult(
            geometry=self.geometry,
            distance_miles=self.distance_miles,
            elevation_feet=self.elevation_feet,
            estimated_time_minutes=self.estimated_time_minutes,
            waypoints=self.routed_waypoints,
        )


@dataclass(frozen=True)
class RouteRecord:
    """En sparad rutt"""
    name: str
    distance_miles: float
    elevation_feet: float
    difficulty: Difficulty = Difficulty.MODERATE
    mode: TravelMode = TravelMode.WALK
    estimated_time_minutes: int = 0
    waypoints: Tuple[Waypoint, ...] = field(default_factory=tuple)
    geometry: Tuple[Waypoint, ...] = field(default_factory=tuple)
    id: int = 0  # 0 = inte sparad
