"""
Kartfunktioner för visualisering
"""

import folium
from typing import List, Optional, Sequence

from config import DEFAULT_ZOOM, SATELLITE_TILES, SATELLITE_ATTRIBUTION
from models import MapLayer, RouteDraft, RouteRecord, Waypoint

# Olika färger beroende på källa
ROUTE_COLORS = {
    "draft": "blue",
    "saved": "purple",
}


def _base_map(center: List[float], layer: MapLayer) -> folium.Map:
    if layer == MapLayer.SATELLITE:
        return folium.Map(
            location=center,
            zoom_start=DEFAULT_ZOOM,
            tiles=SATELLITE_TILES,
            attr=SATELLITE_ATTRIBUTION,
            control_scale=True
        )
    return folium.Map(location=center, zoom_start=DEFAULT_ZOOM, control_scale=True)


def _fit(m: folium.Map, points: Sequence[Waypoint]):
    # Anpassa zoom för att visa hela rutten
    if len(points) > 1:
        bounds = [[min(p.latitude for p in points), min(p.longitude for p in points)],
                  [max(p.latitude for p in points), max(p.longitude for p in points)]]
        m.fit_bounds(bounds)


def create_draft_map(center: List[float], draft: RouteDraft) -> folium.Map:
    """
    Skapa Folium-karta med punkter och linje för rutten som byggs

    Args:
        center: Kartans centrum [lat, lon]
        draft: Ruttens nuvarande tillstånd

    Returns:
        Folium Map-objekt
    """
    m = _base_map(center, draft.layer)

    for index, point in enumerate(draft.waypoints):
        if index == 0:
            icon = folium.Icon(color="green", icon="play")
        elif index == len(draft.waypoints) - 1:
            icon = folium.Icon(color="red", icon="stop")
        else:
            icon = folium.Icon(color="blue", icon="circle")
        folium.Marker(
            [point.latitude, point.longitude],
            popup=f"Punkt {index + 1}",
            icon=icon
        ).add_to(m)

    if len(draft.geometry) > 1:
        folium.PolyLine(
            [[p.latitude, p.longitude] for p in draft.geometry],
            color=ROUTE_COLORS["draft"],
            weight=4,
            opacity=0.8,
            dash_array="8" if draft.manual_mode else None,
            popup=f"{draft.distance_miles:.2f} miles"
        ).add_to(m)

    return m


def create_routes_map(
    center: List[float],
    routes: Sequence[RouteRecord],
    layer: MapLayer = MapLayer.STANDARD,
    selected: Optional[RouteRecord] = None
) -> folium.Map:
    """Karta med sparade rutter, den valda rutten anpassar zoomen"""
    m = _base_map(center, layer)

    for route in routes:
        points = route.geometry or route.waypoints
        if len(points) < 2:
            continue
        folium.PolyLine(
            [[p.latitude, p.longitude] for p in points],
            color=ROUTE_COLORS["saved"],
            weight=6 if selected is not None and route.id == selected.id else 3,
            opacity=0.8,
            popup=f"{route.name}: {route.distance_miles:.2f} miles ({route.difficulty.value})"
        ).add_to(m)

    if selected is not None:
        _fit(m, selected.geometry or selected.waypoints)

    return m
