"""
Huvudapplikation för Streamlit ruttbyggare
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor

import streamlit as st
from streamlit_folium import st_folium

from config import DEFAULT_CENTER, ORS_API_KEY_NAME, REQUEST_TIMEOUT, ROUTING_WORKERS
from composer import RouteComposer
from library import filter_routes, route_statistics
from map_utils import create_draft_map, create_routes_map
from models import Difficulty, TravelMode, Waypoint
from persistence import InMemoryRouteStore
from routing import RoutingGateway
from routing_providers import OpenRouteServiceProvider
from utils import create_gpx, format_time

logger = logging.getLogger(__name__)

MODE_LABELS = {
    TravelMode.WALK: "Promenad",
    TravelMode.DRIVE: "Bil",
}


def get_api_key() -> str:
    """ORS-nyckel från Streamlit secrets eller miljövariabel"""
    try:
        if ORS_API_KEY_NAME in st.secrets:
            return st.secrets[ORS_API_KEY_NAME]
    except FileNotFoundError:
        pass
    return os.environ.get(ORS_API_KEY_NAME, "")


@st.cache_resource
def get_routing_executor() -> ThreadPoolExecutor:
    """En trådpool för routing-anrop, delad av alla sessioner i processen"""
    return ThreadPoolExecutor(max_workers=ROUTING_WORKERS, thread_name_prefix="routing")


def create_composer(store: InMemoryRouteStore) -> RouteComposer:
    api_key = get_api_key()
    provider = OpenRouteServiceProvider(api_key) if api_key else None
    if provider is None:
        logger.info("Ingen ORS-nyckel konfigurerad, rutter ritas med raka linjer")
    return RouteComposer(store, RoutingGateway(provider), executor=get_routing_executor())


def init_session_state():
    """Initiera session state"""
    if "store" not in st.session_state:
        st.session_state.store = InMemoryRouteStore()
    if "composer" not in st.session_state:
        st.session_state.composer = create_composer(st.session_state.store)
    if "last_click" not in st.session_state:
        st.session_state.last_click = None


def render_mode_selection(composer: RouteComposer):
    st.subheader("Välj färdsätt")
    col_walk, col_drive = st.columns(2)
    with col_walk:
        if st.button(MODE_LABELS[TravelMode.WALK], type="primary", use_container_width=True):
            composer.set_mode(TravelMode.WALK)
            st.rerun()
    with col_drive:
        if st.button(MODE_LABELS[TravelMode.DRIVE], use_container_width=True):
            composer.set_mode(TravelMode.DRIVE)
            st.rerun()


def render_builder(composer: RouteComposer):
    """Karta, verktyg och sammanfattning för rutten som byggs"""
    draft = composer.state

    with st.sidebar:
        st.header("Verktyg")
        st.caption(f"Färdsätt: {MODE_LABELS.get(draft.mode, '-')}")

        col_undo, col_redo = st.columns(2)
        with col_undo:
            if st.button("Ångra", disabled=not draft.can_undo, use_container_width=True):
                composer.undo()
                st.rerun()
        with col_redo:
            if st.button("Gör om", disabled=not draft.can_redo, use_container_width=True):
                composer.redo()
                st.rerun()

        manual = st.toggle("Raka linjer", value=draft.manual_mode)
        if manual != draft.manual_mode:
            with st.spinner("Beräknar rutt..."):
                composer.toggle_manual_mode()
                composer.wait_idle(REQUEST_TIMEOUT)
            st.rerun()

        if st.button("Byt kartlager", use_container_width=True):
            composer.toggle_layer()
            st.rerun()

        if st.button("Ny rutt", type="secondary", use_container_width=True):
            composer.reset()
            st.rerun()

    col1, col2 = st.columns([2, 1])

    with col1:
        st.subheader("Karta")
        center = [draft.waypoints[-1].latitude, draft.waypoints[-1].longitude] if draft.waypoints else DEFAULT_CENTER
        result = st_folium(create_draft_map(center, draft), key="builder_map", width=None, height=500)

        click = (result or {}).get("last_clicked")
        if click and click != st.session_state.last_click:
            st.session_state.last_click = click
            with st.spinner("Beräknar rutt..."):
                composer.add_waypoint(Waypoint(latitude=click["lat"], longitude=click["lng"]))
                composer.wait_idle(REQUEST_TIMEOUT)
            st.rerun()

    with col2:
        st.subheader("Sammanfattning")
        st.metric("Distans", f"{draft.distance_miles:.2f} miles")
        st.metric("Höjdökning", f"{draft.elevation_feet:.0f} ft")
        st.metric("Uppskattad tid", format_time(draft.estimated_time_minutes))
        if draft.is_calculating:
            st.info("Beräknar rutt...")

        st.divider()

        name = st.text_input("Ruttnamn", value=draft.route_name)
        if name != draft.route_name:
            composer.update_name(name)

        if st.button("Spara rutt", type="primary", use_container_width=True,
                     disabled=not name.strip() or not draft.waypoints):
            saved = composer.save(name)
            if saved:
                st.rerun()

        if draft.save_completed:
            st.success("Rutten sparades")


def render_saved_routes(store: InMemoryRouteStore, composer: RouteComposer):
    """Sparade rutter med filter, statistik och GPX-export"""
    routes = store.list_all()
    if not routes:
        st.info("Inga sparade rutter ännu")
        return

    stats = route_statistics(routes)
    col_walk, col_drive, col_elev = st.columns(3)
    col_walk.metric("Promenad totalt", f"{stats.total_walk_miles:.1f} miles")
    col_drive.metric("Bil totalt", f"{stats.total_drive_miles:.1f} miles")
    col_elev.metric("Snitt höjdökning", f"{stats.average_elevation_gain:.0f} ft")

    search = st.text_input("Sök rutt", key="route_search")
    modes = st.multiselect("Färdsätt", list(TravelMode), format_func=lambda m: MODE_LABELS[m])
    difficulties = st.multiselect("Svårighetsgrad", list(Difficulty), format_func=lambda d: d.value)
    ranges = st.multiselect("Höjdintervall", ["Flat", "Low", "Medium", "High"])

    visible = filter_routes(routes, search, set(modes), set(difficulties), set(ranges))
    if not visible:
        st.warning("Inga rutter matchar filtret")
        return

    selected = st.selectbox("Rutt", visible, format_func=lambda r: f"{r.name} ({r.distance_miles:.2f} miles)")
    center = DEFAULT_CENTER
    if selected.waypoints:
        center = [selected.waypoints[0].latitude, selected.waypoints[0].longitude]
    st_folium(create_routes_map(center, visible, composer.state.layer, selected),
              key="routes_map", width=None, height=400)

    col_gpx, col_delete = st.columns(2)
    with col_gpx:
        st.download_button(
            label="Ladda ner GPX",
            data=create_gpx(selected),
            file_name=f"{selected.name.replace(' ', '_')}.gpx",
            mime="application/gpx+xml",
            use_container_width=True
        )
    with col_delete:
        if st.button("Ta bort", use_container_width=True):
            store.delete(selected)
            st.rerun()


def main():
    """Huvudfunktion för Streamlit-appen"""
    st.set_page_config(
        page_title="Ruttbyggare",
        page_icon="🗺️",
        layout="wide"
    )
    logging.basicConfig(level=logging.INFO)

    init_session_state()
    composer = st.session_state.composer

    st.title("Ruttbyggare")
    st.markdown("Klicka på kartan för att lägga ut punkter längs din rutt")

    tab_build, tab_routes = st.tabs(["Skapa", "Sparade rutter"])

    with tab_build:
        if composer.state.awaiting_mode_selection:
            render_mode_selection(composer)
        else:
            render_builder(composer)

    with tab_routes:
        render_saved_routes(st.session_state.store, composer)


if __name__ == "__main__":
    main()
