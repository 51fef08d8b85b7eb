"""
Ruttbyggaren: punkter, härledd geometri, ångra/gör om och färdsätt
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple, Union

from config import ROUTING_WORKERS
from geodesy import manual_result
from models import MapLayer, RouteDraft, RouteRecord, RouteResult, Snapshot, TravelMode, Waypoint
from persistence import RouteStore, build_route_record, grade_difficulty
from routing import RoutingGateway, incremental_fallback

logger = logging.getLogger(__name__)

DraftListener = Callable[[RouteDraft], None]


class RouteComposer:
    """
    Äger rutten som byggs och räknar om den vid varje ändring

    Muterande operationer ska anropas från en tråd i taget. Routing-anrop
    körs i bakgrunden och varje anrop får ett löpnummer; bara svaret på
    det senaste anropet tillämpas.
    """

    def __init__(
        self,
        store: RouteStore,
        gateway: Optional[RoutingGateway] = None,
        executor: Optional[Executor] = None
    ):
        self._store = store
        self._gateway = gateway or RoutingGateway()
        self._executor = executor
        self._owns_executor = executor is None
        self._state = RouteDraft()
        self._undo_stack: List[Snapshot] = []
        self._redo_stack: List[Snapshot] = []
        self._listeners: List[DraftListener] = []
        self._pending = set()
        self._request_seq = 0
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)

    # ----------------
    # Tillstånd och prenumeration
    # ----------------

    @property
    def state(self) -> RouteDraft:
        with self._lock:
            return self._state

    def subscribe(self, listener: DraftListener) -> Callable[[], None]:
        """
        Registrera en lyssnare som får varje nytt tillstånd

        Lyssnaren anropas direkt med nuvarande tillstånd.

        Returns:
            Funktion som avregistrerar lyssnaren
        """
        with self._lock:
            self._listeners.append(listener)
            state = self._state
        listener(state)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
            state = self._state
        for listener in listeners:
            listener(state)

    # ----------------
    # Kommandon
    # ----------------

    def set_mode(self, mode: Union[TravelMode, str]) -> None:
        """Välj färdsätt; med minst två punkter räknas rutten om"""
        mode = TravelMode(mode)
        with self._lock:
            self._state = replace(self._state, mode=mode, awaiting_mode_selection=False)
            if len(self._state.waypoints) >= 2:
                self._full_recompute()
        self._notify()

    def toggle_manual_mode(self) -> None:
        """Växla mellan raka linjer och routing-tjänsten och räkna om allt"""
        with self._lock:
            self._state = replace(self._state, manual_mode=not self._state.manual_mode)
            if len(self._state.waypoints) >= 2:
                self._full_recompute()
        self._notify()

    def toggle_layer(self) -> None:
        with self._lock:
            if self._state.layer == MapLayer.STANDARD:
                layer = MapLayer.SATELLITE
            else:
                layer = MapLayer.STANDARD
            self._state = replace(self._state, layer=layer)
        self._notify()

    def update_name(self, name: str) -> None:
        with self._lock:
            self._state = replace(self._state, route_name=name)
        self._notify()

    def add_waypoint(self, point: Waypoint) -> None:
        """
        Lägg till en punkt sist i rutten

        Med routing aktiv skickas hela punktlistan till tjänsten; vid fel
        förlängs tidigare geometri med en rak linje.

        Args:
            point: Ny punkt
        """
        with self._lock:
            state = self._state
            settled = self._settled(state)
            if state.waypoints:
                self._undo_stack.append(settled.snapshot())
            self._redo_stack.clear()

            previous = settled.result()
            waypoints = state.waypoints + (point,)
            self._state = replace(
                state,
                waypoints=waypoints,
                can_undo=bool(self._undo_stack),
                can_redo=False,
                save_completed=False
            )

            if self._state.manual_mode or len(waypoints) < 2:
                self._apply(manual_result(waypoints, self._state.mode))
            else:
                self._request_route(waypoints, previous)
        self._notify()

    def undo(self) -> None:
        with self._lock:
            if not self._undo_stack:
                return
            self._redo_stack.append(self._settled(self._state).snapshot())
            self._restore(self._undo_stack.pop())
        self._notify()

    def redo(self) -> None:
        with self._lock:
            if not self._redo_stack:
                return
            self._undo_stack.append(self._settled(self._state).snapshot())
            self._restore(self._redo_stack.pop())
        self._notify()

    def reset(self) -> None:
        """Börja om; bara kartlagret behålls"""
        with self._lock:
            self._undo_stack.clear()
            self._redo_stack.clear()
            self._invalidate_requests()
            self._state = RouteDraft(layer=self._state.layer)
        self._notify()

    def save(self, name: Optional[str] = None) -> Optional[RouteRecord]:
        """
        Spara rutten och börja på en ny med samma färdsätt

        Args:
            name: Ruttnamn, annars används det senast angivna

        Returns:
            Den sparade posten, eller None om namn eller punkter saknas
        """
        with self._lock:
            state = self._state
            if name is not None:
                state = replace(state, route_name=name)
            if not state.route_name.strip() or not state.waypoints:
                return None

            state = self._settled(state)
            difficulty = grade_difficulty(state.distance_miles, state.elevation_feet)
            stored = self._store.insert(build_route_record(state, difficulty))

            self._undo_stack.clear()
            self._redo_stack.clear()
            self._invalidate_requests()
            self._state = RouteDraft(
                mode=state.mode,
                awaiting_mode_selection=False,
                save_completed=True
            )
        self._notify()
        return stored

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Vänta tills utestående routing-anrop är klara"""
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # ----------------
    # Omräkning
    # ----------------

    def _full_recompute(self):
        waypoints = self._state.waypoints
        if self._state.manual_mode:
            self._apply(manual_result(waypoints, self._state.mode))
        else:
            self._request_route(waypoints, self._prefix_result(waypoints))

    def _prefix_result(self, waypoints: Tuple[Waypoint, ...]) -> Optional[RouteResult]:
        # Resultatet innan sista punkten lades till, om det finns kvar i historiken
        if self._undo_stack and self._undo_stack[-1].waypoints == waypoints[:-1]:
            snapshot = self._undo_stack[-1]
            return RouteResult(
                geometry=snapshot.geometry,
                distance_miles=snapshot.distance_miles,
                elevation_feet=snapshot.elevation_feet,
                estimated_time_minutes=snapshot.estimated_time_minutes,
                waypoints=snapshot.waypoints
            )
        return None

    def _request_route(self, waypoints: Sequence[Waypoint], previous: Optional[RouteResult]):
        if not self._gateway.is_configured:
            self._apply(manual_result(waypoints, self._state.mode))
            return

        self._invalidate_requests()
        seq = self._request_seq
        mode = self._state.mode
        self._state = replace(self._state, is_calculating=True)

        future = self._get_executor().submit(self._gateway.route, waypoints, mode, previous)
        self._pending.add(future)
        future.add_done_callback(partial(self._on_route_done, seq, tuple(waypoints), previous, mode))

    def _on_route_done(
        self,
        seq: int,
        waypoints: Tuple[Waypoint, ...],
        previous: Optional[RouteResult],
        mode: Optional[TravelMode],
        future: Future
    ):
        try:
            result = future.result()
        except Exception as e:
            logger.warning("Routing-anrop avbröts, använder rak linje: %s", e)
            result = incremental_fallback(waypoints, previous, mode)

        with self._lock:
            self._pending.discard(future)
            self._idle.notify_all()
            if seq != self._request_seq:
                logger.debug("Ignorerar inaktuellt routing-svar %d (senaste %d)", seq, self._request_seq)
                return
            self._apply(result)
        self._notify()

    def _apply(self, result: RouteResult):
        # Nytt manuellt resultat gör pågående anrop inaktuella
        self._invalidate_requests()
        self._state = replace(
            self._state,
            routed_waypoints=tuple(result.waypoints),
            geometry=tuple(result.geometry),
            distance_miles=result.distance_miles,
            elevation_feet=result.elevation_feet,
            estimated_time_minutes=result.estimated_time_minutes,
            is_calculating=False,
            save_completed=False
        )

    def _restore(self, snapshot: Snapshot):
        self._invalidate_requests()
        self._state = replace(
            self._state,
            waypoints=snapshot.waypoints,
            routed_waypoints=snapshot.waypoints,
            geometry=snapshot.geometry,
            distance_miles=snapshot.distance_miles,
            elevation_feet=snapshot.elevation_feet,
            estimated_time_minutes=snapshot.estimated_time_minutes,
            can_undo=bool(self._undo_stack),
            can_redo=bool(self._redo_stack),
            is_calculating=False,
            save_completed=False
        )

    def _settled(self, state: RouteDraft) -> RouteDraft:
        """
        Tillstånd där geometri och värden hör till ruttens punkter

        Medan ett routing-anrop pågår hör geometrin till en äldre punktlista;
        då räknas raka linjer över de aktuella punkterna.
        """
        if state.routed_waypoints == state.waypoints:
            return state
        result = manual_result(state.waypoints, state.mode)
        return replace(
            state,
            routed_waypoints=result.waypoints,
            geometry=result.geometry,
            distance_miles=result.distance_miles,
            elevation_feet=result.elevation_feet,
            estimated_time_minutes=result.estimated_time_minutes
        )

    def _invalidate_requests(self):
        self._request_seq += 1

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=ROUTING_WORKERS, thread_name_prefix="routing")
            self._owns_executor = True
        return self._executor
