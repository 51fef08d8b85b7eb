"""
Tester för ruttbyggaren: historik, omräkning, routing och sparande
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from composer import RouteComposer
from conftest import DeferredExecutor, FakeProvider, FailingProvider, detailed_result
from geodesy import distance
from models import Difficulty, MapLayer, TravelMode, Waypoint
from routing import RoutingGateway


def add_all(composer, points):
    for point in points:
        composer.add_waypoint(point)


class TestModeSelection:

    def test_starts_awaiting_mode(self, manual_composer):
        state = manual_composer.state
        assert state.awaiting_mode_selection
        assert state.mode is None

    def test_set_mode_accepts_strings(self, manual_composer):
        manual_composer.set_mode("drive")
        assert manual_composer.state.mode == TravelMode.DRIVE
        assert not manual_composer.state.awaiting_mode_selection

    def test_unset_mode_uses_walk_speed(self, manual_composer):
        add_all(manual_composer, [Waypoint(0.0, 0.0), Waypoint(0.0, 0.1)])
        state = manual_composer.state
        assert state.estimated_time_minutes == int(state.distance_miles / 3.0 * 60)

    def test_changing_mode_recomputes_time(self, manual_composer):
        manual_composer.set_mode(TravelMode.WALK)
        add_all(manual_composer, [Waypoint(0.0, 0.0), Waypoint(0.0, 0.1)])
        walk_minutes = manual_composer.state.estimated_time_minutes

        manual_composer.set_mode(TravelMode.DRIVE)

        assert manual_composer.state.estimated_time_minutes == int(manual_composer.state.distance_miles / 30.0 * 60)
        assert manual_composer.state.estimated_time_minutes < walk_minutes


class TestManualComposition:

    def test_equator_scenario(self, manual_composer):
        manual_composer.set_mode(TravelMode.WALK)
        manual_composer.toggle_manual_mode()
        add_all(manual_composer, [Waypoint(0.0, 0.0, 0.0), Waypoint(0.0, 1.0, 0.0)])

        state = manual_composer.state
        assert state.distance_miles == pytest.approx(69.09, abs=0.1)
        assert state.elevation_feet == 0.0
        assert 1380 <= state.estimated_time_minutes <= 1384
        assert state.geometry == state.waypoints

    def test_first_waypoint_has_no_distance(self, manual_composer):
        manual_composer.add_waypoint(Waypoint(59.0, 18.0))
        state = manual_composer.state
        assert state.geometry == (Waypoint(59.0, 18.0),)
        assert state.distance_miles == 0.0
        assert state.estimated_time_minutes == 0
        assert not state.can_undo


class TestHistory:

    def test_can_undo_after_second_waypoint(self, manual_composer, points):
        manual_composer.add_waypoint(points[0])
        assert not manual_composer.state.can_undo
        manual_composer.add_waypoint(points[1])
        assert manual_composer.state.can_undo
        manual_composer.add_waypoint(points[2])

        manual_composer.undo()

        assert manual_composer.state.waypoints == tuple(points[:2])
        assert manual_composer.state.can_redo

    def test_undo_then_redo_round_trip(self, manual_composer, points):
        add_all(manual_composer, points)
        before = manual_composer.state

        manual_composer.undo()
        manual_composer.redo()

        assert manual_composer.state == before

    def test_undo_restores_derived_values(self, manual_composer, points):
        add_all(manual_composer, points[:3])
        after_three = manual_composer.state
        manual_composer.add_waypoint(points[3])

        manual_composer.undo()

        state = manual_composer.state
        assert state.geometry == after_three.geometry
        assert state.distance_miles == after_three.distance_miles
        assert state.elevation_feet == after_three.elevation_feet

    def test_empty_stacks_are_noops(self, manual_composer, points):
        manual_composer.add_waypoint(points[0])
        before = manual_composer.state
        notified = []
        manual_composer.subscribe(notified.append)

        manual_composer.undo()
        manual_composer.redo()

        assert manual_composer.state == before
        assert len(notified) == 1

    def test_new_waypoint_clears_redo(self, manual_composer, points):
        add_all(manual_composer, points[:3])
        manual_composer.undo()
        manual_composer.add_waypoint(points[3])

        assert not manual_composer.state.can_redo
        manual_composer.redo()
        assert manual_composer.state.waypoints == (points[0], points[1], points[3])

    def test_undo_keeps_mode_and_manual_flag(self, manual_composer, points):
        manual_composer.set_mode(TravelMode.DRIVE)
        add_all(manual_composer, points[:3])
        manual_composer.toggle_manual_mode()

        manual_composer.undo()

        assert manual_composer.state.mode == TravelMode.DRIVE
        assert manual_composer.state.manual_mode


class TestRemoteRouting:

    def test_uses_remote_geometry(self, make_composer, points):
        detailed = [points[0], Waypoint(0.0, 0.005, 30.0), points[1]]
        provider = FakeProvider([detailed_result(detailed, 0.9, 30.0, 18)])
        composer = make_composer(provider)
        composer.set_mode(TravelMode.WALK)

        add_all(composer, points[:2])

        state = composer.state
        assert state.geometry == tuple(detailed)
        assert state.distance_miles == 0.9
        assert state.waypoints == tuple(points[:2])
        assert not state.is_calculating
        assert provider.calls == [(tuple(points[:2]), TravelMode.WALK)]

    def test_failure_on_third_waypoint_extends_geometry(self, make_composer, points):
        detailed = [points[0], Waypoint(0.0, 0.004, 10.0), Waypoint(0.0, 0.008, 40.0), points[1]]
        provider = FakeProvider([detailed_result(detailed, 0.75, 50.0, 15), RuntimeError("boom")])
        composer = make_composer(provider)
        composer.set_mode(TravelMode.WALK)
        add_all(composer, points[:2])

        composer.add_waypoint(points[2])

        state = composer.state
        assert len(state.geometry) == len(detailed) + 1
        assert state.geometry[-1] == points[2]
        expected = 0.75 + distance(points[1], points[2]) / 1609.34
        assert state.distance_miles == pytest.approx(expected)
        assert state.elevation_feet == pytest.approx(50.0)
        assert not state.is_calculating

    def test_always_failing_matches_manual_distance(self, make_composer, manual_composer, points):
        failing = make_composer(FailingProvider())
        manual_composer.toggle_manual_mode()

        add_all(failing, points)
        add_all(manual_composer, points)

        assert failing.state.distance_miles == pytest.approx(manual_composer.state.distance_miles)
        assert failing.state.elevation_feet == pytest.approx(manual_composer.state.elevation_feet)
        assert failing.state.geometry == manual_composer.state.geometry

    def test_toggle_to_automatic_requests_whole_route(self, make_composer, points):
        provider = FakeProvider([detailed_result(points, 2.0, 110.0, 40)])
        composer = make_composer(provider)
        composer.toggle_manual_mode()
        add_all(composer, points)
        assert provider.calls == []

        composer.toggle_manual_mode()

        assert provider.calls == [(tuple(points), None)]
        assert composer.state.distance_miles == 2.0

    def test_toggle_failure_uses_history_prefix(self, make_composer, points):
        composer = make_composer(FailingProvider())
        composer.toggle_manual_mode()
        add_all(composer, points)
        manual_distance = composer.state.distance_miles

        composer.toggle_manual_mode()

        assert composer.state.geometry == tuple(points)
        assert composer.state.distance_miles == pytest.approx(manual_distance)

    def test_toggle_to_manual_recomputes_from_waypoints(self, make_composer, points):
        provider = FakeProvider([detailed_result(points[:1] * 5, 9.0), detailed_result(points[:1] * 7, 9.5)])
        composer = make_composer(provider)
        add_all(composer, points[:3])

        composer.toggle_manual_mode()

        assert composer.state.geometry == tuple(points[:3])
        assert composer.state.distance_miles < 9.0


class TestRequestOrdering:

    def test_latest_request_wins(self, make_composer, points):
        executor = DeferredExecutor()
        first = detailed_result(points[:2], 1.0)
        second = detailed_result(points[:3], 2.0)
        responses = {tuple(points[:2]): first, tuple(points[:3]): second}
        composer = make_composer(FakeProvider(responses), executor)

        add_all(composer, points[:3])
        assert composer.state.is_calculating
        assert len(executor.tasks) == 2

        executor.run(1)
        executor.run(0)

        assert composer.state.distance_miles == 2.0
        assert composer.state.geometry == tuple(points[:3])
        assert not composer.state.is_calculating

    def test_undo_discards_in_flight_response(self, make_composer, points):
        executor = DeferredExecutor()
        composer = make_composer(FakeProvider([detailed_result(points[:3], 5.0)]), executor)
        composer.toggle_manual_mode()
        add_all(composer, points[:2])
        composer.toggle_manual_mode()
        executor.tasks.clear()
        after_two = composer.state

        composer.add_waypoint(points[2])
        composer.undo()
        executor.run(0)

        assert composer.state.distance_miles == after_two.distance_miles
        assert composer.state.waypoints == tuple(points[:2])
        assert not composer.state.is_calculating

    def test_overlapping_failures_match_manual_mode(self, make_composer, manual_composer, points):
        """Punkter som läggs till medan anrop pågår försvinner inte ur geometrin"""
        executor = DeferredExecutor()
        composer = make_composer(FailingProvider(), executor)
        manual_composer.toggle_manual_mode()

        add_all(composer, points[:3])
        add_all(manual_composer, points[:3])
        for index in range(len(executor.tasks)):
            executor.run(index)

        state = composer.state
        assert state.geometry == manual_composer.state.geometry
        assert state.distance_miles == pytest.approx(manual_composer.state.distance_miles)
        assert state.elevation_feet == pytest.approx(manual_composer.state.elevation_feet)
        assert not state.is_calculating

    def test_undo_after_overlapping_requests_is_consistent(self, make_composer, points):
        executor = DeferredExecutor()
        composer = make_composer(FailingProvider(), executor)

        add_all(composer, points[:3])
        for index in range(len(executor.tasks)):
            executor.run(index)
        composer.undo()

        state = composer.state
        assert state.waypoints == tuple(points[:2])
        assert state.geometry == tuple(points[:2])
        assert len(state.geometry) == len(state.waypoints)

    def test_undo_while_calculating_keeps_geometry_with_waypoints(self, make_composer, points):
        executor = DeferredExecutor()
        composer = make_composer(FakeProvider(), executor)

        add_all(composer, points[:3])
        composer.undo()
        composer.redo()

        state = composer.state
        assert state.waypoints == tuple(points[:3])
        assert state.geometry == tuple(points[:3])
        assert not state.is_calculating

    def test_save_while_calculating_stores_matching_geometry(self, make_composer, store, points):
        executor = DeferredExecutor()
        composer = make_composer(FakeProvider(), executor)

        add_all(composer, points[:3])
        saved = composer.save("Halvfärdig")

        assert saved.waypoints == tuple(points[:3])
        assert saved.geometry == tuple(points[:3])

    def test_close_leaves_shared_executor_running(self, store, points):
        shared = ThreadPoolExecutor(max_workers=1)
        try:
            composer = RouteComposer(store, RoutingGateway(FailingProvider()), executor=shared)
            composer.close()
            assert shared.submit(lambda: 42).result(timeout=5) == 42
        finally:
            shared.shutdown(wait=True)

    def test_wait_idle_with_threads(self, store, points):
        composer = RouteComposer(store, RoutingGateway(FakeProvider([detailed_result(points[:2], 1.5)])))
        try:
            add_all(composer, points[:2])
            assert composer.wait_idle(timeout=5)
            assert composer.state.distance_miles == 1.5
        finally:
            composer.close()


class TestSaveAndReset:

    def test_blank_name_is_noop(self, manual_composer, store, points):
        add_all(manual_composer, points[:3])
        manual_composer.update_name("   ")
        before = manual_composer.state

        assert manual_composer.save() is None

        assert manual_composer.state == before
        assert store.list_all() == []
        manual_composer.undo()
        assert manual_composer.state.waypoints == tuple(points[:2])

    def test_empty_waypoints_is_noop(self, manual_composer, store):
        assert manual_composer.save("Tom") is None
        assert store.list_all() == []
        assert manual_composer.state.route_name == ""

    def test_save_stores_record_and_resets(self, manual_composer, store, points):
        manual_composer.set_mode(TravelMode.DRIVE)
        add_all(manual_composer, points)
        draft = manual_composer.state

        saved = manual_composer.save("Lunchrunda")

        assert saved.id == 1
        assert saved.name == "Lunchrunda"
        assert saved.difficulty == Difficulty.EASY
        assert saved.mode == TravelMode.DRIVE
        assert saved.geometry == draft.geometry
        assert saved.distance_miles == draft.distance_miles
        assert store.list_all() == [saved]

        state = manual_composer.state
        assert state.save_completed
        assert state.mode == TravelMode.DRIVE
        assert state.waypoints == ()
        assert not state.can_undo and not state.can_redo
        assert not state.awaiting_mode_selection

    def test_save_uses_hard_grade(self, manual_composer, points):
        manual_composer.add_waypoint(Waypoint(0.0, 0.0, 0.0))
        manual_composer.add_waypoint(Waypoint(0.0, 0.01, 900.0))
        assert manual_composer.save("Backen").difficulty == Difficulty.HARD

    def test_new_waypoint_clears_save_completed(self, manual_composer, points):
        add_all(manual_composer, points[:2])
        manual_composer.save("Första")
        add_all(manual_composer, points[:2])
        assert not manual_composer.state.save_completed

    def test_reset_keeps_layer_only(self, manual_composer, points):
        manual_composer.set_mode(TravelMode.WALK)
        manual_composer.toggle_layer()
        add_all(manual_composer, points)

        manual_composer.reset()

        state = manual_composer.state
        assert state.layer == MapLayer.SATELLITE
        assert state.awaiting_mode_selection
        assert state.mode is None
        assert state.waypoints == ()
        assert not state.can_undo


class TestSubscribe:

    def test_listener_sees_every_transition(self, manual_composer, points):
        seen = []
        unsubscribe = manual_composer.subscribe(lambda state: seen.append(len(state.waypoints)))

        add_all(manual_composer, points[:2])
        unsubscribe()
        manual_composer.add_waypoint(points[2])

        assert seen == [0, 1, 2]

    def test_update_name(self, manual_composer):
        manual_composer.update_name("Kväll")
        assert manual_composer.state.route_name == "Kväll"
