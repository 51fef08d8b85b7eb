"""
Gemensamma fixtures för testerna
"""

from concurrent.futures import Executor, Future

import pytest

from composer import RouteComposer
from models import RouteResult, Waypoint
from persistence import InMemoryRouteStore
from routing import RoutingGateway
from routing_providers import RoutingError, RoutingProvider


class InlineExecutor(Executor):
    """Kör uppgiften direkt i anropande tråd"""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Sparar uppgifter tills testet kör dem i vald ordning"""

    def __init__(self):
        self.tasks = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.tasks.append((future, fn, args, kwargs))
        return future

    def run(self, index):
        future, fn, args, kwargs = self.tasks[index]
        future.set_result(fn(*args, **kwargs))


class FakeProvider(RoutingProvider):
    """
    Provider med förberedda svar; ett undantag bland svaren kastas

    Svaren ges i anropsordning från en lista, eller väljs efter
    punktlistan när de ges som dict.
    """

    name = "fake"

    def __init__(self, responses=None):
        if isinstance(responses, dict):
            self.responses = dict(responses)
        else:
            self.responses = list(responses or [])
        self.calls = []

    def get_route(self, waypoints, mode):
        waypoints = tuple(waypoints)
        self.calls.append((waypoints, mode))
        if isinstance(self.responses, dict):
            response = self.responses.get(waypoints, RoutingError("inget svar för punkterna"))
        elif self.responses:
            response = self.responses.pop(0)
        else:
            response = RoutingError("inga svar kvar")
        if isinstance(response, Exception):
            raise response
        return response


class FailingProvider(RoutingProvider):
    name = "failing"

    def get_route(self, waypoints, mode):
        raise RoutingError("tjänsten svarar inte")


def detailed_result(points, distance_miles, elevation_feet=0.0, minutes=0, waypoints=()):
    return RouteResult(
        geometry=tuple(points),
        distance_miles=distance_miles,
        elevation_feet=elevation_feet,
        estimated_time_minutes=minutes,
        source="fake",
        waypoints=tuple(waypoints)
    )


@pytest.fixture
def store():
    return InMemoryRouteStore()


@pytest.fixture
def manual_composer(store):
    """Byggare utan ORS-nyckel"""
    return RouteComposer(store, RoutingGateway(), executor=InlineExecutor())


@pytest.fixture
def make_composer(store):
    def _make(provider, executor=None):
        return RouteComposer(store, RoutingGateway(provider), executor=executor or InlineExecutor())
    return _make


@pytest.fixture
def points():
    return [
        Waypoint(0.0, 0.0, 0.0),
        Waypoint(0.0, 0.01, 50.0),
        Waypoint(0.01, 0.01, 20.0),
        Waypoint(0.02, 0.02, 80.0),
    ]
