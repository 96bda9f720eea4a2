import os
import sys
import pytest

# Ensure the service root (containing app.py, backend.py...) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from backend import MemoryBackend
from services.coordinator import RoomCoordinator


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def storage():
    return MemoryBackend()


@pytest.fixture()
def coordinator(storage, clock):
    return RoomCoordinator(storage, clock=clock)


@pytest.fixture()
def client(coordinator):
    from fastapi.testclient import TestClient
    from app import app
    from routers.rooms import get_coordinator

    app.dependency_overrides[get_coordinator] = lambda: coordinator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
