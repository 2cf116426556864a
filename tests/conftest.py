import random

import pytest
from fastapi.testclient import TestClient

from sitesim.core.config import Settings
from sitesim.core.database import InMemoryRoomStore
from sitesim.engine import turns
from sitesim.main import create_app


class FixedRoll(random.Random):
    """Random whose dice always land on `face`; shuffles stay seeded-random."""

    def __init__(self, face: int, seed: int = 0):
        super().__init__(seed)
        self.face = face

    def randint(self, a, b):
        return self.face


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def lobby_state(rng):
    state = turns.new_game_state("ROOM1", "host", "Host", rng=rng)
    turns.add_player(state, "guest", "Guest")
    return state


@pytest.fixture
def active_state(lobby_state):
    turns.start_game(lobby_state, "host")
    return lobby_state


@pytest.fixture
def client():
    settings = Settings(ROOM_SWEEP_INTERVAL_SECONDS=0, USE_IN_MEMORY_DB=True)
    app = create_app(settings=settings, store=InMemoryRoomStore())
    with TestClient(app) as c:
        yield c


@pytest.fixture
def fixed_roll():
    return FixedRoll
