from __future__ import annotations

from datetime import datetime

import pytest

from homeassistant.util import dt as dt_util

from custom_components.workout_rotation.rotation import RotationController
from custom_components.workout_rotation.stats import StatsEngine
from custom_components.workout_rotation.storage import KeyValueStore
from custom_components.workout_rotation.workouts import WorkoutStore

from .common import ENTRY_ID, FakeClock


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    yield


@pytest.fixture
def clock() -> FakeClock:
    # Noon UTC keeps the local calendar date stable in the test time zone.
    return FakeClock(datetime(2026, 3, 2, 12, 0, tzinfo=dt_util.UTC))


@pytest.fixture
def kv(hass) -> KeyValueStore:
    return KeyValueStore(hass, ENTRY_ID)


@pytest.fixture
def workouts(kv) -> WorkoutStore:
    return WorkoutStore(kv)


@pytest.fixture
def stats(kv, clock) -> StatsEngine:
    return StatsEngine(kv, now=clock)


@pytest.fixture
def controller(kv, workouts, stats) -> RotationController:
    return RotationController(kv, workouts, stats)
