"""Shared helpers for Workout Rotation tests."""

from __future__ import annotations

from datetime import datetime, timedelta

from custom_components.workout_rotation.models import Exercise, Workout

ENTRY_ID = "entry_test"


class FakeClock:
    """Callable clock that tests move forward by whole days."""

    def __init__(self, start: datetime) -> None:
        self.value = start

    def __call__(self) -> datetime:
        return self.value

    def advance(self, days: int = 1) -> None:
        self.value = self.value + timedelta(days=days)


def make_workout(day: int, names: list[str], *, title: str = "Push") -> Workout:
    return Workout(
        id=f"wk_{day}",
        day=day,
        title=title,
        exercises=tuple(Exercise(id=f"ex_{day}_{i}", name=n) for i, n in enumerate(names, start=1)),
    )
