"""Completion and rotation state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from .const import ADVANCE_MANUAL, ADVANCE_ON_COMPLETE, ADVANCE_POLICIES, MAX_DAY, MIN_DAY
from .exceptions import StorageError, ValidationError
from .models import RotationState, Workout
from .stats import StatsEngine, completion_update, read_rotation
from .storage import KEY_ROTATION, KeyValueStore, decode_record, encode_record, workout_key
from .workouts import WorkoutStore, read_workout, validate_day

_LOGGER = logging.getLogger(__name__)

DAY_EMPTY = "empty"
DAY_IN_PROGRESS = "in_progress"
DAY_COMPLETE = "complete"


def day_state(workout: Workout | None) -> str:
    if workout is None or not workout.exercises:
        return DAY_EMPTY
    return DAY_COMPLETE if workout.is_complete else DAY_IN_PROGRESS


def next_day(current: int, populated: Iterable[int]) -> int:
    """Next populated slot after ``current``, wrapping 7 -> 1."""
    filled = set(populated)
    for step in range(1, MAX_DAY + 1):
        candidate = (current - MIN_DAY + step) % MAX_DAY + MIN_DAY
        if candidate in filled:
            return candidate
    return current % MAX_DAY + MIN_DAY


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a completion toggle."""

    workout: Workout
    changed: bool
    day_completed: bool
    advanced_to: int | None = None

    @property
    def state(self) -> str:
        return day_state(self.workout)


class RotationController:
    """Serializes per-day mutations and drives completion side effects.

    ``lock`` is held for every mutation and by snapshot restores.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        workouts: WorkoutStore,
        stats: StatsEngine,
        *,
        advance_policy: str = ADVANCE_MANUAL,
    ) -> None:
        if advance_policy not in ADVANCE_POLICIES:
            raise ValueError(f"Unknown advance policy {advance_policy!r}")
        self._kv = kv
        self._workouts = workouts
        self._stats = stats
        self.advance_policy = advance_policy
        self.lock = asyncio.Lock()

    async def async_complete_exercise(self, day: int, exercise_id: str) -> CompletionResult:
        day = validate_day(day)
        key = workout_key(day)
        async with self.lock:
            raw = await self._kv.async_get(key)
            workout = read_workout({key: raw}, day) if raw is not None else None
            if workout is None:
                raise ValidationError(f"No workout for day {day}")
            target = workout.exercise(exercise_id)
            if target is None:
                raise ValidationError(f"Unknown exercise {exercise_id!r} for day {day}")
            if target.completed:
                return CompletionResult(workout=workout, changed=False, day_completed=False)

            updated = workout.with_exercises(
                [replace(e, completed=True) if e.id == exercise_id else e for e in workout.exercises]
            )
            completed_now = updated.is_complete and not workout.is_complete
            today = self._stats.today().isoformat()

            def _mutate(current: Mapping[str, str]) -> dict[str, str]:
                if current.get(key) != raw:
                    raise StorageError(f"Workout for day {day} changed while saving progress")
                # Progress and the completion log commit together or not at all.
                changes = {key: encode_record(updated.as_dict())}
                if completed_now:
                    changes.update(completion_update(current, today) or {})
                return changes

            await self._kv.async_transaction(_mutate)

            advanced_to = None
            if completed_now:
                _LOGGER.debug("Day %s completed on %s", day, today)
                if self.advance_policy == ADVANCE_ON_COMPLETE:
                    advanced_to = (await self._async_advance_locked()).current_day
            return CompletionResult(
                workout=updated,
                changed=True,
                day_completed=completed_now,
                advanced_to=advanced_to,
            )

    async def async_edit_exercise(
        self,
        day: int,
        exercise_id: str,
        *,
        expected: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> Workout | None:
        """Edit one exercise without interleaving with completion toggles."""
        async with self.lock:
            return await self._workouts.async_update_exercise(day, exercise_id, expected=expected, **changes)

    async def async_replace_workout(self, workout: Workout) -> tuple[Workout | None, Workout]:
        """Store ``workout`` in its day slot; returns (previous, saved)."""
        async with self.lock:
            previous = await self._workouts.async_get_workout(workout.day)
            return previous, await self._workouts.async_put_workout(workout)

    async def async_get_state(self) -> RotationState:
        return await self._stats.async_ensure_rotation()

    async def async_advance_day(self) -> RotationState:
        async with self.lock:
            return await self._async_advance_locked()

    async def async_advance_if_stale(self) -> RotationState | None:
        """Advance when the active day was completed before today."""
        async with self.lock:
            state = await self._stats.async_ensure_rotation()
            workout = await self._workouts.async_get_workout(state.current_day)
            if workout is None or not workout.is_complete:
                return None
            log = await self._stats.async_completion_log()
            if not log or log[-1] >= self._stats.today().isoformat():
                return None
            return await self._async_advance_locked()

    async def _async_advance_locked(self) -> RotationState:
        fallback = self._stats.new_rotation()
        previous_day: int | None = None

        def _mutate(current: Mapping[str, str]) -> dict[str, str]:
            nonlocal previous_day
            state = read_rotation(current) or fallback
            previous_day = state.current_day
            populated = [d for d in range(MIN_DAY, MAX_DAY + 1) if read_workout(current, d) is not None]
            target_day = next_day(state.current_day, populated)
            changes = {KEY_ROTATION: encode_record(state.bump(current_day=target_day).as_dict())}
            target = read_workout(current, target_day)
            if target is not None and target.has_progress:
                # Completion flags only reset by starting a fresh workout instance.
                changes[workout_key(target_day)] = encode_record(target.fresh_instance().as_dict())
            return changes

        data = await self._kv.async_transaction(_mutate)
        new_state = RotationState.from_dict(decode_record(KEY_ROTATION, data[KEY_ROTATION]))
        _LOGGER.debug("Advanced rotation from day %s to day %s", previous_day, new_state.current_day)
        return new_state
