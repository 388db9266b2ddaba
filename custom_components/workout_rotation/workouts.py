"""Day slot storage for Workout Rotation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from .const import MAX_DAY, MAX_EXERCISES, MIN_DAY, MIN_EXERCISES
from .exceptions import ValidationError
from .models import Exercise, Workout
from .storage import KeyValueStore, decode_record, encode_record, workout_key

_LOGGER = logging.getLogger(__name__)

DAYS = range(MIN_DAY, MAX_DAY + 1)


def validate_day(day: Any) -> int:
    try:
        value = int(day)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"Day must be a number between {MIN_DAY} and {MAX_DAY}") from err
    if value not in DAYS:
        raise ValidationError(f"Day must be between {MIN_DAY} and {MAX_DAY}, got {value}")
    return value


def validate_workout(workout: Workout) -> None:
    """Raise ValidationError unless the workout may occupy a day slot."""
    validate_day(workout.day)
    if not workout.title.strip():
        raise ValidationError("Please enter a workout title")
    count = len(workout.exercises)
    if count < MIN_EXERCISES:
        raise ValidationError("A workout needs at least one exercise")
    if count > MAX_EXERCISES:
        raise ValidationError(f"You can only add up to {MAX_EXERCISES} exercises")
    if any(not e.name.strip() for e in workout.exercises):
        raise ValidationError("Please name all exercises")
    ids = [e.id for e in workout.exercises]
    if len(set(ids)) != len(ids):
        raise ValidationError("Exercise ids must be unique within a workout")


def _decode_workout(key: str, raw: str | None) -> Workout | None:
    payload = decode_record(key, raw)
    if not isinstance(payload, dict):
        return None
    return Workout.from_dict(payload)


def read_workout(current: Mapping[str, str], day: int) -> Workout | None:
    key = workout_key(day)
    return _decode_workout(key, current.get(key))


class WorkoutStore:
    """Mapping of day slot -> workout on top of the key-value store."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def async_get_workout(self, day: int) -> Workout | None:
        key = workout_key(validate_day(day))
        return _decode_workout(key, await self._kv.async_get(key))

    async def async_list_days(self) -> dict[int, Workout | None]:
        data = await self._kv.async_snapshot()
        return {day: _decode_workout(workout_key(day), data.get(workout_key(day))) for day in DAYS}

    async def async_get_active_workout(self, current_day: int) -> Workout | None:
        """Workout for the active day, or None when the slot is empty."""
        return await self.async_get_workout(current_day)

    async def async_put_workout(self, workout: Workout) -> Workout:
        """Validate and store, replacing whatever occupied the day."""
        validate_workout(workout)
        key = workout_key(workout.day)
        await self._kv.async_transaction(lambda _current: {key: encode_record(workout.as_dict())})
        _LOGGER.debug("Stored workout %s for day %s", workout.id, workout.day)
        return workout

    async def async_update_progress(
        self,
        day: int,
        exercises: list[Exercise] | tuple[Exercise, ...],
        *,
        workout_id: str | None = None,
    ) -> bool:
        """Replace the exercise list of a day, keeping title and id.

        Returns False (and writes nothing) when the day is empty or, with
        ``workout_id``, when the slot now holds a different workout.
        """
        key = workout_key(validate_day(day))
        written = False

        def _mutate(current: Mapping[str, str]) -> dict[str, str] | None:
            nonlocal written
            existing = _decode_workout(key, current.get(key))
            if existing is None:
                return None
            if workout_id is not None and existing.id != workout_id:
                return None
            written = True
            return {key: encode_record(existing.with_exercises(exercises).as_dict())}

        await self._kv.async_transaction(_mutate)
        if not written:
            _LOGGER.warning("Progress for day %s not saved: no matching workout", day)
        return written

    async def async_update_exercise(
        self,
        day: int,
        exercise_id: str,
        *,
        expected: Mapping[str, Any] | None = None,
        **changes: Any,
    ) -> Workout | None:
        """Change fields of one exercise in place.

        ``expected`` lists field values that must still hold, otherwise the
        update is skipped. Returns the stored workout, or None when nothing
        was written.
        """
        key = workout_key(validate_day(day))
        result: Workout | None = None

        def _mutate(current: Mapping[str, str]) -> dict[str, str] | None:
            nonlocal result
            existing = _decode_workout(key, current.get(key))
            if existing is None:
                return None
            target = existing.exercise(exercise_id)
            if target is None:
                return None
            for field_name, value in (expected or {}).items():
                if getattr(target, field_name) != value:
                    return None
            updated = replace(target, **changes)
            result = existing.with_exercises([updated if e.id == exercise_id else e for e in existing.exercises])
            return {key: encode_record(result.as_dict())}

        await self._kv.async_transaction(_mutate)
        return result
