"""Coordinator for Workout Rotation."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .assets import AssetCache, image_refs
from .const import (
    CONF_ADVANCE_POLICY,
    CONF_IMAGE_LOOKUP,
    CONF_SYNC_URL,
    DEFAULT_ADVANCE_POLICY,
    DEFAULT_IMAGE_LOOKUP,
    DEFAULT_SYNC_URL,
    DOMAIN,
    NO_WORKOUT_TITLE,
    SIGNAL_STATE_UPDATED,
)
from .exceptions import ValidationError, WorkoutRotationError
from .image_lookup import ImageLookup
from .models import Exercise, Workout, new_workout_id, now_iso
from .rotation import RotationController, day_state
from .stats import StatsEngine
from .storage import KeyValueStore
from .sync import SyncClient
from .workouts import WorkoutStore, validate_day, validate_workout
from .ws_state import public_state

_LOGGER = logging.getLogger(__name__)


def _entry_option(entry: ConfigEntry, key: str, default: Any) -> Any:
    return entry.options.get(key, entry.data.get(key, default))


def workout_payload(workout: Workout | None) -> dict[str, Any] | None:
    if workout is None:
        return None
    return {**workout.as_dict(), "state": day_state(workout)}


class WorkoutRotationCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Owns the engine components and the UI-facing commands."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        self.entry = entry
        self.kv = KeyValueStore(hass, entry.entry_id)
        self.workouts = WorkoutStore(self.kv)
        self.stats = StatsEngine(self.kv)
        self.assets = AssetCache(hass)
        self.images = ImageLookup(hass)
        self.rotation = RotationController(
            self.kv,
            self.workouts,
            self.stats,
            advance_policy=str(_entry_option(entry, CONF_ADVANCE_POLICY, DEFAULT_ADVANCE_POLICY)),
        )
        self.sync = SyncClient(
            hass,
            entry.entry_id,
            self.kv,
            self.workouts,
            self.assets,
            base_url=str(_entry_option(entry, CONF_SYNC_URL, DEFAULT_SYNC_URL) or DEFAULT_SYNC_URL),
            mutation_lock=self.rotation.lock,
        )
        self.image_lookup_enabled = bool(_entry_option(entry, CONF_IMAGE_LOOKUP, DEFAULT_IMAGE_LOOKUP))
        self.sw_version: str | None = None

        super().__init__(
            hass,
            logger=_LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_{entry.entry_id}",
            update_interval=timedelta(minutes=30),
        )

    async def _async_update_data(self) -> dict[str, Any]:
        try:
            return await self.async_public_state()
        except WorkoutRotationError as err:
            raise UpdateFailed(str(err)) from err

    async def _async_changed(self) -> None:
        async_dispatcher_send(self.hass, f"{SIGNAL_STATE_UPDATED}_{self.entry.entry_id}")
        await self.async_request_refresh()

    async def async_public_state(self) -> dict[str, Any]:
        stats = await self.stats.async_get_stats()
        rotation = await self.rotation.async_get_state()
        return public_state(
            days=await self.async_list_days(),
            active=await self.async_get_active_workout(),
            stats=stats.as_dict(),
            rotation=rotation.as_dict(),
            sync={
                "sync_id": await self.sync.async_get_local_sync_id(),
                "busy": self.sync.busy,
            },
        )

    async def async_list_days(self) -> list[dict[str, Any]]:
        rotation = await self.rotation.async_get_state()
        days = await self.workouts.async_list_days()
        return [
            {
                "day": day,
                "active": day == rotation.current_day,
                "state": day_state(workout),
                "workout": workout_payload(workout),
            }
            for day, workout in days.items()
        ]

    async def async_get_active_workout(self) -> dict[str, Any]:
        rotation = await self.rotation.async_get_state()
        workout = await self.workouts.async_get_active_workout(rotation.current_day)
        if workout is None:
            return {"day": rotation.current_day, "title": NO_WORKOUT_TITLE, "workout": None}
        return {
            "day": rotation.current_day,
            "title": workout.title or f"Day {workout.day}",
            "workout": workout_payload(workout),
        }

    async def async_get_stats(self) -> dict[str, Any]:
        return (await self.stats.async_get_stats()).as_dict()

    async def _async_prepare_exercise(self, exercise: Exercise, lookup: bool) -> Exercise:
        if not exercise.image and lookup:
            url = await self.images.async_find_image(exercise.name)
            if url:
                exercise = Exercise(
                    id=exercise.id,
                    name=exercise.name,
                    image=url,
                    original_image=exercise.original_image,
                    completed=exercise.completed,
                )
        return await self.assets.async_cache_exercise(exercise)

    async def async_add_or_replace_workout(
        self,
        *,
        day: int,
        title: str,
        exercises: list[dict[str, Any]],
        lookup_images: bool | None = None,
    ) -> dict[str, Any]:
        """Validate, cache images, then store the workout for ``day``."""
        draft = Workout(
            id=new_workout_id(),
            day=validate_day(day),
            title=str(title or "").strip(),
            exercises=tuple(Exercise.from_dict(e) for e in exercises if isinstance(e, dict)),
            created_at=now_iso(),
        )
        if len(draft.exercises) != len(exercises):
            raise ValidationError("Exercises must be objects with a name")
        # Reject before any network traffic.
        validate_workout(draft)

        lookup = self.image_lookup_enabled if lookup_images is None else bool(lookup_images)
        prepared = await asyncio.gather(*(self._async_prepare_exercise(e, lookup) for e in draft.exercises))
        previous, saved = await self.rotation.async_replace_workout(draft.with_exercises(prepared))
        if previous is not None:
            still_used = image_refs((await self.workouts.async_list_days()).values())
            await self.assets.async_discard_all(image_refs([previous]) - still_used)
        await self._async_changed()
        return workout_payload(saved) or {}

    async def async_complete_exercise(self, day: int, exercise_id: str) -> dict[str, Any]:
        result = await self.rotation.async_complete_exercise(day, exercise_id)
        if result.changed:
            await self._async_changed()
        return {
            "changed": result.changed,
            "day_completed": result.day_completed,
            "advanced_to": result.advanced_to,
            "workout": workout_payload(result.workout),
            "stats": await self.async_get_stats(),
        }

    async def async_advance_day(self) -> dict[str, Any]:
        state = await self.rotation.async_advance_day()
        await self._async_changed()
        return state.as_dict()

    async def async_rename_exercise(self, day: int, exercise_id: str, name: str) -> dict[str, Any]:
        """Rename an exercise; its image is dropped so the next fetch matches the new name."""
        new_name = str(name or "").strip()
        if not new_name:
            raise ValidationError("Please name all exercises")
        workout = await self.workouts.async_get_workout(day)
        previous = workout.exercise(exercise_id) if workout else None
        if previous is None:
            raise ValidationError(f"Unknown exercise {exercise_id!r} for day {day}")
        updated = await self.rotation.async_edit_exercise(
            day, exercise_id, name=new_name, image=None, original_image=None
        )
        if updated is None:
            raise ValidationError(f"Unknown exercise {exercise_id!r} for day {day}")
        await self.assets.async_discard(previous.image)
        await self._async_changed()
        return workout_payload(updated) or {}

    async def async_fetch_exercise_image(self, day: int, exercise_id: str) -> dict[str, Any]:
        """Look up and cache an image for an exercise that has none."""
        workout = await self.workouts.async_get_workout(day)
        exercise = workout.exercise(exercise_id) if workout else None
        if exercise is None:
            raise ValidationError(f"Unknown exercise {exercise_id!r} for day {day}")
        if exercise.image:
            return {"fetched": False, "workout": workout_payload(workout)}

        url = await self.images.async_find_image(exercise.name)
        if not url:
            return {"fetched": False, "workout": workout_payload(workout)}
        local = await self.assets.async_materialize(url)
        updated = await self.rotation.async_edit_exercise(
            day,
            exercise_id,
            expected={"name": exercise.name, "image": None},
            image=local or url,
            original_image=url,
        )
        if updated is None:
            # Renamed or given an image while we were fetching.
            await self.assets.async_discard(local)
            return {"fetched": False, "workout": workout_payload(await self.workouts.async_get_workout(day))}
        await self._async_changed()
        return {"fetched": True, "workout": workout_payload(updated)}

    async def async_request_upload(self) -> dict[str, Any]:
        result = await self.sync.async_request_upload()
        await self._async_changed()
        return result

    async def async_request_download(self, sync_id: str | None = None) -> dict[str, Any]:
        result = await self.sync.async_request_download(sync_id)
        await self._async_changed()
        return result

    async def async_restore_images(self) -> int:
        restored = await self.assets.async_restore_all(self.workouts)
        if restored:
            await self._async_changed()
        return restored
