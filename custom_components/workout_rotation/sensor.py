"""Sensor platform for Workout Rotation."""

from __future__ import annotations

from typing import Any

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, NO_WORKOUT_TITLE
from .coordinator import WorkoutRotationCoordinator
from .entity import device_info_from_entry


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    coordinator: WorkoutRotationCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([ConsistencySensor(entry, coordinator), ActiveWorkoutSensor(entry, coordinator)])


class ConsistencySensor(CoordinatorEntity[WorkoutRotationCoordinator], SensorEntity):
    """Completed days since install."""

    _attr_has_entity_name = True
    _attr_name = "Consistency"
    _attr_icon = "mdi:calendar-check"
    _attr_native_unit_of_measurement = "days"

    def __init__(self, entry: ConfigEntry, coordinator: WorkoutRotationCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_consistency"
        self._attr_device_info = device_info_from_entry(entry, coordinator.sw_version)

    @property
    def _stats(self) -> dict[str, Any]:
        data = self.coordinator.data or {}
        stats = data.get("stats") if isinstance(data, dict) else None
        return stats if isinstance(stats, dict) else {}

    @property
    def native_value(self) -> int:
        return int(self._stats.get("completed_days") or 0)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data or {}
        rotation = data.get("rotation", {}) if isinstance(data.get("rotation"), dict) else {}
        return {
            "total_days": int(self._stats.get("total_days") or 1),
            "ratio": self._stats.get("ratio", 0.0),
            "install_date": rotation.get("install_date"),
            "last_sync_at": rotation.get("last_sync_at"),
        }


class ActiveWorkoutSensor(CoordinatorEntity[WorkoutRotationCoordinator], SensorEntity):
    """Title of the workout for the active day."""

    _attr_has_entity_name = True
    _attr_name = "Active workout"
    _attr_icon = "mdi:dumbbell"

    def __init__(self, entry: ConfigEntry, coordinator: WorkoutRotationCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_active_workout"
        self._attr_device_info = device_info_from_entry(entry, coordinator.sw_version)

    @property
    def _active(self) -> dict[str, Any]:
        data = self.coordinator.data or {}
        active = data.get("active") if isinstance(data, dict) else None
        return active if isinstance(active, dict) else {}

    @property
    def native_value(self) -> str:
        return str(self._active.get("title") or NO_WORKOUT_TITLE)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        workout = self._active.get("workout") if isinstance(self._active.get("workout"), dict) else {}
        exercises = workout.get("exercises", []) if isinstance(workout, dict) else []
        return {
            "day": self._active.get("day"),
            "state": workout.get("state", "empty") if workout else "empty",
            "exercises": exercises,
            "completed": sum(1 for e in exercises if isinstance(e, dict) and e.get("completed")),
        }
