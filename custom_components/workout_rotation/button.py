"""Button platform for Workout Rotation."""

from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import WorkoutRotationCoordinator
from .entity import device_info_from_entry


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    coordinator: WorkoutRotationCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([UploadSnapshotButton(entry, coordinator), AdvanceDayButton(entry, coordinator)])


class UploadSnapshotButton(ButtonEntity):
    """Upload the whole store to the snapshot service."""

    _attr_has_entity_name = True
    _attr_name = "Upload snapshot"
    _attr_icon = "mdi:cloud-upload"

    def __init__(self, entry: ConfigEntry, coordinator: WorkoutRotationCoordinator) -> None:
        self._coordinator = coordinator
        self._attr_unique_id = f"{entry.entry_id}_upload_snapshot"
        self._attr_device_info = device_info_from_entry(entry, coordinator.sw_version)

    async def async_press(self) -> None:
        await self._coordinator.async_request_upload()


class AdvanceDayButton(ButtonEntity):
    """Move the rotation to the next day slot."""

    _attr_has_entity_name = True
    _attr_name = "Advance day"
    _attr_icon = "mdi:calendar-arrow-right"

    def __init__(self, entry: ConfigEntry, coordinator: WorkoutRotationCoordinator) -> None:
        self._coordinator = coordinator
        self._attr_unique_id = f"{entry.entry_id}_advance_day"
        self._attr_device_info = device_info_from_entry(entry, coordinator.sw_version)

    async def async_press(self) -> None:
        await self._coordinator.async_advance_day()
